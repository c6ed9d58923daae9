"""Configuration settings for the trainer."""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from .env file
env_file = ".env.test" if os.getenv("ENV") == "test" else ".env"
load_dotenv(env_file)


DATA_DIR = Path(os.getenv("DATA_DIR", "./data"))

# Review settings
REVIEW_MODES = ("native", "foreign", "both")
PRIORITY_MODES = ("random", "lessReviewed", "oftenFailed", "recent")
WORD_COUNT_PRESETS = [5, 10, 15, 20, 30, 42]
MARGIN_PRESETS = [0, 1, 2, 3]
MAX_WORD_COUNT = 1000
MAX_MARGIN_OF_ERROR = 100


def ensure_directories() -> None:
    """Ensure all required directories exist."""
    DATA_DIR.mkdir(parents=True, exist_ok=True)


@dataclass
class DatabaseSettings:
    """Database configuration settings."""
    url: str = os.getenv("DATABASE_URL", "sqlite:///wordbot.db")
    echo: bool = os.getenv("DATABASE_ECHO", "false").lower() == "true"


@dataclass
class LoggingSettings:
    """Logging configuration settings."""
    level: str = os.getenv("LOG_LEVEL", "INFO")
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    dir: Optional[str] = os.getenv("LOG_DIR", None)
    rotation: str = os.getenv("LOG_ROTATION", "midnight")
    interval: int = int(os.getenv("LOG_INTERVAL", "1"))
    backup_count: int = int(os.getenv("LOG_BACKUP_COUNT", "7"))


@dataclass
class BotSettings:
    """Bot configuration settings."""
    token: str = os.getenv("TELEGRAM_BOT_TOKEN", "")
    metrics_port: int = int(os.getenv("METRICS_PORT", "0"))


@dataclass
class ReviewDefaults:
    """Defaults for review sessions."""
    word_count: int = int(os.getenv("DEFAULT_WORD_COUNT", "10"))
    review_mode: str = os.getenv("DEFAULT_REVIEW_MODE", "foreign")
    priority_mode: str = "random"
    margin_of_error: int = int(os.getenv("DEFAULT_MARGIN_OF_ERROR", "1"))
    lock_seconds: float = float(os.getenv("REVIEW_LOCK_SECONDS", "3"))


def get_database_settings() -> DatabaseSettings:
    """Get database settings."""
    return DatabaseSettings()


def get_logging_settings() -> LoggingSettings:
    """Get logging settings."""
    return LoggingSettings()


def get_bot_settings() -> BotSettings:
    """Get bot settings."""
    return BotSettings()


def get_review_defaults() -> ReviewDefaults:
    """Get review defaults."""
    return ReviewDefaults()


@dataclass
class Settings:
    """Main settings class that combines all configuration settings."""
    database: DatabaseSettings = field(default_factory=get_database_settings)
    logging: LoggingSettings = field(default_factory=get_logging_settings)
    bot: BotSettings = field(default_factory=get_bot_settings)
    review: ReviewDefaults = field(default_factory=get_review_defaults)

    def validate(self, require_token: bool = False) -> None:
        """Validate settings and raise ValueError if invalid."""
        if require_token and not self.bot.token:
            raise ValueError("TELEGRAM_BOT_TOKEN is required")

        if self.review.word_count < 1:
            raise ValueError("DEFAULT_WORD_COUNT must be positive")

        if self.review.review_mode not in REVIEW_MODES:
            raise ValueError(f"DEFAULT_REVIEW_MODE must be one of {', '.join(REVIEW_MODES)}")

        if self.review.margin_of_error < 0:
            raise ValueError("DEFAULT_MARGIN_OF_ERROR cannot be negative")

        if self.review.lock_seconds < 0:
            raise ValueError("REVIEW_LOCK_SECONDS cannot be negative")


# Create global settings instance
settings = Settings()
settings.validate()
