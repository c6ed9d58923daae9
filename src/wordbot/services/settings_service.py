"""Persistence for review settings."""
import json
import logging
from typing import Any, Optional

from sqlalchemy.orm import Session

from wordbot.models.models import Setting
from wordbot.models.review_models import ReviewSettings

logger = logging.getLogger(__name__)

STORAGE_KEY = "reviewSettings"


def make_key(user_id: Optional[int] = None) -> str:
    """Storage key, one settings record per user."""
    return STORAGE_KEY if user_id is None else f"{STORAGE_KEY}:{user_id}"


class SettingsService:
    """Loads and saves `ReviewSettings` as JSON in the settings table."""

    def __init__(self, db: Session, user_id: Optional[int] = None):
        """Initialize the service with a database session."""
        self.db = db
        self.key = make_key(user_id)

    def load(self) -> Optional[ReviewSettings]:
        """Stored settings, or None if nothing usable is stored."""
        row = self.db.query(Setting).filter(Setting.key == self.key).first()
        if not row:
            return None
        try:
            data = json.loads(row.value)
        except (TypeError, ValueError) as e:
            logger.warning(f"Failed to parse stored settings {self.key}: {e}")
            return None
        if not isinstance(data, dict):
            logger.warning(f"Stored settings {self.key} are not an object, ignoring them")
            return None
        return ReviewSettings.from_dict(data)

    def load_or_default(self) -> ReviewSettings:
        """Stored settings, falling back to defaults."""
        return self.load() or ReviewSettings()

    def save(self, review_settings: ReviewSettings) -> None:
        """Store settings, replacing any previous record."""
        value = json.dumps(review_settings.to_dict())
        row = self.db.query(Setting).filter(Setting.key == self.key).first()
        if row:
            row.value = value
        else:
            self.db.add(Setting(key=self.key, value=value))
        self.db.commit()
        logger.info(f"Saved settings {self.key}: {value}")

    def update(self, **changes: Any) -> ReviewSettings:
        """Change some fields, save and return the result."""
        review_settings = self.load_or_default().with_changes(**changes)
        self.save(review_settings)
        return review_settings
