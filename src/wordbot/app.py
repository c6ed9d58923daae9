"""Main application class."""
import logging
from typing import Optional
from warnings import filterwarnings

from telegram.warnings import PTBUserWarning

# Suppress the warning about CallbackQueryHandler and per_message
filterwarnings(action="ignore", message=r".*CallbackQueryHandler", category=PTBUserWarning)

from telegram.ext import (
    Application,
    CallbackQueryHandler,
    CommandHandler,
    ConversationHandler,
    MessageHandler,
    filters,
)

from wordbot.config import settings
from wordbot.models.base import init_db
from wordbot.monitoring import start_monitoring
from wordbot.bot import (
    handle_start,
    handle_callback,
    handle_message,
    handle_add_words,
    handle_review_answer,
    handle_custom_setting,
    MAIN_MENU,
    ADDING_WORDS,
    REVIEWING,
    EDITING_SETTING,
)


def build_conversation() -> ConversationHandler:
    """Conversation handler wiring the bot states."""
    return ConversationHandler(
        entry_points=[CommandHandler("start", handle_start)],
        states={
            MAIN_MENU: [
                MessageHandler(filters.TEXT & ~filters.COMMAND, handle_message),
                CallbackQueryHandler(handle_callback),
            ],
            ADDING_WORDS: [
                MessageHandler(filters.TEXT & ~filters.COMMAND, handle_add_words),
                CallbackQueryHandler(handle_callback),
            ],
            REVIEWING: [
                MessageHandler(filters.TEXT & ~filters.COMMAND, handle_review_answer),
                CallbackQueryHandler(handle_callback),
            ],
            EDITING_SETTING: [
                MessageHandler(filters.TEXT & ~filters.COMMAND, handle_custom_setting),
                CallbackQueryHandler(handle_callback),
            ],
        },
        fallbacks=[CommandHandler("start", handle_start)],
        per_message=False,
    )


class WordBot:
    """Main application class."""

    def __init__(self):
        """Initialize the application."""
        self.application: Optional[Application] = None
        self.running = False
        self.logger = logging.getLogger(__name__)

    async def start(self) -> None:
        """Start the application."""
        if self.running:
            return

        settings.validate(require_token=True)

        try:
            init_db()
            self.logger.info("Database initialized")

            if settings.bot.metrics_port:
                start_monitoring(settings.bot.metrics_port)
                self.logger.info("Metrics served on port %d", settings.bot.metrics_port)

            self.application = Application.builder().token(settings.bot.token).build()
            self.application.add_handler(build_conversation())
            self.logger.info("Handlers added")

            await self.application.initialize()
            await self.application.start()
            await self.application.updater.start_polling()
            self.logger.info("Application started")

            self.running = True

        except Exception as e:
            self.logger.error("Failed to start application: %s", str(e))
            await self.stop()
            raise

    async def stop(self) -> None:
        """Stop the application."""
        if not self.application:
            return

        try:
            if self.application.updater and self.application.updater.running:
                await self.application.updater.stop()
            if self.application.running:
                await self.application.stop()
            await self.application.shutdown()
            self.logger.info("Application stopped")
        finally:
            self.application = None
            self.running = False
