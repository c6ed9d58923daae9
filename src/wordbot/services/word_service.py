"""Service for managing word pairs."""
import logging
import time
from typing import Any, List, Optional, Union

from sqlalchemy import func
from sqlalchemy.orm import Session

from wordbot import monitoring
from wordbot.models.models import Word
from wordbot.models.review_models import (
    PriorityMode,
    ReviewMode,
    WordPair,
    normalize_word_count,
)

logger = logging.getLogger(__name__)


class PriorityModeNotImplementedError(NotImplementedError):
    """Raised when a declared but unimplemented priority mode is requested."""

    def __init__(self, priority_mode: str):
        self.priority_mode = priority_mode
        super().__init__(f"Priority mode '{priority_mode}' not implemented yet")


class WordService:
    """Service for managing word pairs."""

    def __init__(self, db: Session):
        """Initialize the service with a database session."""
        self.db = db

    def add_word(self, native: str, foreign: str, description: str = "") -> Word:
        """Store a new word pair. Both sides are required."""
        native = (native or "").strip()
        foreign = (foreign or "").strip()
        if not native or not foreign:
            raise ValueError("Both native and foreign are required")

        word = Word(
            native=native,
            foreign=foreign,
            description=description or "",
            timestamp=int(time.time()),
        )
        self.db.add(word)
        self.db.commit()
        self.db.refresh(word)
        monitoring.words_added.inc()
        logger.info(f"Added word {word.id}: {native} - {foreign}")
        return word

    def get_word(self, word_id: int) -> Optional[Word]:
        """Get a word by its ID."""
        return self.db.query(Word).filter(Word.id == word_id).first()

    def delete_word(self, word_id: int) -> bool:
        """Delete a word and its review history."""
        word = self.get_word(word_id)
        if not word:
            return False
        self.db.delete(word)
        self.db.commit()
        return True

    def get_word_count(self) -> int:
        """Get the count of words in the database."""
        return self.db.query(Word).count()

    def fetch(
        self,
        count: Any = None,
        review_mode: Union[ReviewMode, str] = ReviewMode.FOREIGN,
        priority_mode: Union[PriorityMode, str] = PriorityMode.RANDOM,
    ) -> List[WordPair]:
        """Get up to `count` randomly sampled word pairs for a review session."""
        try:
            priority_mode = PriorityMode(priority_mode)
        except ValueError:
            raise PriorityModeNotImplementedError(str(priority_mode))
        if priority_mode != PriorityMode.RANDOM:
            raise PriorityModeNotImplementedError(priority_mode.value)

        review_mode = ReviewMode(review_mode)
        count = normalize_word_count(count)
        words = self.db.query(Word).order_by(func.random()).limit(count).all()
        logger.info(f"Fetched {len(words)} of {count} requested words for {review_mode.value} review")
        return [WordPair.from_model(word) for word in words]
