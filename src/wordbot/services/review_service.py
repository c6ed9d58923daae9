"""Attempt log: stores reported review attempts."""
import logging
from typing import Callable, List

from sqlalchemy.orm import Session

from wordbot.models.base import SessionLocal
from wordbot.models.models import Review
from wordbot.models.review_models import AskIn, AttemptRecord

logger = logging.getLogger(__name__)


class ReviewService:
    """Append-only log of review attempts."""

    def __init__(self, db: Session):
        """Initialize the service with a database session."""
        self.db = db

    def report(self, record: AttemptRecord, hint_used: bool = False) -> int:
        """Store an attempt and return the new row id."""
        review = Review(
            word_id=record.word_id,
            review_timestamp=int(record.timestamp.timestamp() * 1000),
            success=record.success,
            hint_used=hint_used,
            is_reviewed_in_foreign=record.ask_in == AskIn.FOREIGN,
        )
        self.db.add(review)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.debug(f"Stored review {review.id} for word {record.word_id} (success={record.success})")
        return review.id

    def get_reviews_for_word(self, word_id: int) -> List[Review]:
        """Attempts for one word, oldest first."""
        return (
            self.db.query(Review)
            .filter(Review.word_id == word_id)
            .order_by(Review.review_timestamp, Review.id)
            .all()
        )


class ReviewLog:
    """Attempt sink that opens a short-lived database session per report."""

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        self.session_factory = session_factory

    def report(self, record: AttemptRecord) -> int:
        db = self.session_factory()
        try:
            return ReviewService(db).report(record)
        finally:
            db.close()
