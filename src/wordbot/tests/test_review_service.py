"""Tests for the attempt log."""
from datetime import datetime, UTC

import pytest
from sqlalchemy.orm import Session, sessionmaker

from wordbot.models.models import Review, Word
from wordbot.models.review_models import AskIn, AttemptRecord
from wordbot.services.review_service import ReviewLog, ReviewService
from wordbot.services.word_service import WordService


@pytest.fixture
def word(db: Session) -> Word:
    return WordService(db).add_word("cat", "gato")


def test_report_stores_attempt(db: Session, word: Word) -> None:
    at = datetime(2026, 3, 1, 8, 30, 15, 250000, tzinfo=UTC)
    review_id = ReviewService(db).report(AttemptRecord(word.id, False, AskIn.FOREIGN, at))

    review = db.query(Review).filter(Review.id == review_id).one()
    assert review.word_id == word.id
    assert review.success is False
    assert review.hint_used is False
    assert review.is_reviewed_in_foreign is True
    assert review.review_timestamp == int(at.timestamp() * 1000)


def test_reviews_are_append_only(db: Session, word: Word) -> None:
    service = ReviewService(db)
    first = service.report(AttemptRecord(word.id, False, AskIn.NATIVE, datetime(2026, 1, 1, tzinfo=UTC)))
    second = service.report(AttemptRecord(word.id, True, AskIn.NATIVE, datetime(2026, 1, 2, tzinfo=UTC)))

    reviews = service.get_reviews_for_word(word.id)
    assert [r.id for r in reviews] == [first, second]
    assert [r.success for r in reviews] == [False, True]
    assert all(r.is_reviewed_in_foreign is False for r in reviews)


def test_report_for_missing_word_fails(db: Session) -> None:
    service = ReviewService(db)
    with pytest.raises(Exception):
        service.report(AttemptRecord(999, True, AskIn.FOREIGN, datetime.now(UTC)))
    # the session is still usable afterwards
    assert db.query(Review).count() == 0


def test_review_log_uses_own_session(db: Session, word: Word) -> None:
    factory = sessionmaker(bind=db.get_bind())
    review_id = ReviewLog(factory).report(AttemptRecord(word.id, True, AskIn.FOREIGN, datetime.now(UTC)))
    assert db.query(Review).filter(Review.id == review_id).count() == 1
