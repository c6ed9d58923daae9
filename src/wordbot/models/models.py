"""Database models for the trainer."""
from sqlalchemy import (
    Boolean,
    Column,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from wordbot.models.base import Base, TimestampMixin


class Word(Base):
    """Native/foreign word pair."""

    __tablename__ = "words"

    id = Column(Integer, primary_key=True, autoincrement=True)
    native = Column(String, nullable=False)
    foreign = Column(String, nullable=False)
    description = Column(Text, default="")
    timestamp = Column(Integer)  # unix seconds

    # Relationships
    reviews = relationship("Review", back_populates="word", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<Word {self.id}: {self.native!r} - {self.foreign!r}>"


class Review(Base):
    """A single reported review attempt."""

    __tablename__ = "reviews"

    id = Column(Integer, primary_key=True, autoincrement=True)
    word_id = Column(Integer, ForeignKey("words.id", ondelete="CASCADE"), nullable=False, index=True)
    review_timestamp = Column(Integer, nullable=False)  # unix milliseconds
    success = Column(Boolean, nullable=False)
    hint_used = Column(Boolean, default=False)
    is_reviewed_in_foreign = Column(Boolean, nullable=False)

    # Relationships
    word = relationship("Word", back_populates="reviews")


class Setting(Base, TimestampMixin):
    """Key-value settings storage, values are JSON text."""

    __tablename__ = "settings"

    key = Column(String, primary_key=True)
    value = Column(Text, nullable=False)
