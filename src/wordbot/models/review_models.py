"""Models for review-related data structures."""
import logging
import math
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from wordbot.config import settings

logger = logging.getLogger(__name__)


class AskIn(str, Enum):
    """Language the prompt is shown in."""
    NATIVE = "native"
    FOREIGN = "foreign"


class ReviewMode(str, Enum):
    """Which prompt directions a session uses."""
    NATIVE = "native"
    FOREIGN = "foreign"
    BOTH = "both"  # random direction per item


class PriorityMode(str, Enum):
    """Word sampling policies. Only RANDOM is implemented."""
    RANDOM = "random"
    LESS_REVIEWED = "lessReviewed"
    OFTEN_FAILED = "oftenFailed"
    RECENT = "recent"


@dataclass(frozen=True)
class WordPair:
    """Native/foreign pair as handed to the review engine."""
    id: int
    native: str
    foreign: str
    description: str = ""

    @classmethod
    def from_model(cls, word: Any) -> "WordPair":
        return cls(
            id=word.id,
            native=word.native,
            foreign=word.foreign,
            description=word.description or "",
        )


@dataclass(frozen=True)
class ReviewItem:
    """A word pair with the prompt direction fixed at queue-build time."""
    word_id: int
    native: str
    foreign: str
    description: str
    ask_in: AskIn

    @classmethod
    def from_pair(cls, pair: WordPair, ask_in: AskIn) -> "ReviewItem":
        return cls(
            word_id=pair.id,
            native=pair.native,
            foreign=pair.foreign,
            description=pair.description,
            ask_in=ask_in,
        )

    @property
    def prompt(self) -> str:
        """Text shown to the learner."""
        return self.native if self.ask_in == AskIn.NATIVE else self.foreign

    @property
    def expected(self) -> str:
        """Answer the learner has to type."""
        return self.foreign if self.ask_in == AskIn.NATIVE else self.native


@dataclass(frozen=True)
class AttemptRecord:
    """Outcome of the first scored answer for a word within a pass."""
    word_id: int
    success: bool
    ask_in: AskIn
    timestamp: datetime


def _to_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def normalize_word_count(value: Any, default: Optional[int] = None) -> int:
    """Turn a requested word count into a positive integer.

    Anything that is not a positive number yields the default. Fractional
    counts are floored, the result is never below one.
    """
    if default is None:
        default = settings.review.word_count
    number = _to_number(value)
    if number is None or number <= 0:
        return default
    return max(1, math.floor(number))


def normalize_margin(value: Any, default: Optional[int] = None) -> int:
    """Turn a margin of error into a non-negative integer, or the default."""
    if default is None:
        default = settings.review.margin_of_error
    number = _to_number(value)
    if number is None or number < 0:
        return default
    return math.floor(number)


@dataclass(frozen=True)
class ReviewSettings:
    """User review preferences, persisted between sessions."""
    word_count: int = settings.review.word_count
    review_mode: ReviewMode = ReviewMode(settings.review.review_mode)
    priority_mode: PriorityMode = PriorityMode(settings.review.priority_mode)
    margin_of_error: int = settings.review.margin_of_error

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ReviewSettings":
        """Build settings from stored data, replacing bad fields with defaults."""
        defaults = cls()
        try:
            review_mode = ReviewMode(data.get("reviewMode", defaults.review_mode))
        except ValueError:
            logger.warning(f"Ignoring unknown review mode {data.get('reviewMode')!r}")
            review_mode = defaults.review_mode
        try:
            priority_mode = PriorityMode(data.get("priorityMode", defaults.priority_mode))
        except ValueError:
            logger.warning(f"Ignoring unknown priority mode {data.get('priorityMode')!r}")
            priority_mode = defaults.priority_mode
        return cls(
            word_count=normalize_word_count(data.get("wordCount"), defaults.word_count),
            review_mode=review_mode,
            priority_mode=priority_mode,
            margin_of_error=normalize_margin(data.get("marginOfError"), defaults.margin_of_error),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "wordCount": self.word_count,
            "reviewMode": self.review_mode.value,
            "priorityMode": self.priority_mode.value,
            "marginOfError": self.margin_of_error,
        }

    def with_changes(self, **changes: Any) -> "ReviewSettings":
        """Return a copy with the given fields changed, rejecting bad values."""
        unknown = set(changes) - {"word_count", "review_mode", "priority_mode", "margin_of_error"}
        if unknown:
            raise ValueError(f"Unknown settings: {', '.join(sorted(unknown))}")

        if "word_count" in changes:
            number = _to_number(changes["word_count"])
            if number is None or number < 1:
                raise ValueError(f"Word count must be a positive number, got {changes['word_count']!r}")
            changes["word_count"] = math.floor(number)
        if "margin_of_error" in changes:
            number = _to_number(changes["margin_of_error"])
            if number is None or number < 0:
                raise ValueError(f"Margin of error must be a non-negative number, got {changes['margin_of_error']!r}")
            changes["margin_of_error"] = math.floor(number)
        if "review_mode" in changes:
            changes["review_mode"] = ReviewMode(changes["review_mode"])
        if "priority_mode" in changes:
            changes["priority_mode"] = PriorityMode(changes["priority_mode"])

        return replace(self, **changes)
