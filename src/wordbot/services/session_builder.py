"""Builds the review queue for a session."""
import logging
import random
from typing import Iterable, Tuple, Union

from wordbot.models.review_models import AskIn, ReviewItem, ReviewMode, WordPair

logger = logging.getLogger(__name__)


def choose_ask_in(review_mode: ReviewMode, rng: random.Random = random) -> AskIn:
    """Prompt direction for one item; `both` flips a fair coin."""
    if review_mode == ReviewMode.BOTH:
        return AskIn.NATIVE if rng.random() < 0.5 else AskIn.FOREIGN
    return AskIn(review_mode.value)


def build_queue(
    words: Iterable[WordPair],
    review_mode: Union[ReviewMode, str],
    rng: random.Random = random,
) -> Tuple[ReviewItem, ...]:
    """Turn fetched word pairs into review items, keeping their order."""
    review_mode = ReviewMode(review_mode)
    queue = tuple(ReviewItem.from_pair(word, choose_ask_in(review_mode, rng)) for word in words)
    logger.debug(f"Built review queue of {len(queue)} items in {review_mode.value} mode")
    return queue
