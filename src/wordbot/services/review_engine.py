"""Review session state machine.

The session is an immutable `ReviewState` advanced by `step(state, event)`,
which returns the next state and a list of effects for the caller to carry
out (report an attempt, start or cancel the lockout timer, end the session).
Nothing in this module touches storage, timers or the clock directly.

Per item the phases run::

    PROMPTING --Confirm(correct)--> FEEDBACK_CORRECT --Confirm--> next item
    PROMPTING --Confirm(wrong)----> FEEDBACK_WRONG --LockExpired--> PROMPTING

FEEDBACK_WRONG is the lockout window: the expected answer is displayed and
every event except a matching LockExpired or Quit is ignored.

Items answered wrong are appended to the recycle buffer the first time they
miss within a pass, and that buffer becomes the next pass once the queue runs
out. A later correction in the same pass does not take the item back out of
the buffer.
"""
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, UTC
from enum import Enum
from typing import FrozenSet, List, Optional, Tuple, Union

from wordbot.config import settings
from wordbot.models.review_models import AttemptRecord, ReviewItem
from wordbot.services.scorer import score

logger = logging.getLogger(__name__)


class Phase(Enum):
    """Session phases."""
    PROMPTING = "prompting"
    FEEDBACK_CORRECT = "feedback_correct"
    FEEDBACK_WRONG = "feedback_wrong"  # locked until the timer expires
    COMPLETE = "complete"
    QUIT = "quit"


TERMINAL_PHASES = frozenset({Phase.COMPLETE, Phase.QUIT})


@dataclass(frozen=True)
class ReviewState:
    """Complete state of one review session."""
    queue: Tuple[ReviewItem, ...]
    recycle: Tuple[ReviewItem, ...] = ()
    position: int = 0
    recorded: FrozenSet[int] = frozenset()
    phase: Phase = Phase.PROMPTING
    answer: str = ""
    margin: int = 0
    lock_seconds: float = 3.0
    lock_token: int = 0
    pass_number: int = 1

    @property
    def current(self) -> Optional[ReviewItem]:
        if self.phase in TERMINAL_PHASES or self.position >= len(self.queue):
            return None
        return self.queue[self.position]

    @property
    def is_locked(self) -> bool:
        return self.phase == Phase.FEEDBACK_WRONG

    @property
    def is_finished(self) -> bool:
        return self.phase in TERMINAL_PHASES


# Events

@dataclass(frozen=True)
class AnswerChanged:
    text: str


@dataclass(frozen=True)
class Confirm:
    """Submit in PROMPTING, advance in FEEDBACK_CORRECT."""
    at: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass(frozen=True)
class LockExpired:
    token: int


@dataclass(frozen=True)
class Quit:
    pass


Event = Union[AnswerChanged, Confirm, LockExpired, Quit]


# Effects

@dataclass(frozen=True)
class ReportAttempt:
    record: AttemptRecord


@dataclass(frozen=True)
class StartLock:
    token: int
    seconds: float


@dataclass(frozen=True)
class CancelLock:
    token: int


@dataclass(frozen=True)
class SessionEnded:
    phase: Phase


Effect = Union[ReportAttempt, StartLock, CancelLock, SessionEnded]


def start(
    queue: Tuple[ReviewItem, ...],
    margin: int,
    lock_seconds: Optional[float] = None,
) -> Tuple[ReviewState, List[Effect]]:
    """Initial state for a queue. An empty queue is complete straight away."""
    if margin < 0:
        raise ValueError(f"Margin must be non-negative, got {margin}")
    if lock_seconds is None:
        lock_seconds = settings.review.lock_seconds
    state = ReviewState(queue=tuple(queue), margin=margin, lock_seconds=lock_seconds)
    if not state.queue:
        state = replace(state, phase=Phase.COMPLETE)
        return state, [SessionEnded(Phase.COMPLETE)]
    return state, []


def step(state: ReviewState, event: Event) -> Tuple[ReviewState, List[Effect]]:
    """Apply one event. Events that make no sense in the current phase are no-ops."""
    if state.is_finished:
        return state, []

    if isinstance(event, Quit):
        effects: List[Effect] = []
        if state.is_locked:
            effects.append(CancelLock(state.lock_token))
        effects.append(SessionEnded(Phase.QUIT))
        return replace(state, phase=Phase.QUIT), effects

    if isinstance(event, AnswerChanged):
        if state.phase != Phase.PROMPTING:
            return state, []
        return replace(state, answer=event.text), []

    if isinstance(event, LockExpired):
        if not state.is_locked or event.token != state.lock_token:
            logger.debug(f"Ignoring stale lock expiry {event.token} (current {state.lock_token}, {state.phase.value})")
            return state, []
        return replace(state, phase=Phase.PROMPTING, answer=""), []

    if isinstance(event, Confirm):
        if state.phase == Phase.PROMPTING:
            return _submit(state, event.at)
        if state.phase == Phase.FEEDBACK_CORRECT:
            return _advance(state)
        return state, []

    raise TypeError(f"Unknown review event: {event!r}")


def _submit(state: ReviewState, at: datetime) -> Tuple[ReviewState, List[Effect]]:
    item = state.current
    first_attempt = item.word_id not in state.recorded
    effects: List[Effect] = []

    if score(state.answer.strip(), item.expected, state.margin):
        if first_attempt:
            effects.append(ReportAttempt(AttemptRecord(item.word_id, True, item.ask_in, at)))
        return replace(
            state,
            phase=Phase.FEEDBACK_CORRECT,
            recorded=state.recorded | {item.word_id},
        ), effects

    recycle = state.recycle
    if first_attempt:
        effects.append(ReportAttempt(AttemptRecord(item.word_id, False, item.ask_in, at)))
        recycle = recycle + (item,)
    token = state.lock_token + 1
    effects.append(StartLock(token, state.lock_seconds))
    return replace(
        state,
        phase=Phase.FEEDBACK_WRONG,
        answer=item.expected,
        recycle=recycle,
        recorded=state.recorded | {item.word_id},
        lock_token=token,
    ), effects


def _advance(state: ReviewState) -> Tuple[ReviewState, List[Effect]]:
    if state.position + 1 < len(state.queue):
        return replace(state, position=state.position + 1, phase=Phase.PROMPTING, answer=""), []

    if state.recycle:
        logger.debug(f"Pass {state.pass_number} done, recycling {len(state.recycle)} items")
        return replace(
            state,
            queue=state.recycle,
            recycle=(),
            position=0,
            recorded=frozenset(),
            phase=Phase.PROMPTING,
            answer="",
            pass_number=state.pass_number + 1,
        ), []

    return replace(state, phase=Phase.COMPLETE, answer=""), [SessionEnded(Phase.COMPLETE)]
