"""Runs a review session: owns the state, performs the engine's effects."""
import asyncio
import logging
from typing import Any, Callable, List, Optional, Protocol, Tuple

from wordbot import monitoring
from wordbot.models.review_models import AttemptRecord, ReviewItem
from wordbot.services import review_engine
from wordbot.services.review_engine import (
    AnswerChanged,
    CancelLock,
    Confirm,
    Effect,
    Event,
    LockExpired,
    Phase,
    Quit,
    ReportAttempt,
    ReviewState,
    SessionEnded,
    StartLock,
)

logger = logging.getLogger(__name__)


class AttemptSink(Protocol):
    def report(self, record: AttemptRecord) -> Any: ...


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


Scheduler = Callable[[float, Callable[[], None]], TimerHandle]


def asyncio_scheduler(delay: float, callback: Callable[[], None]) -> TimerHandle:
    """Schedule on the running event loop."""
    return asyncio.get_running_loop().call_later(delay, callback)


class ReviewSession:
    """A live review session.

    Attempt reporting is best effort: sink errors are logged and the session
    carries on. The lockout timer is cancelled on quit and on `close()`, and
    a timer that fires anyway after that is ignored.
    """

    def __init__(
        self,
        queue: Tuple[ReviewItem, ...],
        margin: int,
        sink: AttemptSink,
        scheduler: Scheduler = asyncio_scheduler,
        lock_seconds: Optional[float] = None,
        on_change: Optional[Callable[["ReviewSession"], None]] = None,
    ):
        self.sink = sink
        self.scheduler = scheduler
        self.on_change = on_change
        self._timers: dict[int, TimerHandle] = {}
        self._closed = False
        self.state, effects = review_engine.start(queue, margin, lock_seconds)
        monitoring.sessions_started.inc()
        monitoring.active_sessions.inc()
        logger.info(f"Review session started with {len(self.state.queue)} words, margin {margin}")
        self._run_effects(effects)

    @property
    def current(self) -> Optional[ReviewItem]:
        return self.state.current

    @property
    def phase(self) -> Phase:
        return self.state.phase

    @property
    def answer(self) -> str:
        return self.state.answer

    @property
    def is_finished(self) -> bool:
        return self.state.is_finished

    def dispatch(self, event: Event) -> Phase:
        """Apply an event and perform its effects. Returns the new phase."""
        if self._closed:
            logger.debug(f"Ignoring {event!r} on a closed session")
            return self.state.phase
        self.state, effects = review_engine.step(self.state, event)
        self._run_effects(effects)
        return self.state.phase

    def set_answer(self, text: str) -> Phase:
        return self.dispatch(AnswerChanged(text))

    def submit(self, text: Optional[str] = None) -> Phase:
        """Confirm, optionally replacing the answer first."""
        if text is not None:
            self.set_answer(text)
        return self.dispatch(Confirm())

    def quit(self) -> Phase:
        phase = self.dispatch(Quit())
        self.close()
        return phase

    def close(self) -> None:
        """Cancel pending timers and detach from further events."""
        if self._closed:
            return
        for token in list(self._timers):
            self._cancel_timer(token)
        self._closed = True
        if not self.state.is_finished:
            # Torn down without Quit or completion, count it as abandoned.
            self._finish(Phase.QUIT)

    def _run_effects(self, effects: List[Effect]) -> None:
        for effect in effects:
            if isinstance(effect, ReportAttempt):
                self._report(effect.record)
            elif isinstance(effect, StartLock):
                self._start_timer(effect.token, effect.seconds)
            elif isinstance(effect, CancelLock):
                self._cancel_timer(effect.token)
            elif isinstance(effect, SessionEnded):
                self._finish(effect.phase)

    def _report(self, record: AttemptRecord) -> None:
        try:
            self.sink.report(record)
            monitoring.attempts_reported.labels(success=str(record.success).lower()).inc()
        except Exception as e:
            monitoring.attempt_report_failures.inc()
            logger.error(f"Failed to save review attempt for word {record.word_id}: {e}")

    def _start_timer(self, token: int, seconds: float) -> None:
        def fire() -> None:
            self._timers.pop(token, None)
            if self._closed:
                return
            self.dispatch(LockExpired(token))
            if self.on_change:
                self.on_change(self)

        self._timers[token] = self.scheduler(seconds, fire)

    def _cancel_timer(self, token: int) -> None:
        handle = self._timers.pop(token, None)
        if handle is not None:
            handle.cancel()

    def _finish(self, phase: Phase) -> None:
        monitoring.active_sessions.dec()
        monitoring.sessions_finished.labels(outcome=phase.value).inc()
        logger.info(f"Review session ended: {phase.value}")
