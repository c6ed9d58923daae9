"""Tests for the review session state machine."""
from datetime import datetime, UTC

import pytest

from wordbot.models.review_models import AskIn, AttemptRecord, ReviewItem
from wordbot.services import review_engine
from wordbot.services.review_engine import (
    AnswerChanged,
    CancelLock,
    Confirm,
    LockExpired,
    Phase,
    Quit,
    ReportAttempt,
    SessionEnded,
    StartLock,
    step,
)

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)

# prompt is the foreign word, expected answer is the native one
CAT = ReviewItem(word_id=1, native="cat", foreign="gato", description="animal", ask_in=AskIn.FOREIGN)
DOG = ReviewItem(word_id=2, native="dog", foreign="perro", description="", ask_in=AskIn.FOREIGN)


def answer(state, text, at=T0):
    state, _ = step(state, AnswerChanged(text))
    return step(state, Confirm(at=at))


def test_empty_queue_completes_immediately() -> None:
    state, effects = review_engine.start((), margin=1)
    assert state.phase == Phase.COMPLETE
    assert state.current is None
    assert effects == [SessionEnded(Phase.COMPLETE)]


def test_negative_margin_is_rejected() -> None:
    with pytest.raises(ValueError):
        review_engine.start((CAT,), margin=-1)


def test_correct_answer_within_margin_ends_session() -> None:
    state, effects = review_engine.start((CAT,), margin=1, lock_seconds=3)
    assert effects == []
    assert state.phase == Phase.PROMPTING
    assert state.current == CAT

    # one substitution away from "cat"
    state, effects = answer(state, "cst")
    assert state.phase == Phase.FEEDBACK_CORRECT
    assert effects == [ReportAttempt(AttemptRecord(1, True, AskIn.FOREIGN, T0))]

    state, effects = step(state, Confirm())
    assert state.phase == Phase.COMPLETE
    assert effects == [SessionEnded(Phase.COMPLETE)]
    assert state.recycle == ()
    assert state.current is None


def test_transposed_letters_count_as_two_edits() -> None:
    state, _ = review_engine.start((CAT,), margin=1)
    state, _ = answer(state, "cta")
    assert state.phase == Phase.FEEDBACK_WRONG

    state, _ = review_engine.start((CAT,), margin=2)
    state, _ = answer(state, "cta")
    assert state.phase == Phase.FEEDBACK_CORRECT


def test_answer_is_trimmed_before_scoring() -> None:
    state, _ = review_engine.start((CAT,), margin=0)
    state, _ = answer(state, "  Cat ")
    assert state.phase == Phase.FEEDBACK_CORRECT


def test_wrong_then_corrected_in_same_pass() -> None:
    state, _ = review_engine.start((CAT,), margin=0, lock_seconds=3)

    state, effects = answer(state, "dog")
    assert state.phase == Phase.FEEDBACK_WRONG
    assert state.is_locked
    assert state.answer == "cat"
    assert state.recycle == (CAT,)
    assert effects == [
        ReportAttempt(AttemptRecord(1, False, AskIn.FOREIGN, T0)),
        StartLock(state.lock_token, 3),
    ]

    # submissions are disabled while locked
    locked = state
    state, effects = step(state, Confirm())
    assert state == locked and effects == []
    state, effects = step(state, AnswerChanged("cat"))
    assert state == locked and effects == []

    state, effects = step(state, LockExpired(locked.lock_token))
    assert effects == []
    assert state.phase == Phase.PROMPTING
    assert state.current == CAT
    assert state.answer == ""

    # already recorded in this pass, nothing reported
    state, effects = answer(state, "cat")
    assert state.phase == Phase.FEEDBACK_CORRECT
    assert effects == []

    # the recycle entry is not retracted, the word comes back in pass two
    state, effects = step(state, Confirm())
    assert effects == []
    assert state.phase == Phase.PROMPTING
    assert state.pass_number == 2
    assert state.queue == (CAT,)
    assert state.recycle == ()
    assert state.recorded == frozenset()

    state, effects = answer(state, "cat")
    assert effects == [ReportAttempt(AttemptRecord(1, True, AskIn.FOREIGN, T0))]
    state, effects = step(state, Confirm())
    assert state.phase == Phase.COMPLETE
    assert effects == [SessionEnded(Phase.COMPLETE)]


def test_repeated_misses_are_reported_and_recycled_once() -> None:
    state, _ = review_engine.start((CAT,), margin=0)
    reports = []
    for attempt in range(3):
        state, effects = answer(state, "nope")
        reports += [e for e in effects if isinstance(e, ReportAttempt)]
        assert StartLock(state.lock_token, state.lock_seconds) in effects
        state, _ = step(state, LockExpired(state.lock_token))
    assert len(reports) == 1
    assert reports[0].record.success is False
    assert state.recycle == (CAT,)


def test_only_missed_items_are_recycled() -> None:
    state, _ = review_engine.start((CAT, DOG), margin=0)

    state, _ = answer(state, "wrong")
    state, _ = step(state, LockExpired(state.lock_token))
    state, _ = answer(state, "cat")
    state, _ = step(state, Confirm())
    assert state.current == DOG
    assert state.position == 1

    state, effects = answer(state, "dog")
    assert effects == [ReportAttempt(AttemptRecord(2, True, AskIn.FOREIGN, T0))]
    state, _ = step(state, Confirm())

    assert state.queue == (CAT,)
    assert state.position == 0
    assert state.current == CAT


def test_stale_lock_expiry_is_ignored() -> None:
    state, _ = review_engine.start((CAT,), margin=0)
    state, _ = answer(state, "dog")
    locked = state

    state, effects = step(state, LockExpired(locked.lock_token - 1))
    assert state == locked and effects == []

    # expiry in another phase is ignored too
    state, _ = step(state, LockExpired(locked.lock_token))
    state, effects = step(state, LockExpired(locked.lock_token))
    assert state.phase == Phase.PROMPTING and effects == []


def test_quit_while_locked_cancels_timer() -> None:
    state, _ = review_engine.start((CAT, DOG), margin=0)
    state, _ = answer(state, "dog")
    token = state.lock_token

    state, effects = step(state, Quit())
    assert state.phase == Phase.QUIT
    assert effects == [CancelLock(token), SessionEnded(Phase.QUIT)]

    # a late timer or further input does nothing
    for event in (LockExpired(token), Confirm(), AnswerChanged("x"), Quit()):
        after, effects = step(state, event)
        assert after == state and effects == []


def test_quit_while_prompting() -> None:
    state, _ = review_engine.start((CAT,), margin=0)
    state, effects = step(state, Quit())
    assert state.phase == Phase.QUIT
    assert effects == [SessionEnded(Phase.QUIT)]


def test_correct_answers_terminate() -> None:
    items = tuple(
        ReviewItem(word_id=i, native=f"n{i}", foreign=f"f{i}", description="", ask_in=AskIn.NATIVE)
        for i in range(10)
    )
    state, _ = review_engine.start(items, margin=0)
    steps = 0
    while not state.is_finished:
        if state.phase == Phase.PROMPTING:
            state, _ = answer(state, state.current.expected)
        else:
            state, _ = step(state, Confirm())
        steps += 1
    assert state.phase == Phase.COMPLETE
    assert steps == 20


def test_unknown_event_raises() -> None:
    state, _ = review_engine.start((CAT,), margin=0)
    with pytest.raises(TypeError):
        step(state, object())
