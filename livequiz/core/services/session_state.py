"""Transition rules for the singleton session state.

Every function here is pure: it takes a ``SessionState`` snapshot and returns
the next one. Persisting the result and running side effects is the caller's
job, which keeps the reveal edge (``scoring_trigger``) testable on its own.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
import logging

from livequiz.core.errors import ConflictError
from livequiz.core.models import SessionPhase, SessionState, StateCommand

logger = logging.getLogger(__name__)


def start_question(state: SessionState, quiz_id: int) -> SessionState:
    """Activate ``quiz_id`` hidden, with any running countdown cleared."""
    return SessionState(current_quiz_id=quiz_id, is_result_revealed=False, timer_started_at=None)


def stop(state: SessionState) -> SessionState:
    return SessionState()


def set_reveal(state: SessionState, revealed: bool) -> SessionState:
    """Show or hide the results of the current question.

    The timer is cleared in both directions.
    """
    if state.phase is SessionPhase.IDLE:
        raise ConflictError("There is no active question to reveal.")
    if state.is_result_revealed == revealed:
        return state
    return replace(state, is_result_revealed=revealed, timer_started_at=None)


def start_timer(state: SessionState, now: datetime) -> SessionState:
    if state.phase is not SessionPhase.ACTIVE_HIDDEN:
        logger.warning("Ignoring timer start in phase %s", state.phase.name)
        return state
    if state.timer_started_at is not None:
        logger.warning("Ignoring timer start: countdown already running")
        return state
    return replace(state, timer_started_at=now)


def apply_command(state: SessionState, command: StateCommand, now: datetime) -> SessionState:
    """Derive the next state from an admin state update."""
    if command.current_quiz_id is None:
        return stop(state)

    if command.current_quiz_id != state.current_quiz_id:
        next_state = start_question(state, command.current_quiz_id)
    else:
        next_state = set_reveal(state, command.is_result_revealed)

    if command.start_timer:
        next_state = start_timer(next_state, now)
    return next_state


def scoring_trigger(previous: SessionState, current: SessionState) -> int | None:
    """Return the question to score when ``current`` is a hidden -> revealed edge."""
    if current.current_quiz_id is None:
        return None
    if previous.current_quiz_id != current.current_quiz_id:
        return None
    if previous.is_result_revealed or not current.is_result_revealed:
        return None
    return current.current_quiz_id
