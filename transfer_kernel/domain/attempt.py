"""
Attempt state machine for the retry executor.

Responsibility:
    Names every state one executor run can be in and the transitions
    allowed between them.  The executor drives the machine; this module
    only decides whether a transition is legal.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

State machine:
    ATTEMPTING       -> SUCCEEDED | WAITING_TO_RETRY | FATAL | EXHAUSTED | CANCELLED
    WAITING_TO_RETRY -> ATTEMPTING | CANCELLED
    SUCCEEDED, FATAL, EXHAUSTED, CANCELLED: terminal

Side effects per transition (performed by the executor):
    ATTEMPTING -> anything but SUCCEEDED   rollback
    ATTEMPTING -> WAITING_TO_RETRY         then one pause of retry_delay
    WAITING_TO_RETRY -> CANCELLED          nothing (already rolled back)
"""

from __future__ import annotations

from enum import Enum

from transfer_kernel.exceptions import InvalidAttemptTransitionError


class AttemptState(str, Enum):
    """States of one executor run."""

    ATTEMPTING = "attempting"
    WAITING_TO_RETRY = "waiting_to_retry"
    SUCCEEDED = "succeeded"
    FATAL = "fatal"
    EXHAUSTED = "exhausted"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES


TERMINAL_STATES: frozenset[AttemptState] = frozenset({
    AttemptState.SUCCEEDED,
    AttemptState.FATAL,
    AttemptState.EXHAUSTED,
    AttemptState.CANCELLED,
})

VALID_TRANSITIONS: dict[AttemptState, frozenset[AttemptState]] = {
    AttemptState.ATTEMPTING: frozenset({
        AttemptState.SUCCEEDED,
        AttemptState.WAITING_TO_RETRY,
        AttemptState.FATAL,
        AttemptState.EXHAUSTED,
        AttemptState.CANCELLED,
    }),
    AttemptState.WAITING_TO_RETRY: frozenset({
        AttemptState.ATTEMPTING,
        AttemptState.CANCELLED,
    }),
}


def transition(current: AttemptState, target: AttemptState) -> AttemptState:
    """
    Validate and perform one state transition.

    Returns:
        ``target``, so callers can write ``state = transition(state, X)``.

    Raises:
        InvalidAttemptTransitionError: If ``target`` is not reachable from
            ``current`` (including any move out of a terminal state).
    """
    allowed = VALID_TRANSITIONS.get(current, frozenset())
    if target not in allowed:
        raise InvalidAttemptTransitionError(current.value, target.value)
    return target
