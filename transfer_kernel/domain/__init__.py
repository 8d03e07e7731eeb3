"""
Pure domain layer.

Immutable values and pure decisions with NO dependencies on the ORM,
the database, or I/O.  The one exception is SystemSleeper, the
sanctioned blocking boundary for retry pauses.
"""

from transfer_kernel.domain.attempt import (
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    AttemptState,
    transition,
)
from transfer_kernel.domain.classifier import (
    DEFAULT_RETRYABLE_CODES,
    ErrorClass,
    ErrorClassifier,
    sqlstate_of,
)
from transfer_kernel.domain.dtos import (
    RetryPolicy,
    TransactionAttempt,
    TransferOutcome,
    TransferRequest,
)
from transfer_kernel.domain.sleeper import RecordingSleeper, Sleeper, SystemSleeper

__all__ = [
    "AttemptState",
    "DEFAULT_RETRYABLE_CODES",
    "ErrorClass",
    "ErrorClassifier",
    "RecordingSleeper",
    "RetryPolicy",
    "Sleeper",
    "SystemSleeper",
    "TERMINAL_STATES",
    "TransactionAttempt",
    "TransferOutcome",
    "TransferRequest",
    "VALID_TRANSITIONS",
    "sqlstate_of",
    "transition",
]
