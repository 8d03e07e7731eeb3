"""
Typed exception hierarchy for the transfer kernel.

Every error carries a class-level ``code`` (machine-readable) and its
context as attributes, so callers catch by type and read structured
data instead of parsing messages.  The retry executor depends on this:
store failures are classified by their SQLSTATE attribute, never by
message text.

    TransferKernelError (base)
    |
    +-- StoreError                      failure reported by the data store
    |   +-- CommitError                 ... raised while committing
    |
    +-- TransferError                   terminal outcome of a retry run
    |   +-- FatalStoreError             non-retryable store failure
    |   +-- RetriesExhaustedError       retryable conflict on the last attempt
    |   +-- TransferCancelledError      interrupted between attempts
    |
    +-- TransferValidationError         malformed request, never reaches store
    |
    +-- AccountError
    |   +-- AccountNotFoundError
    |
    +-- InvalidAttemptTransitionError   attempt state machine misuse
    +-- SleepInterruptedError           retry pause was interrupted

Code                        | When Raised
----------------------------|---------------------------------------------
STORE_ERROR                 | Statement failed in the store
COMMIT_FAILED               | Commit failed in the store
FATAL_STORE_ERROR           | Store failure not in the retryable code set
RETRIES_EXHAUSTED           | Conflict persisted through every attempt
TRANSFER_CANCELLED          | Interrupt during an attempt or retry pause
TRANSFER_VALIDATION_FAILED  | Bad account number or amount
ACCOUNT_NOT_FOUND           | UPDATE matched no account row
INVALID_ATTEMPT_TRANSITION  | Illegal attempt state transition
SLEEP_INTERRUPTED           | Sleeper.sleep() woken by interrupt()
"""

from __future__ import annotations

from typing import Any


class TransferKernelError(Exception):
    """
    Base exception for all transfer kernel errors.

    All subclasses must have a ``code`` class attribute.
    """

    code: str = "TRANSFER_KERNEL_ERROR"


# Store errors


class StoreError(TransferKernelError):
    """A store operation failed.

    ``sqlstate`` is the store's stable error code (e.g. ``40001``), or
    None when the driver did not report one.
    """

    code: str = "STORE_ERROR"

    def __init__(
        self,
        message: str,
        sqlstate: str | None = None,
        operation: str | None = None,
    ):
        self.sqlstate = sqlstate
        self.operation = operation
        super().__init__(message)

    def __str__(self) -> str:
        base = super().__str__()
        if self.sqlstate:
            return f"[{self.sqlstate}] {base}"
        return base


class CommitError(StoreError):
    """Commit failed; the transaction did not take effect."""

    code: str = "COMMIT_FAILED"

    def __init__(self, message: str, sqlstate: str | None = None):
        super().__init__(message, sqlstate=sqlstate, operation="commit")


# Terminal transfer outcomes


class TransferError(TransferKernelError):
    """Base exception for terminal failures of a retry run."""

    code: str = "TRANSFER_ERROR"


class FatalStoreError(TransferError):
    """Store failure outside the retryable code set. Rolled back, not retried."""

    code: str = "FATAL_STORE_ERROR"

    def __init__(self, error: StoreError, attempt_number: int):
        self.error = error
        self.sqlstate = error.sqlstate
        self.attempt_number = attempt_number
        super().__init__(
            f"Store error on attempt {attempt_number}: {error}"
        )


class RetriesExhaustedError(TransferError):
    """Retryable conflict persisted through the final allowed attempt."""

    code: str = "RETRIES_EXHAUSTED"

    def __init__(self, attempts: int, last_error: StoreError):
        self.attempts = attempts
        self.last_error = last_error
        self.sqlstate = last_error.sqlstate
        super().__init__(
            f"Gave up after {attempts} attempts; last conflict: {last_error}"
        )


class TransferCancelledError(TransferError):
    """Interrupted by the caller; no transaction was left open."""

    code: str = "TRANSFER_CANCELLED"

    def __init__(self, attempt_number: int):
        self.attempt_number = attempt_number
        super().__init__(f"Transfer cancelled after attempt {attempt_number}")


# Validation


class TransferValidationError(TransferKernelError):
    """A transfer request field is malformed."""

    code: str = "TRANSFER_VALIDATION_FAILED"

    def __init__(self, field: str, value: Any, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {field} {value!r}: {reason}")


# Account errors


class AccountError(TransferKernelError):
    """Base exception for account-related errors."""

    code: str = "ACCOUNT_ERROR"


class AccountNotFoundError(AccountError):
    """No account row matched the account number."""

    code: str = "ACCOUNT_NOT_FOUND"

    def __init__(self, account_no: str):
        self.account_no = account_no
        super().__init__(f"Account not found: {account_no}")


# Internal machinery


class InvalidAttemptTransitionError(TransferKernelError):
    """The attempt state machine was asked for a transition it does not allow."""

    code: str = "INVALID_ATTEMPT_TRANSITION"

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Invalid attempt transition: {current} -> {target}")


class SleepInterruptedError(TransferKernelError):
    """A retry pause was interrupted before its full duration elapsed."""

    code: str = "SLEEP_INTERRUPTED"

    def __init__(self, seconds: float):
        self.seconds = seconds
        super().__init__(f"Sleep of {seconds}s interrupted")
