"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Defines the immutable values that flow through a transfer: the
    TransferRequest (input), the RetryPolicy (fixed per session), the
    per-iteration TransactionAttempt, and the TransferOutcome returned on
    success.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Transfer amounts are finite, non-negative Decimals (never float).
    - Account numbers are non-empty, whitespace-trimmed strings.
    - RetryPolicy.max_retries and retry_delay_ms are non-negative integers.

Failure modes:
    - TransferValidationError on a malformed request field.
    - ValueError on a malformed RetryPolicy.

Non-goals:
    - from_account == to_account is accepted.  A self-transfer debits and
      credits the same row and leaves its balance unchanged.
    - No balance-sufficiency rule lives here or anywhere in the kernel.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Any

from transfer_kernel.domain.attempt import AttemptState
from transfer_kernel.exceptions import TransferValidationError

DEFAULT_MAX_RETRIES = 4
DEFAULT_RETRY_DELAY_MS = 1000


@dataclass(frozen=True)
class TransferRequest:
    """
    One balance transfer: move ``amount`` from one account to another.

    Contract:
        Construction validates every field; an instance that exists is
        safe to hand to the store.
    """

    from_account: str
    to_account: str
    amount: Decimal

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "from_account", _clean_account_no("from_account", self.from_account)
        )
        object.__setattr__(
            self, "to_account", _clean_account_no("to_account", self.to_account)
        )
        if isinstance(self.amount, (float, bool)) or not isinstance(
            self.amount, (Decimal, int)
        ):
            raise TransferValidationError(
                "amount", self.amount, "must be a Decimal or int"
            )
        amount = Decimal(self.amount)
        if not amount.is_finite():
            raise TransferValidationError("amount", self.amount, "must be finite")
        if amount < 0:
            raise TransferValidationError("amount", self.amount, "must not be negative")
        object.__setattr__(self, "amount", amount)

    @property
    def is_self_transfer(self) -> bool:
        return self.from_account == self.to_account


def _clean_account_no(field_name: str, value: Any) -> str:
    if value is None:
        raise TransferValidationError(field_name, value, "is required")
    cleaned = str(value).strip()
    if not cleaned:
        raise TransferValidationError(field_name, value, "must not be empty")
    return cleaned


@dataclass(frozen=True)
class RetryPolicy:
    """
    Retry budget and pause for one executor run.

    Total attempts per run is ``max_retries + 1``.
    """

    max_retries: int = DEFAULT_MAX_RETRIES
    retry_delay_ms: int = DEFAULT_RETRY_DELAY_MS

    def __post_init__(self) -> None:
        if isinstance(self.max_retries, bool) or not isinstance(self.max_retries, int):
            raise ValueError(f"max_retries must be an int, got {self.max_retries!r}")
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")
        if isinstance(self.retry_delay_ms, bool) or not isinstance(self.retry_delay_ms, int):
            raise ValueError(f"retry_delay_ms must be an int, got {self.retry_delay_ms!r}")
        if self.retry_delay_ms < 0:
            raise ValueError(f"retry_delay_ms must be >= 0, got {self.retry_delay_ms}")

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    @property
    def retry_delay_seconds(self) -> float:
        return self.retry_delay_ms / 1000


@dataclass(frozen=True)
class TransactionAttempt:
    """
    One iteration of the retry loop.  Never persisted.

    ``attempt_number`` is zero-based; the last allowed attempt is
    ``max_attempts - 1``.
    """

    attempt_number: int
    max_attempts: int
    last_error: BaseException | None = None

    @property
    def is_last(self) -> bool:
        return self.attempt_number >= self.max_attempts - 1

    def failed(self, error: BaseException) -> TransactionAttempt:
        return replace(self, last_error=error)

    def next(self) -> TransactionAttempt:
        """The following attempt; carries the last error forward."""
        return replace(self, attempt_number=self.attempt_number + 1)


@dataclass(frozen=True)
class TransferOutcome:
    """
    Result of a successful executor run.

    Attributes:
        result: Whatever the unit of work returned on the committed attempt.
        attempts: Number of attempts made, including the committed one.
        rollbacks: Rollbacks issued for the failed attempts before it.
        state: Always AttemptState.SUCCEEDED for a returned outcome.
    """

    result: Any
    attempts: int
    rollbacks: int
    state: AttemptState = AttemptState.SUCCEEDED

    @property
    def committed_attempt(self) -> int:
        """Zero-based index of the attempt that committed."""
        return self.attempts - 1
