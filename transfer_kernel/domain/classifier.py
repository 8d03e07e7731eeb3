"""
ErrorClassifier -- retryable vs. fatal store failures.

Responsibility:
    Decides whether a failure raised during a transfer attempt is a
    transient concurrency conflict (worth another attempt) or fatal.

Architecture position:
    Kernel > Domain -- pure function of the error's stable code.  The only
    driver knowledge here is where each DB-API driver keeps that code.

Invariants enforced:
    - Classification reads the store's stable error code, never message
      text, so it is independent of server locale and wording.
    - Only StoreError instances can be RETRYABLE.  Anything else raised by
      a unit of work (validation, programming errors, missing accounts) is
      FATAL.

Default codes (PostgreSQL SQLSTATE):
    40P01  deadlock_detected
    40001  serialization_failure

    Oracle reports the same two conditions as 61000 (deadlock) and 72000
    (snapshot-isolation "can't serialize access"); configure those codes
    when running against Oracle.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable

from transfer_kernel.exceptions import StoreError

DEADLOCK_SQLSTATE = "40P01"
SERIALIZATION_FAILURE_SQLSTATE = "40001"

DEFAULT_RETRYABLE_CODES: frozenset[str] = frozenset({
    DEADLOCK_SQLSTATE,
    SERIALIZATION_FAILURE_SQLSTATE,
})


class ErrorClass(str, Enum):
    """Verdict for one failure."""

    RETRYABLE = "retryable"
    FATAL = "fatal"


@dataclass(frozen=True)
class ErrorClassifier:
    """
    Maps store failures to RETRYABLE or FATAL.

    Contract:
        ``classify(error)`` is RETRYABLE iff ``error`` is a StoreError whose
        ``sqlstate`` is in ``retryable_codes``.

    Guarantees:
        - Pure and immutable; one instance may be shared between executors
          running on different threads.
    """

    retryable_codes: frozenset[str] = field(default=DEFAULT_RETRYABLE_CODES)

    def __post_init__(self) -> None:
        codes = frozenset(str(c).strip() for c in self.retryable_codes)
        if not all(codes):
            raise ValueError("retryable_codes must not contain empty codes")
        object.__setattr__(self, "retryable_codes", codes)

    @classmethod
    def from_codes(cls, codes: Iterable[str]) -> ErrorClassifier:
        return cls(retryable_codes=frozenset(codes))

    def classify(self, error: BaseException) -> ErrorClass:
        if isinstance(error, StoreError) and error.sqlstate in self.retryable_codes:
            return ErrorClass.RETRYABLE
        return ErrorClass.FATAL

    def is_retryable(self, error: BaseException) -> bool:
        return self.classify(error) is ErrorClass.RETRYABLE


def sqlstate_of(error: BaseException) -> str | None:
    """
    Extract the stable store error code from a driver exception.

    Accepts a SQLAlchemy ``DBAPIError`` (looks at ``.orig``) or a raw
    DB-API exception.  Knows psycopg2 (``pgcode``), psycopg 3 and most
    other drivers (``sqlstate``), and sqlite3 (``sqlite_errorname``).

    Returns:
        The code as a string, or None if the driver reported none.
    """
    orig = getattr(error, "orig", None) or error
    for attr in ("pgcode", "sqlstate", "sqlite_errorname"):
        code = getattr(orig, attr, None)
        if code:
            return str(code)
    return None
