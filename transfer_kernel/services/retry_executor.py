"""
RetryingTransactionExecutor -- run a unit of work until it commits.

Responsibility:
    Executes one unit of work against a TransactionalResource inside a
    single transaction, commits it, and on failure rolls back, classifies
    the failure and either pauses and retries (deadlock / serialization
    conflict) or gives up.

Architecture position:
    Kernel > Services -- imperative shell.  Drives the pure attempt state
    machine in ``transfer_kernel.domain.attempt``; pauses through an
    injected ``Sleeper``.

Invariants enforced:
    - At most one transaction is open on the resource at any time; each
      attempt starts from a resource with no open transaction.
    - Every exit path (success, fatal error, retry exhaustion,
      cancellation) leaves the resource with no open transaction.
    - Every failed attempt is rolled back before it is classified, so a
      failed attempt leaves no residual writes.
    - Total attempts per run never exceed ``policy.max_retries + 1``.
    - Rollback failures are discarded and never replace the primary error.

Failure modes:
    - FatalStoreError: store failure outside the retryable code set.
    - RetriesExhaustedError: retryable conflict on the last allowed attempt.
    - TransferCancelledError: pause interrupted, or KeyboardInterrupt
      during an attempt.
    - Any non-store exception raised by the unit of work is rolled back
      and re-raised unchanged, without retry.  So are SystemExit and
      GeneratorExit.

Usage:
    executor = RetryingTransactionExecutor(
        classifier=ErrorClassifier(),
        sleeper=SystemSleeper(),
        policy=RetryPolicy(max_retries=4, retry_delay_ms=1000),
    )
    outcome = executor.run(resource, lambda r: ledger.transfer(r, "1", "2", amount))
"""

from __future__ import annotations

from typing import Any, Callable

from transfer_kernel.domain.attempt import AttemptState, transition
from transfer_kernel.domain.classifier import ErrorClass, ErrorClassifier
from transfer_kernel.domain.dtos import RetryPolicy, TransactionAttempt, TransferOutcome
from transfer_kernel.domain.sleeper import Sleeper, SystemSleeper
from transfer_kernel.exceptions import (
    FatalStoreError,
    RetriesExhaustedError,
    SleepInterruptedError,
    StoreError,
    TransferCancelledError,
)
from transfer_kernel.logging_config import get_logger
from transfer_kernel.services.transactional_resource import TransactionalResource

logger = get_logger("services.retry_executor")

UnitOfWork = Callable[[TransactionalResource], Any]


class RetryingTransactionExecutor:
    """
    Bounded-retry transaction runner.

    Contract:
        ``run()`` returns a TransferOutcome only after a successful commit.
        Otherwise it raises, and the resource has no open transaction.

    Guarantees:
        - Attempt i (0-based) runs only after attempt i-1 was rolled back
          and, for i > 0, after exactly one pause of ``retry_delay``.
        - On success, ``outcome.rollbacks == outcome.attempts - 1``.

    Non-goals:
        - Does NOT open or close connections (caller owns the resource).
        - Does NOT retry individual statements; the whole unit of work is
          the unit of retry.
    """

    def __init__(
        self,
        classifier: ErrorClassifier | None = None,
        sleeper: Sleeper | None = None,
        policy: RetryPolicy | None = None,
    ):
        self._classifier = classifier or ErrorClassifier()
        self._sleeper = sleeper or SystemSleeper()
        self._policy = policy or RetryPolicy()

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    @property
    def sleeper(self) -> Sleeper:
        return self._sleeper

    def run(
        self,
        resource: TransactionalResource,
        unit_of_work: UnitOfWork,
        policy: RetryPolicy | None = None,
    ) -> TransferOutcome:
        """
        Run ``unit_of_work(resource)`` and commit it, retrying on conflicts.

        Args:
            resource: Store handle; must not be shared with a concurrent run.
            unit_of_work: Issues the attempt's writes.  Must not commit or
                roll back itself.
            policy: Overrides the executor's policy for this run.

        Returns:
            TransferOutcome with the unit of work's return value.

        Raises:
            FatalStoreError, RetriesExhaustedError, TransferCancelledError,
            or the unit of work's own non-store exception.
        """
        policy = policy or self._policy

        if resource.in_transaction:
            # A stale read snapshot would make the first attempt see old data.
            logger.warning("stale_transaction_rolled_back")
            resource.rollback()

        attempt = TransactionAttempt(attempt_number=0, max_attempts=policy.max_attempts)
        state = AttemptState.ATTEMPTING
        rollbacks = 0
        result: Any = None
        cancel_cause: BaseException | None = None

        while not state.is_terminal:
            if state is AttemptState.ATTEMPTING:
                logger.debug(
                    "attempt_started",
                    extra={
                        "attempt_number": attempt.attempt_number,
                        "max_attempts": attempt.max_attempts,
                    },
                )
                try:
                    result = unit_of_work(resource)
                    resource.commit()
                except KeyboardInterrupt as exc:
                    resource.rollback()
                    rollbacks += 1
                    cancel_cause = exc
                    state = transition(state, AttemptState.CANCELLED)
                except Exception as exc:
                    resource.rollback()
                    rollbacks += 1
                    attempt = attempt.failed(exc)
                    state = transition(state, self._after_failure(attempt))
                except BaseException:
                    # SystemExit, GeneratorExit: no retry, but no open transaction either.
                    resource.rollback()
                    raise
                else:
                    state = transition(state, AttemptState.SUCCEEDED)
                    logger.info(
                        "attempt_committed",
                        extra={
                            "attempt_number": attempt.attempt_number,
                            "rollbacks": rollbacks,
                        },
                    )
            else:
                try:
                    self._sleeper.sleep(policy.retry_delay_seconds)
                except (SleepInterruptedError, KeyboardInterrupt):
                    cancel_cause = attempt.last_error
                    state = transition(state, AttemptState.CANCELLED)
                else:
                    attempt = attempt.next()
                    state = transition(state, AttemptState.ATTEMPTING)

        return self._finish(state, attempt, rollbacks, result, cancel_cause)

    def _after_failure(self, attempt: TransactionAttempt) -> AttemptState:
        """Pick the state following a rolled-back attempt."""
        error = attempt.last_error
        verdict = self._classifier.classify(error)
        extra = {
            "attempt_number": attempt.attempt_number,
            "max_attempts": attempt.max_attempts,
            "error_class": verdict.value,
            "error_type": type(error).__name__,
            "sqlstate": getattr(error, "sqlstate", None),
        }
        logger.info("attempt_failed", extra=extra)

        if verdict is ErrorClass.FATAL:
            return AttemptState.FATAL
        if attempt.is_last:
            return AttemptState.EXHAUSTED
        logger.info("retry_scheduled", extra=extra)
        return AttemptState.WAITING_TO_RETRY

    def _finish(
        self,
        state: AttemptState,
        attempt: TransactionAttempt,
        rollbacks: int,
        result: Any,
        cancel_cause: BaseException | None = None,
    ) -> TransferOutcome:
        attempts = attempt.attempt_number + 1
        error = attempt.last_error

        if state is AttemptState.SUCCEEDED:
            return TransferOutcome(result=result, attempts=attempts, rollbacks=rollbacks)

        if state is AttemptState.CANCELLED:
            logger.warning(
                "retry_cancelled",
                extra={"attempt_number": attempt.attempt_number, "rollbacks": rollbacks},
            )
            raise TransferCancelledError(attempt.attempt_number) from cancel_cause

        if state is AttemptState.EXHAUSTED:
            logger.error(
                "retries_exhausted",
                extra={"attempts": attempts, "sqlstate": getattr(error, "sqlstate", None)},
            )
            raise RetriesExhaustedError(attempts, error) from error

        if isinstance(error, StoreError):
            logger.error(
                "fatal_store_error",
                extra={"attempt_number": attempt.attempt_number, "sqlstate": error.sqlstate},
            )
            raise FatalStoreError(error, attempt.attempt_number) from error

        logger.error(
            "unit_of_work_failed",
            extra={
                "attempt_number": attempt.attempt_number,
                "error_type": type(error).__name__,
            },
        )
        raise error
