"""
TransferWorkflow -- sequential loop over transfer requests.

Responsibility:
    Pulls transfer requests one at a time from an input source, runs each
    through the retry executor as one LedgerOperations.transfer unit of
    work, and reports each success before asking for the next request.

Architecture position:
    Kernel > Services -- orchestration.  Input and display are supplied
    by the caller through the TransferRequestSource / TransferReporter
    protocols (the interactive CLI implements both).

Invariants enforced:
    - Strictly sequential: request n+1 is not read until request n reached
      a terminal outcome.  One resource never has two transfers in flight.
    - Every request runs under the same RetryPolicy.

Failure modes:
    - Terminal executor failures (FatalStoreError, RetriesExhaustedError,
      TransferCancelledError, or a non-store error) propagate to the
      caller and end the session; the resource is transaction-free.
    - Exceptions from the source (e.g. KeyboardInterrupt at a prompt)
      propagate unchanged.
"""

from __future__ import annotations

from typing import Protocol
from uuid import uuid4

from transfer_kernel.domain.dtos import RetryPolicy, TransferOutcome, TransferRequest
from transfer_kernel.exceptions import TransferKernelError
from transfer_kernel.logging_config import LogContext, get_logger
from transfer_kernel.services.ledger_service import LedgerOperations
from transfer_kernel.services.retry_executor import RetryingTransactionExecutor
from transfer_kernel.services.transactional_resource import TransactionalResource

logger = get_logger("services.transfer_workflow")


class TransferRequestSource(Protocol):
    """Supplies transfer requests; None signals end of input."""

    def next_request(self) -> TransferRequest | None:
        ...


class TransferReporter(Protocol):
    """Told about every transfer that committed."""

    def transfer_completed(
        self, request: TransferRequest, outcome: TransferOutcome
    ) -> None:
        ...


class TransferWorkflow:
    """
    Runs transfers from a source until it is exhausted.

    Contract:
        ``run()`` returns the number of committed transfers when the source
        returns None.  The first terminal failure propagates instead.
    """

    def __init__(
        self,
        resource: TransactionalResource,
        executor: RetryingTransactionExecutor,
        source: TransferRequestSource,
        ledger: LedgerOperations | None = None,
        reporter: TransferReporter | None = None,
        policy: RetryPolicy | None = None,
    ):
        self._resource = resource
        self._executor = executor
        self._source = source
        self._ledger = ledger or LedgerOperations()
        self._reporter = reporter
        self._policy = policy or executor.policy

    def run(self) -> int:
        completed = 0
        while (request := self._source.next_request()) is not None:
            self.run_one(request)
            completed += 1
        logger.info("transfers_finished", extra={"completed": completed})
        return completed

    def run_one(self, request: TransferRequest) -> TransferOutcome:
        """Run a single transfer to its terminal outcome."""
        with LogContext.bind(transfer_id=str(uuid4())):
            logger.info(
                "transfer_requested",
                extra={
                    "from_account": request.from_account,
                    "to_account": request.to_account,
                    "amount": request.amount,
                    "self_transfer": request.is_self_transfer,
                },
            )
            try:
                outcome = self._executor.run(
                    self._resource, self._ledger.unit_of_work(request), self._policy
                )
            except TransferKernelError as exc:
                logger.error(
                    "transfer_failed",
                    extra={"error_code": exc.code},
                )
                raise

            logger.info(
                "transfer_completed",
                extra={"attempts": outcome.attempts, "rollbacks": outcome.rollbacks},
            )
            if self._reporter is not None:
                self._reporter.transfer_completed(request, outcome)
            return outcome
