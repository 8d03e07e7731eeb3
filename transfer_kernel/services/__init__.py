"""Services for the transfer kernel (write side)."""

from transfer_kernel.services.ledger_service import LedgerOperations
from transfer_kernel.services.retry_executor import (
    RetryingTransactionExecutor,
    UnitOfWork,
)
from transfer_kernel.services.transactional_resource import (
    SessionResource,
    TransactionalResource,
)
from transfer_kernel.services.transfer_workflow import (
    TransferReporter,
    TransferRequestSource,
    TransferWorkflow,
)

__all__ = [
    "LedgerOperations",
    "RetryingTransactionExecutor",
    "SessionResource",
    "TransactionalResource",
    "TransferReporter",
    "TransferRequestSource",
    "TransferWorkflow",
    "UnitOfWork",
]
