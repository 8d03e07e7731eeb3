"""
LedgerOperations -- the debit/credit pair of a balance transfer.

Responsibility:
    Issues, inside the transaction currently open on a resource, the debit
    of one account and the credit of another.  This is the unit of work
    the retry executor runs and re-runs.

Architecture position:
    Kernel > Services -- imperative shell.  Writes through a
    TransactionalResource; never commits or rolls back.

Invariants enforced:
    - Both UPDATEs run in the same transaction, so neither is visible
      unless the caller commits both.
    - Amounts and account numbers are bound parameters, never SQL text.
    - An UPDATE that matches no row aborts the unit of work with
      AccountNotFoundError; otherwise a typo would create or destroy money.

Failure modes:
    - TransferValidationError before any store call on a malformed amount
      or account number.
    - StoreError from the resource; the credit is not attempted if the
      debit failed.
    - AccountNotFoundError when an account number matches no row.

Non-goals:
    - No balance-sufficiency check; balances may go negative.
    - No self-transfer guard; debit and credit of the same row cancel out.
    - No statement-level retry; the executor retries whole transactions.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import update

from transfer_kernel.domain.dtos import TransferRequest
from transfer_kernel.exceptions import AccountNotFoundError
from transfer_kernel.logging_config import get_logger
from transfer_kernel.models.account import Account
from transfer_kernel.services.retry_executor import UnitOfWork
from transfer_kernel.services.transactional_resource import TransactionalResource

logger = get_logger("services.ledger_service")


class LedgerOperations:
    """
    Balance mutations for transfers.

    Contract:
        ``transfer()`` expects the resource to be usable (an open or
        auto-begun transaction) and leaves that transaction open.

    Guarantees:
        - The debit is issued before the credit.
        - On return, exactly one row was debited and exactly one credited.
    """

    def transfer(
        self,
        resource: TransactionalResource,
        from_account: str,
        to_account: str,
        amount: Decimal,
    ) -> TransferRequest:
        """
        Debit ``from_account`` and credit ``to_account`` by ``amount``.

        Returns:
            The validated TransferRequest that was applied.

        Raises:
            TransferValidationError: Malformed input, before touching the store.
            AccountNotFoundError: Either account number matched no row.
            StoreError: The store rejected a statement.
        """
        request = TransferRequest(from_account, to_account, amount)

        self._apply(resource, request.from_account, -request.amount)
        self._apply(resource, request.to_account, request.amount)

        logger.debug(
            "transfer_applied",
            extra={
                "from_account": request.from_account,
                "to_account": request.to_account,
                "amount": request.amount,
            },
        )
        return request

    def unit_of_work(self, request: TransferRequest) -> UnitOfWork:
        """Bind ``request`` into a unit of work for the retry executor."""

        def _transfer(resource: TransactionalResource) -> TransferRequest:
            return self.transfer(
                resource, request.from_account, request.to_account, request.amount
            )

        return _transfer

    def _apply(
        self, resource: TransactionalResource, account_no: str, delta: Decimal
    ) -> None:
        stmt = (
            update(Account)
            .where(Account.account_no == account_no)
            .values(balance=Account.balance + delta)
            .execution_options(synchronize_session=False)
        )
        result = resource.execute(stmt)
        if result.rowcount != 1:
            raise AccountNotFoundError(account_no)
