"""
Module: transfer_kernel.selectors.account_selector
Responsibility: Read-only balance queries for the accounts relation: the
    balance table shown after each transfer, single-account lookups, and
    the ledger total used to check conservation.
Architecture position: Kernel > Selectors.

Non-goals:
    - Does NOT end the read transaction; callers that must leave the
      session transaction-free (the CLI display) commit or roll back.
"""

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import func, select

from transfer_kernel.exceptions import AccountNotFoundError
from transfer_kernel.models.account import Account
from transfer_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class AccountBalance:
    """One row of the balance table."""

    account_no: str
    balance: Decimal


class AccountSelector(BaseSelector):
    """Balance queries over ``accounts``."""

    def list_balances(self) -> list[AccountBalance]:
        """All accounts, ordered numerically when account numbers are digits."""
        rows = self.session.execute(
            select(Account.account_no, Account.balance)
        ).all()
        balances = [AccountBalance(r.account_no, Decimal(r.balance)) for r in rows]
        return sorted(balances, key=_account_sort_key)

    def get_balance(self, account_no: str) -> Decimal:
        """
        Raises:
            AccountNotFoundError: No such account.
        """
        balance = self.session.execute(
            select(Account.balance).where(Account.account_no == account_no)
        ).scalar_one_or_none()
        if balance is None:
            raise AccountNotFoundError(account_no)
        return Decimal(balance)

    def balance_map(self) -> dict[str, Decimal]:
        return {b.account_no: b.balance for b in self.list_balances()}

    def total_balance(self) -> Decimal:
        """Sum over all accounts.  Unchanged by any committed transfer."""
        total = self.session.execute(
            select(func.coalesce(func.sum(Account.balance), 0))
        ).scalar_one()
        return Decimal(total)


def _account_sort_key(b: AccountBalance) -> tuple[int, int, str]:
    if b.account_no.isdigit():
        return (0, int(b.account_no), b.account_no)
    return (1, 0, b.account_no)
