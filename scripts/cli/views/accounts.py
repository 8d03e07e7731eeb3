"""CLI views: account balance table."""

from typing import Callable

from sqlalchemy.orm import Session

from scripts.cli.util import fmt_amount
from transfer_kernel.domain.dtos import TransferOutcome, TransferRequest
from transfer_kernel.selectors.account_selector import AccountSelector


def show_accounts(session: Session, out: Callable[[str], None] = print) -> None:
    """
    Print every account balance and the ledger total.

    Ends its read transaction (commit on success, rollback on failure)
    so the next transfer starts from a fresh snapshot.
    """
    try:
        selector = AccountSelector(session)
        balances = selector.list_balances()
        total = selector.total_balance()
        session.commit()
    except Exception:
        session.rollback()
        raise

    W = 36
    out("")
    out("=" * W)
    out("  ACCOUNTS".center(W))
    out("=" * W)
    out(f"  {'account_no':<12} {'balance':>20}")
    out(f"  {'-'*12} {'-'*20}")
    for b in balances:
        out(f"  {b.account_no:<12} {fmt_amount(b.balance):>20}")
    out(f"  {'-'*12} {'-'*20}")
    out(f"  {'total':<12} {fmt_amount(total):>20}")
    out("")


class BalanceTableReporter:
    """TransferReporter that prints the balance table after every transfer."""

    def __init__(self, session: Session, out: Callable[[str], None] = print):
        self._session = session
        self._out = out

    def transfer_completed(self, request: TransferRequest, outcome: TransferOutcome) -> None:
        retries = outcome.attempts - 1
        suffix = f" after {retries} retr{'y' if retries == 1 else 'ies'}" if retries else ""
        self._out(f"Transfer complete{suffix}")
        show_accounts(self._session, self._out)
