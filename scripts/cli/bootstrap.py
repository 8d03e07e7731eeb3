"""CLI setup: drop, create and seed the accounts table."""

from decimal import Decimal

from sqlalchemy.orm import Session

from transfer_kernel.db.engine import session_scope
from transfer_kernel.logging_config import get_logger
from transfer_kernel.models.account import Account

logger = get_logger("cli.bootstrap")


def create_accounts_table(session: Session, balances: dict[str, Decimal]) -> None:
    """
    Recreate ``accounts`` holding exactly ``balances`` and commit.

    Any existing table and its rows are dropped first.  On failure the
    session is rolled back and the original error re-raised.
    """
    table = Account.__table__
    with session_scope(session):
        # DDL goes through the session's own connection so an in-memory
        # database sees the same schema the transfers will use.
        conn = session.connection()
        table.drop(conn, checkfirst=True)
        table.create(conn)
        session.add_all(
            Account(account_no=account_no, balance=balance)
            for account_no, balance in balances.items()
        )

    logger.info(
        "accounts_bootstrapped",
        extra={"account_count": len(balances), "total": sum(balances.values(), Decimal("0"))},
    )
