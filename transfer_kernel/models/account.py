"""
Module: transfer_kernel.models.account
Responsibility: ORM persistence for the accounts relation -- the rows every
    transfer debits and credits.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - account_no is the primary key, so an account number names at most
      one row and an UPDATE by account number touches at most one balance.
    - balance is Numeric(38, 9) and maps to Decimal.

Failure modes:
    - IntegrityError on a duplicate account_no at bootstrap.
"""

from decimal import Decimal

from sqlalchemy.orm import Mapped, mapped_column

from transfer_kernel.db.base import Base
from transfer_kernel.db.types import AccountNo, Money


class Account(Base):
    """
    A balance-holding account.

    Contract:
        Rows are created at bootstrap and mutated only inside a committed
        transfer.  The kernel never deletes them.

    Non-goals:
        - No overdraft constraint: a balance may go negative, matching the
          permissive transfer semantics.
    """

    __tablename__ = "accounts"

    account_no: Mapped[AccountNo] = mapped_column(primary_key=True)

    balance: Mapped[Money] = mapped_column(nullable=False, default=Decimal("0"))

    def __repr__(self) -> str:
        return f"<Account {self.account_no}: {self.balance}>"
