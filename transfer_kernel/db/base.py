"""
Module: transfer_kernel.db.base
Responsibility: Declarative base for the ORM models.  Provides the type
    annotation map that keeps money columns at financial precision.
Architecture position: Kernel > DB.  Lowest-level import target within
    the kernel; MUST NOT import from models/, services/, selectors/ or
    domain/.

Invariants enforced:
    - Decimal precision: type_annotation_map maps Python Decimal to
      Numeric(38, 9).  NEVER use float for monetary amounts.
"""

from decimal import Decimal
from typing import ClassVar

from sqlalchemy import Numeric, String
from sqlalchemy.orm import DeclarativeBase

from transfer_kernel.db.types import AccountNo, Money


class Base(DeclarativeBase):
    """
    Declarative base for all SQLAlchemy models.

    Guarantees:
        - Decimal and Money map to Numeric(38, 9) -- financial-grade precision.
        - AccountNo maps to String(50).
    """

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(38, 9),
        Money: Numeric(38, 9),
        AccountNo: String(50),
    }
