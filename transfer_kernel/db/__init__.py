"""Database layer - engine, base class, money types."""

from transfer_kernel.db.base import Base
from transfer_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_engine,
    get_session,
    init_engine_from_url,
)
from transfer_kernel.db.types import AccountNo, Money

__all__ = [
    "AccountNo",
    "Base",
    "Money",
    "create_tables",
    "drop_tables",
    "get_engine",
    "get_session",
    "init_engine_from_url",
]
