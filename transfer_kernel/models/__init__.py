"""ORM models for the transfer kernel."""

from transfer_kernel.models.account import Account

__all__ = [
    "Account",
]
