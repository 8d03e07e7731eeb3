"""Selectors for the transfer kernel (read side)."""

from transfer_kernel.selectors.account_selector import AccountBalance, AccountSelector

__all__ = [
    "AccountBalance",
    "AccountSelector",
]
