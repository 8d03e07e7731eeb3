"""CLI views: account balances."""

from scripts.cli.views.accounts import BalanceTableReporter, show_accounts

__all__ = [
    "BalanceTableReporter",
    "show_accounts",
]
