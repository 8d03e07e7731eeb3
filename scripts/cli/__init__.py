"""
Interactive transfer CLI.

Recreates and seeds the accounts table, then reads transfers from stdin
and runs each one as a serializable transaction with bounded retry,
showing balances after every transfer.

Entry point: scripts/transfer.py or python -m scripts.cli
"""

from scripts.cli.main import main

__all__ = ["main"]
