"""
Bridges from configuration to kernel inputs.

The kernel never imports ``transfer_config``; these helpers translate a
TransferConfig into the kernel's own value objects.
"""

from __future__ import annotations

from decimal import Decimal

from transfer_config.schema import TransferConfig
from transfer_kernel.domain.classifier import ErrorClassifier
from transfer_kernel.domain.dtos import RetryPolicy


def build_retry_policy(config: TransferConfig) -> RetryPolicy:
    return RetryPolicy(
        max_retries=config.retry.max_retries,
        retry_delay_ms=config.retry.retry_delay_ms,
    )


def build_classifier(config: TransferConfig) -> ErrorClassifier:
    return ErrorClassifier.from_codes(config.retry.retryable_codes)


def seed_balances(config: TransferConfig) -> dict[str, Decimal]:
    """Bootstrap balances: account ``i`` starts with ``i * balance_step``."""
    step = Decimal(config.bootstrap.balance_step)
    return {
        str(i): step * i
        for i in range(1, config.bootstrap.account_count + 1)
    }
