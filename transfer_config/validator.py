"""
Configuration validator (``transfer_config.validator``).

Checks a parsed TransferConfig for values the kernel would reject or
misbehave on.  Collects every problem instead of stopping at the first.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation

from transfer_config.schema import TransferConfig


@dataclass
class ConfigValidationResult:
    """Errors block use of the configuration; warnings are only logged."""

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


def validate_configuration(config: TransferConfig) -> ConfigValidationResult:
    result = ConfigValidationResult()

    if not config.database.url:
        result.add_error("database.url is empty")

    retry = config.retry
    if retry.max_retries < 0:
        result.add_error(f"retry.max_retries must be >= 0, got {retry.max_retries}")
    if retry.retry_delay_ms < 0:
        result.add_error(f"retry.retry_delay_ms must be >= 0, got {retry.retry_delay_ms}")
    if not retry.retryable_codes:
        result.add_error("retry.retryable_codes is empty")
    elif any(not code for code in retry.retryable_codes):
        result.add_error("retry.retryable_codes contains an empty code")
    if retry.max_retries == 0:
        result.add_warning("retry.max_retries is 0; conflicts will never be retried")

    if config.bootstrap.account_count < 0:
        result.add_error(
            f"bootstrap.account_count must be >= 0, got {config.bootstrap.account_count}"
        )
    try:
        step = Decimal(config.bootstrap.balance_step)
    except InvalidOperation:
        result.add_error(f"bootstrap.balance_step is not a number: {config.bootstrap.balance_step!r}")
    else:
        if not step.is_finite():
            result.add_error("bootstrap.balance_step must be finite")

    return result
