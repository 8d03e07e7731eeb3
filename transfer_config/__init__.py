"""
transfer_config -- single public entrypoint for runtime configuration.

Responsibility:
    ``get_active_config()`` loads a YAML configuration file, applies
    caller overrides (CLI flags, environment), validates the result and
    returns a frozen ``TransferConfig``.  Bridges in
    ``transfer_config.bridges`` turn it into kernel inputs.

Architecture position:
    Configuration -- sits above ``transfer_kernel``.  The kernel MUST
    NEVER import from ``transfer_config``.

Failure modes:
    - ``FileNotFoundError`` -- configuration file missing.
    - ``ValueError`` -- schema or validation failures.

Every successful call emits a ``config_loaded`` log entry with the
config id, version, checksum and the effective retry settings.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path

from transfer_config.loader import load_yaml_file, parse_config
from transfer_config.schema import (
    BootstrapConfig,
    DatabaseConfig,
    RetryConfig,
    TransferConfig,
)
from transfer_config.validator import ConfigValidationResult, validate_configuration

_logger = logging.getLogger("transfer_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(
    config_path: Path | None = None,
    *,
    database_url: str | None = None,
    max_retries: int | None = None,
    retry_delay_ms: int | None = None,
) -> TransferConfig:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: YAML file to load.  Defaults to sets/default.yaml.
        database_url: Overrides ``database.url`` when not None.
        max_retries: Overrides ``retry.max_retries`` when not None.
        retry_delay_ms: Overrides ``retry.retry_delay_ms`` when not None.

    Raises:
        FileNotFoundError: If the configuration file does not exist.
        ValueError: If the configuration fails validation.
    """
    path = config_path or DEFAULT_CONFIG_PATH
    config = parse_config(load_yaml_file(path))

    if database_url is not None:
        config = replace(config, database=replace(config.database, url=database_url))
    retry_overrides = {
        k: v
        for k, v in (("max_retries", max_retries), ("retry_delay_ms", retry_delay_ms))
        if v is not None
    }
    if retry_overrides:
        config = replace(config, retry=replace(config.retry, **retry_overrides))

    validation = validate_configuration(config)
    if not validation.is_valid:
        raise ValueError(
            "Configuration validation failed:\n"
            + "\n".join(f"  - {e}" for e in validation.errors)
        )
    for warning in validation.warnings:
        _logger.warning("config_warning", extra={"warning": warning})

    _logger.info(
        "config_loaded",
        extra={
            "config_id": config.config_id,
            "config_version": config.config_version,
            "checksum": config.checksum,
            "config_path": str(path),
            "max_retries": config.retry.max_retries,
            "retry_delay_ms": config.retry.retry_delay_ms,
            "retryable_codes": list(config.retry.retryable_codes),
        },
    )
    return config


__all__ = [
    "BootstrapConfig",
    "ConfigValidationResult",
    "DatabaseConfig",
    "DEFAULT_CONFIG_PATH",
    "RetryConfig",
    "TransferConfig",
    "get_active_config",
    "validate_configuration",
]
