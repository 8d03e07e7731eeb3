"""
Configuration loader (``transfer_config.loader``).

Loads a YAML configuration file and parses it into the frozen
``transfer_config.schema`` dataclasses.  Runtime callers go through
``transfer_config.get_active_config()``, never through this module.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Wrongly typed values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from transfer_config.schema import (
    BootstrapConfig,
    DatabaseConfig,
    RetryConfig,
    TransferConfig,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _as_int(section: str, key: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{section}.{key} must be an integer, got {value!r}")
    return value


def parse_database(data: dict[str, Any]) -> DatabaseConfig:
    defaults = DatabaseConfig()
    return DatabaseConfig(
        url=str(data.get("url", defaults.url)),
        echo=bool(data.get("echo", defaults.echo)),
    )


def parse_retry(data: dict[str, Any]) -> RetryConfig:
    defaults = RetryConfig()
    codes = data.get("retryable_codes", defaults.retryable_codes)
    if isinstance(codes, (str, int)):
        codes = [codes]
    return RetryConfig(
        max_retries=_as_int("retry", "max_retries", data.get("max_retries", defaults.max_retries)),
        retry_delay_ms=_as_int(
            "retry", "retry_delay_ms", data.get("retry_delay_ms", defaults.retry_delay_ms)
        ),
        # YAML reads 40001 as an int; codes are strings.
        retryable_codes=tuple(str(c).strip() for c in codes),
    )


def parse_bootstrap(data: dict[str, Any]) -> BootstrapConfig:
    defaults = BootstrapConfig()
    return BootstrapConfig(
        account_count=_as_int(
            "bootstrap", "account_count", data.get("account_count", defaults.account_count)
        ),
        balance_step=str(data.get("balance_step", defaults.balance_step)),
    )


def parse_config(data: dict[str, Any]) -> TransferConfig:
    """
    Parse a full configuration dict.

    ``config_id`` and ``config_version`` are required; every section is
    optional and falls back to the schema defaults.
    """
    return TransferConfig(
        config_id=str(data["config_id"]),
        config_version=_as_int("root", "config_version", data["config_version"]),
        database=parse_database(data.get("database") or {}),
        retry=parse_retry(data.get("retry") or {}),
        bootstrap=parse_bootstrap(data.get("bootstrap") or {}),
        checksum=compute_checksum(data),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization; deterministic."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
