"""
Configuration Loader (``inventory_config.loader``).

Loads a YAML configuration set and parses it into the frozen dataclasses
of ``inventory_config.schema``.  Runtime callers use
``inventory_config.get_active_config()``, not this module.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown keys or out-of-range values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import fields
from pathlib import Path
from typing import Any

import yaml

from inventory_config.schema import (
    DatabaseConfig,
    InventoryConfig,
    LedgerConfig,
    NotifierConfig,
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


def _parse_section(cls, data: dict[str, Any] | None, section: str):
    data = data or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config section '{section}' must be a mapping")
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(
            f"Unknown key(s) in config section '{section}': {', '.join(unknown)}"
        )
    return cls(**data)


def parse_database(data: dict[str, Any] | None) -> DatabaseConfig:
    return _parse_section(DatabaseConfig, data, "database")


def parse_ledger(data: dict[str, Any] | None) -> LedgerConfig:
    return _parse_section(LedgerConfig, data, "ledger")


def parse_notifier(data: dict[str, Any] | None) -> NotifierConfig:
    return _parse_section(NotifierConfig, data, "notifier")


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def parse_config(data: dict[str, Any]) -> InventoryConfig:
    """Parse a whole configuration set dict."""
    return InventoryConfig(
        name=str(data.get("name", "default")),
        version=int(data.get("version", 1)),
        database=parse_database(data.get("database")),
        ledger=parse_ledger(data.get("ledger")),
        notifier=parse_notifier(data.get("notifier")),
        checksum=compute_checksum(data),
    )


def validate_config(config: InventoryConfig) -> list[str]:
    """Return a list of validation errors (empty when valid)."""
    errors: list[str] = []
    ledger = config.ledger
    if ledger.default_min_threshold < 0:
        errors.append("ledger.default_min_threshold must be >= 0")
    if ledger.low_stock_alert_threshold < 0:
        errors.append("ledger.low_stock_alert_threshold must be >= 0")
    if ledger.max_history_limit < 1:
        errors.append("ledger.max_history_limit must be >= 1")
    if not 1 <= ledger.default_history_limit <= ledger.max_history_limit:
        errors.append(
            "ledger.default_history_limit must be between 1 and max_history_limit"
        )
    if config.database.lock_timeout_ms < 0:
        errors.append("database.lock_timeout_ms must be >= 0")
    if config.database.pool_size < 1:
        errors.append("database.pool_size must be >= 1")
    if config.notifier.max_workers < 1:
        errors.append("notifier.max_workers must be >= 1")
    if not config.database.url.startswith("postgresql"):
        errors.append("database.url must be a PostgreSQL URL")
    return errors
