"""
inventory_config -- single public entrypoint for inventory configuration.

Responsibility:
    ``get_active_config()`` is the only way to obtain configuration at
    runtime.  It loads a named YAML set from ``inventory_config/sets/``,
    applies the ``DATABASE_URL`` environment override, validates, and
    returns a frozen ``InventoryConfig``.

Architecture position:
    Configuration sits above ``inventory_kernel`` and below
    ``inventory_services``.  The kernel MUST NEVER import from this package.

Failure modes:
    - ``FileNotFoundError`` -- no configuration set with that name.
    - ``ValueError`` -- unknown keys or out-of-range values.

Audit relevance:
    Every successful call emits an ``INVENTORY_CONFIG_TRACE`` log entry with
    the set name, version and checksum.
"""

from __future__ import annotations

import dataclasses
import logging
import os
from pathlib import Path

from inventory_config.loader import load_yaml_file, parse_config, validate_config
from inventory_config.schema import (
    DatabaseConfig,
    InventoryConfig,
    LedgerConfig,
    NotifierConfig,
)

_logger = logging.getLogger("inventory_kernel.config")

# Default configuration sets directory
_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"

DATABASE_URL_ENV = "DATABASE_URL"


def get_active_config(
    name: str = "default",
    config_dir: Path | None = None,
) -> InventoryConfig:
    """The ONLY public configuration entrypoint.

    Args:
        name: Configuration set name (``<name>.yaml`` in the sets directory).
        config_dir: Override path to the configuration sets directory.

    Raises:
        FileNotFoundError: If the set does not exist.
        ValueError: If the set fails validation.
    """
    sets_dir = config_dir or _DEFAULT_CONFIG_DIR
    path = sets_dir / f"{name}.yaml"
    if not path.is_file():
        raise FileNotFoundError(f"Configuration set not found: {path}")

    config = parse_config(load_yaml_file(path))

    env_url = os.environ.get(DATABASE_URL_ENV)
    if env_url:
        config = dataclasses.replace(
            config,
            database=dataclasses.replace(config.database, url=env_url),
        )

    errors = validate_config(config)
    if errors:
        raise ValueError(
            "Configuration validation failed:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )

    _logger.info(
        "INVENTORY_CONFIG_TRACE",
        extra={
            "trace_type": "INVENTORY_CONFIG_TRACE",
            "config_name": config.name,
            "config_version": config.version,
            "checksum": config.checksum,
            "database_url_from_env": bool(env_url),
        },
    )
    return config


__all__ = [
    "DatabaseConfig",
    "InventoryConfig",
    "LedgerConfig",
    "NotifierConfig",
    "get_active_config",
]
