"""
Tests for configuration loading.

Tests cover:
- Shipped sets (default, test) load and validate
- DATABASE_URL environment override
- Unknown keys and out-of-range values rejected
- Missing sets
- Checksum stability and the config trace log
"""

from pathlib import Path

import pytest
import yaml

from inventory_config import (
    InventoryConfig,
    LedgerConfig,
    get_active_config,
)
from inventory_config.loader import compute_checksum, parse_config, validate_config


@pytest.fixture(autouse=True)
def _no_database_url(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)


def _write_set(directory: Path, name: str, data: dict) -> Path:
    path = directory / f"{name}.yaml"
    path.write_text(yaml.safe_dump(data))
    return directory


class TestShippedSets:
    def test_default_set(self):
        config = get_active_config()
        assert config.name == "default"
        assert config.ledger.low_stock_alert_threshold == 10
        assert config.ledger.default_history_limit == 50
        assert config.ledger.max_history_limit == 500
        assert config.notifier.async_dispatch is True
        assert config.database.url.startswith("postgresql")
        assert len(config.checksum) == 64

    def test_test_set_uses_inline_dispatch(self):
        config = get_active_config("test")
        assert config.name == "test"
        assert config.notifier.async_dispatch is False
        assert config.database.lock_timeout_ms == 2000
        # Unspecified keys fall back to schema defaults
        assert config.ledger.max_history_limit == 500

    def test_missing_set(self):
        with pytest.raises(FileNotFoundError):
            get_active_config("does-not-exist")


class TestOverrides:
    def test_database_url_from_environment(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@db:5432/other")
        config = get_active_config()
        assert config.database.url == "postgresql://u:p@db:5432/other"

    def test_non_postgres_environment_url_rejected(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "sqlite:///inventory.db")
        with pytest.raises(ValueError, match="PostgreSQL"):
            get_active_config()

    def test_custom_config_dir(self, tmp_path):
        _write_set(tmp_path, "warehouse-b", {
            "name": "warehouse-b",
            "version": 3,
            "ledger": {"low_stock_alert_threshold": 25},
        })
        config = get_active_config("warehouse-b", config_dir=tmp_path)
        assert config.version == 3
        assert config.ledger.low_stock_alert_threshold == 25


class TestValidation:
    def test_unknown_key_rejected(self, tmp_path):
        _write_set(tmp_path, "bad", {"ledger": {"low_stock_threshold": 5}})
        with pytest.raises(ValueError, match="low_stock_threshold"):
            get_active_config("bad", config_dir=tmp_path)

    def test_section_must_be_mapping(self):
        with pytest.raises(ValueError, match="mapping"):
            parse_config({"notifier": ["enabled"]})

    @pytest.mark.parametrize(
        "ledger,fragment",
        [
            ({"default_min_threshold": -1}, "default_min_threshold"),
            ({"low_stock_alert_threshold": -5}, "low_stock_alert_threshold"),
            ({"default_history_limit": 0}, "default_history_limit"),
            ({"default_history_limit": 600}, "default_history_limit"),
            ({"max_history_limit": 0}, "max_history_limit"),
        ],
    )
    def test_ledger_ranges(self, tmp_path, ledger, fragment):
        _write_set(tmp_path, "bad", {"ledger": ledger})
        with pytest.raises(ValueError, match=fragment):
            get_active_config("bad", config_dir=tmp_path)

    def test_validate_config_collects_all_errors(self):
        config = InventoryConfig(
            ledger=LedgerConfig(default_min_threshold=-1, low_stock_alert_threshold=-1)
        )
        errors = validate_config(config)
        assert len(errors) == 2

    def test_defaults_are_valid(self):
        assert validate_config(InventoryConfig()) == []


class TestChecksumAndTrace:
    def test_checksum_ignores_key_order(self):
        assert compute_checksum({"a": 1, "b": 2}) == compute_checksum({"b": 2, "a": 1})
        assert compute_checksum({"a": 1}) != compute_checksum({"a": 2})

    def test_trace_logged(self, captured_logs):
        get_active_config("test")
        traces = [
            r for r in captured_logs() if r["message"] == "INVENTORY_CONFIG_TRACE"
        ]
        assert len(traces) == 1
        assert traces[0]["config_name"] == "test"
        assert traces[0]["database_url_from_env"] is False
