"""
PostgreSQL triggers that keep the transaction log append-only.

The ORM listeners in ``db.immutability`` only see ORM flushes; these
triggers also catch raw SQL.  Three are installed from ``sql/``:

    inventory_transactions   BEFORE UPDATE, BEFORE DELETE -> rejected
    inventory_units          BEFORE DELETE                -> rejected

A rejected statement raises ``IMMUTABILITY_VIOLATION`` in the database,
which reaches Python as a ``DBAPIError``.  TRUNCATE fires no row triggers,
which is how the test suite empties tables between committing tests.
"""

from pathlib import Path

from sqlalchemy import text
from sqlalchemy.engine import Engine

SQL_DIR = Path(__file__).parent / "sql"

INSTALL_SCRIPTS = ("01_inventory_transaction.sql", "02_inventory_unit.sql")
UNINSTALL_SCRIPT = "99_drop_all.sql"

ALL_TRIGGER_NAMES = [
    "trg_inventory_transaction_immutability_update",
    "trg_inventory_transaction_immutability_delete",
    "trg_inventory_unit_no_delete",
]


def _run_scripts(engine: Engine, *names: str) -> None:
    with engine.begin() as conn:
        for name in names:
            conn.execute(text((SQL_DIR / name).read_text(encoding="utf-8")))


def install_immutability_triggers(engine: Engine) -> None:
    """Create (or replace) the trigger functions and triggers.  Tables must exist."""
    _run_scripts(engine, *INSTALL_SCRIPTS)


def uninstall_immutability_triggers(engine: Engine) -> None:
    """Drop all three triggers.  Tests and migrations only."""
    _run_scripts(engine, UNINSTALL_SCRIPT)


def get_installed_triggers(engine: Engine) -> list[str]:
    query = text(
        "SELECT tgname FROM pg_trigger WHERE tgname = ANY(:names) ORDER BY tgname"
    )
    with engine.connect() as conn:
        return list(conn.execute(query, {"names": ALL_TRIGGER_NAMES}).scalars())


def get_missing_triggers(engine: Engine) -> list[str]:
    present = set(get_installed_triggers(engine))
    return sorted(name for name in ALL_TRIGGER_NAMES if name not in present)


def triggers_installed(engine: Engine) -> bool:
    return not get_missing_triggers(engine)
