"""
Engine and session wiring for the inventory ledger.

One process-wide engine, one sessionmaker bound to it.  Everything that
touches the database gets its sessions from here, so pool sizing, isolation
level and the lock wait bound are decided in exactly one place.

Connection policy:
    - PostgreSQL only.  The ledger depends on SELECT ... FOR UPDATE,
      INSERT ... ON CONFLICT, identity columns and row triggers.
    - READ COMMITTED.  Correctness comes from the row lock each mutation
      takes on its (sku, bin_location) row, not from the isolation level.
    - ``lock_timeout_ms`` becomes the server-side ``lock_timeout`` of every
      pooled connection.  A blocked mutation then fails with
      OperationalError instead of waiting forever, and the caller's
      transaction is rolled back.

Calling any accessor before ``init_engine_from_url()`` raises RuntimeError.
"""

import atexit
import time
from contextlib import contextmanager
from typing import Any, Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool

from inventory_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None

_TRIGGER_INSTALL_ATTEMPTS = 3


def _connect_args(lock_timeout_ms: int | None) -> dict[str, Any]:
    if not lock_timeout_ms:
        return {}
    return {"options": f"-c lock_timeout={int(lock_timeout_ms)}"}


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 20,
    max_overflow: int = 10,
    pool_pre_ping: bool = True,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
    lock_timeout_ms: int | None = None,
) -> Engine:
    """
    Build the engine and session factory; replaces any previous pair.

    ``lock_timeout_ms`` of None or 0 leaves lock waits unbounded.  Sessions
    are created with ``expire_on_commit=False`` so results stay readable
    after the owning service commits.
    """
    global _engine, _session_factory

    engine = create_engine(
        database_url,
        echo=echo,
        poolclass=QueuePool,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_pre_ping=pool_pre_ping,
        pool_timeout=pool_timeout,
        pool_recycle=pool_recycle,
        isolation_level="READ COMMITTED",
        connect_args=_connect_args(lock_timeout_ms),
    )
    _engine = engine
    _session_factory = sessionmaker(bind=engine, expire_on_commit=False)

    configure_logging()
    logger.info(
        "engine_initialized",
        extra={
            "pool_size": pool_size,
            "max_overflow": max_overflow,
            "lock_timeout_ms": lock_timeout_ms,
        },
    )
    return engine


def _not_initialized() -> RuntimeError:
    return RuntimeError(
        "Database engine is not initialized; call init_engine_from_url() first"
    )


def get_engine() -> Engine:
    if _engine is None:
        raise _not_initialized()
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    """Shared factory; give each worker thread its own session from it."""
    if _session_factory is None:
        raise _not_initialized()
    return _session_factory


def get_session() -> Session:
    return get_session_factory()()


@contextmanager
def session_scope(
    session_factory: sessionmaker[Session] | None = None,
) -> Generator[Session, None, None]:
    """
    Yield a session and commit it on success.

    Any exception rolls the session back and propagates.  The session is
    closed either way.

        with session_scope() as session:
            InventoryLedgerService(session, clock).deduct("SKU-1", "A-01", 2, "ORD-7")
    """
    factory = session_factory or get_session_factory()
    session = factory()
    try:
        yield session
    except Exception:
        session.rollback()
        logger.warning("session_scope_rolled_back", exc_info=True)
        raise
    else:
        session.commit()
    finally:
        session.close()


def _install_triggers_with_retry(engine: Engine) -> None:
    from inventory_kernel.db.triggers import install_immutability_triggers

    for attempt in range(1, _TRIGGER_INSTALL_ATTEMPTS + 1):
        try:
            install_immutability_triggers(engine)
            return
        except OperationalError as exc:
            deadlocked = "deadlock" in str(exc).lower()
            if not deadlocked or attempt == _TRIGGER_INSTALL_ATTEMPTS:
                raise
            logger.warning(
                "trigger_install_retry",
                extra={"attempt": attempt, "max_attempts": _TRIGGER_INSTALL_ATTEMPTS},
            )
            engine.dispose()
            time.sleep(0.5 * attempt)


def create_tables(install_triggers: bool = True) -> None:
    """
    Create the inventory tables, then (by default) the append-only triggers.

    Idempotent.  Trigger DDL that deadlocks against another process is
    retried a few times before the OperationalError is re-raised.
    """
    from inventory_kernel.db.base import Base
    import inventory_kernel.models  # noqa: F401

    engine = get_engine()
    Base.metadata.create_all(engine)
    if install_triggers:
        _install_triggers_with_retry(engine)


def drop_tables() -> None:
    """Remove triggers and tables.  Test setup only."""
    from inventory_kernel.db.base import Base
    from inventory_kernel.db.triggers import uninstall_immutability_triggers
    import inventory_kernel.models  # noqa: F401

    engine = get_engine()
    uninstall_immutability_triggers(engine)
    Base.metadata.drop_all(engine)


def reset_engine() -> None:
    """Dispose the engine and forget the factory."""
    global _engine, _session_factory

    engine, _engine, _session_factory = _engine, None, None
    if engine is not None:
        engine.dispose()


@atexit.register
def _dispose_on_exit() -> None:
    if _engine is None:
        return
    try:
        _engine.dispose()
    except Exception:
        logger.debug("engine_dispose_failed", exc_info=True)
