"""
inventory_services.inventory_service -- process-level inventory coordinator.

Responsibility:
    The one object route handlers talk to.  Each public method runs in its
    own database transaction: it opens a session, delegates to the kernel
    ledger or selectors, commits on success, rolls back and re-raises on any
    failure, and returns DTOs.  Low-stock events from deductions are handed
    to the dispatcher for delivery after commit.

Architecture position:
    Services -- stateful orchestration over the kernel.  Constructed once
    per process (``InventoryService.from_config()``) and injected; it holds
    collaborators only, no per-request state.

Invariants enforced:
    - Transaction ownership: the kernel flushes, this layer commits.  A unit
      mutation and its transaction-log row commit together or not at all.
    - Low-stock notification happens strictly after commit and can never
      fail the deduction that triggered it.
    - No retry: NotFoundError / ConflictError and transient storage errors
      reach the caller unchanged.

Failure modes:
    - InventoryKernelError subclasses from the ledger (rolled back, logged
      as ``inventory_operation_rejected``).
    - SQLAlchemy DBAPIError on lock timeout / deadlock / connection loss
      (rolled back, logged as ``transaction_rolled_back``).

Usage:
    service = InventoryService.from_config()
    unit = service.reserve_inventory("SKU-1", "A-01", 5, "ORD-1")
    page = service.get_transaction_history(sku="SKU-1", limit=10)
"""

from __future__ import annotations

import time
from collections.abc import Generator, Iterable
from contextlib import contextmanager

from sqlalchemy.orm import Session, sessionmaker

from inventory_config import InventoryConfig, get_active_config
from inventory_kernel.db.engine import get_session_factory, init_engine_from_url
from inventory_kernel.db.immutability import register_immutability_listeners
from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.dtos import (
    AvailableStock,
    InventoryMetrics,
    InventoryUnitDTO,
    LedgerResult,
    LowStockAlert,
    ReconciliationReport,
    TransactionPage,
)
from inventory_kernel.exceptions import InventoryKernelError
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_kernel.models.inventory_transaction import TransactionType
from inventory_kernel.selectors.inventory_selector import InventorySelector
from inventory_kernel.selectors.transaction_selector import TransactionSelector
from inventory_kernel.services.ledger_service import InventoryLedgerService
from inventory_kernel.services.low_stock_notifier import (
    LowStockDispatcher,
    LowStockNotifier,
)
from inventory_services.reconciliation_service import ReconciliationService

logger = get_logger("services.inventory")

OUT_OF_STOCK_THRESHOLD = 1


class InventoryService:
    """
    Transaction-owning facade over the inventory kernel.

    Contract:
        Thread-safe to share: every call takes a fresh session from the
        factory, so concurrent callers never share ORM state.

    Guarantees:
        - Mutations return the committed InventoryUnitDTO.
        - Reads return DTOs built inside a single session snapshot.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        clock: Clock | None = None,
        dispatcher: LowStockDispatcher | None = None,
        config: InventoryConfig | None = None,
    ):
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._config = config or InventoryConfig()
        self._dispatcher = dispatcher or LowStockDispatcher(
            enabled=self._config.notifier.enabled
        )

    @classmethod
    def from_config(
        cls,
        config: InventoryConfig | None = None,
        notifier: LowStockNotifier | None = None,
    ) -> InventoryService:
        """Wire engine, session factory, clock and dispatcher from config."""
        config = config or get_active_config()
        db = config.database
        init_engine_from_url(
            db.url,
            echo=db.echo,
            pool_size=db.pool_size,
            max_overflow=db.max_overflow,
            pool_timeout=db.pool_timeout,
            pool_recycle=db.pool_recycle,
            lock_timeout_ms=db.lock_timeout_ms,
        )
        register_immutability_listeners()

        if config.notifier.async_dispatch:
            dispatcher = LowStockDispatcher.with_thread_pool(
                notifier,
                max_workers=config.notifier.max_workers,
                enabled=config.notifier.enabled,
            )
        else:
            dispatcher = LowStockDispatcher(
                notifier, enabled=config.notifier.enabled
            )

        logger.info(
            "inventory_service_initialized",
            extra={
                "config_name": config.name,
                "config_version": config.version,
                "async_dispatch": config.notifier.async_dispatch,
            },
        )
        return cls(get_session_factory(), SystemClock(), dispatcher, config)

    @property
    def config(self) -> InventoryConfig:
        return self._config

    def close(self) -> None:
        """Stop background notification delivery (waits for in-flight alerts)."""
        self._dispatcher.shutdown(wait=True)

    # ------------------------------------------------------------------
    # Transaction scope
    # ------------------------------------------------------------------

    @contextmanager
    def _transaction(self, operation: str) -> Generator[Session, None, None]:
        session = self._session_factory()
        t0 = time.monotonic()
        try:
            yield session
            session.commit()
        except InventoryKernelError as exc:
            session.rollback()
            logger.info(
                "inventory_operation_rejected",
                extra={
                    "operation": operation,
                    "error_code": exc.code,
                    "error": str(exc),
                    "duration_ms": round((time.monotonic() - t0) * 1000, 2),
                },
            )
            raise
        except Exception:
            session.rollback()
            logger.warning(
                "transaction_rolled_back",
                extra={
                    "operation": operation,
                    "duration_ms": round((time.monotonic() - t0) * 1000, 2),
                },
                exc_info=True,
            )
            raise
        finally:
            session.close()

    def _ledger(self, session: Session) -> InventoryLedgerService:
        return InventoryLedgerService(
            session,
            self._clock,
            default_min_threshold=self._config.ledger.default_min_threshold,
        )

    @staticmethod
    def _log_applied(message: str, result: LedgerResult) -> None:
        logger.info(
            message,
            extra={
                "transaction_id": result.transaction.transaction_id,
                "delta": result.transaction.quantity,
                "quantity": result.unit.quantity,
                "reserved": result.unit.reserved,
                "available": result.unit.available,
            },
        )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def reserve_inventory(
        self, sku: str, bin_location: str, quantity: int, order_id: str
    ) -> InventoryUnitDTO:
        with LogContext.bind(sku=sku, bin_location=bin_location, order_id=order_id):
            logger.info("inventory_reserving", extra={"requested": quantity})
            with self._transaction("reserve") as session:
                result = self._ledger(session).reserve(
                    sku, bin_location, quantity, order_id
                )
            self._log_applied("inventory_reserved", result)
            return result.unit

    def release_reservation(
        self, sku: str, bin_location: str, quantity: int, order_id: str
    ) -> InventoryUnitDTO:
        with LogContext.bind(sku=sku, bin_location=bin_location, order_id=order_id):
            logger.info("reservation_releasing", extra={"requested": quantity})
            with self._transaction("release") as session:
                result = self._ledger(session).release(
                    sku, bin_location, quantity, order_id
                )
            self._log_applied("reservation_released", result)
            return result.unit

    def deduct_inventory(
        self, sku: str, bin_location: str, quantity: int, order_id: str
    ) -> InventoryUnitDTO:
        with LogContext.bind(sku=sku, bin_location=bin_location, order_id=order_id):
            logger.info("inventory_deducting", extra={"requested": quantity})
            with self._transaction("deduct") as session:
                result = self._ledger(session).deduct(
                    sku, bin_location, quantity, order_id
                )
                if result.low_stock is not None:
                    logger.warning(
                        "low_stock_detected",
                        extra={
                            "quantity": result.low_stock.quantity,
                            "min_threshold": result.low_stock.min_threshold,
                        },
                    )
                    self._dispatcher.schedule(session, result.low_stock)
            self._log_applied("inventory_deducted", result)
            return result.unit

    def adjust_inventory(
        self,
        sku: str,
        bin_location: str,
        quantity: int,
        user_id: str,
        reason: str,
    ) -> InventoryUnitDTO:
        """Manual correction by ``quantity`` (signed); creates the unit if needed."""
        with LogContext.bind(sku=sku, bin_location=bin_location, actor_id=user_id):
            logger.info(
                "inventory_adjusting", extra={"delta": quantity, "reason": reason}
            )
            with self._transaction("adjust") as session:
                result = self._ledger(session).adjust(
                    sku, bin_location, quantity, user_id, reason
                )
            self._log_applied("inventory_adjusted", result)
            return result.unit

    def provision_sku_bins(
        self,
        sku: str,
        bin_locations: Iterable[str],
        min_threshold: int | None = None,
    ) -> list[InventoryUnitDTO]:
        """Create zero-stock units for a newly catalogued SKU."""
        with LogContext.bind(sku=sku):
            with self._transaction("provision") as session:
                return self._ledger(session).provision_bins(
                    sku, bin_locations, min_threshold
                )

    def set_min_threshold(
        self, sku: str, bin_location: str, min_threshold: int
    ) -> InventoryUnitDTO:
        with LogContext.bind(sku=sku, bin_location=bin_location):
            with self._transaction("set_min_threshold") as session:
                return self._ledger(session).set_min_threshold(
                    sku, bin_location, min_threshold
                )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_unit(self, sku: str, bin_location: str) -> InventoryUnitDTO | None:
        with self._transaction("get_unit") as session:
            return InventorySelector(session).get_unit(sku, bin_location)

    def get_inventory_by_sku(self, sku: str) -> list[InventoryUnitDTO]:
        with self._transaction("get_inventory_by_sku") as session:
            return InventorySelector(session).find_by_sku(sku)

    def get_inventory_by_bin_location(
        self, bin_location: str
    ) -> list[InventoryUnitDTO]:
        with self._transaction("get_inventory_by_bin_location") as session:
            return InventorySelector(session).find_by_bin_location(bin_location)

    def get_available_inventory(self, sku: str) -> list[AvailableStock]:
        with self._transaction("get_available_inventory") as session:
            return InventorySelector(session).get_available_inventory(sku)

    def get_total_available(self, sku: str) -> int:
        with self._transaction("get_total_available") as session:
            return InventorySelector(session).get_total_available(sku)

    def get_transaction_history(
        self,
        sku: str | None = None,
        order_id: str | None = None,
        type: TransactionType | str | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> TransactionPage:
        """Newest-first page of the transaction log; limit defaults from config."""
        ledger_config = self._config.ledger
        if limit is None:
            limit = ledger_config.default_history_limit
        with self._transaction("get_transaction_history") as session:
            selector = TransactionSelector(
                session, max_limit=ledger_config.max_history_limit
            )
            return selector.get_history(
                sku=sku, order_id=order_id, type=type, limit=limit, offset=offset
            )

    def get_low_stock_alerts(
        self, threshold: int | None = None
    ) -> list[LowStockAlert]:
        if threshold is None:
            threshold = self._config.ledger.low_stock_alert_threshold
        with self._transaction("get_low_stock_alerts") as session:
            return InventorySelector(session).get_low_stock(threshold)

    def get_inventory_metrics(self) -> InventoryMetrics:
        with self._transaction("get_inventory_metrics") as session:
            return InventorySelector(session).get_metrics(
                low_stock_threshold=self._config.ledger.low_stock_alert_threshold,
                out_of_stock_threshold=OUT_OF_STOCK_THRESHOLD,
            )

    def reconcile_inventory(self, sku: str) -> ReconciliationReport:
        with LogContext.bind(sku=sku):
            with self._transaction("reconcile") as session:
                return ReconciliationService(session, self._clock).reconcile(sku)
