"""
InventoryLedgerService -- atomic reserve / release / deduct / adjust.

Responsibility:
    Executes every stock mutation as lock -> validate -> write -> append:
    the (sku, bin_location) row is read with SELECT ... FOR UPDATE, the pure
    stock rules compute the new position, the row is updated and exactly one
    InventoryTransaction is appended, all in the caller's transaction.

Architecture position:
    Kernel > Services -- imperative shell around domain/stock_rules.py.
    Flush-only: the caller owns commit and rollback.

Invariants enforced:
    - quantity >= 0 and 0 <= reserved <= quantity after every call
      (stock_rules, backed by CHECK constraints).
    - One log row per successful mutation, delta equal to the unit's net
      change, flushed together with the unit update.
    - No oversell: the availability check and the write happen under the
      same row lock, so concurrent reservations serialize on the row.

Failure modes:
    - InventoryUnitNotFoundError: reserve / release / deduct /
      set_min_threshold on a pair with no row.
    - InsufficientAvailableStockError: reserve beyond available.
    - InsufficientOnHandStockError: deduct beyond on-hand.
    - NegativeStockError / ReservedExceedsQuantityError: adjust that would
      push quantity below zero or below reserved.
    - InvalidQuantityError / MissingReasonError / MissingReferenceError /
      ReferenceTooLongError: malformed arguments, raised before any row is
      touched.  Identifier limits are the model column widths.
    - OperationalError (lock timeout, deadlock) propagates unwrapped; the
      caller's rollback discards any partial work.

Low-stock:
    deduct() reports a LowStockEvent on its result when the new quantity is
    at or below min_threshold.  It does not notify; the caller schedules
    delivery for after commit.
"""

from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert

from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.dtos import (
    InventoryTransactionDTO,
    InventoryUnitDTO,
    LedgerResult,
    LowStockEvent,
    StockChange,
    StockPosition,
)
from inventory_kernel.domain.stock_rules import (
    apply_adjustment,
    apply_deduction,
    apply_release,
    apply_reservation,
    is_low_stock,
    validate_delta,
    validate_quantity,
)
from inventory_kernel.domain.transaction_ids import generate_transaction_id
from inventory_kernel.exceptions import (
    InvalidQuantityError,
    InventoryUnitNotFoundError,
    MissingReasonError,
    MissingReferenceError,
    ReferenceTooLongError,
)
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.inventory_transaction import (
    InventoryTransaction,
    TransactionType,
)
from inventory_kernel.models.inventory_unit import InventoryUnit
from inventory_kernel.services.base import BaseService

logger = get_logger("services.ledger")

RESERVATION_REASON = "Order allocation"
CANCELLATION_REASON = "Reservation released"
DEDUCTION_REASON = "Order shipped"


# Identifier limits follow the column widths
MAX_LENGTHS: dict[str, int] = {
    "sku": InventoryUnit.__table__.c.sku.type.length,
    "bin_location": InventoryUnit.__table__.c.bin_location.type.length,
    "order_id": InventoryTransaction.__table__.c.order_id.type.length,
    "user_id": InventoryTransaction.__table__.c.user_id.type.length,
}


def _require(field: str, value: object) -> str:
    if not isinstance(value, str) or not value.strip():
        raise MissingReferenceError(field)
    if len(value) > MAX_LENGTHS[field]:
        raise ReferenceTooLongError(field, len(value), MAX_LENGTHS[field])
    return value


def _position(unit: InventoryUnit) -> StockPosition:
    return StockPosition(quantity=unit.quantity, reserved=unit.reserved)


class InventoryLedgerService(BaseService[InventoryUnit]):
    """
    The inventory ledger engine.

    Contract:
        Every public mutating method either raises before writing anything,
        or leaves one updated InventoryUnit and one new InventoryTransaction
        flushed in the caller's transaction.

    Guarantees:
        - Rows are locked with FOR UPDATE before any check is made.
        - Timestamps come from the injected clock.
        - Returns DTOs, never ORM instances.
    """

    def __init__(
        self,
        session,
        clock: Clock | None = None,
        default_min_threshold: int = 0,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._default_min_threshold = default_min_threshold

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def reserve(
        self, sku: str, bin_location: str, quantity: int, order_id: str
    ) -> LedgerResult:
        """Earmark stock for an order; available must cover quantity."""
        self._require_location(sku, bin_location)
        _require("order_id", order_id)
        validate_quantity(quantity)

        unit = self._lock_existing(sku, bin_location)
        change = apply_reservation(_position(unit), quantity, sku, bin_location)
        return self._record(
            unit,
            change,
            TransactionType.RESERVATION,
            reference=order_id,
            order_id=order_id,
            reason=RESERVATION_REASON,
        )

    def release(
        self, sku: str, bin_location: str, quantity: int, order_id: str
    ) -> LedgerResult:
        """
        Return reserved stock to available, floored at zero reserved.

        The log row records the amount actually released, which is less than
        ``quantity`` when less was reserved.
        """
        self._require_location(sku, bin_location)
        _require("order_id", order_id)
        validate_quantity(quantity)

        unit = self._lock_existing(sku, bin_location)
        change = apply_release(_position(unit), quantity)
        return self._record(
            unit,
            change,
            TransactionType.CANCELLATION,
            reference=order_id,
            order_id=order_id,
            reason=CANCELLATION_REASON,
        )

    def deduct(
        self, sku: str, bin_location: str, quantity: int, order_id: str
    ) -> LedgerResult:
        """Ship stock out: on-hand must cover quantity; reserved drops too."""
        self._require_location(sku, bin_location)
        _require("order_id", order_id)
        validate_quantity(quantity)

        unit = self._lock_existing(sku, bin_location)
        change = apply_deduction(_position(unit), quantity, sku, bin_location)
        result = self._record(
            unit,
            change,
            TransactionType.DEDUCTION,
            reference=order_id,
            order_id=order_id,
            reason=DEDUCTION_REASON,
        )

        if not is_low_stock(unit.quantity, unit.min_threshold):
            return result

        event = LowStockEvent(
            sku=unit.sku,
            bin_location=unit.bin_location,
            quantity=unit.quantity,
            min_threshold=unit.min_threshold,
            detected_at=result.transaction.timestamp,
        )
        return LedgerResult(
            unit=result.unit,
            transaction=result.transaction,
            low_stock=event,
        )

    def adjust(
        self,
        sku: str,
        bin_location: str,
        delta: int,
        user_id: str,
        reason: str,
    ) -> LedgerResult:
        """
        Manual correction of on-hand quantity, creating the unit if needed.

        A missing row is inserted at zero (ON CONFLICT DO NOTHING, so
        concurrent creators converge on one row) and then locked and adjusted
        like any other.  If the adjustment is rejected, the caller's rollback
        also discards the inserted row.
        """
        self._require_location(sku, bin_location)
        _require("user_id", user_id)
        validate_delta(delta)
        if not isinstance(reason, str) or not reason.strip():
            raise MissingReasonError(sku, bin_location)

        self._insert_missing(sku, [bin_location], self._default_min_threshold)
        unit = self._lock_existing(sku, bin_location)
        change = apply_adjustment(_position(unit), delta, sku, bin_location)
        return self._record(
            unit,
            change,
            TransactionType.ADJUSTMENT,
            reference=user_id,
            user_id=user_id,
            reason=reason,
        )

    # ------------------------------------------------------------------
    # Unit provisioning (no stock movement, no log rows)
    # ------------------------------------------------------------------

    def provision_bins(
        self,
        sku: str,
        bin_locations: Iterable[str],
        min_threshold: int | None = None,
    ) -> list[InventoryUnitDTO]:
        """
        Create zero-stock units for a SKU at the given bins.

        Idempotent: existing rows are left untouched.  Returns every unit
        for the requested bins, ordered by bin_location.
        """
        _require("sku", sku)
        bins = sorted({_require("bin_location", b) for b in bin_locations})
        if not bins:
            raise MissingReferenceError("bin_locations")
        if min_threshold is None:
            min_threshold = self._default_min_threshold
        self._validate_threshold(min_threshold)

        created = self._insert_missing(sku, bins, min_threshold)
        self.session.flush()

        units = self.session.execute(
            select(InventoryUnit)
            .where(InventoryUnit.sku == sku)
            .where(InventoryUnit.bin_location.in_(bins))
            .order_by(InventoryUnit.bin_location)
            .execution_options(populate_existing=True)
        ).scalars().all()

        logger.info(
            "inventory_bins_provisioned",
            extra={
                "sku": sku,
                "bin_count": len(bins),
                "created_count": created,
            },
        )
        return [InventoryUnitDTO.from_model(u) for u in units]

    def set_min_threshold(
        self, sku: str, bin_location: str, min_threshold: int
    ) -> InventoryUnitDTO:
        """Change the reorder trigger of an existing unit."""
        self._require_location(sku, bin_location)
        self._validate_threshold(min_threshold)

        unit = self._lock_existing(sku, bin_location)
        previous = unit.min_threshold
        unit.min_threshold = min_threshold
        unit.last_updated = self._clock.now()
        self.session.flush()

        logger.info(
            "min_threshold_changed",
            extra={
                "sku": sku,
                "bin_location": bin_location,
                "previous": previous,
                "min_threshold": min_threshold,
            },
        )
        return InventoryUnitDTO.from_model(unit)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _require_location(sku: str, bin_location: str) -> None:
        _require("sku", sku)
        _require("bin_location", bin_location)

    @staticmethod
    def _validate_threshold(min_threshold: object) -> None:
        if (
            isinstance(min_threshold, bool)
            or not isinstance(min_threshold, int)
            or min_threshold < 0
        ):
            raise InvalidQuantityError(
                min_threshold, "min_threshold must be a non-negative integer"
            )

    def _lock_existing(self, sku: str, bin_location: str) -> InventoryUnit:
        unit = self.session.execute(
            select(InventoryUnit)
            .where(InventoryUnit.sku == sku)
            .where(InventoryUnit.bin_location == bin_location)
            .with_for_update()  # Row-level lock
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

        if unit is None:
            raise InventoryUnitNotFoundError(sku, bin_location)
        return unit

    def _insert_missing(
        self, sku: str, bin_locations: list[str], min_threshold: int
    ) -> int:
        now = self._clock.now()
        stmt = (
            pg_insert(InventoryUnit)
            .values(
                [
                    {
                        "sku": sku,
                        "bin_location": bin_location,
                        "quantity": 0,
                        "reserved": 0,
                        "min_threshold": min_threshold,
                        "last_updated": now,
                    }
                    for bin_location in bin_locations
                ]
            )
            .on_conflict_do_nothing(index_elements=["sku", "bin_location"])
        )
        return self.session.execute(stmt).rowcount

    def _record(
        self,
        unit: InventoryUnit,
        change: StockChange,
        transaction_type: TransactionType,
        *,
        reference: str,
        reason: str,
        order_id: str | None = None,
        user_id: str | None = None,
    ) -> LedgerResult:
        now = self._clock.now()

        unit.quantity = change.after.quantity
        unit.reserved = change.after.reserved
        unit.last_updated = now

        txn = InventoryTransaction(
            transaction_id=generate_transaction_id(
                transaction_type, reference, unit.sku, now
            ),
            type=transaction_type.value,
            sku=unit.sku,
            bin_location=unit.bin_location,
            quantity=change.delta,
            order_id=order_id,
            user_id=user_id,
            reason=reason,
            timestamp=now,
        )
        self.session.add(txn)
        self.session.flush()

        logger.info(
            "transaction_appended",
            extra={
                "transaction_id": txn.transaction_id,
                "transaction_type": transaction_type.value,
                "sku": unit.sku,
                "bin_location": unit.bin_location,
                "delta": change.delta,
                "quantity": unit.quantity,
                "reserved": unit.reserved,
            },
        )

        return LedgerResult(
            unit=InventoryUnitDTO.from_model(unit),
            transaction=InventoryTransactionDTO.from_model(txn),
        )
