"""
inventory_services.reconciliation_service -- stock versus open order commitments.

Responsibility:
    For one SKU, compare what open orders still expect (sum of order-item
    quantities on orders not CANCELLED or SHIPPED) with what is actually
    available (sum of quantity - reserved over all bins), overall and per bin.

Architecture position:
    Services -- read-only composition over the kernel's unit store and the
    order subsystem's tables.

Invariants enforced:
    - Read-only: never adds, flushes or commits.  Intended for periodic
      audit / drift detection, not for real-time enforcement.
    - difference = actual - expected, overall and per bin.

Per-bin apportioning:
    Open order items carry the bin they were allocated from; per-bin
    expected is the sum of open item quantities pinned to that bin.  Items
    with no bin count toward the SKU total only.  A bin that open items
    point at but that has no inventory row is reported with actual 0.

Usage:
    report = ReconciliationService(session, clock).reconcile("SKU-1")
    if report.has_discrepancies:
        ...
"""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.dtos import BinDiscrepancy, ReconciliationReport
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.inventory_unit import InventoryUnit
from inventory_kernel.models.order import CLOSED_ORDER_STATUSES, Order, OrderItem

logger = get_logger("services.reconciliation")


class ReconciliationService:
    """
    Read-side reconciliation engine.

    Contract:
        ``reconcile(sku)`` returns a ReconciliationReport built from one
        snapshot of the caller's session.  The caller owns the session.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()

    def reconcile(self, sku: str) -> ReconciliationReport:
        expected_by_bin, expected = self._open_commitments(sku)
        actual_by_bin = self._available_by_bin(sku)
        actual = sum(actual_by_bin.values())

        bins = sorted(set(actual_by_bin) | set(expected_by_bin))
        discrepancies = tuple(
            BinDiscrepancy(
                bin_location=bin_location,
                expected=expected_by_bin.get(bin_location, 0),
                actual=actual_by_bin.get(bin_location, 0),
            )
            for bin_location in bins
        )

        report = ReconciliationReport(
            sku=sku,
            expected=expected,
            actual=actual,
            discrepancies=discrepancies,
            generated_at=self._clock.now(),
        )

        logger.info(
            "inventory_reconciled",
            extra={
                "sku": sku,
                "expected": expected,
                "actual": actual,
                "difference": report.difference,
                "bin_count": len(discrepancies),
                "drifting_bins": sum(1 for d in discrepancies if d.difference),
            },
        )
        return report

    def _open_commitments(self, sku: str) -> tuple[dict[str, int], int]:
        """(per-bin expected for items pinned to a bin, total expected)."""
        closed = [status.value for status in CLOSED_ORDER_STATUSES]
        rows = self._session.execute(
            select(
                OrderItem.bin_location,
                func.sum(OrderItem.quantity).label("expected"),
            )
            .join(Order, Order.order_id == OrderItem.order_id)
            .where(OrderItem.sku == sku)
            .where(Order.status.not_in(closed))
            .group_by(OrderItem.bin_location)
        ).all()

        by_bin: dict[str, int] = {}
        total = 0
        for row in rows:
            qty = int(row.expected)
            total += qty
            if row.bin_location is not None:
                by_bin[row.bin_location] = qty
        return by_bin, total

    def _available_by_bin(self, sku: str) -> dict[str, int]:
        rows = self._session.execute(
            select(
                InventoryUnit.bin_location,
                InventoryUnit.available.label("available"),
            ).where(InventoryUnit.sku == sku)
        ).all()
        return {row.bin_location: int(row.available) for row in rows}
