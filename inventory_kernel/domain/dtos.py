"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Immutable data structures returned across the kernel boundary: stock
    positions for the pure rules, unit and transaction records, ledger
    results, history pages, availability and reconciliation reports.

Architecture position:
    Kernel > Domain -- zero I/O.  from_model() class methods are boundary
    converters invoked only from services and selectors.

Invariants enforced:
    - Services and selectors return DTOs, never ORM entities.
    - available is derived from quantity and reserved, never carried alone.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

if TYPE_CHECKING:
    from inventory_kernel.models.inventory_transaction import (
        InventoryTransaction as InventoryTransactionModel,
    )
    from inventory_kernel.models.inventory_unit import (
        InventoryUnit as InventoryUnitModel,
    )


@dataclass(frozen=True)
class StockPosition:
    """(quantity, reserved) pair the pure stock rules operate on."""

    quantity: int
    reserved: int

    @property
    def available(self) -> int:
        return self.quantity - self.reserved


@dataclass(frozen=True)
class StockChange:
    """
    Outcome of applying one ledger rule to a position.

    ``delta`` is the signed amount logged on the transaction row.
    """

    before: StockPosition
    after: StockPosition
    delta: int


@dataclass(frozen=True)
class InventoryUnitDTO:
    """Read-side snapshot of one inventory unit."""

    id: UUID
    sku: str
    bin_location: str
    quantity: int
    reserved: int
    min_threshold: int
    last_updated: datetime

    @property
    def available(self) -> int:
        return self.quantity - self.reserved

    @property
    def position(self) -> StockPosition:
        return StockPosition(quantity=self.quantity, reserved=self.reserved)

    @classmethod
    def from_model(cls, model: InventoryUnitModel) -> InventoryUnitDTO:
        return cls(
            id=model.id,
            sku=model.sku,
            bin_location=model.bin_location,
            quantity=model.quantity,
            reserved=model.reserved,
            min_threshold=model.min_threshold,
            last_updated=model.last_updated,
        )


@dataclass(frozen=True)
class InventoryTransactionDTO:
    """Read-side snapshot of one transaction log row."""

    id: UUID
    transaction_id: str
    seq: int
    type: str
    sku: str
    bin_location: str
    quantity: int
    order_id: str | None
    user_id: str | None
    reason: str
    timestamp: datetime

    @classmethod
    def from_model(cls, model: InventoryTransactionModel) -> InventoryTransactionDTO:
        from inventory_kernel.models.inventory_transaction import TransactionType

        return cls(
            id=model.id,
            transaction_id=model.transaction_id,
            seq=model.seq,
            type=TransactionType(model.type),
            sku=model.sku,
            bin_location=model.bin_location,
            quantity=model.quantity,
            order_id=model.order_id,
            user_id=model.user_id,
            reason=model.reason,
            timestamp=model.timestamp,
        )


@dataclass(frozen=True)
class LowStockEvent:
    """
    Structured low-stock event handed to the notifier after commit.

    Fired when a deduction leaves quantity <= min_threshold.
    """

    sku: str
    bin_location: str
    quantity: int
    min_threshold: int
    detected_at: datetime

    def to_payload(self) -> dict[str, object]:
        """Wire payload for the notification channel."""
        return {
            "sku": self.sku,
            "binLocation": self.bin_location,
            "quantity": self.quantity,
            "minThreshold": self.min_threshold,
        }


@dataclass(frozen=True)
class LedgerResult:
    """What a mutating ledger call returns: new unit state plus its log row."""

    unit: InventoryUnitDTO
    transaction: InventoryTransactionDTO
    low_stock: LowStockEvent | None = None


@dataclass(frozen=True)
class TransactionPage:
    """One page of transaction history plus the unpaged match count."""

    transactions: tuple[InventoryTransactionDTO, ...]
    total: int
    limit: int
    offset: int

    @property
    def has_more(self) -> bool:
        return self.offset + len(self.transactions) < self.total


@dataclass(frozen=True)
class AvailableStock:
    bin_location: str
    available: int


@dataclass(frozen=True)
class LowStockAlert:
    sku: str
    bin_location: str
    available: int
    quantity: int


@dataclass(frozen=True)
class InventoryMetrics:
    total_skus: int
    total_units: int
    low_stock_count: int
    out_of_stock_count: int


@dataclass(frozen=True)
class BinDiscrepancy:
    """Per-bin line of a reconciliation report."""

    bin_location: str
    expected: int
    actual: int

    @property
    def difference(self) -> int:
        return self.actual - self.expected


@dataclass(frozen=True)
class ReconciliationReport:
    """
    Expected (open order commitments) versus actual (available stock).

    ``difference`` is actual - expected: negative means open orders exceed
    what is still available to pick.
    """

    sku: str
    expected: int
    actual: int
    discrepancies: tuple[BinDiscrepancy, ...]
    generated_at: datetime

    @property
    def difference(self) -> int:
        return self.actual - self.expected

    @property
    def has_discrepancies(self) -> bool:
        return any(d.difference != 0 for d in self.discrepancies)
