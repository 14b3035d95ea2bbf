"""
Pure domain layer.

Data transfer objects, the stock rules and transaction id generation,
with no dependency on the ORM, the database, or the system clock.
"""

from inventory_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from inventory_kernel.domain.dtos import (
    AvailableStock,
    BinDiscrepancy,
    InventoryMetrics,
    InventoryTransactionDTO,
    InventoryUnitDTO,
    LedgerResult,
    LowStockAlert,
    LowStockEvent,
    ReconciliationReport,
    StockChange,
    StockPosition,
    TransactionPage,
)
from inventory_kernel.domain.stock_rules import (
    apply_adjustment,
    apply_deduction,
    apply_release,
    apply_reservation,
    check_invariants,
    is_low_stock,
)
from inventory_kernel.domain.transaction_ids import generate_transaction_id

__all__ = [
    "AvailableStock",
    "BinDiscrepancy",
    "Clock",
    "DeterministicClock",
    "InventoryMetrics",
    "InventoryTransactionDTO",
    "InventoryUnitDTO",
    "LedgerResult",
    "LowStockAlert",
    "LowStockEvent",
    "ReconciliationReport",
    "StockChange",
    "StockPosition",
    "SystemClock",
    "TransactionPage",
    "apply_adjustment",
    "apply_deduction",
    "apply_release",
    "apply_reservation",
    "check_invariants",
    "generate_transaction_id",
    "is_low_stock",
]
