"""Services for the inventory kernel (write side)."""

from inventory_kernel.services.ledger_service import InventoryLedgerService
from inventory_kernel.services.low_stock_notifier import (
    LoggingLowStockNotifier,
    LowStockDispatcher,
    LowStockNotifier,
)

__all__ = [
    "InventoryLedgerService",
    "LoggingLowStockNotifier",
    "LowStockDispatcher",
    "LowStockNotifier",
]
