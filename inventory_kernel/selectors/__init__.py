"""Selectors for the inventory kernel (read side)."""

from inventory_kernel.selectors.inventory_selector import InventorySelector
from inventory_kernel.selectors.transaction_selector import TransactionSelector

__all__ = [
    "InventorySelector",
    "TransactionSelector",
]
