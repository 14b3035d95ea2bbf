"""ORM models for the inventory kernel."""

from inventory_kernel.models.inventory_transaction import (
    InventoryTransaction,
    TransactionType,
)
from inventory_kernel.models.inventory_unit import InventoryUnit
from inventory_kernel.models.order import (
    CLOSED_ORDER_STATUSES,
    Order,
    OrderItem,
    OrderStatus,
)

__all__ = [
    "CLOSED_ORDER_STATUSES",
    "InventoryTransaction",
    "InventoryUnit",
    "Order",
    "OrderItem",
    "OrderStatus",
    "TransactionType",
]
