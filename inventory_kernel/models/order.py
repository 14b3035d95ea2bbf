"""
Module: inventory_kernel.models.order
Responsibility: Read mapping of the order subsystem's tables, as far as the
    reconciliation engine needs them (order status and item quantities).
Architecture position: Kernel > Models.  May import from db/base.py only.

The ledger never writes these tables; the order subsystem owns them.
"""

from __future__ import annotations

from enum import Enum

from sqlalchemy import CheckConstraint, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import Base


class OrderStatus(str, Enum):
    """Order lifecycle status."""

    PENDING = "PENDING"
    PICKING = "PICKING"
    PICKED = "PICKED"
    PACKING = "PACKING"
    PACKED = "PACKED"
    SHIPPED = "SHIPPED"
    CANCELLED = "CANCELLED"
    BACKORDER = "BACKORDER"


# Orders in these states no longer commit stock
CLOSED_ORDER_STATUSES: frozenset[OrderStatus] = frozenset(
    {OrderStatus.CANCELLED, OrderStatus.SHIPPED}
)


class Order(Base):
    """An order header; only status matters to the ledger."""

    __tablename__ = "orders"

    order_id: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)

    status: Mapped[OrderStatus] = mapped_column(
        String(20),
        nullable=False,
        default=OrderStatus.PENDING,
    )

    def __repr__(self) -> str:
        return f"<Order {self.order_id} {self.status}>"


class OrderItem(Base):
    """One order line: a quantity of a SKU, optionally pinned to a bin."""

    __tablename__ = "order_items"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_order_items_quantity_positive"),
        Index("idx_order_items_sku", "sku"),
    )

    order_id: Mapped[str] = mapped_column(
        String(100),
        ForeignKey("orders.order_id"),
        nullable=False,
    )

    sku: Mapped[str] = mapped_column(String(50), nullable=False)

    bin_location: Mapped[str | None] = mapped_column(String(20), nullable=True)

    quantity: Mapped[int] = mapped_column(nullable=False)
