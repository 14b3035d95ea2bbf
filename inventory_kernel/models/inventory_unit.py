"""
Module: inventory_kernel.models.inventory_unit
Responsibility: ORM persistence for the current stock of one SKU at one bin
    location.  This table is the single source of truth for "how much is here
    right now".
Architecture position: Kernel > Models.  May import from db/base.py only.
    MUST NOT import from services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - (sku, bin_location) is unique (uq_inventory_units_sku_bin).
    - quantity >= 0, reserved >= 0, reserved <= quantity (CHECK constraints,
      backing the same rules applied in domain/stock_rules.py).
    - available is derived (quantity - reserved) and never stored.
    - Rows are never hard-deleted (ORM listener + PostgreSQL trigger).

Failure modes:
    - IntegrityError if a write bypasses the ledger and breaks a CHECK.
    - ImmutabilityViolationError on any ORM delete.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, Index, String, UniqueConstraint
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import Base


class InventoryUnit(Base):
    """
    Stock of one SKU at one bin location.

    Contract:
        Mutated only by InventoryLedgerService, under a row lock, together
        with exactly one InventoryTransaction append.

    Guarantees:
        - quantity and reserved satisfy 0 <= reserved <= quantity.
        - available == quantity - reserved, computed on read in Python and SQL.
    """

    __tablename__ = "inventory_units"

    __table_args__ = (
        UniqueConstraint("sku", "bin_location", name="uq_inventory_units_sku_bin"),
        CheckConstraint(
            "quantity >= 0", name="ck_inventory_units_quantity_non_negative"
        ),
        CheckConstraint(
            "reserved >= 0", name="ck_inventory_units_reserved_non_negative"
        ),
        CheckConstraint(
            "reserved <= quantity", name="ck_inventory_units_reserved_within_quantity"
        ),
        CheckConstraint(
            "min_threshold >= 0", name="ck_inventory_units_min_threshold_non_negative"
        ),
        Index("idx_inventory_units_bin_location", "bin_location"),
    )

    sku: Mapped[str] = mapped_column(String(50), nullable=False)

    bin_location: Mapped[str] = mapped_column(String(20), nullable=False)

    # On-hand count
    quantity: Mapped[int] = mapped_column(nullable=False, default=0)

    # Earmarked for orders, not yet shipped
    reserved: Mapped[int] = mapped_column(nullable=False, default=0)

    # Reorder trigger; deductions at or below this fire a low-stock event
    min_threshold: Mapped[int] = mapped_column(nullable=False, default=0)

    last_updated: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return (
            f"<InventoryUnit {self.sku}@{self.bin_location} "
            f"qty={self.quantity} reserved={self.reserved}>"
        )

    @hybrid_property
    def available(self) -> int:
        """On hand minus reserved; usable in queries as InventoryUnit.available."""
        return self.quantity - self.reserved
