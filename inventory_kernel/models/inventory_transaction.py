"""
Module: inventory_kernel.models.inventory_transaction
Responsibility: ORM persistence for the append-only inventory transaction log.
    One row documents one ledger mutation of one inventory unit.
Architecture position: Kernel > Models.  May import from db/base.py only.
    MUST NOT import from services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - transaction_id is unique (uq_inventory_transactions_transaction_id).
    - Rows are never updated or deleted (ORM listeners in db/immutability.py
      and PostgreSQL triggers in db/sql/01_inventory_transaction.sql).
    - quantity is the signed delta of the field the operation moves:
      RESERVATION +q and CANCELLATION -released on ``reserved``;
      DEDUCTION -q and ADJUSTMENT +/-delta on on-hand ``quantity``.
    - seq is a database identity column, strictly increasing in insert
      order; it breaks timestamp ties for "most recent first" reads.

Audit relevance:
    The log is corrected only by appending new ADJUSTMENT rows, never in place.
    It references its unit loosely by (sku, bin_location) value, not by FK.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import CheckConstraint, Identity, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import Base


class TransactionType(str, Enum):
    """Kind of ledger event a transaction row records."""

    RESERVATION = "RESERVATION"
    CANCELLATION = "CANCELLATION"
    DEDUCTION = "DEDUCTION"
    ADJUSTMENT = "ADJUSTMENT"


class InventoryTransaction(Base):
    """
    Immutable audit record of one ledger-affecting event.

    Contract:
        Created once by InventoryLedgerService, in the same flush as the
        InventoryUnit change it documents.  Never modified afterwards.

    Guarantees:
        - order_id is set for RESERVATION, CANCELLATION and DEDUCTION.
        - user_id and a non-blank reason are set for ADJUSTMENT.
    """

    __tablename__ = "inventory_transactions"

    __table_args__ = (
        CheckConstraint(
            "type IN ('RESERVATION', 'CANCELLATION', 'DEDUCTION', 'ADJUSTMENT')",
            name="ck_inventory_transactions_type",
        ),
        # Query: history for a SKU, newest first
        Index("idx_inventory_transactions_sku_ts", "sku", "timestamp"),
        # Query: history for an order
        Index("idx_inventory_transactions_order", "order_id"),
        # Query: unfiltered history, newest first
        Index("idx_inventory_transactions_ts_seq", "timestamp", "seq"),
    )

    # Fetch the identity-assigned seq via RETURNING on insert
    __mapper_args__ = {"eager_defaults": True}

    # TXN- + prefix + 100-char reference + 50-char sku + epoch ms + suffix
    # is at most 182 characters
    transaction_id: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        unique=True,
    )

    seq: Mapped[int] = mapped_column(Identity(always=True), nullable=False)

    type: Mapped[TransactionType] = mapped_column(String(20), nullable=False)

    sku: Mapped[str] = mapped_column(String(50), nullable=False)

    bin_location: Mapped[str] = mapped_column(String(20), nullable=False)

    # Signed delta
    quantity: Mapped[int] = mapped_column(nullable=False)

    order_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    user_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    reason: Mapped[str] = mapped_column(Text, nullable=False)

    timestamp: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return (
            f"<InventoryTransaction {self.transaction_id} "
            f"{self.type} {self.quantity:+d}>"
        )
