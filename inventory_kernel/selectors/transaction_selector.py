"""
Module: inventory_kernel.selectors.transaction_selector
Responsibility: Paginated, filterable reads of the inventory transaction log.
Architecture position: Kernel > Selectors.  Read-only.

Ordering: most recent first, by timestamp then by the identity ``seq``, so
rows written within the same clock instant keep insert order (newest first).
"""

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from inventory_kernel.domain.dtos import InventoryTransactionDTO, TransactionPage
from inventory_kernel.exceptions import InvalidPaginationError
from inventory_kernel.models.inventory_transaction import (
    InventoryTransaction,
    TransactionType,
)
from inventory_kernel.selectors.base import BaseSelector

DEFAULT_HISTORY_LIMIT = 50
MAX_HISTORY_LIMIT = 500


def _is_int(value: object) -> bool:
    # bool is an int subclass; True is not a page size
    return isinstance(value, int) and not isinstance(value, bool)


class TransactionSelector(BaseSelector[InventoryTransaction]):
    """Read side of the append-only transaction log."""

    def __init__(self, session: Session, max_limit: int = MAX_HISTORY_LIMIT):
        super().__init__(session)
        self._max_limit = max_limit

    def get_history(
        self,
        sku: str | None = None,
        order_id: str | None = None,
        type: TransactionType | str | None = None,
        limit: int = DEFAULT_HISTORY_LIMIT,
        offset: int = 0,
    ) -> TransactionPage:
        """
        One page of transactions matching every given filter.

        Args:
            sku: Only this SKU.
            order_id: Only rows caused by this order.
            type: Only this transaction type (enum or its string value).
            limit: Page size, 1..max_limit.
            offset: Rows to skip, >= 0.

        Returns:
            TransactionPage with ``total`` = count of all matching rows,
            independent of limit/offset.

        Raises:
            InvalidPaginationError: limit or offset not an int, or out of range.
            ValueError: type is not a known TransactionType.
        """
        if not (
            _is_int(limit)
            and _is_int(offset)
            and 1 <= limit <= self._max_limit
            and offset >= 0
        ):
            raise InvalidPaginationError(limit, offset, self._max_limit)

        conditions = []
        if sku is not None:
            conditions.append(InventoryTransaction.sku == sku)
        if order_id is not None:
            conditions.append(InventoryTransaction.order_id == order_id)
        if type is not None:
            conditions.append(
                InventoryTransaction.type == TransactionType(type).value
            )

        rows = self.session.execute(
            select(InventoryTransaction)
            .where(*conditions)
            .order_by(
                InventoryTransaction.timestamp.desc(),
                InventoryTransaction.seq.desc(),
            )
            .limit(limit)
            .offset(offset)
        ).scalars().all()

        total = self.session.execute(
            select(func.count(InventoryTransaction.id)).where(*conditions)
        ).scalar_one()

        return TransactionPage(
            transactions=tuple(InventoryTransactionDTO.from_model(r) for r in rows),
            total=total,
            limit=limit,
            offset=offset,
        )

    def get_by_transaction_id(
        self, transaction_id: str
    ) -> InventoryTransactionDTO | None:
        row = self.session.execute(
            select(InventoryTransaction).where(
                InventoryTransaction.transaction_id == transaction_id
            )
        ).scalar_one_or_none()
        return InventoryTransactionDTO.from_model(row) if row is not None else None

    def count_for_unit(self, sku: str, bin_location: str) -> int:
        """Number of log rows recorded against one (sku, bin_location)."""
        return self.session.execute(
            select(func.count(InventoryTransaction.id))
            .where(InventoryTransaction.sku == sku)
            .where(InventoryTransaction.bin_location == bin_location)
        ).scalar_one()

    def net_delta_for_unit(
        self, sku: str, bin_location: str, type: TransactionType | str
    ) -> int:
        """Sum of logged deltas of one type for one unit (0 when none)."""
        total = self.session.execute(
            select(func.coalesce(func.sum(InventoryTransaction.quantity), 0))
            .where(InventoryTransaction.sku == sku)
            .where(InventoryTransaction.bin_location == bin_location)
            .where(InventoryTransaction.type == TransactionType(type).value)
        ).scalar_one()
        return int(total)
