"""
Module: inventory_kernel.selectors.inventory_selector
Responsibility: Read-only queries over inventory units: lookups by SKU or
    bin, availability, low-stock listings and dashboard metrics.
Architecture position: Kernel > Selectors.  Read-only.

``available`` is always computed in SQL as quantity - reserved
(InventoryUnit.available hybrid), never read from a stored column.
"""

from sqlalchemy import distinct, func, select

from inventory_kernel.domain.dtos import (
    AvailableStock,
    InventoryMetrics,
    InventoryUnitDTO,
    LowStockAlert,
)
from inventory_kernel.models.inventory_unit import InventoryUnit
from inventory_kernel.selectors.base import BaseSelector


class InventorySelector(BaseSelector[InventoryUnit]):
    """Read side of the inventory unit store."""

    def get_unit(self, sku: str, bin_location: str) -> InventoryUnitDTO | None:
        unit = self.session.execute(
            select(InventoryUnit)
            .where(InventoryUnit.sku == sku)
            .where(InventoryUnit.bin_location == bin_location)
        ).scalar_one_or_none()
        return InventoryUnitDTO.from_model(unit) if unit is not None else None

    def find_by_sku(self, sku: str) -> list[InventoryUnitDTO]:
        """All bins holding ``sku``, ordered by bin_location."""
        units = self.session.execute(
            select(InventoryUnit)
            .where(InventoryUnit.sku == sku)
            .order_by(InventoryUnit.bin_location)
        ).scalars().all()
        return [InventoryUnitDTO.from_model(u) for u in units]

    def find_by_bin_location(self, bin_location: str) -> list[InventoryUnitDTO]:
        """All SKUs stored at ``bin_location``, ordered by sku."""
        units = self.session.execute(
            select(InventoryUnit)
            .where(InventoryUnit.bin_location == bin_location)
            .order_by(InventoryUnit.sku)
        ).scalars().all()
        return [InventoryUnitDTO.from_model(u) for u in units]

    def get_available_inventory(self, sku: str) -> list[AvailableStock]:
        """Bins with something left to reserve, largest first."""
        available = InventoryUnit.available.label("available")
        rows = self.session.execute(
            select(InventoryUnit.bin_location, available)
            .where(InventoryUnit.sku == sku)
            .where(InventoryUnit.available > 0)
            .order_by(available.desc(), InventoryUnit.bin_location)
        ).all()
        return [
            AvailableStock(bin_location=r.bin_location, available=int(r.available))
            for r in rows
        ]

    def get_total_available(self, sku: str) -> int:
        total = self.session.execute(
            select(func.coalesce(func.sum(InventoryUnit.available), 0)).where(
                InventoryUnit.sku == sku
            )
        ).scalar_one()
        return int(total)

    def get_low_stock(self, threshold: int) -> list[LowStockAlert]:
        """Units whose available stock is below ``threshold``, lowest first."""
        available = InventoryUnit.available.label("available")
        rows = self.session.execute(
            select(
                InventoryUnit.sku,
                InventoryUnit.bin_location,
                InventoryUnit.quantity,
                available,
            )
            .where(InventoryUnit.available < threshold)
            .order_by(available.asc(), InventoryUnit.sku, InventoryUnit.bin_location)
        ).all()
        return [
            LowStockAlert(
                sku=r.sku,
                bin_location=r.bin_location,
                available=int(r.available),
                quantity=r.quantity,
            )
            for r in rows
        ]

    def get_metrics(
        self,
        low_stock_threshold: int,
        out_of_stock_threshold: int = 1,
    ) -> InventoryMetrics:
        """
        Dashboard counts.

        A unit counts as low stock when available < low_stock_threshold and
        as out of stock when available < out_of_stock_threshold; an
        out-of-stock unit is also low stock.
        """
        row = self.session.execute(
            select(
                func.count(distinct(InventoryUnit.sku)).label("total_skus"),
                func.coalesce(func.sum(InventoryUnit.quantity), 0).label("total_units"),
                func.count()
                .filter(InventoryUnit.available < low_stock_threshold)
                .label("low_stock"),
                func.count()
                .filter(InventoryUnit.available < out_of_stock_threshold)
                .label("out_of_stock"),
            )
        ).one()
        return InventoryMetrics(
            total_skus=row.total_skus,
            total_units=int(row.total_units),
            low_stock_count=row.low_stock,
            out_of_stock_count=row.out_of_stock,
        )
