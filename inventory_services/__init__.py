"""
inventory_services -- Package init and public API.

Responsibility:
    Orchestration over the inventory kernel: the transaction-owning
    ``InventoryService`` facade and the read-only ``ReconciliationService``.

Architecture position:
    Dependency direction (enforced by tests/architecture/test_kernel_boundary.py):
        inventory_services/ -> inventory_kernel/   (allowed)
        inventory_services/ -> inventory_config/   (allowed)
        inventory_kernel/   -> inventory_services/ (FORBIDDEN)
"""

from inventory_services.inventory_service import InventoryService
from inventory_services.reconciliation_service import ReconciliationService

__all__ = [
    "InventoryService",
    "ReconciliationService",
]
