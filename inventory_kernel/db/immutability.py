"""
ORM-level immutability enforcement (layer 1 of 2).

Layer 1 is this module: SQLAlchemy mapper events that fire before the SQL
for an UPDATE or DELETE reaches the database.  Layer 2 is db/sql/*.sql,
PostgreSQL triggers that catch raw SQL and bulk statements.  Both layers
enforce the same rules.

Protected entities:

Entity                 | Rule
-----------------------|---------------------------------------------------
InventoryTransaction   | No UPDATE, no DELETE, ever (append-only log)
InventoryUnit          | No DELETE (a bin at zero simply stays at zero)

Usage:

    from inventory_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # once at startup

To temporarily disable (TESTS ONLY):

    unregister_immutability_listeners()
"""

from sqlalchemy import event

from inventory_kernel.exceptions import ImmutabilityViolationError
from inventory_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _block(entity_type: str, entity_id: str, operation: str, reason: str):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": entity_id,
            "operation": operation,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=entity_id,
        reason=reason,
    )


def _check_transaction_update(mapper, connection, target):
    """Inventory transactions are append-only."""
    _block(
        "InventoryTransaction",
        str(target.transaction_id),
        "UPDATE",
        "Inventory transactions are append-only and cannot be modified",
    )


def _check_transaction_delete(mapper, connection, target):
    """Inventory transactions cannot be deleted."""
    _block(
        "InventoryTransaction",
        str(target.transaction_id),
        "DELETE",
        "Inventory transactions are append-only and cannot be deleted",
    )


def _check_unit_delete(mapper, connection, target):
    """Inventory units are never hard-deleted."""
    _block(
        "InventoryUnit",
        f"{target.sku}@{target.bin_location}",
        "DELETE",
        "Inventory units are never deleted; adjust the quantity to zero instead",
    )


def _listeners():
    from inventory_kernel.models.inventory_transaction import InventoryTransaction
    from inventory_kernel.models.inventory_unit import InventoryUnit

    return [
        (InventoryTransaction, "before_update", _check_transaction_update),
        (InventoryTransaction, "before_delete", _check_transaction_delete),
        (InventoryUnit, "before_delete", _check_unit_delete),
    ]


def register_immutability_listeners():
    """
    Register all immutability enforcement event listeners.

    Idempotent; call once after models are importable and before any
    database operations begin.
    """
    for target, event_name, listener_fn in _listeners():
        if not event.contains(target, event_name, listener_fn):
            event.listen(target, event_name, listener_fn)


def _safe_remove_listener(target, event_name, listener_fn):
    """Remove an event listener, ignoring it if not registered."""
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests that intentionally violate immutability
    to verify the database-level triggers.
    """
    for target, event_name, listener_fn in _listeners():
        _safe_remove_listener(target, event_name, listener_fn)


def listeners_registered() -> bool:
    """True if every immutability listener is currently registered."""
    return all(
        event.contains(target, event_name, listener_fn)
        for target, event_name, listener_fn in _listeners()
    )
