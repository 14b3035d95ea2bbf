"""
Kernel Invariants Contract.

These invariants are structural law for the inventory ledger. They are
enforced by the pure stock rules, the ledger engine's row locks, database
CHECK constraints and immutability triggers. No configuration may turn
them off.
"""

from enum import Enum, unique


@unique
class KernelInvariant(str, Enum):
    """Non-configurable invariants enforced by the inventory kernel."""

    NON_NEGATIVE_QUANTITY = "non_negative_quantity"
    """On-hand quantity is never below zero. Enforced by stock_rules and
    the ck_inventory_units_quantity_non_negative CHECK constraint."""

    RESERVED_WITHIN_QUANTITY = "reserved_within_quantity"
    """0 <= reserved <= quantity for every unit. Enforced by stock_rules
    and the reserved CHECK constraints."""

    ONE_LOG_ROW_PER_MUTATION = "one_log_row_per_mutation"
    """Every mutating ledger call appends exactly one transaction row whose
    delta equals the unit's net change, in the same database transaction.
    Enforced by InventoryLedgerService."""

    APPEND_ONLY_LOG = "append_only_log"
    """Inventory transactions are never updated or deleted. Enforced by ORM
    listeners and PostgreSQL triggers (inventory_kernel.db.immutability)."""

    NO_OVERSELL = "no_oversell"
    """Two concurrent reservations can never both pass the availability
    check. Enforced by SELECT ... FOR UPDATE on the unit row."""


# All invariants as a frozenset for programmatic checks.
ALL_KERNEL_INVARIANTS: frozenset[KernelInvariant] = frozenset(KernelInvariant)

# The kernel package may not import from these packages.
# This is enforced by tests/architecture/test_kernel_boundary.py.
FORBIDDEN_KERNEL_IMPORTS: tuple[str, ...] = (
    "inventory_services",
    "inventory_config",
)
