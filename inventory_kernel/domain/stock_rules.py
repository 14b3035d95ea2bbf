"""
Stock rules -- pure invariant guards for ledger operations.

Responsibility:
    Given the locked (quantity, reserved) position of one unit, compute the
    position after reserve / release / deduct / adjust, or reject the request
    with a typed error.  The ledger service applies the result to the row.

Architecture position:
    Kernel > Domain -- pure functions, zero I/O.

Invariants enforced:
    - quantity >= 0
    - 0 <= reserved <= quantity
    - delta is the net change of the field the operation moves

State view per unit of stock:
    free -> committed   reserve
    committed -> free   release (clamped at zero reserved)
    committed -> gone   deduct (also allowed straight from free)
    free -> free +/-    adjust
"""

from inventory_kernel.domain.dtos import StockChange, StockPosition
from inventory_kernel.exceptions import (
    InsufficientAvailableStockError,
    InsufficientOnHandStockError,
    InvalidQuantityError,
    InventoryInvariantError,
    NegativeStockError,
    ReservedExceedsQuantityError,
)


def validate_quantity(quantity: object) -> int:
    """Return quantity if it is a positive int, else raise InvalidQuantityError."""
    # bool is an int subclass; True is not a quantity
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidQuantityError(quantity, "must be an integer")
    if quantity <= 0:
        raise InvalidQuantityError(quantity, "must be greater than zero")
    return quantity


def validate_delta(delta: object) -> int:
    """Adjustment deltas may be negative but never zero."""
    if isinstance(delta, bool) or not isinstance(delta, int):
        raise InvalidQuantityError(delta, "must be an integer")
    if delta == 0:
        raise InvalidQuantityError(delta, "adjustment delta must be non-zero")
    return delta


def check_invariants(position: StockPosition) -> None:
    """Raise InventoryInvariantError unless 0 <= reserved <= quantity."""
    if position.quantity < 0:
        raise InventoryInvariantError(
            position.quantity, position.reserved, "quantity is negative"
        )
    if position.reserved < 0:
        raise InventoryInvariantError(
            position.quantity, position.reserved, "reserved is negative"
        )
    if position.reserved > position.quantity:
        raise InventoryInvariantError(
            position.quantity, position.reserved, "reserved exceeds quantity"
        )


def _change(before: StockPosition, after: StockPosition, delta: int) -> StockChange:
    check_invariants(after)
    return StockChange(before=before, after=after, delta=delta)


def apply_reservation(
    position: StockPosition,
    quantity: int,
    sku: str = "",
    bin_location: str = "",
) -> StockChange:
    """Earmark quantity for an order. Fails if available < quantity."""
    quantity = validate_quantity(quantity)
    if position.available < quantity:
        raise InsufficientAvailableStockError(
            sku, bin_location, requested=quantity, available=position.available
        )
    after = StockPosition(position.quantity, position.reserved + quantity)
    return _change(position, after, quantity)


def apply_release(position: StockPosition, quantity: int) -> StockChange:
    """
    Give back a reservation, floored at zero reserved.

    Over-release is not an error. The delta is the amount actually released
    (negative, as reserved shrinks), so it may be smaller than requested or 0.
    """
    quantity = validate_quantity(quantity)
    after = StockPosition(position.quantity, max(0, position.reserved - quantity))
    return _change(position, after, after.reserved - position.reserved)


def apply_deduction(
    position: StockPosition,
    quantity: int,
    sku: str = "",
    bin_location: str = "",
) -> StockChange:
    """
    Remove stock physically (shipping). Checks on-hand, not available.

    Reserved drops by the same amount, floored at zero, and never exceeds
    the remaining quantity.
    """
    quantity = validate_quantity(quantity)
    if position.quantity < quantity:
        raise InsufficientOnHandStockError(
            sku, bin_location, requested=quantity, on_hand=position.quantity
        )
    new_quantity = position.quantity - quantity
    new_reserved = min(max(0, position.reserved - quantity), new_quantity)
    after = StockPosition(new_quantity, new_reserved)
    return _change(position, after, -quantity)


def apply_adjustment(
    position: StockPosition,
    delta: int,
    sku: str = "",
    bin_location: str = "",
) -> StockChange:
    """
    Manual correction of on-hand quantity in either direction.

    Rejected (never clamped) when the result would be negative or below
    what is already reserved.
    """
    delta = validate_delta(delta)
    new_quantity = position.quantity + delta
    if new_quantity < 0:
        raise NegativeStockError(
            sku, bin_location, quantity=position.quantity, delta=delta
        )
    if new_quantity < position.reserved:
        raise ReservedExceedsQuantityError(
            sku,
            bin_location,
            quantity=position.quantity,
            reserved=position.reserved,
            delta=delta,
        )
    after = StockPosition(new_quantity, position.reserved)
    return _change(position, after, delta)


def is_low_stock(quantity: int, min_threshold: int) -> bool:
    """A unit is low on stock once quantity falls to or below its threshold."""
    return quantity <= min_threshold
