"""
Typed exception hierarchy for the inventory kernel.

Every error carries a machine-readable ``code`` class attribute and its
context as structured attributes, so callers catch by type and read fields
instead of parsing messages.

    InventoryKernelError (base)
    |
    +-- NotFoundError                       -> 404 at the route layer
    |   +-- InventoryUnitNotFoundError
    |
    +-- ConflictError                       -> 409 at the route layer
    |   +-- InsufficientAvailableStockError
    |   +-- InsufficientOnHandStockError
    |   +-- NegativeStockError
    |   +-- ReservedExceedsQuantityError
    |
    +-- ValidationError                     -> 400 at the route layer
    |   +-- InvalidQuantityError
    |   +-- MissingReasonError
    |   +-- MissingReferenceError
    |   +-- ReferenceTooLongError
    |   +-- InvalidPaginationError
    |
    +-- InvariantError
    |   +-- InventoryInvariantError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

Transient storage failures (lock timeout, deadlock, lost connection) are NOT
part of this hierarchy. They surface as the SQLAlchemy ``DBAPIError`` raised
by the driver, after the enclosing transaction has been rolled back.
"""


class InventoryKernelError(Exception):
    """
    Base exception for all inventory kernel errors.

    All subclasses must have a `code` class attribute.
    """

    code: str = "INVENTORY_KERNEL_ERROR"
    http_status: int = 500


# Not found


class NotFoundError(InventoryKernelError):
    """The addressed record does not exist."""

    code: str = "NOT_FOUND"
    http_status: int = 404


class InventoryUnitNotFoundError(NotFoundError):
    """No inventory unit exists for the (sku, bin_location) pair."""

    code: str = "INVENTORY_UNIT_NOT_FOUND"

    def __init__(self, sku: str, bin_location: str):
        self.sku = sku
        self.bin_location = bin_location
        super().__init__(
            f"Inventory not found for SKU {sku} at {bin_location}"
        )


# Conflicts: legitimate business-rule rejections


class ConflictError(InventoryKernelError):
    """A quantity precondition failed against the current stock position."""

    code: str = "CONFLICT"
    http_status: int = 409


class InsufficientAvailableStockError(ConflictError):
    """Reservation requested more than quantity - reserved."""

    code: str = "INSUFFICIENT_AVAILABLE_STOCK"

    def __init__(self, sku: str, bin_location: str, requested: int, available: int):
        self.sku = sku
        self.bin_location = bin_location
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient available stock for {sku} at {bin_location}: "
            f"requested {requested}, available {available}"
        )


class InsufficientOnHandStockError(ConflictError):
    """Deduction requested more than the physical on-hand quantity."""

    code: str = "INSUFFICIENT_ON_HAND_STOCK"

    def __init__(self, sku: str, bin_location: str, requested: int, on_hand: int):
        self.sku = sku
        self.bin_location = bin_location
        self.requested = requested
        self.on_hand = on_hand
        super().__init__(
            f"Insufficient on-hand stock for {sku} at {bin_location}: "
            f"requested {requested}, on hand {on_hand}"
        )


class NegativeStockError(ConflictError):
    """An adjustment would drive on-hand quantity below zero."""

    code: str = "NEGATIVE_STOCK"

    def __init__(self, sku: str, bin_location: str, quantity: int, delta: int):
        self.sku = sku
        self.bin_location = bin_location
        self.quantity = quantity
        self.delta = delta
        super().__init__(
            f"Adjustment of {delta} would make quantity negative for "
            f"{sku} at {bin_location} (current {quantity})"
        )


class ReservedExceedsQuantityError(ConflictError):
    """An adjustment would leave less on hand than is already reserved."""

    code: str = "RESERVED_EXCEEDS_QUANTITY"

    def __init__(
        self,
        sku: str,
        bin_location: str,
        quantity: int,
        reserved: int,
        delta: int,
    ):
        self.sku = sku
        self.bin_location = bin_location
        self.quantity = quantity
        self.reserved = reserved
        self.delta = delta
        super().__init__(
            f"Adjustment of {delta} would leave {quantity + delta} on hand "
            f"for {sku} at {bin_location}, below reserved {reserved}"
        )


# Validation: malformed requests


class ValidationError(InventoryKernelError):
    """Caller supplied an argument the ledger cannot act on."""

    code: str = "VALIDATION_ERROR"
    http_status: int = 400


class InvalidQuantityError(ValidationError):
    """Quantity must be a positive integer (or a non-zero delta)."""

    code: str = "INVALID_QUANTITY"

    def __init__(self, quantity: object, reason: str):
        self.quantity = quantity
        self.reason = reason
        super().__init__(f"Invalid quantity {quantity!r}: {reason}")


class MissingReasonError(ValidationError):
    """Adjustments must carry a non-blank reason."""

    code: str = "MISSING_REASON"

    def __init__(self, sku: str, bin_location: str):
        self.sku = sku
        self.bin_location = bin_location
        super().__init__(
            f"Adjustment for {sku} at {bin_location} requires a reason"
        )


class MissingReferenceError(ValidationError):
    """A required identifier (sku, bin, order or user) was blank."""

    code: str = "MISSING_REFERENCE"

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"Missing required value for {field}")


class ReferenceTooLongError(ValidationError):
    """An identifier is longer than its column allows."""

    code: str = "REFERENCE_TOO_LONG"

    def __init__(self, field: str, length: int, max_length: int):
        self.field = field
        self.length = length
        self.max_length = max_length
        super().__init__(
            f"{field} is {length} characters long (at most {max_length} allowed)"
        )


class InvalidPaginationError(ValidationError):
    """History page parameters out of range."""

    code: str = "INVALID_PAGINATION"

    def __init__(self, limit: object, offset: object, max_limit: int):
        self.limit = limit
        self.offset = offset
        self.max_limit = max_limit
        super().__init__(
            f"Invalid pagination limit={limit!r} offset={offset!r} "
            f"(limit must be an integer 1..{max_limit}, offset an integer >= 0)"
        )


# Invariants


class InvariantError(InventoryKernelError):
    """Base exception for kernel invariant breaches."""

    code: str = "INVARIANT_ERROR"


class InventoryInvariantError(InvariantError):
    """A stock position violates quantity >= 0 or 0 <= reserved <= quantity."""

    code: str = "INVENTORY_INVARIANT_VIOLATED"

    def __init__(self, quantity: int, reserved: int, reason: str):
        self.quantity = quantity
        self.reserved = reserved
        self.reason = reason
        super().__init__(
            f"Inventory invariant violated (quantity={quantity}, "
            f"reserved={reserved}): {reason}"
        )


# Immutability


class ImmutabilityError(InventoryKernelError):
    """Base exception for immutability violations."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """
    Attempted to modify or delete an immutable record.

    Inventory transactions are append-only; inventory units are never
    hard-deleted.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
