"""
Transaction identifier generation.

A transaction id encodes the operation, the causal reference (order id for
order-driven operations, user id for adjustments), the SKU and the write
time, so a log line is traceable without a join:

    TXN-RES-ORD-1-SKU-1-1704110400000-3f9a2c1d

The trailing random suffix keeps ids unique when the same order touches the
same SKU twice within one millisecond (e.g. at two bins).
"""

from datetime import datetime
from uuid import uuid4

# Keyed by TransactionType value
TRANSACTION_ID_PREFIXES: dict[str, str] = {
    "RESERVATION": "RES",
    "CANCELLATION": "REL",
    "DEDUCTION": "DED",
    "ADJUSTMENT": "ADJ",
}


def epoch_millis(at: datetime) -> int:
    return int(at.timestamp() * 1000)


def generate_transaction_id(
    transaction_type: str,
    reference: str,
    sku: str,
    at: datetime,
    suffix: str | None = None,
) -> str:
    """
    Build a transaction id for a ledger write.

    Args:
        transaction_type: The kind of ledger event.
        reference: order_id, or user_id for adjustments.
        sku: SKU the transaction moves.
        at: Write time from the injected clock.
        suffix: Uniqueness suffix; random 8 hex chars when omitted.
    """
    prefix = TRANSACTION_ID_PREFIXES[getattr(transaction_type, "value", transaction_type)]
    suffix = suffix if suffix is not None else uuid4().hex[:8]
    return f"TXN-{prefix}-{reference}-{sku}-{epoch_millis(at)}-{suffix}"
