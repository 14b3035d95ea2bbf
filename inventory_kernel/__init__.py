"""
Inventory Kernel

The inventory ledger core of the warehouse system:
- Stock units keyed by (sku, bin_location) with on-hand and reserved counts
- Reserve / release / deduct / adjust as atomic row-locked operations
- Append-only transaction log written in the same transaction
- Read selectors for history, availability and low stock
"""

__version__ = "0.1.0"
