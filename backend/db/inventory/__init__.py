"""
Inventory ledger.

Models:
- InventoryTransaction (append-only IN/OUT/ADJUST record of every stock change)
- PendingCompensation (stock credits that could not be restored after a failed cook)
"""

from .transaction import InventoryTransaction
from .compensation import PendingCompensation

__all__ = ["InventoryTransaction", "PendingCompensation"]
