"""
Branchstock Models.

Core models for per-location stock:
- InventoryRecord: Quantity cache per (item, location)
- Movement: Immutable ledger of changes
- Transfer / TransferItem: Inter-location requests and their lines
- TransferSequence: Transfer number counter per business
"""

from branchstock.models.enums import (
    TERMINAL_STATUSES,
    TRANSITIONS,
    MovementType,
    TransferPriority,
    TransferStatus,
    TransferType,
    can_transition,
)
from branchstock.models.movement import Movement
from branchstock.models.record import InventoryRecord
from branchstock.models.transfer import Transfer, TransferItem, TransferSequence

__all__ = [
    'MovementType',
    'TransferStatus',
    'TransferPriority',
    'TransferType',
    'TRANSITIONS',
    'TERMINAL_STATUSES',
    'can_transition',
    'InventoryRecord',
    'Movement',
    'Transfer',
    'TransferItem',
    'TransferSequence',
]
