"""
Enums for Branchstock models.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class MovementType(models.TextChoices):
    """
    Kind of quantity change.

    ENTRY:      Stock arrives (purchase, initial stock, transfer receipt). Delta > 0.
    EXIT:       Stock leaves (sale, transfer shipment). Delta < 0.
    ADJUSTMENT: Manual correction (stock-take). Either sign, may go negative.
    TRANSFER:   One leg of a direct location-to-location move. Either sign.
    """
    ENTRY = 'entry', _('Entry')
    EXIT = 'exit', _('Exit')
    ADJUSTMENT = 'adjustment', _('Adjustment')
    TRANSFER = 'transfer', _('Transfer')


class TransferStatus(models.TextChoices):
    """Transfer lifecycle status."""
    PENDING = 'pending', _('Pending')                  # Requested, awaiting source approval
    APPROVED = 'approved', _('Approved')               # Source agreed, nothing moved yet
    IN_TRANSIT = 'in_transit', _('In transit')         # Debited at source, not yet credited
    RECEIVED = 'received', _('Received')               # Every shipped unit credited
    PARTIALLY_RECEIVED = 'partially_received', _('Partially received')
    REJECTED = 'rejected', _('Rejected')
    CANCELLED = 'cancelled', _('Cancelled')
    EXPIRED = 'expired', _('Expired')


class TransferPriority(models.TextChoices):
    NORMAL = 'normal', _('Normal')
    URGENT = 'urgent', _('Urgent')


class TransferType(models.TextChoices):
    MANUAL = 'manual', _('Manual')
    POS_REQUEST = 'pos_request', _('POS request')


# Allowed transitions. No transition re-enters an earlier state.
#
#   PENDING ──approve──► APPROVED ──ship──► IN_TRANSIT ──receive──► RECEIVED
#     │ │ │                 │                    └──────receive──► PARTIALLY_RECEIVED
#     │ │ └─reject─► REJECTED│
#     │ └─expire─► EXPIRED   │
#     └────cancel────────────┴──cancel──► CANCELLED
TRANSITIONS: dict[str, frozenset[str]] = {
    TransferStatus.PENDING: frozenset({
        TransferStatus.APPROVED,
        TransferStatus.REJECTED,
        TransferStatus.CANCELLED,
        TransferStatus.EXPIRED,
    }),
    TransferStatus.APPROVED: frozenset({
        TransferStatus.IN_TRANSIT,
        TransferStatus.CANCELLED,
    }),
    TransferStatus.IN_TRANSIT: frozenset({
        TransferStatus.RECEIVED,
        TransferStatus.PARTIALLY_RECEIVED,
    }),
}

TERMINAL_STATUSES: frozenset[str] = frozenset({
    TransferStatus.REJECTED,
    TransferStatus.CANCELLED,
    TransferStatus.EXPIRED,
    TransferStatus.RECEIVED,
})


def can_transition(current: str, target: str) -> bool:
    """Is current → target in the transition table?"""
    return target in TRANSITIONS.get(current, frozenset())
