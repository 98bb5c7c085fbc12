"""
Exceptions for Branchstock.

All errors are StockError subclasses with a structured code for
programmatic handling. The core never formats user-facing text; callers
translate ``code`` + ``data`` into their own messages.
"""

from typing import Any


class StockError(Exception):
    """
    Structured exception for stock operations.

    Usage:
        try:
            stock.ship(ctx, transfer.pk)
        except InsufficientStockError as e:
            print(e.code, e.data['shortages'])

    Attributes:
        code: Error code for programmatic handling
        message: Short technical description of the code
        data: Additional context data
    """

    default_code = 'STOCK_ERROR'

    _default_messages = {
        'STOCK_ERROR': 'Stock operation failed',
        # validation
        'INVALID_QUANTITY': 'Quantity must be a positive integer',
        'INVALID_DELTA': 'Delta sign does not match movement type',
        'INVALID_MOVEMENT_TYPE': 'Unknown movement type',
        'INVALID_LEVEL': 'Stock levels must be non-negative integers',
        'INVALID_ITEM': 'Invalid stock item reference',
        'INVALID_PRIORITY': 'Unknown transfer priority',
        'INVALID_TRANSFER_TYPE': 'Unknown transfer type',
        'SAME_LOCATION': 'Source and destination locations must differ',
        'EMPTY_TRANSFER': 'Transfer needs at least one item',
        'DUPLICATE_ITEM': 'Transfer item listed more than once',
        'NOTHING_TO_SHIP': 'Shipment has no units',
        'REASON_REQUIRED': 'Reason is required',
        'TENANT_REQUIRED': 'Tenant context is required',
        'LOCATION_REQUIRED': 'Location is required',
        'INVALID_LIMIT': 'Page size must be a positive integer',
        'INVALID_SELECTION': 'Item selections must be mappings',
        'INVALID_TEXT': 'Reason and notes must be text',
        'NOTES_TOO_LONG': 'Notes exceed 255 characters',
        # stock
        'INSUFFICIENT_STOCK': 'Insufficient stock at location',
        # state machine
        'INVALID_STATUS': 'Invalid status for this operation',
        'TRANSFER_EXPIRED': 'Transfer request has expired',
        'TRANSFER_NOT_DUE': 'Transfer has not reached its expiry time',
        'ALREADY_CLOSED': 'Transfer already closed',
        # concurrency
        'CONCURRENT_MODIFICATION': 'Concurrent modification detected',
        # lookup
        'RECORD_NOT_FOUND': 'Inventory record not found',
        'TRANSFER_NOT_FOUND': 'Transfer not found',
        'MOVEMENT_NOT_FOUND': 'Movement not found',
        'ITEM_NOT_FOUND': 'Item not found',
        'LOCATION_NOT_FOUND': 'Location not found',
    }

    def __init__(self, code: str | None = None, message: str | None = None, **data):
        self.code = code or self.default_code
        self.message = message or self._default_messages.get(self.code, self.code)
        self.data = data
        super().__init__(f"{self.code}: {self.message}")

    def as_dict(self) -> dict[str, Any]:
        """Serialize to dict (useful for APIs)."""
        return {
            'code': self.code,
            'message': self.message,
            'data': dict(self.data),
        }


class ValidationError(StockError):
    """Malformed input, rejected before any write."""

    default_code = 'INVALID_QUANTITY'


class InsufficientStockError(StockError):
    """A debit would drive a non-adjustment record below zero."""

    default_code = 'INSUFFICIENT_STOCK'

    @property
    def current(self) -> int:
        """Shortcut for data['current']."""
        return self.data.get('current', 0)

    @property
    def delta(self) -> int:
        """Shortcut for data['delta']."""
        return self.data.get('delta', 0)


class InvalidStateTransitionError(StockError):
    """Transition invoked against a transfer in the wrong status."""

    default_code = 'INVALID_STATUS'


class ConcurrencyConflictError(StockError):
    """Optimistic lock mismatch; retry the whole operation."""

    default_code = 'CONCURRENT_MODIFICATION'


class NotFoundError(StockError):
    """Unknown record, transfer, item or location."""

    default_code = 'RECORD_NOT_FOUND'
