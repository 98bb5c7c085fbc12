"""
Django Branchstock — per-location stock for multi-branch retail.

Usage:
    from branchstock import stock, StockError, StockItemRef, TenantContext

    ctx = TenantContext(business_id=1, acting_user_id=7)
    stock.record_movement(ctx, StockItemRef(42), 10, 'entry', 20)
    stock.availability_across_locations(ctx, StockItemRef(42))
"""


def __getattr__(name):
    """Lazy import to avoid circular imports during app loading."""
    if name == 'stock':
        from branchstock.service import Stock
        return Stock
    elif name in ('StockError', 'ValidationError', 'InsufficientStockError',
                  'InvalidStateTransitionError', 'ConcurrencyConflictError', 'NotFoundError'):
        from branchstock import exceptions
        return getattr(exceptions, name)
    elif name in ('TenantContext', 'StockItemRef'):
        from branchstock import context
        return getattr(context, name)
    elif name in ('InventoryRecord', 'Movement', 'Transfer', 'TransferItem',
                  'MovementType', 'TransferStatus', 'TransferPriority', 'TransferType'):
        from branchstock import models
        return getattr(models, name)
    elif name == 'LocationStock':
        from branchstock.services.availability import LocationStock
        return LocationStock
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    'stock',
    'StockError',
    'ValidationError',
    'InsufficientStockError',
    'InvalidStateTransitionError',
    'ConcurrencyConflictError',
    'NotFoundError',
    'TenantContext',
    'StockItemRef',
    'InventoryRecord',
    'Movement',
    'Transfer',
    'TransferItem',
    'MovementType',
    'TransferStatus',
    'TransferPriority',
    'TransferType',
    'LocationStock',
]

__version__ = '0.1.0'
