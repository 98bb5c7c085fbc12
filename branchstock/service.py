"""
Stock Service — The single public interface for all stock operations.

Usage:
    from branchstock import stock, StockItemRef, TenantContext

    ctx = TenantContext(business_id=1, acting_user_id=7)
    shirt = StockItemRef(product_id=42, variant_id=3)

    stock.record_movement(ctx, shirt, location_id=10, movement_type='entry', delta=20)
    transfer = stock.create_transfer(ctx, 10, 11, [{'item': shirt, 'quantity': 5}])
    stock.approve(ctx, transfer.pk)
    stock.ship(ctx, transfer.pk)
    stock.receive(ctx, transfer.pk)
    stock.availability_across_locations(ctx, shirt)
"""

from branchstock.services.availability import StockAvailability
from branchstock.services.ledger import StockLedger
from branchstock.services.transfers import TransferWorkflow


class Stock(StockLedger, TransferWorkflow, StockAvailability):
    """
    Single interface for all stock operations.

    Parameter convention: (ctx, ...) — the tenant context always comes
    first and is never read from ambient state.

    IMPORTANT: All state-changing methods use atomic transactions
    with appropriate locking. See each method's docstring.
    """
