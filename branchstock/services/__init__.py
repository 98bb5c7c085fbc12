"""
Stock services — modular organization of stock operations.

    from branchstock.services import StockLedger, TransferWorkflow, StockAvailability
"""

from branchstock.services.availability import LocationStock, StockAvailability
from branchstock.services.ledger import StockLedger
from branchstock.services.transfers import TransferWorkflow

__all__ = [
    'StockLedger',
    'TransferWorkflow',
    'StockAvailability',
    'LocationStock',
]
