"""
Catalog Protocol — Interface for product/variant existence checks.

Branchstock defines this protocol, the catalog app implements it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from branchstock.context import StockItemRef


@runtime_checkable
class CatalogValidator(Protocol):
    """
    Protocol for stock item validation.

    The core only needs to know that a product (or one of its variants)
    exists; names, prices and codes stay in the catalog.
    """

    def item_exists(self, item: StockItemRef) -> bool:
        """
        Check that the product exists and, when given, that the variant
        belongs to it.

        Args:
            item: Product/variant reference

        Returns:
            True if the reference resolves in the catalog
        """
        ...
