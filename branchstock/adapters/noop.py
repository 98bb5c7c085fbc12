"""
Noop adapters — Stub catalog/location backends for development and testing.

These adapters implement the CatalogValidator and LocationRegistry
protocols with trivial defaults:
- Every product/variant reference is considered valid
- Every location id is considered valid and named "Location <id>"

Usage in settings.py:
    BRANCHSTOCK = {
        "CATALOG_VALIDATOR": "branchstock.adapters.noop.NoopCatalogValidator",
        "LOCATION_REGISTRY": "branchstock.adapters.noop.NoopLocationRegistry",
    }

WARNING: Do NOT use in production. These adapters perform no real
validation and will accept nonexistent products and locations.
"""

from __future__ import annotations

from typing import Iterable

from branchstock.context import StockItemRef


class NoopCatalogValidator:
    """
    No-operation catalog validator.

    Every item is valid. Implements the ``CatalogValidator`` protocol
    without any external dependencies.
    """

    def item_exists(self, item: StockItemRef) -> bool:
        return True


class NoopLocationRegistry:
    """
    No-operation location registry.

    Every location exists; names are synthesized from the id.
    """

    def location_exists(self, business_id: int, location_id: int) -> bool:
        return True

    def location_names(self, business_id: int, location_ids: Iterable[int]) -> dict[int, str]:
        return {pk: f"Location {pk}" for pk in location_ids}
