"""
Location Registry Protocol — Interface for the business's locations.

Locations (branches, warehouses) are administered elsewhere; the core only
checks that an id belongs to the tenant and asks for display names.
"""

from __future__ import annotations

from typing import Iterable, Protocol, runtime_checkable


@runtime_checkable
class LocationRegistry(Protocol):
    """Protocol for location lookups, always scoped to one business."""

    def location_exists(self, business_id: int, location_id: int) -> bool:
        """
        Check that the location exists and belongs to the business.

        Args:
            business_id: Tenant id
            location_id: Location id

        Returns:
            True if the location is known for this business
        """
        ...

    def location_names(self, business_id: int, location_ids: Iterable[int]) -> dict[int, str]:
        """
        Resolve display names for several locations at once.

        Args:
            business_id: Tenant id
            location_ids: Location ids to resolve

        Returns:
            Dict[location_id, name]; unknown ids may be missing
        """
        ...
