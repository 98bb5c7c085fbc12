"""
Availability index — one item's stock across every location of a business.

Read-only; computed from the current InventoryRecords on each call and
uses no locking.
"""

from dataclasses import dataclass

from branchstock.adapters import get_location_registry
from branchstock.context import StockItemRef, TenantContext
from branchstock.models.record import InventoryRecord


@dataclass(frozen=True)
class LocationStock:
    """Stock of one item at one location."""

    location_id: int
    location_name: str
    quantity: int
    reorder_point: int
    is_low_stock: bool


class StockAvailability:
    """Cross-location availability methods."""

    @classmethod
    def availability_across_locations(cls, ctx: TenantContext,
                                      item: StockItemRef) -> list[LocationStock]:
        """
        Where is this item, and how much of it?

        Every location holding a record of the item is listed, including
        empty ones. Callers that want "other locations with stock" filter
        the result (see request_sources).

        Returns:
            LocationStock list, largest quantity first, ties by location id
        """
        records = list(
            InventoryRecord.objects.for_business(ctx.business_id)
            .for_item(item)
            .order_by('-_quantity', 'location_id')
        )
        if not records:
            return []

        names = get_location_registry().location_names(
            ctx.business_id,
            [record.location_id for record in records],
        )

        return [
            LocationStock(
                location_id=record.location_id,
                location_name=names.get(record.location_id, ''),
                quantity=record.quantity,
                reorder_point=record.reorder_point,
                is_low_stock=record.is_low_stock,
            )
            for record in records
        ]

    @classmethod
    def request_sources(cls, ctx: TenantContext, item: StockItemRef,
                        requesting_location_id: int,
                        min_quantity: int = 1) -> list[LocationStock]:
        """
        Locations a store could request the item from.

        Drops the requesting location itself and any location holding
        less than ``min_quantity``. Order is that of the full index.
        """
        return [
            entry
            for entry in cls.availability_across_locations(ctx, item)
            if entry.location_id != requesting_location_id and entry.quantity >= min_quantity
        ]
