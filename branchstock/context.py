"""
Call context value types.

Every ledger, transfer and availability call receives an explicit
TenantContext; nothing is read from request-global state.
"""

from __future__ import annotations

from dataclasses import dataclass

from branchstock.exceptions import ValidationError


@dataclass(frozen=True)
class TenantContext:
    """Who is acting, and for which business."""

    business_id: int
    acting_user_id: str | int | None = None
    location_id: int | None = None

    def __post_init__(self):
        if not self.business_id:
            raise ValidationError('TENANT_REQUIRED')

    @property
    def actor(self) -> str:
        """Acting user as stored on audit columns ('' when anonymous)."""
        if self.acting_user_id is None:
            return ''
        return str(self.acting_user_id)


@dataclass(frozen=True)
class StockItemRef:
    """What is tracked: a product, or one of its variants."""

    product_id: int
    variant_id: int | None = None

    def __post_init__(self):
        if not _is_positive_int(self.product_id):
            raise ValidationError('INVALID_ITEM', product_id=self.product_id)
        if self.variant_id is not None and not _is_positive_int(self.variant_id):
            raise ValidationError('INVALID_ITEM', variant_id=self.variant_id)

    def __str__(self) -> str:
        if self.variant_id is None:
            return f"product:{self.product_id}"
        return f"product:{self.product_id}/variant:{self.variant_id}"


def _is_positive_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0
