"""
InventoryRecord model — Quantity cache per (item, location).
"""

import logging

from django.db import models
from django.db.models import F, Q, Sum
from django.db.models.functions import Coalesce
from django.utils.translation import gettext_lazy as _

from branchstock.context import StockItemRef

logger = logging.getLogger('branchstock')


class InventoryRecordQuerySet(models.QuerySet):
    """QuerySet with helper methods for InventoryRecord queries."""

    def for_business(self, business_id):
        return self.filter(business_id=business_id)

    def for_item(self, item: StockItemRef):
        """Filter records for a product, or one exact variant of it."""
        return self.filter(product_id=item.product_id, variant_id=item.variant_id)

    def at_location(self, location_id):
        return self.filter(location_id=location_id)

    def low_stock(self):
        """Records at or below their reorder point."""
        return self.filter(_quantity__lte=F('reorder_point'))


class InventoryRecord(models.Model):
    """
    Quantity of one stock item at one location.

    Coordinates:
    - business_id: tenant
    - product_id / variant_id: WHAT (variant NULL = the product itself)
    - location_id: WHERE

    Performance:
    - _quantity is a cache updated atomically by Movement inserts
    - Read is O(1), not O(N)
    - Use audit() to compare the cache against the movement log

    Records are created lazily by the first movement and never deleted;
    zero-quantity rows stay for history.
    """

    business_id = models.PositiveBigIntegerField(db_index=True, verbose_name=_('Business'))
    product_id = models.PositiveBigIntegerField(verbose_name=_('Product'))
    variant_id = models.PositiveBigIntegerField(null=True, blank=True, verbose_name=_('Variant'))
    location_id = models.PositiveBigIntegerField(verbose_name=_('Location'))

    # Quantity cache (updated atomically by Movement)
    _quantity = models.IntegerField(
        default=0,
        db_column='quantity',
        verbose_name=_('Quantity'),
    )

    min_stock_level = models.PositiveIntegerField(default=0, verbose_name=_('Minimum stock level'))
    reorder_point = models.PositiveIntegerField(
        default=0,
        verbose_name=_('Reorder point'),
        help_text=_('Low stock when quantity is at or below this value.'),
    )
    last_restocked_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Last restocked at'))

    # Optimistic lock, bumped by every Movement
    version = models.PositiveIntegerField(default=0, editable=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = InventoryRecordQuerySet.as_manager()

    class Meta:
        verbose_name = _('Inventory record')
        verbose_name_plural = _('Inventory records')
        constraints = [
            models.UniqueConstraint(
                fields=['business_id', 'product_id', 'location_id'],
                condition=Q(variant_id__isnull=True),
                name='unique_record_product_location',
            ),
            models.UniqueConstraint(
                fields=['business_id', 'product_id', 'variant_id', 'location_id'],
                condition=Q(variant_id__isnull=False),
                name='unique_record_variant_location',
            ),
        ]
        indexes = [
            models.Index(fields=['business_id', 'product_id', 'variant_id'], name='bs_record_item_idx'),
            models.Index(fields=['business_id', 'location_id'], name='bs_record_location_idx'),
        ]

    # ══════════════════════════════════════════════════════════════
    # PROPERTIES
    # ══════════════════════════════════════════════════════════════

    @property
    def quantity(self) -> int:
        """Quantity on hand — O(1) cache read."""
        return self._quantity

    @property
    def item(self) -> StockItemRef:
        return StockItemRef(self.product_id, self.variant_id)

    @property
    def is_low_stock(self) -> bool:
        return self._quantity <= self.reorder_point

    # ══════════════════════════════════════════════════════════════
    # METHODS
    # ══════════════════════════════════════════════════════════════

    def audit(self) -> int:
        """
        Recompute quantity from Movements.

        Use for:
        - Integrity audit
        - Debug

        The cache is not rewritten; a mismatch is logged so that the
        cause can be investigated and corrected with an adjustment.

        Returns:
            Sum of all movement deltas for this record
        """
        total = self.movements.aggregate(
            t=Coalesce(Sum('quantity_delta'), 0)
        )['t']

        if total != self._quantity:
            logger.warning(
                "stock.audit.mismatch",
                extra={
                    "record_id": self.pk,
                    "cached": self._quantity,
                    "computed": total,
                },
            )

        return total

    def __str__(self) -> str:
        return f"{self.item} @ location:{self.location_id}: {self._quantity}"
