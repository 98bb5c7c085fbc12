"""
Transfer models — inter-location stock requests and their lines.
"""

from django.db import models
from django.db.models import F, Q, Sum
from django.db.models.functions import Coalesce
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from branchstock.context import StockItemRef
from branchstock.models.enums import (
    TERMINAL_STATUSES,
    TransferPriority,
    TransferStatus,
    TransferType,
)


class TransferQuerySet(models.QuerySet):
    """Custom QuerySet for Transfer with workflow filters."""

    def for_business(self, business_id):
        return self.filter(business_id=business_id)

    def pending(self):
        return self.filter(status=TransferStatus.PENDING)

    def outgoing(self, location_id):
        return self.filter(from_location_id=location_id)

    def incoming(self, location_id):
        return self.filter(to_location_id=location_id)

    def due_for_expiry(self, now=None):
        """Pending transfers whose expires_at has passed."""
        now = now or timezone.now()
        return self.pending().filter(
            expires_at__isnull=False,
            expires_at__lte=now,
        )


class Transfer(models.Model):
    """
    Request to move stock from one location to another.

    LIFECYCLE:

    ┌───────────────────────────────────────────────────────────────────┐
    │                                                                   │
    │  ┌─────────┐ approve ┌──────────┐  ship  ┌────────────┐ receive  │
    │  │ PENDING │ ──────► │ APPROVED │ ─────► │ IN_TRANSIT │ ───────► │
    │  └─────────┘         └──────────┘        └────────────┘          │
    │    │  │  │                │                 RECEIVED or          │
    │    │  │  │ reject         │ cancel          PARTIALLY_RECEIVED   │
    │    │  │  ▼                ▼                                      │
    │    │  │ REJECTED      CANCELLED ◄── cancel (from PENDING)        │
    │    │  └─ expire ──► EXPIRED                                      │
    │                                                                   │
    └───────────────────────────────────────────────────────────────────┘

    STOCK EFFECTS:

    - ship debits the source (EXIT movements)
    - receive credits the destination (ENTRY movements)
    - in between, units belong to neither location
    """

    business_id = models.PositiveBigIntegerField(db_index=True, verbose_name=_('Business'))
    transfer_number = models.CharField(max_length=32, verbose_name=_('Transfer number'))

    from_location_id = models.PositiveBigIntegerField(verbose_name=_('From location'))
    to_location_id = models.PositiveBigIntegerField(verbose_name=_('To location'))

    transfer_type = models.CharField(
        max_length=20,
        choices=TransferType.choices,
        default=TransferType.MANUAL,
        verbose_name=_('Type'),
    )
    priority = models.CharField(
        max_length=10,
        choices=TransferPriority.choices,
        default=TransferPriority.NORMAL,
        verbose_name=_('Priority'),
    )
    origin_sale_id = models.PositiveBigIntegerField(null=True, blank=True, verbose_name=_('Origin sale'))

    status = models.CharField(
        max_length=20,
        choices=TransferStatus.choices,
        default=TransferStatus.PENDING,
        db_index=True,
        verbose_name=_('Status'),
    )

    requested_by = models.CharField(max_length=64, blank=True, default='')
    requested_at = models.DateTimeField(default=timezone.now, db_index=True)
    expires_at = models.DateTimeField(
        null=True,
        blank=True,
        db_index=True,
        verbose_name=_('Expires at'),
        help_text=_('Pending requests not approved by then expire automatically'),
    )

    approved_by = models.CharField(max_length=64, blank=True, default='')
    approved_at = models.DateTimeField(null=True, blank=True)
    rejected_by = models.CharField(max_length=64, blank=True, default='')
    rejected_at = models.DateTimeField(null=True, blank=True)
    shipped_by = models.CharField(max_length=64, blank=True, default='')
    shipped_at = models.DateTimeField(null=True, blank=True)
    received_by = models.CharField(max_length=64, blank=True, default='')
    received_at = models.DateTimeField(null=True, blank=True)
    cancelled_by = models.CharField(max_length=64, blank=True, default='')
    cancelled_at = models.DateTimeField(null=True, blank=True)
    expired_at = models.DateTimeField(null=True, blank=True)
    closed_by = models.CharField(max_length=64, blank=True, default='')
    closed_at = models.DateTimeField(null=True, blank=True)

    request_notes = models.TextField(blank=True, default='')
    rejection_reason = models.TextField(blank=True, default='')
    cancellation_reason = models.TextField(blank=True, default='')
    shipping_notes = models.TextField(blank=True, default='')
    receiving_notes = models.TextField(blank=True, default='')
    closing_notes = models.TextField(blank=True, default='')

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = TransferQuerySet.as_manager()

    class Meta:
        verbose_name = _('Transfer')
        verbose_name_plural = _('Transfers')
        ordering = ['-requested_at', '-id']
        constraints = [
            models.UniqueConstraint(
                fields=['business_id', 'transfer_number'],
                name='unique_transfer_number_per_business',
            ),
            models.CheckConstraint(
                condition=~Q(from_location_id=F('to_location_id')),
                name='transfer_distinct_locations',
            ),
        ]
        indexes = [
            models.Index(fields=['business_id', 'status'], name='bs_transfer_status_idx'),
            models.Index(fields=['status', 'expires_at'], name='bs_transfer_expiry_idx'),
            models.Index(fields=['business_id', 'from_location_id', 'status'], name='bs_transfer_outgoing_idx'),
            models.Index(fields=['business_id', 'to_location_id', 'status'], name='bs_transfer_incoming_idx'),
        ]

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def is_overdue(self) -> bool:
        """Pending past its expires_at (even if the sweep hasn't run yet)."""
        if self.status != TransferStatus.PENDING or self.expires_at is None:
            return False
        return timezone.now() >= self.expires_at

    @property
    def is_closed(self) -> bool:
        return self.closed_at is not None

    def totals(self) -> dict[str, int]:
        """Sum of each quantity stage over all lines."""
        return self.items.aggregate(
            requested=Coalesce(Sum('quantity_requested'), 0),
            approved=Coalesce(Sum('quantity_approved'), 0),
            shipped=Coalesce(Sum('quantity_shipped'), 0),
            received=Coalesce(Sum('quantity_received'), 0),
        )

    def __str__(self) -> str:
        return (
            f"{self.transfer_number} "
            f"{self.from_location_id}→{self.to_location_id} [{self.status}]"
        )


class TransferItem(models.Model):
    """
    One line of a Transfer.

    Quantities are set once per stage and never decreased:
        received ≤ shipped ≤ approved ≤ requested
    """

    transfer = models.ForeignKey(
        Transfer,
        on_delete=models.PROTECT,
        related_name='items',
        verbose_name=_('Transfer'),
    )
    line = models.PositiveSmallIntegerField(default=0)
    product_id = models.PositiveBigIntegerField(verbose_name=_('Product'))
    variant_id = models.PositiveBigIntegerField(null=True, blank=True, verbose_name=_('Variant'))

    quantity_requested = models.PositiveIntegerField(verbose_name=_('Requested'))
    quantity_approved = models.PositiveIntegerField(default=0, verbose_name=_('Approved'))
    quantity_shipped = models.PositiveIntegerField(default=0, verbose_name=_('Shipped'))
    quantity_received = models.PositiveIntegerField(default=0, verbose_name=_('Received'))

    notes = models.CharField(max_length=255, blank=True, default='')

    class Meta:
        verbose_name = _('Transfer item')
        verbose_name_plural = _('Transfer items')
        ordering = ['line', 'id']
        constraints = [
            models.CheckConstraint(
                condition=Q(quantity_requested__gt=0),
                name='transfer_item_requested_positive',
            ),
            models.CheckConstraint(
                condition=Q(quantity_approved__lte=F('quantity_requested')),
                name='transfer_item_approved_lte_requested',
            ),
            models.CheckConstraint(
                condition=Q(quantity_shipped__lte=F('quantity_approved')),
                name='transfer_item_shipped_lte_approved',
            ),
            models.CheckConstraint(
                condition=Q(quantity_received__lte=F('quantity_shipped')),
                name='transfer_item_received_lte_shipped',
            ),
        ]

    @property
    def item(self) -> StockItemRef:
        return StockItemRef(self.product_id, self.variant_id)

    @property
    def quantity_outstanding(self) -> int:
        """Shipped but not (yet) received."""
        return self.quantity_shipped - self.quantity_received

    def __str__(self) -> str:
        return (
            f"{self.item} req={self.quantity_requested} appr={self.quantity_approved} "
            f"ship={self.quantity_shipped} recv={self.quantity_received}"
        )


class TransferSequence(models.Model):
    """Per-business counter behind transfer numbers."""

    business_id = models.PositiveBigIntegerField(unique=True)
    last_value = models.PositiveIntegerField(default=0)

    class Meta:
        verbose_name = _('Transfer sequence')
        verbose_name_plural = _('Transfer sequences')

    def __str__(self) -> str:
        return f"business:{self.business_id} → {self.last_value}"
