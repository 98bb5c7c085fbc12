"""
Movement model — Immutable ledger of quantity changes.
"""

from django.db import models, transaction
from django.db.models import F
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from branchstock.exceptions import ConcurrencyConflictError
from branchstock.models.enums import MovementType


class MovementQuerySet(models.QuerySet):
    """Insert-only queryset: bulk update/delete are refused."""

    def update(self, **kwargs):
        raise ValueError("Movements are immutable.")

    def delete(self):
        raise ValueError("Movements are immutable.")

    def for_transfer(self, transfer):
        return self.filter(related_transfer=transfer)


class Movement(models.Model):
    """
    Immutable record of quantity change.

    Rules:
    - NEVER update() or delete()
    - Corrections are new adjustment Movements
    - Updates InventoryRecord._quantity and version atomically on save()

    This is the ONLY model that changes quantity.
    """

    record = models.ForeignKey(
        'branchstock.InventoryRecord',
        on_delete=models.PROTECT,
        related_name='movements',
        verbose_name=_('Inventory record'),
    )
    movement_type = models.CharField(
        max_length=20,
        choices=MovementType.choices,
        verbose_name=_('Type'),
    )
    quantity_delta = models.IntegerField(
        verbose_name=_('Delta'),
        help_text=_('Positive = in, negative = out'),
    )
    quantity_before = models.IntegerField(verbose_name=_('Quantity before'))
    quantity_after = models.IntegerField(verbose_name=_('Quantity after'))

    notes = models.CharField(max_length=255, blank=True, default='', verbose_name=_('Notes'))
    related_transfer = models.ForeignKey(
        'branchstock.Transfer',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='movements',
        verbose_name=_('Transfer'),
    )

    created_by = models.CharField(max_length=64, blank=True, default='', verbose_name=_('Created by'))
    created_at = models.DateTimeField(default=timezone.now, db_index=True, verbose_name=_('Created at'))

    objects = MovementQuerySet.as_manager()

    class Meta:
        verbose_name = _('Movement')
        verbose_name_plural = _('Movements')
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['record', 'created_at'], name='bs_movement_record_idx'),
        ]

    def save(self, *args, **kwargs):
        """
        Save movement and update record cache atomically.

        When ``expected_version`` is set (the version read under lock), the
        cache update only applies to that version; otherwise the insert is
        rolled back with ConcurrencyConflictError.
        """
        if self.pk:
            raise ValueError(
                "Movements are immutable. "
                "To correct, create a new adjustment Movement."
            )

        if not self.quantity_delta:
            raise ValueError("Movement delta must be non-zero")

        expected_version = getattr(self, 'expected_version', None)

        with transaction.atomic():
            super().save(*args, **kwargs)

            from branchstock.models.record import InventoryRecord

            qs = InventoryRecord.objects.filter(pk=self.record_id)
            if expected_version is not None:
                qs = qs.filter(version=expected_version)

            fields = {
                '_quantity': F('_quantity') + self.quantity_delta,
                'version': F('version') + 1,
                'updated_at': timezone.now(),
            }
            if self.restocks:
                fields['last_restocked_at'] = self.created_at

            if not qs.update(**fields):
                raise ConcurrencyConflictError(
                    record_id=self.record_id,
                    expected_version=expected_version,
                )

    def delete(self, *args, **kwargs):
        """Prevent deletion — movements are immutable."""
        raise ValueError(
            "Movements are immutable. "
            "To reverse, create a new adjustment Movement."
        )

    @property
    def restocks(self) -> bool:
        """Positive, non-transfer movements count as a restock."""
        return self.quantity_delta > 0 and self.movement_type in (
            MovementType.ENTRY, MovementType.ADJUSTMENT,
        )

    def __str__(self) -> str:
        signal = '+' if self.quantity_delta > 0 else ''
        return f"{signal}{self.quantity_delta} {self.movement_type} | {self.notes}"
