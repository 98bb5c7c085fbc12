"""
Branchstock Admin.

Provides read-only views for production debugging:
- InventoryRecord: read-only (item, location, quantity, reorder point)
- Movement: read-only audit trail (timestamp, type, delta, before/after)
- Transfer: read-only with its lines inline and an "expire overdue" action
"""

import logging

from django.contrib import admin
from django.utils.translation import gettext_lazy as _

from branchstock.context import TenantContext
from branchstock.exceptions import StockError
from branchstock.models import InventoryRecord, Movement, Transfer, TransferItem, TransferStatus

logger = logging.getLogger(__name__)


class ReadOnlyAdminMixin:
    """Stock only changes via the Stock service."""

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# =========================================================================
# INVENTORY RECORD ADMIN (read-only)
# =========================================================================

@admin.register(InventoryRecord)
class InventoryRecordAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """InventoryRecord admin — read-only."""

    list_display = ['__str__', 'business_id', 'location_id', 'quantity_display',
                    'reorder_point', 'is_low_stock_display', 'last_restocked_at']
    list_filter = ['business_id', 'location_id']
    search_fields = ['product_id', 'variant_id']
    readonly_fields = ['business_id', 'product_id', 'variant_id', 'location_id', '_quantity',
                       'min_stock_level', 'reorder_point', 'last_restocked_at', 'version',
                       'created_at', 'updated_at']
    ordering = ['business_id', 'location_id', 'product_id']

    @admin.display(description=_('Quantity'), ordering='_quantity')
    def quantity_display(self, obj):
        return obj.quantity

    @admin.display(description=_('Low stock?'), boolean=True)
    def is_low_stock_display(self, obj):
        return obj.is_low_stock


# =========================================================================
# MOVEMENT ADMIN (read-only audit trail)
# =========================================================================

@admin.register(Movement)
class MovementAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """Movement admin — read-only. Immutable audit trail."""

    list_display = ['created_at', 'record', 'movement_type', 'quantity_delta',
                    'quantity_before', 'quantity_after', 'related_transfer', 'created_by']
    list_filter = ['movement_type', 'created_at']
    search_fields = ['notes', 'created_by']
    readonly_fields = ['record', 'movement_type', 'quantity_delta', 'quantity_before',
                       'quantity_after', 'notes', 'related_transfer', 'created_by', 'created_at']
    date_hierarchy = 'created_at'


# =========================================================================
# TRANSFER ADMIN (read-only with expire action)
# =========================================================================

class TransferItemInline(ReadOnlyAdminMixin, admin.TabularInline):
    model = TransferItem
    extra = 0
    fields = ['line', 'product_id', 'variant_id', 'quantity_requested', 'quantity_approved',
              'quantity_shipped', 'quantity_received', 'notes']
    readonly_fields = fields


@admin.register(Transfer)
class TransferAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """Transfer admin — read-only with expire action."""

    list_display = ['transfer_number', 'business_id', 'from_location_id', 'to_location_id',
                    'status', 'priority', 'transfer_type', 'requested_at', 'expires_at',
                    'is_closed_display']
    list_filter = ['status', 'priority', 'transfer_type']
    search_fields = ['transfer_number', 'requested_by']
    readonly_fields = [field.name for field in Transfer._meta.concrete_fields]
    date_hierarchy = 'requested_at'
    inlines = [TransferItemInline]
    actions = ['expire_overdue']

    @admin.display(description=_('Closed?'), boolean=True)
    def is_closed_display(self, obj):
        return obj.is_closed

    @admin.action(description=_('Expire selected overdue requests'))
    def expire_overdue(self, request, queryset):
        from branchstock import stock

        count = 0
        for transfer in queryset.filter(status=TransferStatus.PENDING):
            if not transfer.is_overdue:
                continue
            ctx = TenantContext(business_id=transfer.business_id, acting_user_id=request.user.pk)
            try:
                stock.expire(ctx, transfer.pk)
                count += 1
            except StockError as exc:
                logger.warning("expire_overdue: failed to expire %s: %s", transfer.transfer_number, exc)

        self.message_user(request, _('{count} transfer(s) expired.').format(count=count))
