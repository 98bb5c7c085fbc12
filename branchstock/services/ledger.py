"""
Stock ledger — state-changing movement operations and ledger reads.

All writes use transaction.atomic() with select_for_update() on the
InventoryRecord plus the record's version guard (see Movement.save()).
"""

import logging

from django.db import transaction
from django.db.models import Q

from branchstock.adapters import get_catalog_validator, get_location_registry
from branchstock.conf import branchstock_settings
from branchstock.context import StockItemRef, TenantContext
from branchstock.exceptions import InsufficientStockError, NotFoundError, ValidationError
from branchstock.models.enums import MovementType
from branchstock.models.movement import Movement
from branchstock.models.record import InventoryRecord
from branchstock.services.retry import retry_on_conflict

logger = logging.getLogger('branchstock')


# Required delta sign per movement type (0 = either sign)
DELTA_SIGN = {
    MovementType.ENTRY: 1,
    MovementType.EXIT: -1,
    MovementType.ADJUSTMENT: 0,
    MovementType.TRANSFER: 0,
}

NOTES_MAX_LENGTH = 255


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _coerce_type(movement_type) -> MovementType:
    try:
        return MovementType(movement_type)
    except ValueError:
        raise ValidationError('INVALID_MOVEMENT_TYPE', movement_type=movement_type) from None


def _check_delta(movement_type: MovementType, delta) -> None:
    """Delta must be a non-zero int whose sign matches the type."""
    if not _is_int(delta) or delta == 0:
        raise ValidationError('INVALID_DELTA', movement_type=movement_type, delta=delta)
    sign = DELTA_SIGN[movement_type]
    if sign and (delta > 0) != (sign > 0):
        raise ValidationError('INVALID_DELTA', movement_type=movement_type, delta=delta)


def _check_positive(quantity) -> None:
    if not _is_int(quantity) or quantity <= 0:
        raise ValidationError('INVALID_QUANTITY', requested=quantity)


def check_text(value) -> str:
    """Free text (reason, notes): None reads as ''; anything else must be a str."""
    if value is None:
        return ''
    if not isinstance(value, str):
        raise ValidationError('INVALID_TEXT', value=repr(value))
    return value


def check_notes(notes) -> str:
    """Movement and transfer line notes fit their 255-character column."""
    notes = check_text(notes)
    if len(notes) > NOTES_MAX_LENGTH:
        raise ValidationError('NOTES_TOO_LONG', length=len(notes), max_length=NOTES_MAX_LENGTH)
    return notes


def validate_item(item: StockItemRef) -> None:
    """Resolve the item through the catalog backend (when enabled)."""
    if not isinstance(item, StockItemRef):
        raise ValidationError('INVALID_ITEM', item=repr(item))
    if branchstock_settings.VALIDATE_INPUT_ITEMS and not get_catalog_validator().item_exists(item):
        raise NotFoundError(
            'ITEM_NOT_FOUND',
            product_id=item.product_id,
            variant_id=item.variant_id,
        )


def validate_location(ctx: TenantContext, location_id) -> None:
    """Check the location id against the registry backend (when enabled)."""
    if not _is_int(location_id) or location_id <= 0:
        raise NotFoundError('LOCATION_NOT_FOUND', location_id=location_id)
    if (branchstock_settings.VALIDATE_LOCATIONS
            and not get_location_registry().location_exists(ctx.business_id, location_id)):
        raise NotFoundError('LOCATION_NOT_FOUND', location_id=location_id)


def get_or_create_record(ctx: TenantContext, item: StockItemRef, location_id: int) -> InventoryRecord:
    """Find the (item, location) record, creating an empty one on first use."""
    record, created = InventoryRecord.objects.get_or_create(
        business_id=ctx.business_id,
        product_id=item.product_id,
        variant_id=item.variant_id,
        location_id=location_id,
    )
    if created:
        logger.debug(
            "stock.record.created",
            extra={"record_id": record.pk, "item": str(item), "location_id": location_id},
        )
    return record


def lock_records(pks) -> dict[int, InventoryRecord]:
    """
    Lock records by primary key.

    Rows are locked in ascending pk order so that multi-record
    operations running concurrently cannot deadlock each other.
    """
    locked = InventoryRecord.objects.select_for_update().filter(pk__in=set(pks)).order_by('pk')
    return {record.pk: record for record in locked}


def apply_movement(ctx: TenantContext, record: InventoryRecord, movement_type: MovementType,
                   delta: int, notes: str = '', related_transfer=None) -> Movement:
    """
    Write one movement against a record locked by the caller.

    Must run inside transaction.atomic(). Keeps the in-memory record in
    step with the database so callers can apply several movements to the
    same locked row.

    Raises:
        InsufficientStockError: If a non-adjustment would go below zero
        ConcurrencyConflictError: If the record version moved
    """
    before = record._quantity
    after = before + delta

    if movement_type != MovementType.ADJUSTMENT and after < 0:
        raise InsufficientStockError(
            location_id=record.location_id,
            product_id=record.product_id,
            variant_id=record.variant_id,
            current=before,
            delta=delta,
        )

    move = Movement(
        record=record,
        movement_type=movement_type,
        quantity_delta=delta,
        quantity_before=before,
        quantity_after=after,
        notes=notes or '',
        related_transfer=related_transfer,
        created_by=ctx.actor,
    )
    move.expected_version = record.version
    move.save()

    record._quantity = after
    record.version += 1
    if move.restocks:
        record.last_restocked_at = move.created_at
    return move


class StockLedger:
    """Inventory ledger and movement log methods."""

    # ══════════════════════════════════════════════════════════════
    # WRITES
    # ══════════════════════════════════════════════════════════════

    @classmethod
    @retry_on_conflict
    def record_movement(cls, ctx: TenantContext, item: StockItemRef, location_id: int,
                        movement_type, delta: int, notes: str = '',
                        related_transfer=None) -> Movement:
        """
        Record one quantity change.

        Locates or lazily creates the (item, location) record, then writes
        the movement and the quantity cache in one transaction.

        Raises:
            ValidationError('INVALID_DELTA'): If delta is zero or has the wrong sign
            ValidationError('NOTES_TOO_LONG'): If notes exceed 255 characters
            InsufficientStockError: If a non-adjustment would go below zero
            NotFoundError: If item or location don't resolve

        Concurrency:
            - Runs under transaction.atomic()
            - Uses select_for_update() on InventoryRecord
            - Version-guarded cache update, retried on conflict
        """
        movement_type = _coerce_type(movement_type)
        _check_delta(movement_type, delta)
        notes = check_notes(notes)
        validate_item(item)
        validate_location(ctx, location_id)

        with transaction.atomic():
            record = get_or_create_record(ctx, item, location_id)
            record = lock_records([record.pk])[record.pk]
            move = apply_movement(ctx, record, movement_type, delta, notes, related_transfer)

        logger.info(
            "stock.movement",
            extra={
                "record_id": record.pk,
                "type": movement_type.value,
                "delta": delta,
                "quantity": move.quantity_after,
                "transfer_id": getattr(related_transfer, 'pk', None),
            },
        )
        return move

    @classmethod
    @retry_on_conflict
    def adjust_to(cls, ctx: TenantContext, item: StockItemRef, location_id: int,
                  new_quantity: int, notes: str) -> Movement | None:
        """
        Stock-take reconciliation.

        Calculates delta automatically: new_quantity - current quantity,
        and records it as an adjustment.

        Returns:
            The adjustment Movement, or None when nothing changes

        Raises:
            ValidationError('REASON_REQUIRED'): If notes are blank
        """
        notes = check_notes(notes)
        if not notes.strip():
            raise ValidationError('REASON_REQUIRED')
        if not _is_int(new_quantity) or new_quantity < 0:
            raise ValidationError('INVALID_QUANTITY', requested=new_quantity)
        validate_item(item)
        validate_location(ctx, location_id)

        with transaction.atomic():
            record = get_or_create_record(ctx, item, location_id)
            record = lock_records([record.pk])[record.pk]
            delta = new_quantity - record._quantity

            if delta == 0:
                return None

            move = apply_movement(ctx, record, MovementType.ADJUSTMENT, delta, notes)

        logger.info(
            "stock.adjust",
            extra={"record_id": record.pk, "delta": delta, "quantity": new_quantity},
        )
        return move

    @classmethod
    @retry_on_conflict
    def transfer_stock(cls, ctx: TenantContext, item: StockItemRef, from_location_id: int,
                       to_location_id: int, quantity: int,
                       notes: str = '') -> tuple[Movement, Movement]:
        """
        Immediate location-to-location move, without the request workflow.

        Both legs are TRANSFER movements written in one transaction.

        Raises:
            ValidationError('SAME_LOCATION'): If both locations are equal
            InsufficientStockError: If the source can't cover the quantity
        """
        _check_positive(quantity)
        notes = check_notes(notes)
        if from_location_id == to_location_id:
            raise ValidationError('SAME_LOCATION', location_id=from_location_id)
        validate_item(item)
        validate_location(ctx, from_location_id)
        validate_location(ctx, to_location_id)

        with transaction.atomic():
            source = get_or_create_record(ctx, item, from_location_id)
            target = get_or_create_record(ctx, item, to_location_id)
            locked = lock_records([source.pk, target.pk])

            out_move = apply_movement(
                ctx, locked[source.pk], MovementType.TRANSFER, -quantity,
                notes or f"Transfer to location {to_location_id}",
            )
            in_move = apply_movement(
                ctx, locked[target.pk], MovementType.TRANSFER, quantity,
                notes or f"Transfer from location {from_location_id}",
            )

        logger.info(
            "stock.transfer",
            extra={
                "item": str(item),
                "from": from_location_id,
                "to": to_location_id,
                "qty": quantity,
            },
        )
        return out_move, in_move

    @classmethod
    def update_stock_levels(cls, ctx: TenantContext, record_id: int,
                            min_stock_level: int, reorder_point: int) -> InventoryRecord:
        """
        Update reorder configuration. Never touches quantity.

        Raises:
            ValidationError('INVALID_LEVEL'): If a level is not a non-negative int
            NotFoundError('RECORD_NOT_FOUND'): If the record isn't the tenant's
        """
        for value in (min_stock_level, reorder_point):
            if not _is_int(value) or value < 0:
                raise ValidationError(
                    'INVALID_LEVEL',
                    min_stock_level=min_stock_level,
                    reorder_point=reorder_point,
                )

        record = cls.get_record_by_id(ctx, record_id)
        record.min_stock_level = min_stock_level
        record.reorder_point = reorder_point
        record.save(update_fields=['min_stock_level', 'reorder_point', 'updated_at'])
        return record

    # ══════════════════════════════════════════════════════════════
    # READS
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def get_record(cls, ctx: TenantContext, item: StockItemRef,
                   location_id: int) -> InventoryRecord | None:
        """Get the (item, location) record, if any movement ever touched it."""
        return (
            InventoryRecord.objects.for_business(ctx.business_id)
            .for_item(item)
            .at_location(location_id)
            .first()
        )

    @classmethod
    def get_record_by_id(cls, ctx: TenantContext, record_id: int) -> InventoryRecord:
        try:
            return InventoryRecord.objects.for_business(ctx.business_id).get(pk=record_id)
        except InventoryRecord.DoesNotExist:
            raise NotFoundError('RECORD_NOT_FOUND', record_id=record_id) from None

    @classmethod
    def list_records(cls, ctx: TenantContext, location_id: int | None = None,
                     item: StockItemRef | None = None, low_stock: bool = False):
        """
        The tenant's inventory, optionally narrowed.

        Args:
            location_id: Only this location (None = all)
            item: Only this product/variant (None = all)
            low_stock: Only records at or below their reorder point

        Returns:
            InventoryRecord QuerySet ordered by location, product, variant
        """
        qs = InventoryRecord.objects.for_business(ctx.business_id)

        if location_id is not None:
            qs = qs.at_location(location_id)
        if item is not None:
            qs = qs.for_item(item)
        if low_stock:
            qs = qs.low_stock()

        return qs.order_by('location_id', 'product_id', 'variant_id', 'pk')

    @classmethod
    def check_stock_availability(cls, ctx: TenantContext, item: StockItemRef,
                                 location_id: int, quantity: int) -> bool:
        """Is there at least ``quantity`` on hand at the location?"""
        record = cls.get_record(ctx, item, location_id)
        return record is not None and record.quantity >= quantity

    @classmethod
    def list_movements(cls, ctx: TenantContext, record_id: int, limit: int | None = None,
                       before: int | None = None) -> list[Movement]:
        """
        Movements of one record, newest first.

        Keyset pagination: pass the id of the last movement of a page as
        ``before`` to get the next one. Pages are stable under concurrent
        inserts (new movements only ever appear on the first page).

        Args:
            record_id: InventoryRecord pk
            limit: Page size (None = MOVEMENTS_PAGE_SIZE)
            before: Movement id to continue after

        Raises:
            ValidationError('INVALID_LIMIT'): If limit is not a positive int
            NotFoundError('RECORD_NOT_FOUND'): If the record is unknown
            NotFoundError('MOVEMENT_NOT_FOUND'): If the cursor is not one of
                the record's movements
        """
        if limit is None:
            limit = branchstock_settings.MOVEMENTS_PAGE_SIZE
        if not _is_int(limit) or limit <= 0:
            raise ValidationError('INVALID_LIMIT', limit=limit)

        record = cls.get_record_by_id(ctx, record_id)
        qs = record.movements.order_by('-created_at', '-id')

        if before is not None:
            try:
                anchor = record.movements.get(pk=before)
            except (Movement.DoesNotExist, ValueError, TypeError):
                raise NotFoundError('MOVEMENT_NOT_FOUND', movement_id=before) from None
            qs = qs.filter(
                Q(created_at__lt=anchor.created_at)
                | Q(created_at=anchor.created_at, id__lt=anchor.pk)
            )

        return list(qs[:limit])

    @classmethod
    def get_low_stock_records(cls, ctx: TenantContext,
                              location_id: int | None = None) -> list[InventoryRecord]:
        """
        Records at or below their reorder point, worst first.

        Args:
            location_id: Restrict to one location (None = all of the tenant's)

        Returns:
            Records ordered by ascending quantity
        """
        qs = InventoryRecord.objects.for_business(ctx.business_id).low_stock()
        if location_id is not None:
            qs = qs.at_location(location_id)

        records = list(qs.order_by('_quantity', 'pk'))
        for record in records:
            logger.warning(
                "stock.low_stock",
                extra={
                    "record_id": record.pk,
                    "item": str(record.item),
                    "location_id": record.location_id,
                    "quantity": record.quantity,
                    "reorder_point": record.reorder_point,
                },
            )
        return records
