"""
Transfer workflow — request lifecycle (create, approve, reject, ship,
receive, cancel, expire, close) and transfer listings.

Every transition locks the transfer row, checks the predecessor status and
commits with a status-guarded UPDATE, all under transaction.atomic().
"""

import logging
from collections.abc import Mapping
from datetime import timedelta

from django.db import transaction
from django.utils import timezone

from branchstock.conf import branchstock_settings
from branchstock.context import StockItemRef, TenantContext
from branchstock.exceptions import (
    InsufficientStockError,
    InvalidStateTransitionError,
    NotFoundError,
    ValidationError,
)
from branchstock.models.enums import (
    TERMINAL_STATUSES,
    MovementType,
    TransferPriority,
    TransferStatus,
    TransferType,
    can_transition,
)
from branchstock.models.transfer import Transfer, TransferItem, TransferSequence
from branchstock.services.ledger import (
    apply_movement,
    check_notes,
    check_text,
    get_or_create_record,
    lock_records,
    validate_item,
    validate_location,
)
from branchstock.services.retry import retry_on_conflict

logger = logging.getLogger('branchstock')


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _next_transfer_number(business_id: int) -> str:
    """Allocate the next number for the business under a row lock."""
    seq, _ = TransferSequence.objects.get_or_create(business_id=business_id)
    seq = TransferSequence.objects.select_for_update().get(pk=seq.pk)
    seq.last_value += 1
    seq.save(update_fields=['last_value'])
    return f"{branchstock_settings.TRANSFER_NUMBER_PREFIX}-{seq.last_value:06d}"


def _default_expiry(priority: str, now):
    """Urgent requests get the shorter window; 0 hours = never expires."""
    if priority == TransferPriority.URGENT:
        hours = branchstock_settings.URGENT_TRANSFER_TTL_HOURS
    else:
        hours = branchstock_settings.TRANSFER_TTL_HOURS
    if not hours:
        return None
    return now + timedelta(hours=hours)


def _parse_request_lines(items) -> list[dict]:
    """Validate create() lines: [{'item': StockItemRef, 'quantity': n, 'notes': ''}]."""
    if not items:
        raise ValidationError('EMPTY_TRANSFER')

    lines = []
    seen = set()
    for entry in items:
        if not isinstance(entry, Mapping):
            raise ValidationError('INVALID_SELECTION', entry=repr(entry))
        item = entry.get('item')
        quantity = entry.get('quantity', entry.get('quantity_requested'))

        if not isinstance(item, StockItemRef):
            raise ValidationError('INVALID_ITEM', item=repr(item))
        if not _is_int(quantity) or quantity <= 0:
            raise ValidationError('INVALID_QUANTITY', item=str(item), requested=quantity)
        if item in seen:
            raise ValidationError('DUPLICATE_ITEM', item=str(item))
        seen.add(item)

        lines.append({'item': item, 'quantity': quantity, 'notes': check_notes(entry.get('notes'))})
    return lines


def _selected_quantities(lines: dict[int, TransferItem], selections, key: str) -> dict[int, int]:
    """
    Map TransferItem pk → quantity from [{'item_id': pk, key: n}, ...].

    ``'quantity'`` is accepted as an alias for the stage-specific key.
    """
    if not selections:
        return {}

    result = {}
    for entry in selections:
        if not isinstance(entry, Mapping):
            raise ValidationError('INVALID_SELECTION', entry=repr(entry))
        item_id = entry.get('item_id')
        quantity = entry.get(key, entry.get('quantity'))

        if item_id not in lines:
            raise NotFoundError('ITEM_NOT_FOUND', item_id=item_id)
        if item_id in result:
            raise ValidationError('DUPLICATE_ITEM', item_id=item_id)
        if not _is_int(quantity) or quantity < 0:
            raise ValidationError('INVALID_QUANTITY', item_id=item_id, requested=quantity)

        result[item_id] = quantity
    return result


def _current_location(ctx: TenantContext, location_id):
    if location_id is None:
        location_id = ctx.location_id
    if location_id is None:
        raise ValidationError('LOCATION_REQUIRED')
    return location_id


def _lock_transfer(ctx: TenantContext, transfer_id) -> Transfer:
    try:
        return (
            Transfer.objects.select_for_update()
            .for_business(ctx.business_id)
            .get(pk=transfer_id)
        )
    except Transfer.DoesNotExist:
        raise NotFoundError('TRANSFER_NOT_FOUND', transfer_id=transfer_id) from None


def _require_status(transfer: Transfer, action: str, *expected: str) -> None:
    if transfer.status not in expected:
        raise InvalidStateTransitionError(
            transfer_id=transfer.pk,
            action=action,
            current=transfer.status,
            expected=list(expected),
        )


def _commit(transfer: Transfer, action: str, target: str, **fields) -> None:
    """
    Move the transfer to ``target`` if it is still in the status it was read in.

    Raises:
        InvalidStateTransitionError: If the table forbids it, or the row
            changed status since it was read
    """
    expected = transfer.status
    if not can_transition(expected, target):
        raise InvalidStateTransitionError(
            transfer_id=transfer.pk, action=action, current=expected, expected=[target],
        )

    fields['updated_at'] = timezone.now()
    updated = Transfer.objects.filter(pk=transfer.pk, status=expected).update(status=target, **fields)
    if not updated:
        current = Transfer.objects.filter(pk=transfer.pk).values_list('status', flat=True).first()
        raise InvalidStateTransitionError(
            transfer_id=transfer.pk, action=action, current=current, expected=[expected],
        )

    transfer.status = target
    for name, value in fields.items():
        setattr(transfer, name, value)


class TransferWorkflow:
    """Transfer lifecycle methods."""

    # ══════════════════════════════════════════════════════════════
    # CREATE
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def create_transfer(cls, ctx: TenantContext, from_location_id: int, to_location_id: int,
                        items, priority: str = TransferPriority.NORMAL, notes: str = '',
                        transfer_type: str = TransferType.MANUAL, origin_sale_id: int | None = None,
                        expires_at=None) -> Transfer:
        """
        Request stock from ``from_location_id`` for ``to_location_id``.

        Args:
            items: [{'item': StockItemRef, 'quantity': n, 'notes': ''}, ...]
            priority: 'normal' | 'urgent' (drives the default expires_at)
            expires_at: Explicit expiry, overrides the priority policy

        Returns:
            Transfer in PENDING with its items

        Raises:
            ValidationError: Same location, no items, non-positive quantity
            NotFoundError: Unknown item or location
        """
        if from_location_id == to_location_id:
            raise ValidationError('SAME_LOCATION', location_id=from_location_id)
        if priority not in TransferPriority.values:
            raise ValidationError('INVALID_PRIORITY', priority=priority)
        if transfer_type not in TransferType.values:
            raise ValidationError('INVALID_TRANSFER_TYPE', transfer_type=transfer_type)

        notes = check_text(notes)
        lines = _parse_request_lines(items)
        validate_location(ctx, from_location_id)
        validate_location(ctx, to_location_id)
        for line in lines:
            validate_item(line['item'])

        now = timezone.now()
        if expires_at is None:
            expires_at = _default_expiry(priority, now)

        with transaction.atomic():
            transfer = Transfer.objects.create(
                business_id=ctx.business_id,
                transfer_number=_next_transfer_number(ctx.business_id),
                from_location_id=from_location_id,
                to_location_id=to_location_id,
                transfer_type=transfer_type,
                priority=priority,
                origin_sale_id=origin_sale_id,
                status=TransferStatus.PENDING,
                requested_by=ctx.actor,
                requested_at=now,
                expires_at=expires_at,
                request_notes=notes,
            )
            TransferItem.objects.bulk_create([
                TransferItem(
                    transfer=transfer,
                    line=index,
                    product_id=line['item'].product_id,
                    variant_id=line['item'].variant_id,
                    quantity_requested=line['quantity'],
                    notes=line['notes'],
                )
                for index, line in enumerate(lines)
            ])

        logger.info(
            "transfer.created",
            extra={
                "transfer_id": transfer.pk,
                "number": transfer.transfer_number,
                "from": from_location_id,
                "to": to_location_id,
                "lines": len(lines),
                "priority": priority,
            },
        )
        return transfer

    # ══════════════════════════════════════════════════════════════
    # TRANSITIONS
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def approve(cls, ctx: TenantContext, transfer_id: int, items=None) -> Transfer:
        """
        Approve a pending request.

        Transition: PENDING -> APPROVED

        Args:
            items: [{'item_id': pk, 'quantity_approved': n}, ...]; items left
                out are approved at their requested quantity

        Raises:
            InvalidStateTransitionError('TRANSFER_EXPIRED'): If past expires_at
            ValidationError('INVALID_QUANTITY'): If approved > requested
        """
        with transaction.atomic():
            transfer = _lock_transfer(ctx, transfer_id)
            _require_status(transfer, 'approve', TransferStatus.PENDING)

            if transfer.is_overdue:
                raise InvalidStateTransitionError(
                    'TRANSFER_EXPIRED',
                    transfer_id=transfer.pk,
                    expires_at=transfer.expires_at.isoformat(),
                )

            lines = {line.pk: line for line in transfer.items.all()}
            chosen = _selected_quantities(lines, items, 'quantity_approved')

            for pk, line in lines.items():
                quantity = chosen.get(pk, line.quantity_requested)
                if quantity > line.quantity_requested:
                    raise ValidationError(
                        'INVALID_QUANTITY',
                        item_id=pk,
                        requested=line.quantity_requested,
                        approved=quantity,
                    )
                line.quantity_approved = quantity

            now = timezone.now()
            _commit(transfer, 'approve', TransferStatus.APPROVED, approved_by=ctx.actor, approved_at=now)
            TransferItem.objects.bulk_update(lines.values(), ['quantity_approved'])

        logger.info("transfer.approved", extra={"transfer_id": transfer.pk})
        return transfer

    @classmethod
    def reject(cls, ctx: TenantContext, transfer_id: int, reason: str) -> Transfer:
        """
        Reject a pending request.

        Transition: PENDING -> REJECTED

        Raises:
            ValidationError('INVALID_TEXT'): If reason is not a string
            ValidationError('REASON_REQUIRED'): If reason is blank
        """
        reason = check_text(reason)
        if not reason.strip():
            raise ValidationError('REASON_REQUIRED')

        with transaction.atomic():
            transfer = _lock_transfer(ctx, transfer_id)
            _require_status(transfer, 'reject', TransferStatus.PENDING)
            _commit(
                transfer, 'reject', TransferStatus.REJECTED,
                rejected_by=ctx.actor,
                rejected_at=timezone.now(),
                rejection_reason=reason,
            )

        logger.info("transfer.rejected", extra={"transfer_id": transfer.pk, "reason": reason})
        return transfer

    @classmethod
    @retry_on_conflict
    def ship(cls, ctx: TenantContext, transfer_id: int, items=None,
             shipping_notes: str = '') -> Transfer:
        """
        Ship an approved transfer.

        1. Validates shipped ≤ approved for every line
        2. Claims APPROVED -> IN_TRANSIT
        3. Checks every source record covers its line, then writes one EXIT
           movement per shipped line

        Any failure rolls back the whole shipment: no movement is written
        unless all of them are.

        Args:
            items: [{'item_id': pk, 'quantity_shipped': n}, ...]; items left
                out ship their approved quantity

        Raises:
            InvalidStateTransitionError: If not APPROVED (e.g. already shipped)
            InsufficientStockError: If any line would overdraw the source;
                data['shortages'] lists every short line
        """
        shipping_notes = check_text(shipping_notes)
        with transaction.atomic():
            transfer = _lock_transfer(ctx, transfer_id)
            _require_status(transfer, 'ship', TransferStatus.APPROVED)

            lines = {line.pk: line for line in transfer.items.all()}
            chosen = _selected_quantities(lines, items, 'quantity_shipped')

            for pk, line in lines.items():
                quantity = chosen.get(pk, line.quantity_approved)
                if quantity > line.quantity_approved:
                    raise ValidationError(
                        'INVALID_QUANTITY',
                        item_id=pk,
                        approved=line.quantity_approved,
                        shipped=quantity,
                    )
                line.quantity_shipped = quantity

            shipping = [line for line in lines.values() if line.quantity_shipped > 0]
            if not shipping:
                raise ValidationError('NOTHING_TO_SHIP', transfer_id=transfer.pk)

            _commit(
                transfer, 'ship', TransferStatus.IN_TRANSIT,
                shipped_by=ctx.actor,
                shipped_at=timezone.now(),
                shipping_notes=shipping_notes,
            )

            records = {
                line.pk: get_or_create_record(ctx, line.item, transfer.from_location_id)
                for line in shipping
            }
            locked = lock_records(record.pk for record in records.values())

            needed: dict[int, int] = {}
            for line in shipping:
                record_pk = records[line.pk].pk
                needed[record_pk] = needed.get(record_pk, 0) + line.quantity_shipped

            shortages = [
                {
                    'record_id': pk,
                    'product_id': locked[pk].product_id,
                    'variant_id': locked[pk].variant_id,
                    'current': locked[pk].quantity,
                    'requested': quantity,
                }
                for pk, quantity in needed.items()
                if locked[pk].quantity < quantity
            ]
            if shortages:
                first = shortages[0]
                raise InsufficientStockError(
                    location_id=transfer.from_location_id,
                    product_id=first['product_id'],
                    variant_id=first['variant_id'],
                    current=first['current'],
                    delta=-first['requested'],
                    transfer_id=transfer.pk,
                    shortages=shortages,
                )

            for line in shipping:
                apply_movement(
                    ctx,
                    locked[records[line.pk].pk],
                    MovementType.EXIT,
                    -line.quantity_shipped,
                    f"Transfer {transfer.transfer_number} out",
                    related_transfer=transfer,
                )

            TransferItem.objects.bulk_update(lines.values(), ['quantity_shipped'])

        logger.info(
            "transfer.shipped",
            extra={
                "transfer_id": transfer.pk,
                "units": sum(line.quantity_shipped for line in shipping),
            },
        )
        return transfer

    @classmethod
    @retry_on_conflict
    def receive(cls, ctx: TenantContext, transfer_id: int, items=None,
                receiving_notes: str = '') -> Transfer:
        """
        Receive an in-transit transfer at the destination.

        Writes one ENTRY movement per received line. The transfer becomes
        RECEIVED only if every line received exactly what was shipped;
        any shortfall makes it PARTIALLY_RECEIVED.

        Transition: IN_TRANSIT -> RECEIVED | PARTIALLY_RECEIVED

        Args:
            items: [{'item_id': pk, 'quantity_received': n}, ...]; items left
                out receive their shipped quantity

        Raises:
            InvalidStateTransitionError: If not IN_TRANSIT
            ValidationError('INVALID_QUANTITY'): If received > shipped
        """
        receiving_notes = check_text(receiving_notes)
        with transaction.atomic():
            transfer = _lock_transfer(ctx, transfer_id)
            _require_status(transfer, 'receive', TransferStatus.IN_TRANSIT)

            lines = {line.pk: line for line in transfer.items.all()}
            chosen = _selected_quantities(lines, items, 'quantity_received')

            for pk, line in lines.items():
                quantity = chosen.get(pk, line.quantity_shipped)
                if quantity > line.quantity_shipped:
                    raise ValidationError(
                        'INVALID_QUANTITY',
                        item_id=pk,
                        shipped=line.quantity_shipped,
                        received=quantity,
                    )
                line.quantity_received = quantity

            complete = all(line.quantity_received == line.quantity_shipped for line in lines.values())
            target = TransferStatus.RECEIVED if complete else TransferStatus.PARTIALLY_RECEIVED

            _commit(
                transfer, 'receive', target,
                received_by=ctx.actor,
                received_at=timezone.now(),
                receiving_notes=receiving_notes,
            )

            receiving = [line for line in lines.values() if line.quantity_received > 0]
            records = {
                line.pk: get_or_create_record(ctx, line.item, transfer.to_location_id)
                for line in receiving
            }
            locked = lock_records(record.pk for record in records.values())

            for line in receiving:
                apply_movement(
                    ctx,
                    locked[records[line.pk].pk],
                    MovementType.ENTRY,
                    line.quantity_received,
                    f"Transfer {transfer.transfer_number} in",
                    related_transfer=transfer,
                )

            TransferItem.objects.bulk_update(lines.values(), ['quantity_received'])

        logger.info(
            "transfer.received",
            extra={
                "transfer_id": transfer.pk,
                "status": transfer.status,
                "units": sum(line.quantity_received for line in receiving),
            },
        )
        return transfer

    @classmethod
    def cancel(cls, ctx: TenantContext, transfer_id: int, reason: str = '') -> Transfer:
        """
        Cancel before anything has shipped.

        Transition: PENDING|APPROVED -> CANCELLED (no ledger effect)
        """
        reason = check_text(reason)
        with transaction.atomic():
            transfer = _lock_transfer(ctx, transfer_id)
            _require_status(transfer, 'cancel', TransferStatus.PENDING, TransferStatus.APPROVED)
            _commit(
                transfer, 'cancel', TransferStatus.CANCELLED,
                cancelled_by=ctx.actor,
                cancelled_at=timezone.now(),
                cancellation_reason=reason,
            )

        logger.info("transfer.cancelled", extra={"transfer_id": transfer.pk})
        return transfer

    @classmethod
    def expire(cls, ctx: TenantContext, transfer_id: int, now=None) -> Transfer:
        """
        Expire an overdue pending request.

        Transition: PENDING -> EXPIRED

        Safe to call redundantly: a transfer already in a terminal status
        is returned unchanged.

        Raises:
            InvalidStateTransitionError('TRANSFER_NOT_DUE'): If expires_at
                is unset or still in the future
            InvalidStateTransitionError: If approved/in transit/partially received
        """
        now = now or timezone.now()

        with transaction.atomic():
            transfer = _lock_transfer(ctx, transfer_id)

            if transfer.status in TERMINAL_STATUSES:
                logger.debug(
                    "transfer.expire.noop",
                    extra={"transfer_id": transfer.pk, "status": transfer.status},
                )
                return transfer

            _require_status(transfer, 'expire', TransferStatus.PENDING)

            if transfer.expires_at is None or now < transfer.expires_at:
                raise InvalidStateTransitionError(
                    'TRANSFER_NOT_DUE',
                    transfer_id=transfer.pk,
                    expires_at=transfer.expires_at.isoformat() if transfer.expires_at else None,
                )

            _commit(transfer, 'expire', TransferStatus.EXPIRED, expired_at=now)

        logger.info("transfer.expired", extra={"transfer_id": transfer.pk})
        return transfer

    @classmethod
    def expire_due(cls, now=None) -> int:
        """
        Expire every overdue pending transfer, across all businesses, in batches.

        Returns:
            Number of transfers expired

        Usage:
            Call periodically via celery beat or cron
            (see the expire_transfers management command).

        Concurrency:
            - Each batch runs under its own transaction.atomic()
            - Uses select_for_update() with SKIP LOCKED
            - Safe for multiple instances
        """
        now = now or timezone.now()
        total = 0
        batch_size = branchstock_settings.EXPIRED_BATCH_SIZE

        while True:
            with transaction.atomic():
                batch_ids = list(
                    Transfer.objects.select_for_update(skip_locked=True)
                    .due_for_expiry(now)
                    .order_by('pk')
                    .values_list('pk', flat=True)[:batch_size]
                )

                if not batch_ids:
                    break

                total += Transfer.objects.filter(
                    pk__in=batch_ids,
                    status=TransferStatus.PENDING,
                ).update(
                    status=TransferStatus.EXPIRED,
                    expired_at=now,
                    updated_at=now,
                )

        if total:
            logger.info("transfer.expired_swept", extra={"expired": total})
        return total

    @classmethod
    def close(cls, ctx: TenantContext, transfer_id: int, notes: str = '') -> Transfer:
        """
        Acknowledge the shortfall of a partially received transfer.

        Status stays PARTIALLY_RECEIVED; closed_by/closed_at mark it as
        settled by a person. Unreceived units are not credited anywhere.

        Raises:
            InvalidStateTransitionError: If not PARTIALLY_RECEIVED
            InvalidStateTransitionError('ALREADY_CLOSED'): If closed before
        """
        notes = check_text(notes)
        with transaction.atomic():
            transfer = _lock_transfer(ctx, transfer_id)
            _require_status(transfer, 'close', TransferStatus.PARTIALLY_RECEIVED)

            if transfer.is_closed:
                raise InvalidStateTransitionError('ALREADY_CLOSED', transfer_id=transfer.pk)

            now = timezone.now()
            updated = Transfer.objects.filter(
                pk=transfer.pk,
                status=TransferStatus.PARTIALLY_RECEIVED,
                closed_at__isnull=True,
            ).update(
                closed_by=ctx.actor,
                closed_at=now,
                closing_notes=notes,
                updated_at=now,
            )
            if not updated:
                raise InvalidStateTransitionError('ALREADY_CLOSED', transfer_id=transfer.pk)

            transfer.closed_by = ctx.actor
            transfer.closed_at = now
            transfer.closing_notes = notes

        logger.info("transfer.closed", extra={"transfer_id": transfer.pk})
        return transfer

    # ══════════════════════════════════════════════════════════════
    # QUERIES
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def get_transfer(cls, ctx: TenantContext, transfer_id: int) -> Transfer:
        """Get one transfer of the tenant, items prefetched."""
        try:
            return (
                Transfer.objects.for_business(ctx.business_id)
                .prefetch_related('items')
                .get(pk=transfer_id)
            )
        except Transfer.DoesNotExist:
            raise NotFoundError('TRANSFER_NOT_FOUND', transfer_id=transfer_id) from None

    @classmethod
    def list_transfers(cls, ctx: TenantContext, status=None, from_location_id=None,
                       to_location_id=None, transfer_type=None, priority=None,
                       date_from=None, date_to=None):
        """
        List the tenant's transfers, newest first.

        Args:
            status: One status or a list of statuses
            date_from / date_to: Bounds on requested_at (inclusive)

        Returns:
            Transfer QuerySet
        """
        qs = Transfer.objects.for_business(ctx.business_id)

        if status is not None:
            if isinstance(status, (list, tuple, set, frozenset)):
                qs = qs.filter(status__in=list(status))
            else:
                qs = qs.filter(status=status)
        if from_location_id is not None:
            qs = qs.outgoing(from_location_id)
        if to_location_id is not None:
            qs = qs.incoming(to_location_id)
        if transfer_type is not None:
            qs = qs.filter(transfer_type=transfer_type)
        if priority is not None:
            qs = qs.filter(priority=priority)
        if date_from is not None:
            qs = qs.filter(requested_at__gte=date_from)
        if date_to is not None:
            qs = qs.filter(requested_at__lte=date_to)

        return qs.order_by('-requested_at', '-id')

    @classmethod
    def pending_requests_for(cls, ctx: TenantContext, location_id: int | None = None):
        """
        Requests waiting for this location to approve or reject.

        location_id defaults to the context's current location.
        """
        location_id = _current_location(ctx, location_id)
        return (
            Transfer.objects.for_business(ctx.business_id)
            .pending()
            .outgoing(location_id)
            .order_by('-requested_at', '-id')
        )

    @classmethod
    def incoming_for(cls, ctx: TenantContext, location_id: int | None = None):
        """Approved or in-transit transfers heading to this location."""
        return cls.list_transfers(
            ctx,
            status=[TransferStatus.APPROVED, TransferStatus.IN_TRANSIT],
            to_location_id=_current_location(ctx, location_id),
        )
