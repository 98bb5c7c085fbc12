"""
Tests for the inventory ledger and movement log.
"""

import random

import pytest
from django.db import IntegrityError, transaction

from branchstock import stock
from branchstock.exceptions import (
    ConcurrencyConflictError,
    InsufficientStockError,
    NotFoundError,
    StockError,
    ValidationError,
)
from branchstock.models import InventoryRecord, Movement, MovementType
from branchstock.tests.adapters import OUTLET, UNKNOWN_PRODUCT_ID
from branchstock.context import StockItemRef


pytestmark = pytest.mark.django_db


class TestRecordMovement:
    """Tests for stock.record_movement()."""

    def test_entry_on_new_record(self, ctx, downtown):
        """First entry creates the record and sets quantity."""
        item = StockItemRef(42)

        move = stock.record_movement(ctx, item, downtown, 'entry', 100, 'initial stock')

        record = stock.get_record(ctx, item, downtown)
        assert record.quantity == 100
        assert move.quantity_before == 0
        assert move.quantity_after == 100
        assert move.created_by == '7'
        assert record.movements.count() == 1

    def test_exit_then_overdraft(self, ctx, downtown):
        """A sale debits; an exit beyond stock fails and changes nothing."""
        item = StockItemRef(42)
        stock.record_movement(ctx, item, downtown, 'entry', 100, 'initial stock')
        stock.record_movement(ctx, item, downtown, MovementType.EXIT, -30, 'Sale')

        with pytest.raises(InsufficientStockError) as exc:
            stock.record_movement(ctx, item, downtown, 'exit', -1000)

        record = stock.get_record(ctx, item, downtown)
        assert record.quantity == 70
        assert record.movements.count() == 2
        assert exc.value.current == 70
        assert exc.value.delta == -1000
        assert exc.value.data['location_id'] == downtown

    def test_variant_and_product_are_separate_records(self, ctx, shirt, downtown):
        """The product itself and its variants each have their own record."""
        variant = StockItemRef(shirt.product_id, variant_id=5)
        stock.record_movement(ctx, shirt, downtown, 'entry', 3)
        stock.record_movement(ctx, variant, downtown, 'entry', 8)

        assert stock.get_record(ctx, shirt, downtown).quantity == 3
        assert stock.get_record(ctx, variant, downtown).quantity == 8
        assert InventoryRecord.objects.count() == 2

    def test_zero_delta_rejected(self, ctx, shirt, downtown):
        with pytest.raises(ValidationError) as exc:
            stock.record_movement(ctx, shirt, downtown, 'entry', 0)

        assert exc.value.code == 'INVALID_DELTA'
        assert not InventoryRecord.objects.exists()

    @pytest.mark.parametrize('movement_type,delta', [('entry', -5), ('exit', 5)])
    def test_sign_must_match_type(self, ctx, shirt, downtown, movement_type, delta):
        """Entries are positive, exits negative."""
        with pytest.raises(ValidationError) as exc:
            stock.record_movement(ctx, shirt, downtown, movement_type, delta)

        assert exc.value.code == 'INVALID_DELTA'

    def test_unknown_movement_type(self, ctx, shirt, downtown):
        with pytest.raises(ValidationError) as exc:
            stock.record_movement(ctx, shirt, downtown, 'theft', -1)

        assert exc.value.code == 'INVALID_MOVEMENT_TYPE'

    def test_fractional_delta_rejected(self, ctx, shirt, downtown):
        """Quantities are whole units."""
        with pytest.raises(ValidationError):
            stock.record_movement(ctx, shirt, downtown, 'entry', 1.5)

    def test_adjustment_may_go_negative(self, ctx, shirt, downtown):
        """Adjustments reconcile to reality, even below zero."""
        stock.record_movement(ctx, shirt, downtown, 'entry', 2)

        move = stock.record_movement(ctx, shirt, downtown, 'adjustment', -5, 'Miscount')

        assert move.quantity_after == -3
        assert stock.get_record(ctx, shirt, downtown).quantity == -3

    def test_unknown_item(self, ctx, downtown):
        with pytest.raises(NotFoundError) as exc:
            stock.record_movement(ctx, StockItemRef(UNKNOWN_PRODUCT_ID), downtown, 'entry', 1)

        assert exc.value.code == 'ITEM_NOT_FOUND'

    def test_location_of_other_business(self, ctx, shirt):
        with pytest.raises(NotFoundError) as exc:
            stock.record_movement(ctx, shirt, OUTLET, 'entry', 1)

        assert exc.value.code == 'LOCATION_NOT_FOUND'

    def test_item_validation_can_be_disabled(self, ctx, downtown, settings):
        """VALIDATE_INPUT_ITEMS=False skips the catalog backend."""
        settings.BRANCHSTOCK = {**settings.BRANCHSTOCK, 'VALIDATE_INPUT_ITEMS': False}

        stock.record_movement(ctx, StockItemRef(UNKNOWN_PRODUCT_ID), downtown, 'entry', 1)

        assert stock.get_record(ctx, StockItemRef(UNKNOWN_PRODUCT_ID), downtown).quantity == 1

    def test_entry_sets_last_restocked_at(self, ctx, shirt, downtown):
        move = stock.record_movement(ctx, shirt, downtown, 'entry', 4)

        record = stock.get_record(ctx, shirt, downtown)
        assert record.last_restocked_at == move.created_at

    def test_exit_keeps_last_restocked_at(self, ctx, shirt, downtown):
        entry = stock.record_movement(ctx, shirt, downtown, 'entry', 4)
        stock.record_movement(ctx, shirt, downtown, 'exit', -1)

        assert stock.get_record(ctx, shirt, downtown).last_restocked_at == entry.created_at

    def test_version_bumps_per_movement(self, ctx, shirt, downtown):
        stock.record_movement(ctx, shirt, downtown, 'entry', 4)
        stock.record_movement(ctx, shirt, downtown, 'exit', -1)

        assert stock.get_record(ctx, shirt, downtown).version == 2

    def test_notes_up_to_column_size_are_kept(self, ctx, shirt, downtown):
        move = stock.record_movement(ctx, shirt, downtown, 'entry', 1, 'n' * 255)

        move.refresh_from_db()
        assert move.notes == 'n' * 255

    def test_overlong_notes_rejected(self, ctx, shirt, downtown):
        """Notes are never truncated."""
        with pytest.raises(ValidationError) as exc:
            stock.record_movement(ctx, shirt, downtown, 'entry', 1, 'n' * 256)

        assert exc.value.code == 'NOTES_TOO_LONG'
        assert exc.value.data['length'] == 256
        assert not Movement.objects.exists()

    def test_non_text_notes_rejected(self, ctx, shirt, downtown):
        with pytest.raises(ValidationError) as exc:
            stock.record_movement(ctx, shirt, downtown, 'entry', 1, 123)

        assert exc.value.code == 'INVALID_TEXT'


class TestLedgerConsistency:
    """quantity always equals the sum of its movements."""

    def test_quantity_matches_movement_sum(self, ctx, shirt, downtown, mall):
        operations = [
            ('entry', 20), ('exit', -3), ('adjustment', -2), ('entry', 7),
            ('exit', -10), ('adjustment', 4),
        ]
        for movement_type, delta in operations:
            stock.record_movement(ctx, shirt, downtown, movement_type, delta)
        stock.transfer_stock(ctx, shirt, downtown, mall, 5)
        stock.adjust_to(ctx, shirt, mall, 2, 'Stock-take')

        for location in (downtown, mall):
            record = stock.get_record(ctx, shirt, location)
            assert record.audit() == record.quantity

        assert stock.get_record(ctx, shirt, downtown).quantity == 11
        assert stock.get_record(ctx, shirt, mall).quantity == 2

    @pytest.mark.parametrize('seed', [1, 7, 2024])
    def test_random_sequence_keeps_quantity_equal_to_movement_sum(self, ctx, shirt, downtown, seed):
        """Overdrafts are refused and change nothing; everything else adds up."""
        rng = random.Random(seed)
        total = 0

        for _ in range(50):
            movement_type = rng.choice(['entry', 'exit', 'adjustment'])
            if movement_type == 'entry':
                delta = rng.randint(1, 20)
            elif movement_type == 'exit':
                delta = -rng.randint(1, 20)
            else:
                delta = rng.choice([-1, 1]) * rng.randint(1, 5)

            if movement_type != 'adjustment' and total + delta < 0:
                with pytest.raises(InsufficientStockError):
                    stock.record_movement(ctx, shirt, downtown, movement_type, delta)
            else:
                stock.record_movement(ctx, shirt, downtown, movement_type, delta)
                total += delta

            record = stock.get_record(ctx, shirt, downtown)
            if record is None:
                # Nothing has been written yet.
                assert total == 0
                continue
            assert record.quantity == total == record.audit()
            assert record.version == record.movements.count()

    def test_failed_exit_leaves_no_movement(self, ctx, shirt, downtown):
        """An overdraft rolls back entirely."""
        stock.record_movement(ctx, shirt, downtown, 'entry', 1)

        with pytest.raises(InsufficientStockError):
            stock.record_movement(ctx, shirt, downtown, 'exit', -2)

        assert Movement.objects.count() == 1

    def test_before_after_chain(self, ctx, shirt, downtown):
        """Each movement starts where the previous one ended."""
        for delta in (5, -2, 9):
            stock.record_movement(ctx, shirt, downtown, 'entry' if delta > 0 else 'exit', delta)

        moves = list(Movement.objects.order_by('id'))
        for previous, current in zip(moves, moves[1:]):
            assert current.quantity_before == previous.quantity_after

    def test_audit_logs_mismatch(self, ctx, shirt, downtown, caplog):
        """audit() reports a drifted cache but never rewrites it."""
        stock.record_movement(ctx, shirt, downtown, 'entry', 5)
        InventoryRecord.objects.filter(business_id=ctx.business_id).update(_quantity=9)
        record = stock.get_record(ctx, shirt, downtown)

        with caplog.at_level('WARNING', logger='branchstock'):
            assert record.audit() == 5

        assert 'stock.audit.mismatch' in caplog.text
        record.refresh_from_db()
        assert record.quantity == 9


class TestMovementImmutability:
    """Movements are insert-only."""

    def test_save_existing_raises(self, ctx, shirt, downtown):
        move = stock.record_movement(ctx, shirt, downtown, 'entry', 5)
        move.notes = 'changed'

        with pytest.raises(ValueError):
            move.save()

    def test_delete_raises(self, ctx, shirt, downtown):
        move = stock.record_movement(ctx, shirt, downtown, 'entry', 5)

        with pytest.raises(ValueError):
            move.delete()

    def test_queryset_update_and_delete_raise(self, ctx, shirt, downtown):
        stock.record_movement(ctx, shirt, downtown, 'entry', 5)

        with pytest.raises(ValueError):
            Movement.objects.all().update(notes='x')
        with pytest.raises(ValueError):
            Movement.objects.all().delete()

    def test_record_cannot_be_deleted_with_movements(self, ctx, shirt, downtown):
        stock.record_movement(ctx, shirt, downtown, 'entry', 5)
        record = stock.get_record(ctx, shirt, downtown)

        with pytest.raises(IntegrityError), transaction.atomic():
            record.delete()


class TestConcurrencyGuard:
    """Version guard on the record cache."""

    def test_stale_version_rolls_back_insert(self, ctx, shirt, downtown):
        """A movement written against an outdated version is refused."""
        stock.record_movement(ctx, shirt, downtown, 'entry', 5)
        record = stock.get_record(ctx, shirt, downtown)

        move = Movement(
            record=record,
            movement_type=MovementType.EXIT,
            quantity_delta=-1,
            quantity_before=5,
            quantity_after=4,
        )
        move.expected_version = record.version - 1

        with pytest.raises(ConcurrencyConflictError):
            move.save()

        record.refresh_from_db()
        assert record.quantity == 5
        assert record.movements.count() == 1

    def test_conflict_is_retried(self, ctx, shirt, downtown, monkeypatch):
        """One conflict, then success: the caller never sees the error."""
        from branchstock.services import ledger

        real_apply = ledger.apply_movement
        calls = []

        def flaky_apply(*args, **kwargs):
            calls.append(1)
            if len(calls) == 1:
                raise ConcurrencyConflictError(record_id=None)
            return real_apply(*args, **kwargs)

        monkeypatch.setattr(ledger, 'apply_movement', flaky_apply)

        stock.record_movement(ctx, shirt, downtown, 'entry', 5)

        assert len(calls) == 2
        assert stock.get_record(ctx, shirt, downtown).quantity == 5

    def test_conflict_gives_up_after_max_retries(self, ctx, shirt, downtown, monkeypatch, settings):
        from branchstock.services import ledger

        settings.BRANCHSTOCK = {**settings.BRANCHSTOCK, 'CONFLICT_MAX_RETRIES': 2}
        calls = []

        def always_conflict(*args, **kwargs):
            calls.append(1)
            raise ConcurrencyConflictError(record_id=None)

        monkeypatch.setattr(ledger, 'apply_movement', always_conflict)

        with pytest.raises(ConcurrencyConflictError):
            stock.record_movement(ctx, shirt, downtown, 'entry', 5)

        assert len(calls) == 2

    def test_other_errors_are_not_retried(self, ctx, shirt, downtown, monkeypatch):
        from branchstock.services import ledger

        calls = []

        def insufficient(*args, **kwargs):
            calls.append(1)
            raise InsufficientStockError(current=0, delta=-1)

        monkeypatch.setattr(ledger, 'apply_movement', insufficient)

        with pytest.raises(InsufficientStockError):
            stock.record_movement(ctx, shirt, downtown, 'exit', -1)

        assert len(calls) == 1

    def test_stale_read_is_retried_against_fresh_quantity(self, ctx, shirt, downtown, monkeypatch):
        """
        Two exits race for the same 5 units.

        The second one reads the row before the first commits. Its version
        guard fails, the retry sees 2 units left and refuses the exit.
        """
        from branchstock.services import ledger

        stock.record_movement(ctx, shirt, downtown, 'entry', 5)
        stale = InventoryRecord.objects.get()
        stock.record_movement(ctx, shirt, downtown, 'exit', -3, 'Sale')

        real_lock = ledger.lock_records
        calls = []

        def lock_once_stale(pks):
            calls.append(1)
            if len(calls) == 1:
                return {stale.pk: stale}
            return real_lock(pks)

        monkeypatch.setattr(ledger, 'lock_records', lock_once_stale)

        with pytest.raises(InsufficientStockError) as exc:
            stock.record_movement(ctx, shirt, downtown, 'exit', -4, 'Sale')

        record = stock.get_record(ctx, shirt, downtown)
        assert len(calls) == 2
        assert exc.value.current == 2
        assert record.quantity == 2 == record.audit()
        assert record.movements.count() == 2


class TestAdjustTo:
    """Tests for stock.adjust_to()."""

    def test_adjust_up_and_down(self, ctx, shirt, downtown):
        stock.record_movement(ctx, shirt, downtown, 'entry', 10)

        down = stock.adjust_to(ctx, shirt, downtown, 7, 'Stock-take')
        up = stock.adjust_to(ctx, shirt, downtown, 12, 'Found a box')

        assert down.quantity_delta == -3
        assert up.quantity_delta == 5
        assert down.movement_type == MovementType.ADJUSTMENT
        assert stock.get_record(ctx, shirt, downtown).quantity == 12

    def test_no_change_writes_nothing(self, ctx, shirt, downtown):
        stock.record_movement(ctx, shirt, downtown, 'entry', 10)

        assert stock.adjust_to(ctx, shirt, downtown, 10, 'Stock-take') is None
        assert Movement.objects.count() == 1

    def test_notes_required(self, ctx, shirt, downtown):
        with pytest.raises(ValidationError) as exc:
            stock.adjust_to(ctx, shirt, downtown, 3, '  ')

        assert exc.value.code == 'REASON_REQUIRED'

    def test_negative_target_rejected(self, ctx, shirt, downtown):
        with pytest.raises(ValidationError):
            stock.adjust_to(ctx, shirt, downtown, -1, 'Stock-take')


class TestTransferStock:
    """Tests for stock.transfer_stock() (direct move)."""

    def test_moves_both_legs(self, stocked, ctx, shirt, downtown, mall):
        out_move, in_move = stock.transfer_stock(ctx, shirt, downtown, mall, 4)

        assert out_move.quantity_delta == -4
        assert in_move.quantity_delta == 4
        assert out_move.movement_type == in_move.movement_type == MovementType.TRANSFER
        assert stock.get_record(ctx, shirt, downtown).quantity == 6
        assert stock.get_record(ctx, shirt, mall).quantity == 4

    def test_receipt_leg_is_not_a_restock(self, stocked, ctx, shirt, downtown, mall):
        stock.transfer_stock(ctx, shirt, downtown, mall, 4)

        assert stock.get_record(ctx, shirt, mall).last_restocked_at is None

    def test_insufficient_source_moves_nothing(self, stocked, ctx, shirt, downtown, mall):
        before = Movement.objects.count()

        with pytest.raises(InsufficientStockError):
            stock.transfer_stock(ctx, shirt, downtown, mall, 11)

        assert Movement.objects.count() == before
        assert stock.get_record(ctx, shirt, downtown).quantity == 10
        assert stock.get_record(ctx, shirt, mall) is None

    def test_same_location_rejected(self, stocked, ctx, shirt, downtown):
        with pytest.raises(ValidationError) as exc:
            stock.transfer_stock(ctx, shirt, downtown, downtown, 1)

        assert exc.value.code == 'SAME_LOCATION'


class TestStockLevels:
    """Tests for reorder configuration and low stock."""

    def test_update_levels_keeps_quantity(self, stocked, ctx):
        record = stock.update_stock_levels(ctx, stocked.pk, min_stock_level=2, reorder_point=12)

        record.refresh_from_db()
        assert record.reorder_point == 12
        assert record.min_stock_level == 2
        assert record.quantity == 10
        assert record.movements.count() == 1

    def test_update_levels_rejects_negative(self, stocked, ctx):
        with pytest.raises(ValidationError) as exc:
            stock.update_stock_levels(ctx, stocked.pk, min_stock_level=-1, reorder_point=3)

        assert exc.value.code == 'INVALID_LEVEL'

    def test_update_levels_of_other_business(self, stocked, other_ctx):
        with pytest.raises(NotFoundError):
            stock.update_stock_levels(other_ctx, stocked.pk, min_stock_level=1, reorder_point=1)

    def test_low_stock_is_at_or_below_reorder_point(self, stocked, ctx, shirt_red_m, downtown):
        stock.update_stock_levels(ctx, stocked.pk, 0, reorder_point=10)
        red = stock.get_record(ctx, shirt_red_m, downtown)
        stock.update_stock_levels(ctx, red.pk, 0, reorder_point=5)

        low = stock.get_low_stock_records(ctx)

        assert [record.pk for record in low] == [stocked.pk]
        assert low[0].is_low_stock

    def test_low_stock_filtered_by_location(self, stocked, ctx, shirt, downtown, mall):
        stock.transfer_stock(ctx, shirt, downtown, mall, 1)
        stock.update_stock_levels(ctx, stocked.pk, 0, reorder_point=100)
        mall_record = stock.get_record(ctx, shirt, mall)
        stock.update_stock_levels(ctx, mall_record.pk, 0, reorder_point=100)

        assert [r.pk for r in stock.get_low_stock_records(ctx, location_id=mall)] == [mall_record.pk]
        assert len(stock.get_low_stock_records(ctx)) == 2

    def test_check_stock_availability(self, stocked, ctx, shirt, downtown, mall):
        assert stock.check_stock_availability(ctx, shirt, downtown, 10)
        assert not stock.check_stock_availability(ctx, shirt, downtown, 11)
        assert not stock.check_stock_availability(ctx, shirt, mall, 1)


class TestListMovements:
    """Tests for stock.list_movements() keyset pagination."""

    def test_pages_newest_first_without_gaps(self, ctx, shirt, downtown):
        for _ in range(7):
            stock.record_movement(ctx, shirt, downtown, 'entry', 1)
        record = stock.get_record(ctx, shirt, downtown)

        first = stock.list_movements(ctx, record.pk, limit=3)
        second = stock.list_movements(ctx, record.pk, limit=3, before=first[-1].pk)
        third = stock.list_movements(ctx, record.pk, limit=3, before=second[-1].pk)

        seen = [m.pk for m in first + second + third]
        assert seen == sorted(seen, reverse=True)
        assert len(seen) == len(set(seen)) == 7
        assert [m.quantity_after for m in first] == [7, 6, 5]

    def test_new_movement_does_not_shift_later_pages(self, ctx, shirt, downtown):
        for _ in range(4):
            stock.record_movement(ctx, shirt, downtown, 'entry', 1)
        record = stock.get_record(ctx, shirt, downtown)
        first = stock.list_movements(ctx, record.pk, limit=2)

        stock.record_movement(ctx, shirt, downtown, 'entry', 1)
        second = stock.list_movements(ctx, record.pk, limit=2, before=first[-1].pk)

        assert [m.quantity_after for m in second] == [2, 1]

    def test_default_page_size(self, ctx, shirt, downtown, settings):
        settings.BRANCHSTOCK = {**settings.BRANCHSTOCK, 'MOVEMENTS_PAGE_SIZE': 2}
        for _ in range(3):
            stock.record_movement(ctx, shirt, downtown, 'entry', 1)
        record = stock.get_record(ctx, shirt, downtown)

        assert len(stock.list_movements(ctx, record.pk)) == 2

    def test_unknown_cursor(self, stocked, ctx):
        with pytest.raises(NotFoundError) as exc:
            stock.list_movements(ctx, stocked.pk, before=10**9)

        assert exc.value.code == 'MOVEMENT_NOT_FOUND'

    def test_cursor_of_another_record(self, stocked, ctx, shirt_red_m, downtown):
        other = stock.get_record(ctx, shirt_red_m, downtown).movements.get()

        with pytest.raises(NotFoundError) as exc:
            stock.list_movements(ctx, stocked.pk, before=other.pk)

        assert exc.value.code == 'MOVEMENT_NOT_FOUND'

    def test_unknown_record(self, ctx):
        with pytest.raises(NotFoundError) as exc:
            stock.list_movements(ctx, 10**9)

        assert exc.value.code == 'RECORD_NOT_FOUND'

    @pytest.mark.parametrize('limit', [0, -1, 2.5, '10', True])
    def test_limit_must_be_positive_int(self, stocked, ctx, limit):
        with pytest.raises(ValidationError) as exc:
            stock.list_movements(ctx, stocked.pk, limit=limit)

        assert exc.value.code == 'INVALID_LIMIT'


class TestListRecords:
    """Tests for stock.list_records()."""

    @pytest.fixture
    def spread(self, stocked, ctx, shirt, downtown, mall):
        """Downtown 7 shirts and 6 red M, Mall 3 shirts."""
        stock.transfer_stock(ctx, shirt, downtown, mall, 3)

    def test_all_records_of_the_business(self, spread, ctx, shirt, shirt_red_m, downtown, mall):
        records = list(stock.list_records(ctx))

        assert [(r.location_id, r.item, r.quantity) for r in records] == [
            (downtown, shirt, 7),
            (downtown, shirt_red_m, 6),
            (mall, shirt, 3),
        ]

    def test_by_location(self, spread, ctx, mall):
        assert [r.location_id for r in stock.list_records(ctx, location_id=mall)] == [mall]

    def test_by_item(self, spread, ctx, shirt, downtown, mall):
        records = stock.list_records(ctx, item=shirt)

        assert [r.location_id for r in records] == [downtown, mall]

    def test_low_stock(self, spread, ctx, shirt, downtown, mall):
        stock.update_stock_levels(ctx, stock.get_record(ctx, shirt, mall).pk, 0, reorder_point=5)
        for record in stock.list_records(ctx, location_id=downtown):
            stock.update_stock_levels(ctx, record.pk, 0, reorder_point=1)

        low = stock.list_records(ctx, low_stock=True)

        assert [(r.location_id, r.quantity) for r in low] == [(mall, 3)]

    def test_filters_combine(self, spread, ctx, shirt, shirt_red_m, downtown, mall):
        stock.update_stock_levels(ctx, stock.get_record(ctx, shirt, mall).pk, 0, reorder_point=5)

        assert list(stock.list_records(ctx, location_id=downtown, item=shirt_red_m)) == [
            stock.get_record(ctx, shirt_red_m, downtown),
        ]
        assert not stock.list_records(ctx, location_id=downtown, item=shirt, low_stock=True).exists()

    def test_empty_records_are_listed(self, spread, ctx, shirt, mall):
        stock.record_movement(ctx, shirt, mall, 'exit', -3, 'Sale')

        assert [r.quantity for r in stock.list_records(ctx, location_id=mall)] == [0]

    def test_other_business_sees_nothing(self, spread, other_ctx):
        assert not stock.list_records(other_ctx).exists()


class TestTenantIsolation:
    """Records are scoped to the business of the context."""

    def test_other_business_sees_nothing(self, stocked, ctx, other_ctx, shirt, downtown):
        assert stock.get_record(other_ctx, shirt, downtown) is None
        assert stock.get_low_stock_records(other_ctx) == []

        with pytest.raises(NotFoundError):
            stock.get_record_by_id(other_ctx, stocked.pk)

    def test_context_requires_business(self):
        from branchstock.context import TenantContext

        with pytest.raises(ValidationError) as exc:
            TenantContext(business_id=None)

        assert exc.value.code == 'TENANT_REQUIRED'

    def test_errors_are_stock_errors(self, ctx, shirt, downtown):
        with pytest.raises(StockError) as exc:
            stock.record_movement(ctx, shirt, downtown, 'exit', -1)

        assert exc.value.as_dict()['code'] == 'INSUFFICIENT_STOCK'
