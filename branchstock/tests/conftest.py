"""
Pytest fixtures for Branchstock tests.
"""

from datetime import timedelta

import pytest
from django.utils import timezone

from branchstock import stock
from branchstock.adapters import reset_adapters
from branchstock.context import StockItemRef, TenantContext
from branchstock.tests.adapters import (
    AIRPORT,
    BUSINESS_ID,
    DOWNTOWN,
    MALL,
    OTHER_BUSINESS_ID,
)


@pytest.fixture(autouse=True)
def fresh_adapters():
    """Adapters are cached per process; start every test clean."""
    reset_adapters()
    yield
    reset_adapters()


@pytest.fixture
def ctx():
    """Tenant context of the main test business."""
    return TenantContext(business_id=BUSINESS_ID, acting_user_id=7)


@pytest.fixture
def other_ctx():
    """Tenant context of an unrelated business."""
    return TenantContext(business_id=OTHER_BUSINESS_ID, acting_user_id=8)


@pytest.fixture
def downtown():
    return DOWNTOWN


@pytest.fixture
def mall():
    return MALL


@pytest.fixture
def airport():
    return AIRPORT


@pytest.fixture
def shirt():
    """A product tracked without variants."""
    return StockItemRef(product_id=1)


@pytest.fixture
def shirt_red_m():
    """A variant of a product."""
    return StockItemRef(product_id=2, variant_id=21)


@pytest.fixture
def stocked(db, ctx, shirt, shirt_red_m, downtown):
    """Downtown holds 10 shirts and 6 red M shirts."""
    stock.record_movement(ctx, shirt, downtown, 'entry', 10, 'Initial stock')
    stock.record_movement(ctx, shirt_red_m, downtown, 'entry', 6, 'Initial stock')
    return stock.get_record(ctx, shirt, downtown)


@pytest.fixture
def pending_transfer(stocked, ctx, shirt, shirt_red_m, downtown, mall):
    """Mall asks Downtown for 4 shirts and 2 red M shirts."""
    return stock.create_transfer(
        ctx, downtown, mall,
        [
            {'item': shirt, 'quantity': 4},
            {'item': shirt_red_m, 'quantity': 2},
        ],
        notes='Weekend restock',
    )


@pytest.fixture
def approved_transfer(pending_transfer, ctx):
    return stock.approve(ctx, pending_transfer.pk)


@pytest.fixture
def shipped_transfer(approved_transfer, ctx):
    return stock.ship(ctx, approved_transfer.pk)


@pytest.fixture
def past():
    """A moment an hour ago."""
    return timezone.now() - timedelta(hours=1)
