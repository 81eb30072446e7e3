# tests/services/test_capacity_ledger.py
from __future__ import annotations

import logging

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from tests.helpers.putaway import seed_inventory, seed_item, seed_location
from wms_putaway.core.tenant import TenantContext
from wms_putaway.models.enums import LocationCategory
from wms_putaway.services.capacity_ledger import CapacityLedger
from wms_putaway.services.errors import CapacityExceededError, InvalidQuantityError

pytestmark = pytest.mark.asyncio


async def test_available_capacity_bounded_and_unbounded(session: AsyncSession):
    bounded = await seed_location(session, code="S-01", max_capacity=100, current_capacity=40)
    unbounded = await seed_location(session, code="S-02", max_capacity=0, current_capacity=999)

    assert CapacityLedger.available_capacity(bounded) == 60
    assert CapacityLedger.available_capacity(unbounded) is None
    assert bounded.capacity_percentage == pytest.approx(40.0)
    assert not bounded.is_full


async def test_reserve_increments_and_stamps(session: AsyncSession, ctx: TenantContext):
    loc = await seed_location(session, code="S-01", max_capacity=100, current_capacity=40)
    ledger = CapacityLedger()

    await ledger.reserve(session, ctx, loc, 60)

    assert loc.current_capacity == 100
    assert loc.is_full
    assert loc.updated_by == "tester"
    assert loc.updated_at is not None


async def test_reserve_over_max_is_rejected_without_change(
    session: AsyncSession, ctx: TenantContext
):
    loc = await seed_location(session, code="S-01", max_capacity=100, current_capacity=40)
    ledger = CapacityLedger()

    with pytest.raises(CapacityExceededError) as ei:
        await ledger.reserve(session, ctx, loc, 61)

    assert ei.value.available == 60
    assert ei.value.requested == 61
    assert loc.current_capacity == 40


async def test_reserve_unbounded_always_fits(session: AsyncSession, ctx: TenantContext):
    loc = await seed_location(session, code="S-INF", max_capacity=0, current_capacity=5)
    ledger = CapacityLedger()

    await ledger.reserve(session, ctx, loc, 10_000)

    assert loc.current_capacity == 10_005


async def test_reserve_rejects_non_positive(session: AsyncSession, ctx: TenantContext):
    loc = await seed_location(session, code="S-01", max_capacity=10)
    with pytest.raises(InvalidQuantityError):
        await CapacityLedger().reserve(session, ctx, loc, 0)


async def test_reserve_is_tenant_scoped(session: AsyncSession, other_ctx: TenantContext):
    loc = await seed_location(session, company_id=1, code="S-01", max_capacity=100)

    # 其他公司的上下文匹配不到这一行，按容量不足处理且不改数据
    with pytest.raises(CapacityExceededError):
        await CapacityLedger().reserve(session, other_ctx, loc, 1)
    assert loc.current_capacity == 0


async def test_release_decrements(session: AsyncSession, ctx: TenantContext):
    loc = await seed_location(
        session, code="H-01", category=LocationCategory.HOLDING, current_capacity=30
    )
    await CapacityLedger().release(session, ctx, loc, 10)
    assert loc.current_capacity == 20


async def test_release_below_zero_is_floored_and_logged(
    session: AsyncSession, ctx: TenantContext, caplog
):
    loc = await seed_location(
        session, code="H-01", category=LocationCategory.HOLDING, current_capacity=3
    )

    with caplog.at_level(logging.WARNING, logger="wms_putaway.capacity"):
        await CapacityLedger().release(session, ctx, loc, 5)

    assert loc.current_capacity == 0
    assert any("below zero" in r.getMessage() for r in caplog.records)


async def test_recompute_resync_and_verify(session: AsyncSession, ctx: TenantContext):
    item_a = await seed_item(session, code="SKU-A")
    item_b = await seed_item(session, code="SKU-B")
    loc = await seed_location(session, code="S-01", max_capacity=100, current_capacity=7)
    await seed_inventory(session, item_id=item_a.id, location_id=loc.id, qty=20)
    await seed_inventory(session, item_id=item_b.id, location_id=loc.id, qty=5)

    ledger = CapacityLedger()
    assert await ledger.recompute(session, ctx, loc.id) == 25
    assert await ledger.verify(session, ctx, loc) is False

    before, after = await ledger.resync(session, ctx, loc)

    assert (before, after) == (7, 25)
    assert loc.current_capacity == 25
    assert await ledger.verify(session, ctx, loc) is True


async def test_load_location_filters_inactive_and_tenant(
    session: AsyncSession, ctx: TenantContext, other_ctx: TenantContext
):
    active = await seed_location(session, code="S-01")
    inactive = await seed_location(session, code="S-02", is_active=False)

    assert await CapacityLedger.load_location(session, ctx, active.id) is not None
    assert await CapacityLedger.load_location(session, ctx, inactive.id) is None
    assert (
        await CapacityLedger.load_location(session, ctx, inactive.id, active_only=False)
        is not None
    )
    assert await CapacityLedger.load_location(session, other_ctx, active.id) is None
