# tests/services/test_bulk_putaway.py
from __future__ import annotations

import pytest

from tests.helpers.putaway import (
    inventory_qty,
    line_of,
    location_of,
    seed_arrived_shipment,
    seed_inventory,
    seed_location,
    shipment_of,
)
from wms_putaway.core.tenant import TenantContext
from wms_putaway.models.enums import LocationCategory, ShipmentStatus
from wms_putaway.services.bulk_putaway import BulkPutawayPlanner
from wms_putaway.services.errors import NotFoundError
from wms_putaway.services.putaway_service import PutawayService

pytestmark = pytest.mark.asyncio


def _planner(sf) -> BulkPutawayPlanner:
    return BulkPutawayPlanner(sf, PutawayService(sf))


async def test_scenario_only_first_line_fits(async_session_maker, ctx: TenantContext):
    sf = async_session_maker
    async with sf() as s:
        seed = await seed_arrived_shipment(s, shipped=(30, 40))
        only = await seed_location(s, code="S-01", max_capacity=50)
        await s.commit()

    result = await _planner(sf).auto_putaway(ctx, seed.shipment_id)

    assert result.processed_count == 1
    assert result.success is True
    assert len(result.errors) == 1
    err = result.errors[0]
    assert err.line_id == seed.line_ids[1]
    assert err.error_code == "NO_CAPACITY_AVAILABLE"

    assert (await line_of(sf, seed.line_ids[0])).put_away_qty == 30
    assert (await line_of(sf, seed.line_ids[1])).put_away_qty == 0
    assert (await location_of(sf, only.id)).current_capacity == 30
    assert (await shipment_of(sf, seed.shipment_id)).status == ShipmentStatus.ARRIVED


async def test_prefers_location_already_holding_item(async_session_maker, ctx: TenantContext):
    sf = async_session_maker
    async with sf() as s:
        seed = await seed_arrived_shipment(s, shipped=(10,))
        await seed_location(s, code="A-01", max_capacity=100)
        existing = await seed_location(s, code="Z-99", max_capacity=100, current_capacity=5)
        await seed_inventory(s, item_id=seed.item_id, location_id=existing.id, qty=5)
        await s.commit()

    result = await _planner(sf).auto_putaway(ctx, seed.shipment_id)

    assert result.processed_count == 1
    assert result.errors == []
    assert await inventory_qty(sf, seed.item_id, existing.id) == 15
    assert (await shipment_of(sf, seed.shipment_id)).status == ShipmentStatus.PROCESSED


async def test_first_fit_by_code_and_unbounded_fits(async_session_maker, ctx: TenantContext):
    sf = async_session_maker
    async with sf() as s:
        seed = await seed_arrived_shipment(s, shipped=(20, 20))
        small = await seed_location(s, code="A-01", max_capacity=10)
        fits = await seed_location(s, code="B-01", max_capacity=25)
        unbounded = await seed_location(s, code="C-01", max_capacity=0)
        # 非存储位 / 停用库位不参与候选
        await seed_location(s, code="0-HOLD", category=LocationCategory.HOLDING, max_capacity=0)
        await seed_location(s, code="0-OFF", max_capacity=0, is_active=False)
        await s.commit()

    result = await _planner(sf).auto_putaway(ctx, seed.shipment_id)

    assert result.processed_count == 2
    assert result.errors == []
    assert (await location_of(sf, small.id)).current_capacity == 0
    assert (await location_of(sf, fits.id)).current_capacity == 20
    # 第二行：B-01 只剩 5，顺延到不限容量的 C-01
    assert (await location_of(sf, unbounded.id)).current_capacity == 20


async def test_coordinator_failure_is_recorded_per_line(async_session_maker, ctx: TenantContext):
    sf = async_session_maker
    async with sf() as s:
        # 暂存位只有 10 件，第二行上架时库存不足
        seed = await seed_arrived_shipment(s, shipped=(10, 5), holding_qty=10)
        await seed_location(s, code="S-01", max_capacity=0)
        await s.commit()

    result = await _planner(sf).auto_putaway(ctx, seed.shipment_id)

    assert result.processed_count == 1
    assert [(e.line_id, e.error_code) for e in result.errors] == [
        (seed.line_ids[1], "INSUFFICIENT_QUANTITY")
    ]


async def test_nothing_processed_is_not_success(async_session_maker, ctx: TenantContext):
    sf = async_session_maker
    async with sf() as s:
        seed = await seed_arrived_shipment(s, shipped=(10,))
        await s.commit()

    result = await _planner(sf).auto_putaway(ctx, seed.shipment_id)

    assert result.processed_count == 0
    assert result.success is False
    assert result.to_dict()["errors"][0]["error_code"] == "NO_CAPACITY_AVAILABLE"


async def test_unknown_shipment_is_not_found(
    async_session_maker, ctx: TenantContext, other_ctx: TenantContext
):
    sf = async_session_maker
    async with sf() as s:
        seed = await seed_arrived_shipment(s, shipped=(10,))
        await s.commit()

    with pytest.raises(NotFoundError):
        await _planner(sf).auto_putaway(ctx, 999_999)
    with pytest.raises(NotFoundError):
        await _planner(sf).auto_putaway(other_ctx, seed.shipment_id)
