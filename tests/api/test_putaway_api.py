# tests/api/test_putaway_api.py
from __future__ import annotations

import httpx
import pytest

from tests.helpers.putaway import (
    audit_count,
    inventory_qty,
    line_of,
    location_of,
    seed_arrived_shipment,
    seed_inventory,
    seed_item,
    seed_location,
    seed_shipment,
)
from wms_putaway.main import app
from wms_putaway.models.enums import LocationCategory, ShipmentStatus

pytestmark = pytest.mark.asyncio


def _assert_problem(body: dict, *, status: int, code: str) -> None:
    assert body["http_status"] == status
    assert body["error_code"] == code
    assert body["message"]
    assert body["trace_id"].startswith("t_")
    assert isinstance(body["context"], dict)


async def test_putaway_success(client: httpx.AsyncClient, async_session_maker):
    sf = async_session_maker
    async with sf() as s:
        seed = await seed_arrived_shipment(s, shipped=(10,))
        target = await seed_location(s, code="S-01", max_capacity=100)
        await s.commit()

    resp = await client.post(
        "/putaway",
        json={
            "shipment_line_id": seed.line_ids[0],
            "quantity": 4,
            "target_location_id": target.id,
            "notes": "A 区",
        },
    )

    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["success"] is True
    assert body["remaining"] == 6
    assert body["already_put_away"] == 4
    assert body["is_completed"] is False
    assert body["shipment_completed"] is False

    assert await inventory_qty(sf, seed.item_id, target.id) == 4
    assert (await location_of(sf, target.id)).current_capacity == 4
    # AUDIT_SINK=db：库存 + 到货行各一条
    assert await audit_count(sf, entity_type="shipment_line") == 1


async def test_putaway_over_remaining_is_problem(client: httpx.AsyncClient, async_session_maker):
    sf = async_session_maker
    async with sf() as s:
        seed = await seed_arrived_shipment(s, shipped=(5,))
        target = await seed_location(s, code="S-01", max_capacity=0)
        await s.commit()

    resp = await client.post(
        "/putaway",
        json={"shipment_line_id": seed.line_ids[0], "quantity": 6, "target_location_id": target.id},
    )

    assert resp.status_code == 409
    body = resp.json()
    _assert_problem(body, status=409, code="OVER_PUTAWAY")
    assert body["context"]["path"] == "/putaway"
    assert body["context"]["remaining"] == 5
    assert (await line_of(sf, seed.line_ids[0])).put_away_qty == 0


async def test_putaway_capacity_exceeded_is_problem(
    client: httpx.AsyncClient, async_session_maker
):
    sf = async_session_maker
    async with sf() as s:
        seed = await seed_arrived_shipment(s, shipped=(10,))
        target = await seed_location(s, code="S-01", max_capacity=8, current_capacity=5)
        await s.commit()

    resp = await client.post(
        "/putaway",
        json={"shipment_line_id": seed.line_ids[0], "quantity": 4, "target_location_id": target.id},
    )

    assert resp.status_code == 409
    body = resp.json()
    _assert_problem(body, status=409, code="CAPACITY_EXCEEDED")
    assert body["context"]["available"] == 3
    assert await inventory_qty(sf, seed.item_id, seed.holding_id) == 10


async def test_putaway_invalid_quantity_and_missing_line(
    client: httpx.AsyncClient, async_session_maker
):
    sf = async_session_maker
    async with sf() as s:
        seed = await seed_arrived_shipment(s, shipped=(5,))
        target = await seed_location(s, code="S-01")
        await s.commit()

    resp = await client.post(
        "/putaway",
        json={"shipment_line_id": seed.line_ids[0], "quantity": 0, "target_location_id": target.id},
    )
    assert resp.status_code == 422
    _assert_problem(resp.json(), status=422, code="INVALID_QUANTITY")

    resp = await client.post(
        "/putaway",
        json={"shipment_line_id": 999_999, "quantity": 1, "target_location_id": target.id},
    )
    assert resp.status_code == 404
    _assert_problem(resp.json(), status=404, code="NOT_FOUND")


async def test_request_validation_problem(client: httpx.AsyncClient):
    resp = await client.post("/putaway", json={"quantity": "many"})

    assert resp.status_code == 422
    body = resp.json()
    _assert_problem(body, status=422, code="request_validation_error")
    assert body["details"]


async def test_tenant_header_required(async_session_maker):
    from wms_putaway.api.deps import get_db_session_factory

    app.dependency_overrides[get_db_session_factory] = lambda: async_session_maker
    try:
        async with httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app), base_url="http://testserver"
        ) as anon:
            resp = await anon.get("/putaway/shipments")
    finally:
        app.dependency_overrides.pop(get_db_session_factory, None)

    assert resp.status_code == 401
    _assert_problem(resp.json(), status=401, code="TENANT_REQUIRED")


async def test_other_tenant_cannot_see_line(client: httpx.AsyncClient, async_session_maker):
    sf = async_session_maker
    async with sf() as s:
        seed = await seed_arrived_shipment(s, shipped=(5,))
        target = await seed_location(s, code="S-01")
        await s.commit()

    resp = await client.post(
        "/putaway",
        json={"shipment_line_id": seed.line_ids[0], "quantity": 1, "target_location_id": target.id},
        headers={"X-Company-Id": "2"},
    )
    assert resp.status_code == 404


async def test_auto_putaway(client: httpx.AsyncClient, async_session_maker):
    sf = async_session_maker
    async with sf() as s:
        seed = await seed_arrived_shipment(s, shipped=(30, 40))
        await seed_location(s, code="S-01", max_capacity=50)
        await s.commit()

    resp = await client.post(f"/putaway/shipments/{seed.shipment_id}/auto")

    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["success"] is True
    assert body["processed_count"] == 1
    assert body["errors"] == [
        {
            "line_id": seed.line_ids[1],
            "error_code": "NO_CAPACITY_AVAILABLE",
            "message": body["errors"][0]["message"],
        }
    ]

    resp = await client.post("/putaway/shipments/999999/auto")
    assert resp.status_code == 404


async def test_list_shipments_and_open_lines(client: httpx.AsyncClient, async_session_maker):
    sf = async_session_maker
    async with sf() as s:
        seed = await seed_arrived_shipment(s, shipped=(10, 20))
        item = await seed_item(s, code="SKU-DONE")
        # 全部上架完成的到货单不出现在待上架列表
        await seed_shipment(
            s,
            asn_number="ASN-DONE",
            holding_location_id=seed.holding_id,
            lines=[(item.id, 5, 5)],
        )
        await s.commit()

    resp = await client.get("/putaway/shipments")
    assert resp.status_code == 200
    rows = resp.json()
    assert [r["id"] for r in rows] == [seed.shipment_id]
    assert rows[0]["status"] == ShipmentStatus.ARRIVED.value

    resp = await client.get(f"/putaway/shipments/{seed.shipment_id}/lines")
    assert resp.status_code == 200
    lines = resp.json()
    assert [ln["id"] for ln in lines] == seed.line_ids
    assert [ln["remaining_qty"] for ln in lines] == [10, 20]

    resp = await client.get("/putaway/shipments/999999/lines")
    assert resp.status_code == 404


async def test_suggest(client: httpx.AsyncClient, async_session_maker):
    sf = async_session_maker
    async with sf() as s:
        item = await seed_item(s)
        loc = await seed_location(s, code="A-01", max_capacity=100, current_capacity=10)
        await s.commit()

    resp = await client.get("/putaway/suggest", params={"item_id": item.id, "quantity": 20})
    assert resp.status_code == 200
    body = resp.json()
    assert body["found"] is True
    assert body["location"]["id"] == loc.id
    assert body["location"]["available_capacity"] == 90

    resp = await client.get("/putaway/suggest", params={"item_id": item.id, "quantity": 500})
    assert resp.json() == {"found": False, "location": None}


async def test_arrive_then_capacity_endpoints(client: httpx.AsyncClient, async_session_maker):
    sf = async_session_maker
    async with sf() as s:
        item = await seed_item(s)
        holding = await seed_location(
            s, code="H-01", category=LocationCategory.HOLDING, max_capacity=100
        )
        shipment, _ = await seed_shipment(
            s,
            holding_location_id=holding.id,
            status=ShipmentStatus.PENDING,
            lines=[(item.id, 12, 0)],
        )
        await s.commit()

    resp = await client.post(f"/shipments/{shipment.id}/arrive")
    assert resp.status_code == 200, resp.text
    assert resp.json()["total_quantity"] == 12

    resp = await client.post(f"/shipments/{shipment.id}/arrive")
    assert resp.status_code == 409
    _assert_problem(resp.json(), status=409, code="INVALID_STATE")

    resp = await client.get(f"/locations/{holding.id}/capacity")
    assert resp.status_code == 200
    cap = resp.json()
    assert cap["current_capacity"] == 12
    assert cap["available_capacity"] == 88
    assert cap["category"] == LocationCategory.HOLDING.value

    resp = await client.get("/locations/utilization")
    assert resp.status_code == 200
    assert resp.json()["used_capacity"] == 12

    resp = await client.get("/locations/999999/capacity")
    assert resp.status_code == 404


async def test_capacity_resync_endpoint(client: httpx.AsyncClient, async_session_maker):
    sf = async_session_maker
    async with sf() as s:
        item = await seed_item(s)
        loc = await seed_location(s, code="A-01", max_capacity=50, current_capacity=40)
        await seed_inventory(s, item_id=item.id, location_id=loc.id, qty=15)
        await s.commit()

    resp = await client.post(f"/locations/{loc.id}/capacity/resync")

    assert resp.status_code == 200
    body = resp.json()
    assert (body["before"], body["after"], body["changed"]) == (40, 15, True)
    assert body["available_capacity"] == 35
    assert (await location_of(sf, loc.id)).current_capacity == 15


async def test_ping_and_metrics(client: httpx.AsyncClient, async_session_maker):
    sf = async_session_maker
    async with sf() as s:
        seed = await seed_arrived_shipment(s, shipped=(3,))
        target = await seed_location(s, code="S-01")
        await s.commit()
    await client.post(
        "/putaway",
        json={"shipment_line_id": seed.line_ids[0], "quantity": 3, "target_location_id": target.id},
    )

    assert (await client.get("/ping")).json() == {"pong": True}

    resp = await client.get("/metrics")
    assert resp.status_code == 200
    assert "putaway_committed_total" in resp.text
    assert "putaway_latency_seconds" in resp.text
