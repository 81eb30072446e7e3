# wms_putaway/api/routers/putaway.py
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from wms_putaway.api.deps import (
    get_bulk_planner,
    get_db_session_factory,
    get_location_service,
    get_putaway_service,
    get_tenant,
)
from wms_putaway.core.tenant import TenantContext
from wms_putaway.schemas.putaway import (
    BulkPutawayOut,
    LocationOut,
    PutawayIn,
    PutawayOut,
    ShipmentLineOut,
    ShipmentOut,
    SuggestOut,
)
from wms_putaway.services.bulk_putaway import BulkPutawayPlanner
from wms_putaway.services.location_suggest import LocationService
from wms_putaway.services.putaway_service import PutawayService
from wms_putaway.services.shipment_line_tracker import ShipmentLineTracker

router = APIRouter(prefix="/putaway", tags=["putaway"])


@router.post("", response_model=PutawayOut, status_code=status.HTTP_200_OK)
async def putaway(
    req: PutawayIn,
    ctx: TenantContext = Depends(get_tenant),
    svc: PutawayService = Depends(get_putaway_service),
) -> PutawayOut:
    """暂存位 → 存储位，单行上架（一个独立事务）。"""
    result = await svc.putaway(
        ctx,
        req.shipment_line_id,
        req.quantity,
        req.target_location_id,
        notes=req.notes,
    )
    return PutawayOut(**result.to_dict())


@router.post("/shipments/{shipment_id}/auto", response_model=BulkPutawayOut)
async def auto_putaway(
    shipment_id: int,
    ctx: TenantContext = Depends(get_tenant),
    planner: BulkPutawayPlanner = Depends(get_bulk_planner),
) -> BulkPutawayOut:
    result = await planner.auto_putaway(ctx, shipment_id)
    return BulkPutawayOut(**result.to_dict())


@router.get("/shipments", response_model=List[ShipmentOut])
async def shipments_ready(
    ctx: TenantContext = Depends(get_tenant),
    sf: async_sessionmaker[AsyncSession] = Depends(get_db_session_factory),
) -> List[ShipmentOut]:
    """已到货、仍有未上架行的到货通知。"""
    async with sf() as session:
        rows = await ShipmentLineTracker.shipments_ready_for_putaway(session, ctx)
    return [ShipmentOut.model_validate(r) for r in rows]


@router.get("/shipments/{shipment_id}/lines", response_model=List[ShipmentLineOut])
async def open_lines(
    shipment_id: int,
    ctx: TenantContext = Depends(get_tenant),
    sf: async_sessionmaker[AsyncSession] = Depends(get_db_session_factory),
) -> List[ShipmentLineOut]:
    async with sf() as session:
        await ShipmentLineTracker.load_shipment(session, ctx, shipment_id)
        rows = await ShipmentLineTracker.open_lines(session, ctx, shipment_id)
    return [ShipmentLineOut.model_validate(r) for r in rows]


@router.get("/suggest", response_model=SuggestOut)
async def suggest_location(
    item_id: int = Query(..., description="商品ID"),
    quantity: int = Query(..., description="待上架数量"),
    ctx: TenantContext = Depends(get_tenant),
    svc: LocationService = Depends(get_location_service),
) -> SuggestOut:
    loc = await svc.suggest(ctx, item_id, quantity)
    if loc is None:
        return SuggestOut(found=False)
    return SuggestOut(found=True, location=LocationOut.model_validate(loc))
