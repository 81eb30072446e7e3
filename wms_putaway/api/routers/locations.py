# wms_putaway/api/routers/locations.py
from __future__ import annotations

from fastapi import APIRouter, Depends

from wms_putaway.api.deps import get_location_service, get_receiving_service, get_tenant
from wms_putaway.core.tenant import TenantContext
from wms_putaway.schemas.putaway import (
    CapacityOut,
    CapacityResyncOut,
    ReceiveOut,
    UtilizationOut,
)
from wms_putaway.services.location_suggest import LocationService
from wms_putaway.services.receiving_service import ReceivingService

router = APIRouter(tags=["locations"])


# ---------- 到货落暂存位 ----------


@router.post("/shipments/{shipment_id}/arrive", response_model=ReceiveOut)
async def arrive_shipment(
    shipment_id: int,
    ctx: TenantContext = Depends(get_tenant),
    svc: ReceivingService = Depends(get_receiving_service),
) -> ReceiveOut:
    result = await svc.receive_at_holding(ctx, shipment_id)
    return ReceiveOut(**result.to_dict())


# ---------- 库位容量 ----------


@router.get("/locations/utilization", response_model=UtilizationOut)
async def location_utilization(
    ctx: TenantContext = Depends(get_tenant),
    svc: LocationService = Depends(get_location_service),
) -> UtilizationOut:
    stats = await svc.utilization(ctx)
    return UtilizationOut(**stats.to_dict())


@router.get("/locations/{location_id}/capacity", response_model=CapacityOut)
async def location_capacity(
    location_id: int,
    ctx: TenantContext = Depends(get_tenant),
    svc: LocationService = Depends(get_location_service),
) -> CapacityOut:
    report = await svc.capacity(ctx, location_id)
    return CapacityOut(**report.to_dict())


@router.post("/locations/{location_id}/capacity/resync", response_model=CapacityResyncOut)
async def resync_location_capacity(
    location_id: int,
    ctx: TenantContext = Depends(get_tenant),
    svc: LocationService = Depends(get_location_service),
) -> CapacityResyncOut:
    """按库存汇总修复 current_capacity（运维修复入口）。"""
    out = await svc.resync(ctx, location_id)
    return CapacityResyncOut(**out)
