# wms_putaway/schemas/putaway.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict

from wms_putaway.models.enums import LocationCategory, ShipmentStatus


# 统一：允许 ORM 对象、忽略多余字段
class _Base(BaseModel):
    model_config = ConfigDict(
        from_attributes=True,
        extra="ignore",
        populate_by_name=True,
    )


# ---------- 上架（/putaway） ----------


class PutawayIn(_Base):
    """
    单行上架请求体
    - quantity 不在这里做正数校验，交给服务层给出 INVALID_QUANTITY
    """

    shipment_line_id: int = Field(..., description="到货行ID")
    quantity: int = Field(..., description="上架数量")
    target_location_id: int = Field(..., description="目标存储库位ID")
    notes: Optional[str] = Field(default=None, max_length=500, description="备注（可选）")

    model_config = _Base.model_config | {
        "json_schema_extra": {
            "example": {
                "shipment_line_id": 1,
                "quantity": 10,
                "target_location_id": 3,
                "notes": "A 区上架",
            }
        }
    }


class PutawayOut(_Base):
    success: bool
    message: str
    remaining: int
    already_put_away: int
    is_completed: bool
    shipment_completed: bool = False


class BulkLineErrorOut(_Base):
    line_id: int
    error_code: str
    message: str


class BulkPutawayOut(_Base):
    success: bool
    processed_count: int
    errors: List[BulkLineErrorOut] = Field(default_factory=list)


# ---------- 查询 ----------


class ShipmentOut(_Base):
    id: int
    asn_number: str
    supplier_name: Optional[str] = None
    status: ShipmentStatus
    holding_location_id: Optional[int] = None
    arrived_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class ShipmentLineOut(_Base):
    id: int
    shipment_id: int
    item_id: int
    shipped_qty: int
    put_away_qty: int
    remaining_qty: int
    unit_price: Decimal
    notes: Optional[str] = None


class LocationOut(_Base):
    id: int
    code: str
    name: str
    category: LocationCategory
    max_capacity: int
    current_capacity: int
    available_capacity: Optional[int] = None
    capacity_percentage: float


class SuggestOut(_Base):
    found: bool
    location: Optional[LocationOut] = None


class ReceiveOut(_Base):
    shipment_id: int
    holding_location_id: int
    line_count: int
    total_quantity: int


class CapacityOut(_Base):
    location_id: int
    code: str
    category: LocationCategory
    max_capacity: int
    current_capacity: int
    available_capacity: Optional[int] = None
    capacity_percentage: float
    is_full: bool


class CapacityResyncOut(CapacityOut):
    before: int
    after: int
    changed: bool


class UtilizationOut(_Base):
    total_locations: int
    active_locations: int
    full_locations: int
    near_full_locations: int
    total_capacity: int
    used_capacity: int
    available_capacity: int
    utilization_pct: float
