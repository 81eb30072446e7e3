# wms_putaway/models/enums.py
from __future__ import annotations

from enum import Enum


class LocationCategory(str, Enum):
    """
    库位类别：

    - STORAGE  正式存储位（上架目标，受容量约束）
    - HOLDING  暂存位（到货后先落这里，等待上架）
    """

    STORAGE = "Storage"
    HOLDING = "Holding"


class InventoryStatus(str, Enum):
    """库存状态只由数量推导：qty > 0 → Available，qty == 0 → Empty。"""

    AVAILABLE = "Available"
    EMPTY = "Empty"

    @classmethod
    def for_quantity(cls, quantity: int) -> "InventoryStatus":
        return cls.AVAILABLE if int(quantity) > 0 else cls.EMPTY


class ShipmentStatus(str, Enum):
    """
    到货通知（ASN）状态：

    Pending / In Transit → Arrived（落暂存位）→ Processed（全部上架完成）
    """

    PENDING = "Pending"
    IN_TRANSIT = "In Transit"
    ARRIVED = "Arrived"
    PROCESSED = "Processed"
    CANCELLED = "Cancelled"


RECEIVABLE_STATUSES = (ShipmentStatus.PENDING, ShipmentStatus.IN_TRANSIT)
