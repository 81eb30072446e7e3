# wms_putaway/services/errors.py
"""
上架 / 容量领域错误。

每个错误带 code + http_status（HTTP 层据此渲染 Problem），
context 为定位用的附加字段（line_id / location_id / 数量等）。
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class PutawayError(Exception):
    code = "PUTAWAY_ERROR"
    http_status = 400
    retryable = False

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = {k: v for k, v in context.items() if v is not None}

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"error_code": self.code, "message": self.message}
        if self.context:
            out["context"] = dict(self.context)
        return out


class NotFoundError(PutawayError):
    code = "NOT_FOUND"
    http_status = 404

    def __init__(self, entity: str, entity_id: Any, message: Optional[str] = None) -> None:
        super().__init__(
            message or f"{entity} {entity_id} 不存在",
            entity=entity,
            entity_id=entity_id,
        )
        self.entity = entity
        self.entity_id = entity_id


class InvalidQuantityError(PutawayError):
    code = "INVALID_QUANTITY"
    http_status = 422

    def __init__(self, quantity: Any) -> None:
        super().__init__(f"数量必须大于 0：{quantity}", quantity=quantity)
        self.quantity = quantity


class OverPutawayError(PutawayError):
    code = "OVER_PUTAWAY"
    http_status = 409

    def __init__(self, line_id: int, requested: int, remaining: int) -> None:
        super().__init__(
            f"上架数量 {requested} 超过剩余可上架数量 {remaining}",
            line_id=line_id,
            requested=requested,
            remaining=remaining,
        )
        self.line_id = line_id
        self.requested = requested
        self.remaining = remaining


class WrongLocationCategoryError(PutawayError):
    code = "WRONG_LOCATION_CATEGORY"
    http_status = 422

    def __init__(self, location_id: int, expected: str, actual: str) -> None:
        super().__init__(
            f"库位 {location_id} 类别为 {actual}，需要 {expected}",
            location_id=location_id,
            expected=expected,
            actual=actual,
        )
        self.location_id = location_id
        self.expected = expected
        self.actual = actual


class CapacityExceededError(PutawayError):
    code = "CAPACITY_EXCEEDED"
    http_status = 409

    def __init__(self, location_id: int, requested: int, available: Optional[int]) -> None:
        super().__init__(
            f"库位 {location_id} 可用容量不足：需要 {requested}，可用 {available}",
            location_id=location_id,
            requested=requested,
            available=available,
        )
        self.location_id = location_id
        self.requested = requested
        self.available = available


class InsufficientQuantityError(PutawayError):
    code = "INSUFFICIENT_QUANTITY"
    http_status = 409

    def __init__(self, item_id: int, location_id: int, requested: int, on_hand: int) -> None:
        super().__init__(
            f"库位 {location_id} 上商品 {item_id} 库存不足：需要 {requested}，现有 {on_hand}",
            item_id=item_id,
            location_id=location_id,
            requested=requested,
            on_hand=on_hand,
        )
        self.item_id = item_id
        self.location_id = location_id
        self.requested = requested
        self.on_hand = on_hand


class HoldingLocationMissingError(PutawayError):
    code = "HOLDING_LOCATION_MISSING"
    http_status = 409

    def __init__(self, shipment_id: int) -> None:
        super().__init__(f"到货通知 {shipment_id} 未配置暂存库位", shipment_id=shipment_id)
        self.shipment_id = shipment_id


class NoCapacityAvailableError(PutawayError):
    code = "NO_CAPACITY_AVAILABLE"
    http_status = 409

    def __init__(self, line_id: int, quantity: int) -> None:
        super().__init__(
            f"没有可容纳 {quantity} 件的存储库位",
            line_id=line_id,
            quantity=quantity,
        )
        self.line_id = line_id
        self.quantity = quantity


class ShipmentStateError(PutawayError):
    code = "INVALID_STATE"
    http_status = 409

    def __init__(self, shipment_id: int, status: str, action: str) -> None:
        super().__init__(
            f"到货通知 {shipment_id} 当前状态 {status}，不允许 {action}",
            shipment_id=shipment_id,
            status=status,
            action=action,
        )
        self.shipment_id = shipment_id
        self.status = status


class PutawayInternalError(PutawayError):
    """底层（数据库 / 驱动）异常的统一包装；事务已回滚，可重试。"""

    code = "INTERNAL_ERROR"
    http_status = 503
    retryable = True

    def __init__(self, message: str = "上架失败，请稍后重试", **context: Any) -> None:
        super().__init__(message, **context)
