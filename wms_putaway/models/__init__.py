# wms_putaway/models/__init__.py
"""
统一导出 ORM 模型。
"""

from importlib import import_module


def _export(module_name: str, class_name: str) -> None:
    module = import_module(module_name)
    globals()[class_name] = getattr(module, class_name)


MODEL_SPECS = [
    # -------- 主数据 --------
    ("wms_putaway.models.item", "Item"),
    ("wms_putaway.models.location", "Location"),
    # -------- 库存 --------
    ("wms_putaway.models.inventory", "Inventory"),
    # -------- 到货通知 --------
    ("wms_putaway.models.shipment", "ShipmentNotice"),
    ("wms_putaway.models.shipment", "ShipmentLine"),
    # -------- 审计 --------
    ("wms_putaway.models.audit_event", "AuditEvent"),
]

for _mod, _cls in MODEL_SPECS:
    _export(_mod, _cls)

__all__ = [cls for _, cls in MODEL_SPECS]
