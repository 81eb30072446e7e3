# wms_putaway/models/inventory.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from wms_putaway.db.base import Base
from wms_putaway.models.enums import InventoryStatus


class Inventory(Base):
    """
    库存余额维度 (company_id, item_id, location_id)

    - quantity 为唯一真实库存来源，库位 current_capacity 是它的缓存汇总
    - status 只由 quantity 推导，不允许单独赋值（见 apply_quantity）
    - 暂存位归零即删除；存储位归零保留为 Empty 记录
    """

    __tablename__ = "inventories"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    company_id: Mapped[int] = mapped_column(sa.Integer, nullable=False, index=True)

    item_id: Mapped[int] = mapped_column(
        sa.Integer,
        sa.ForeignKey("items.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    location_id: Mapped[int] = mapped_column(
        sa.Integer,
        sa.ForeignKey("locations.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    quantity: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    status: Mapped[InventoryStatus] = mapped_column(
        sa.Enum(
            InventoryStatus,
            name="inventory_status",
            native_enum=False,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=InventoryStatus.AVAILABLE,
    )

    last_cost_price: Mapped[Optional[Decimal]] = mapped_column(sa.Numeric(18, 2))
    source_reference: Mapped[Optional[str]] = mapped_column(sa.String(100))
    notes: Mapped[Optional[str]] = mapped_column(sa.String(500))

    last_updated: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        sa.UniqueConstraint(
            "company_id", "item_id", "location_id", name="uq_inventories_company_item_loc"
        ),
        sa.CheckConstraint("quantity >= 0", name="ck_inventories_quantity_nonneg"),
        sa.Index("ix_inventories_company_location", "company_id", "location_id"),
    )

    def apply_quantity(self, quantity: int, *, at: Optional[datetime] = None) -> None:
        """唯一的数量写入口：同时刷新 status 与 last_updated。"""
        self.quantity = int(quantity)
        self.status = InventoryStatus.for_quantity(self.quantity)
        if at is not None:
            self.last_updated = at

    def __repr__(self) -> str:
        return (
            f"<Inventory item={self.item_id} loc={self.location_id} "
            f"qty={self.quantity} status={self.status.value}>"
        )
