# wms_putaway/models/location.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from wms_putaway.db.base import Base
from wms_putaway.models.enums import LocationCategory


class Location(Base):
    """
    库位主档：

    - code 在公司内唯一
    - max_capacity = 0 表示不限容量
    - current_capacity 是库存数量的缓存汇总，只允许 CapacityLedger 在上架事务里改
    """

    __tablename__ = "locations"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    company_id: Mapped[int] = mapped_column(sa.Integer, nullable=False, index=True)

    code: Mapped[str] = mapped_column(sa.String(20), nullable=False)
    name: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    category: Mapped[LocationCategory] = mapped_column(
        sa.Enum(
            LocationCategory,
            name="location_category",
            native_enum=False,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=LocationCategory.STORAGE,
    )

    max_capacity: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    current_capacity: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    updated_by: Mapped[Optional[str]] = mapped_column(sa.String(64))

    __table_args__ = (
        sa.UniqueConstraint("company_id", "code", name="uq_locations_company_code"),
        sa.CheckConstraint("max_capacity >= 0", name="ck_locations_max_capacity_nonneg"),
        sa.CheckConstraint("current_capacity >= 0", name="ck_locations_current_capacity_nonneg"),
        sa.Index("ix_locations_company_category", "company_id", "category"),
    )

    # ---------- 只读推导 ----------
    @property
    def is_unbounded(self) -> bool:
        return int(self.max_capacity or 0) == 0

    @property
    def available_capacity(self) -> Optional[int]:
        """None 表示不限容量。"""
        if self.is_unbounded:
            return None
        return max(0, int(self.max_capacity) - int(self.current_capacity or 0))

    @property
    def is_full(self) -> bool:
        return not self.is_unbounded and int(self.current_capacity or 0) >= int(self.max_capacity)

    @property
    def capacity_percentage(self) -> float:
        if self.is_unbounded:
            return 0.0
        return int(self.current_capacity or 0) / int(self.max_capacity) * 100

    def can_accommodate(self, quantity: int) -> bool:
        available = self.available_capacity
        return available is None or available >= int(quantity)

    def __repr__(self) -> str:
        return (
            f"<Location id={self.id} code={self.code!r} cat={self.category.value} "
            f"cap={self.current_capacity}/{self.max_capacity}>"
        )
