# wms_putaway/models/item.py
from __future__ import annotations

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from wms_putaway.db.base import Base


class Item(Base):
    """
    商品主档（最小字段集，上架只需要外键与展示信息）。
    """

    __tablename__ = "items"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    company_id: Mapped[int] = mapped_column(sa.Integer, nullable=False, index=True)

    item_code: Mapped[str] = mapped_column(sa.String(50), nullable=False)
    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    unit: Mapped[str] = mapped_column(sa.String(20), nullable=False, server_default="PCS")
    is_active: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, server_default=sa.true())

    __table_args__ = (sa.UniqueConstraint("company_id", "item_code", name="uq_items_company_code"),)

    def __repr__(self) -> str:
        return f"<Item id={self.id} code={self.item_code!r}>"
