# wms_putaway/models/shipment.py
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from wms_putaway.db.base import Base
from wms_putaway.models.enums import ShipmentStatus


class ShipmentNotice(Base):
    """
    到货通知头表（ASN）

    - holding_location_id：到货后货物先落的暂存位；上架从这里扣减
    - status：Pending / In Transit → Arrived → Processed
    """

    __tablename__ = "shipment_notices"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    company_id: Mapped[int] = mapped_column(sa.Integer, nullable=False, index=True)

    asn_number: Mapped[str] = mapped_column(sa.String(50), nullable=False)
    supplier_name: Mapped[Optional[str]] = mapped_column(sa.String(200))
    expected_arrival_date: Mapped[Optional[date]] = mapped_column(sa.Date)

    status: Mapped[ShipmentStatus] = mapped_column(
        sa.Enum(
            ShipmentStatus,
            name="shipment_status",
            native_enum=False,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=ShipmentStatus.PENDING,
    )

    holding_location_id: Mapped[Optional[int]] = mapped_column(
        sa.Integer,
        sa.ForeignKey("locations.id", ondelete="SET NULL"),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    arrived_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    completed_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))

    __table_args__ = (
        sa.UniqueConstraint("company_id", "asn_number", name="uq_shipment_notices_company_asn"),
        sa.Index("ix_shipment_notices_company_status", "company_id", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<ShipmentNotice id={self.id} asn={self.asn_number!r} "
            f"status={self.status.value} holding={self.holding_location_id}>"
        )


class ShipmentLine(Base):
    """
    到货通知行

    - shipped_qty 固定不变
    - put_away_qty 只增不减，最终等于 shipped_qty
    - remaining_qty 永远是推导值，不落库
    """

    __tablename__ = "shipment_lines"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    company_id: Mapped[int] = mapped_column(sa.Integer, nullable=False, index=True)

    shipment_id: Mapped[int] = mapped_column(
        sa.Integer,
        sa.ForeignKey("shipment_notices.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    item_id: Mapped[int] = mapped_column(
        sa.Integer,
        sa.ForeignKey("items.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    shipped_qty: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    put_away_qty: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    unit_price: Mapped[Decimal] = mapped_column(sa.Numeric(18, 2), nullable=False, default=0)
    notes: Mapped[Optional[str]] = mapped_column(sa.String(500))

    __table_args__ = (
        sa.CheckConstraint("shipped_qty > 0", name="ck_shipment_lines_shipped_pos"),
        sa.CheckConstraint(
            "put_away_qty >= 0 AND put_away_qty <= shipped_qty",
            name="ck_shipment_lines_put_away_range",
        ),
    )

    @hybrid_property
    def remaining_qty(self) -> int:
        return int(self.shipped_qty or 0) - int(self.put_away_qty or 0)

    @remaining_qty.inplace.expression
    @classmethod
    def _remaining_qty_expression(cls):
        return cls.shipped_qty - cls.put_away_qty

    @property
    def is_completed(self) -> bool:
        return self.remaining_qty == 0

    def __repr__(self) -> str:
        return (
            f"<ShipmentLine id={self.id} shipment={self.shipment_id} item={self.item_id} "
            f"put_away={self.put_away_qty}/{self.shipped_qty}>"
        )
