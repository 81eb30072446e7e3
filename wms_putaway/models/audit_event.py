# wms_putaway/models/audit_event.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from wms_putaway.db.base import Base


class AuditEvent(Base):
    """
    审计事件表 audit_events

    字段：
      - entity_type: inventory / shipment_line / shipment / location
      - entity_id:   被修改实体的主键
      - action:      created / updated / putaway / completed / arrived / resynced
      - ref:         业务引用（ASN 号、上架引用等）
      - meta:        JSON 变更摘要（before/after 等）
    """

    __tablename__ = "audit_events"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    company_id: Mapped[int] = mapped_column(sa.Integer, nullable=False)

    entity_type: Mapped[str] = mapped_column(sa.String(32), nullable=False)
    entity_id: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    action: Mapped[str] = mapped_column(sa.String(32), nullable=False)
    ref: Mapped[Optional[str]] = mapped_column(sa.String(128))
    meta: Mapped[dict] = mapped_column(sa.JSON, nullable=False, default=dict)
    user_id: Mapped[Optional[str]] = mapped_column(sa.String(64))

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        sa.Index("ix_audit_events_company_entity", "company_id", "entity_type", "entity_id"),
        sa.Index("ix_audit_events_ref", "ref"),
    )

    def __repr__(self) -> str:
        return (
            f"<AuditEvent id={self.id} {self.entity_type}:{self.entity_id} "
            f"action={self.action} ref={self.ref}>"
        )
