# wms_putaway/services/shipment_line_tracker.py
from __future__ import annotations

from typing import List

from sqlalchemy import exists, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from wms_putaway.core.tenant import TenantContext
from wms_putaway.models.enums import ShipmentStatus
from wms_putaway.models.shipment import ShipmentLine, ShipmentNotice
from wms_putaway.services.errors import (
    InvalidQuantityError,
    NotFoundError,
    OverPutawayError,
)


class ShipmentLineTracker:
    """
    到货行上架进度：

    - remaining = shipped_qty - put_away_qty
    - put_away_qty 只增不减；推进走带条件 UPDATE（put_away_qty + qty <= shipped_qty）
    - 行状态：Open（remaining > 0）→ Completed（remaining == 0），终态
    """

    @staticmethod
    def remaining(line: ShipmentLine) -> int:
        return int(line.shipped_qty) - int(line.put_away_qty or 0)

    @staticmethod
    async def load(
        session: AsyncSession,
        ctx: TenantContext,
        line_id: int,
        *,
        for_update: bool = False,
    ) -> ShipmentLine:
        stmt = (
            select(ShipmentLine)
            .where(ShipmentLine.id == line_id)
            .where(ShipmentLine.company_id == ctx.company_id)
        )
        if for_update:
            stmt = stmt.with_for_update()
        line = (await session.execute(stmt)).scalar_one_or_none()
        if line is None:
            raise NotFoundError("shipment_line", line_id)
        return line

    @staticmethod
    async def load_shipment(
        session: AsyncSession,
        ctx: TenantContext,
        shipment_id: int,
        *,
        for_update: bool = False,
    ) -> ShipmentNotice:
        stmt = (
            select(ShipmentNotice)
            .where(ShipmentNotice.id == shipment_id)
            .where(ShipmentNotice.company_id == ctx.company_id)
        )
        if for_update:
            stmt = stmt.with_for_update()
        shipment = (await session.execute(stmt)).scalar_one_or_none()
        if shipment is None:
            raise NotFoundError("shipment", shipment_id)
        return shipment

    async def apply_putaway(
        self,
        session: AsyncSession,
        ctx: TenantContext,
        line: ShipmentLine,
        qty: int,
    ) -> ShipmentLine:
        if qty <= 0:
            raise InvalidQuantityError(qty)
        remaining = self.remaining(line)
        if qty > remaining:
            raise OverPutawayError(line.id, qty, remaining)

        res = await session.execute(
            update(ShipmentLine)
            .where(ShipmentLine.id == line.id)
            .where(ShipmentLine.company_id == ctx.company_id)
            .where(ShipmentLine.put_away_qty + qty <= ShipmentLine.shipped_qty)
            .values(put_away_qty=ShipmentLine.put_away_qty + qty)
            .execution_options(synchronize_session=False)
        )
        await session.refresh(line)
        if res.rowcount != 1:
            raise OverPutawayError(line.id, qty, self.remaining(line))
        return line

    @staticmethod
    async def lines_of(
        session: AsyncSession, ctx: TenantContext, shipment_id: int
    ) -> List[ShipmentLine]:
        rows = await session.execute(
            select(ShipmentLine)
            .where(ShipmentLine.company_id == ctx.company_id)
            .where(ShipmentLine.shipment_id == shipment_id)
            .order_by(ShipmentLine.id)
        )
        return list(rows.scalars())

    @staticmethod
    async def open_lines(
        session: AsyncSession, ctx: TenantContext, shipment_id: int
    ) -> List[ShipmentLine]:
        """还有剩余可上架数量的行，按行号排序。"""
        rows = await session.execute(
            select(ShipmentLine)
            .where(ShipmentLine.company_id == ctx.company_id)
            .where(ShipmentLine.shipment_id == shipment_id)
            .where(ShipmentLine.remaining_qty > 0)
            .order_by(ShipmentLine.id)
        )
        return list(rows.scalars())

    @staticmethod
    async def is_shipment_complete(
        session: AsyncSession, ctx: TenantContext, shipment_id: int
    ) -> bool:
        has_open = await session.scalar(
            select(
                exists()
                .where(ShipmentLine.company_id == ctx.company_id)
                .where(ShipmentLine.shipment_id == shipment_id)
                .where(ShipmentLine.remaining_qty > 0)
            )
        )
        return not has_open

    @staticmethod
    async def shipments_ready_for_putaway(
        session: AsyncSession, ctx: TenantContext
    ) -> List[ShipmentNotice]:
        """已到货（Arrived）且还有未上架行的到货通知。"""
        open_line = (
            exists()
            .where(ShipmentLine.shipment_id == ShipmentNotice.id)
            .where(ShipmentLine.company_id == ctx.company_id)
            .where(ShipmentLine.remaining_qty > 0)
        )
        rows = await session.execute(
            select(ShipmentNotice)
            .where(ShipmentNotice.company_id == ctx.company_id)
            .where(ShipmentNotice.status == ShipmentStatus.ARRIVED)
            .where(open_line)
            .order_by(ShipmentNotice.arrived_at, ShipmentNotice.id)
        )
        return list(rows.scalars())
