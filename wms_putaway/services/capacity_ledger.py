# wms_putaway/services/capacity_ledger.py
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional, Tuple

from sqlalchemy import case, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from wms_putaway.core.tenant import TenantContext
from wms_putaway.models.inventory import Inventory
from wms_putaway.models.location import Location
from wms_putaway.services.errors import CapacityExceededError, InvalidQuantityError

logger = logging.getLogger("wms_putaway.capacity")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CapacityLedger:
    """
    库位容量账本（current_capacity 缓存的唯一写入口）

    约定：
    - max_capacity = 0 表示不限容量，reserve 永远成功；
    - reserve 用一条带条件的 UPDATE 完成“判断 + 扣减”，
      并发下不会出现两个请求都看到同一份可用容量；
    - release 下限为 0，出现负数视为账实不符，只记 WARNING，不抛错；
    - recompute / resync / verify 以 inventories 汇总为准。
    """

    @staticmethod
    async def load_location(
        session: AsyncSession,
        ctx: TenantContext,
        location_id: int,
        *,
        for_update: bool = False,
        active_only: bool = True,
    ) -> Optional[Location]:
        stmt = (
            select(Location)
            .where(Location.id == location_id)
            .where(Location.company_id == ctx.company_id)
        )
        if active_only:
            stmt = stmt.where(Location.is_active.is_(True))
        if for_update:
            stmt = stmt.with_for_update()
        return (await session.execute(stmt)).scalar_one_or_none()

    @staticmethod
    def available_capacity(location: Location) -> Optional[int]:
        """None 表示不限容量。"""
        return location.available_capacity

    async def reserve(
        self,
        session: AsyncSession,
        ctx: TenantContext,
        location: Location,
        qty: int,
    ) -> Location:
        if qty <= 0:
            raise InvalidQuantityError(qty)

        stmt = (
            update(Location)
            .where(Location.id == location.id)
            .where(Location.company_id == ctx.company_id)
            .where(
                or_(
                    Location.max_capacity == 0,
                    Location.current_capacity + qty <= Location.max_capacity,
                )
            )
            .values(
                current_capacity=Location.current_capacity + qty,
                updated_at=_utcnow(),
                updated_by=ctx.actor,
            )
            .execution_options(synchronize_session=False)
        )
        res = await session.execute(stmt)
        await session.refresh(location)

        if res.rowcount != 1:
            logger.info(
                "capacity reserve rejected: loc=%s requested=%s current=%s max=%s",
                location.id,
                qty,
                location.current_capacity,
                location.max_capacity,
            )
            raise CapacityExceededError(location.id, qty, location.available_capacity)

        return location

    async def release(
        self,
        session: AsyncSession,
        ctx: TenantContext,
        location: Location,
        qty: int,
    ) -> Location:
        if qty <= 0:
            raise InvalidQuantityError(qty)

        await session.refresh(location)
        if int(location.current_capacity or 0) < qty:
            logger.warning(
                "capacity release below zero, flooring at 0: loc=%s current=%s release=%s",
                location.id,
                location.current_capacity,
                qty,
            )

        stmt = (
            update(Location)
            .where(Location.id == location.id)
            .where(Location.company_id == ctx.company_id)
            .values(
                current_capacity=case(
                    (Location.current_capacity >= qty, Location.current_capacity - qty),
                    else_=0,
                ),
                updated_at=_utcnow(),
                updated_by=ctx.actor,
            )
            .execution_options(synchronize_session=False)
        )
        await session.execute(stmt)
        await session.refresh(location)
        return location

    # ------------------------------------------------------------------ #
    # 以库存汇总为准的重算 / 修复 / 校验
    # ------------------------------------------------------------------ #
    @staticmethod
    async def recompute(session: AsyncSession, ctx: TenantContext, location_id: int) -> int:
        """库位上所有库存数量之和。"""
        total = await session.scalar(
            select(func.coalesce(func.sum(Inventory.quantity), 0))
            .where(Inventory.company_id == ctx.company_id)
            .where(Inventory.location_id == location_id)
        )
        return int(total or 0)

    async def resync(
        self,
        session: AsyncSession,
        ctx: TenantContext,
        location: Location,
    ) -> Tuple[int, int]:
        """把 current_capacity 改回库存汇总值，返回 (before, after)。"""
        before = int(location.current_capacity or 0)
        after = await self.recompute(session, ctx, location.id)

        if before != after:
            logger.warning(
                "capacity resync: loc=%s cached=%s actual=%s", location.id, before, after
            )
            await session.execute(
                update(Location)
                .where(Location.id == location.id)
                .where(Location.company_id == ctx.company_id)
                .values(current_capacity=after, updated_at=_utcnow(), updated_by=ctx.actor)
                .execution_options(synchronize_session=False)
            )
            await session.refresh(location)

        return before, after

    async def verify(self, session: AsyncSession, ctx: TenantContext, location: Location) -> bool:
        """缓存与库存汇总是否一致；不一致只记日志，不修。"""
        await session.flush()
        actual = await self.recompute(session, ctx, location.id)
        cached = int(location.current_capacity or 0)
        if actual != cached:
            logger.warning(
                "capacity drift detected: loc=%s cached=%s actual=%s", location.id, cached, actual
            )
            return False
        return True
