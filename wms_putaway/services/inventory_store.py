# wms_putaway/services/inventory_store.py
from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Tuple

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from wms_putaway.core.tenant import TenantContext
from wms_putaway.models.enums import LocationCategory
from wms_putaway.models.inventory import Inventory
from wms_putaway.services.errors import InsufficientQuantityError, InvalidQuantityError

logger = logging.getLogger("wms_putaway.inventory")


class ZeroQuantityPolicy(str, Enum):
    """库存扣到 0 之后怎么处理。"""

    DELETE = "DELETE"  # 暂存位：删除记录
    KEEP_EMPTY = "KEEP_EMPTY"  # 存储位：保留为 Empty

    @classmethod
    def for_category(cls, category: LocationCategory) -> "ZeroQuantityPolicy":
        return cls.DELETE if category == LocationCategory.HOLDING else cls.KEEP_EMPTY


class InventoryStore:
    """
    库存记录读写（按 company_id 隔离）。

    - upsert_add：已有则累加并覆盖成本价 / 来源引用，否则新建 Available 记录；
    - subtract：带条件 UPDATE（quantity >= qty），归零策略由调用方显式给出；
    - status 只通过 Inventory.apply_quantity 推导。
    """

    @staticmethod
    async def get(
        session: AsyncSession,
        ctx: TenantContext,
        item_id: int,
        location_id: int,
        *,
        for_update: bool = False,
    ) -> Optional[Inventory]:
        stmt = (
            select(Inventory)
            .where(Inventory.company_id == ctx.company_id)
            .where(Inventory.item_id == item_id)
            .where(Inventory.location_id == location_id)
        )
        if for_update:
            stmt = stmt.with_for_update()
        return (await session.execute(stmt)).scalar_one_or_none()

    @staticmethod
    async def list_at_location(
        session: AsyncSession, ctx: TenantContext, location_id: int
    ) -> List[Inventory]:
        rows = await session.execute(
            select(Inventory)
            .where(Inventory.company_id == ctx.company_id)
            .where(Inventory.location_id == location_id)
            .order_by(Inventory.item_id)
        )
        return list(rows.scalars())

    async def upsert_add(
        self,
        session: AsyncSession,
        ctx: TenantContext,
        *,
        item_id: int,
        location_id: int,
        qty: int,
        cost_price: Optional[Decimal] = None,
        source_ref: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Tuple[Inventory, bool]:
        """返回 (inventory, created)。"""
        if qty <= 0:
            raise InvalidQuantityError(qty)

        now = datetime.now(timezone.utc)
        inv = await self.get(session, ctx, item_id, location_id, for_update=True)

        if inv is not None:
            inv.apply_quantity(int(inv.quantity) + qty, at=now)
            if cost_price is not None:
                inv.last_cost_price = cost_price
            if source_ref is not None:
                inv.source_reference = source_ref
            if notes:
                inv.notes = notes
            await session.flush()
            return inv, False

        inv = Inventory(
            company_id=ctx.company_id,
            item_id=item_id,
            location_id=location_id,
            last_cost_price=cost_price,
            source_reference=source_ref,
            notes=notes,
        )
        inv.apply_quantity(qty, at=now)
        session.add(inv)
        await session.flush()
        return inv, True

    async def subtract(
        self,
        session: AsyncSession,
        ctx: TenantContext,
        *,
        item_id: int,
        location_id: int,
        qty: int,
        policy: ZeroQuantityPolicy,
    ) -> Optional[Inventory]:
        """扣减库存；按 DELETE 策略归零时返回 None。"""
        if qty <= 0:
            raise InvalidQuantityError(qty)

        inv = await self.get(session, ctx, item_id, location_id, for_update=True)
        if inv is None:
            raise InsufficientQuantityError(item_id, location_id, qty, 0)
        if qty > int(inv.quantity):
            raise InsufficientQuantityError(item_id, location_id, qty, int(inv.quantity))

        now = datetime.now(timezone.utc)
        res = await session.execute(
            update(Inventory)
            .where(Inventory.id == inv.id)
            .where(Inventory.quantity >= qty)
            .values(quantity=Inventory.quantity - qty, last_updated=now)
            .execution_options(synchronize_session=False)
        )
        await session.refresh(inv)
        if res.rowcount != 1:
            raise InsufficientQuantityError(item_id, location_id, qty, int(inv.quantity))

        if inv.quantity == 0 and policy == ZeroQuantityPolicy.DELETE:
            logger.debug("inventory emptied, deleting: item=%s loc=%s", item_id, location_id)
            await session.delete(inv)
            await session.flush()
            return None

        inv.apply_quantity(inv.quantity, at=now)
        await session.flush()
        return inv
