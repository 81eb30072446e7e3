# wms_putaway/services/bulk_putaway.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sqlalchemy import case, exists, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from wms_putaway.core.tenant import TenantContext
from wms_putaway.metrics import BULK_LINES
from wms_putaway.models.enums import LocationCategory
from wms_putaway.models.inventory import Inventory
from wms_putaway.models.location import Location
from wms_putaway.services.errors import NoCapacityAvailableError, PutawayError
from wms_putaway.services.putaway_service import PutawayService
from wms_putaway.services.shipment_line_tracker import ShipmentLineTracker

logger = logging.getLogger("wms_putaway.bulk")


@dataclass
class BulkLineError:
    line_id: int
    error_code: str
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {"line_id": self.line_id, "error_code": self.error_code, "message": self.message}


@dataclass
class BulkPutawayResult:
    processed_count: int = 0
    errors: List[BulkLineError] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.processed_count > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "processed_count": self.processed_count,
            "errors": [e.to_dict() for e in self.errors],
        }


class BulkPutawayPlanner:
    """
    整单自动上架：

    - 逐行（按行号）处理 remaining > 0 的到货行，一行一个事务（复用 PutawayService）；
    - 候选库位：同公司、启用中、Storage；已存放该商品的库位优先，其次按库位编码；
    - 取第一个可用容量 >= remaining 的库位（不限容量的库位总是满足），整行一次上完；
    - 无库位可放 / 单行失败都只记入 errors，继续下一行。
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        putaway_service: PutawayService,
        *,
        tracker: Optional[ShipmentLineTracker] = None,
    ) -> None:
        self._session_factory = session_factory
        self.putaway_service = putaway_service
        self.tracker = tracker or ShipmentLineTracker()

    async def auto_putaway(self, ctx: TenantContext, shipment_id: int) -> BulkPutawayResult:
        async with self._session_factory() as session:
            await self.tracker.load_shipment(session, ctx, shipment_id)
            lines = await self.tracker.open_lines(session, ctx, shipment_id)
            plan = [(ln.id, ln.item_id, self.tracker.remaining(ln)) for ln in lines]

        logger.info(
            "auto putaway start: company=%s shipment=%s open_lines=%d",
            ctx.company_id,
            shipment_id,
            len(plan),
        )

        result = BulkPutawayResult()
        for line_id, item_id, remaining in plan:
            # 每行重新读取容量：前面的行已经提交，占用了库位
            async with self._session_factory() as session:
                target = await self.choose_location(session, ctx, item_id, remaining)

            if target is None:
                err = NoCapacityAvailableError(line_id, remaining)
                result.errors.append(BulkLineError(line_id, err.code, err.message))
                BULK_LINES.labels(result="no_capacity").inc()
                logger.info("auto putaway: no location fits line=%s qty=%s", line_id, remaining)
                continue

            try:
                await self.putaway_service.putaway(ctx, line_id, remaining, target.id)
            except PutawayError as e:
                result.errors.append(BulkLineError(line_id, e.code, e.message))
                BULK_LINES.labels(result="failed").inc()
                continue

            result.processed_count += 1
            BULK_LINES.labels(result="processed").inc()

        logger.info(
            "auto putaway done: shipment=%s processed=%d errors=%d",
            shipment_id,
            result.processed_count,
            len(result.errors),
        )
        return result

    @staticmethod
    async def candidate_locations(
        session: AsyncSession, ctx: TenantContext, item_id: int
    ) -> List[Location]:
        holds_item = (
            exists()
            .where(Inventory.location_id == Location.id)
            .where(Inventory.company_id == ctx.company_id)
            .where(Inventory.item_id == item_id)
            .where(Inventory.quantity > 0)
        )
        rows = await session.execute(
            select(Location)
            .where(Location.company_id == ctx.company_id)
            .where(Location.is_active.is_(True))
            .where(Location.category == LocationCategory.STORAGE)
            .order_by(case((holds_item, 0), else_=1), Location.code)
        )
        return list(rows.scalars())

    async def choose_location(
        self, session: AsyncSession, ctx: TenantContext, item_id: int, quantity: int
    ) -> Optional[Location]:
        for loc in await self.candidate_locations(session, ctx, item_id):
            if loc.can_accommodate(quantity):
                return loc
        return None
