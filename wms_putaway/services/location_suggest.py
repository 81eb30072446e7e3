# wms_putaway/services/location_suggest.py
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from wms_putaway.core.tenant import TenantContext
from wms_putaway.db.uow import UnitOfWork
from wms_putaway.models.enums import LocationCategory
from wms_putaway.models.item import Item
from wms_putaway.models.location import Location
from wms_putaway.services.audit_writer import (
    AuditRecord,
    AuditSink,
    LogAuditSink,
    emit_after_commit,
)
from wms_putaway.services.capacity_ledger import CapacityLedger
from wms_putaway.services.errors import InvalidQuantityError, NotFoundError

logger = logging.getLogger("wms_putaway.locations")

NEAR_FULL_PCT = 80.0


@dataclass(frozen=True)
class CapacityReport:
    location_id: int
    code: str
    category: str
    max_capacity: int
    current_capacity: int
    available_capacity: Optional[int]
    capacity_percentage: float
    is_full: bool

    @classmethod
    def of(cls, loc: Location) -> "CapacityReport":
        return cls(
            location_id=loc.id,
            code=loc.code,
            category=loc.category.value,
            max_capacity=int(loc.max_capacity),
            current_capacity=int(loc.current_capacity),
            available_capacity=loc.available_capacity,
            capacity_percentage=round(loc.capacity_percentage, 2),
            is_full=loc.is_full,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class UtilizationStats:
    total_locations: int
    active_locations: int
    full_locations: int
    near_full_locations: int
    total_capacity: int
    used_capacity: int
    available_capacity: int
    utilization_pct: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class LocationService:
    """
    库位查询 / 建议：

    - suggest：启用中的有界 Storage 库位里，可用容量 >= quantity 且利用率最低者（同利用率按编码）；
    - utilization：公司级库位容量汇总；
    - capacity / resync：单库位容量报告与按库存汇总修复。
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        audit_sink: Optional[AuditSink] = None,
        ledger: Optional[CapacityLedger] = None,
    ) -> None:
        self._session_factory = session_factory
        self.audit_sink: AuditSink = audit_sink or LogAuditSink()
        self.ledger = ledger or CapacityLedger()

    async def suggest(
        self, ctx: TenantContext, item_id: int, quantity: int
    ) -> Optional[Location]:
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise InvalidQuantityError(quantity)

        async with self._session_factory() as session:
            item = await session.scalar(
                select(Item).where(Item.id == item_id).where(Item.company_id == ctx.company_id)
            )
            if item is None:
                raise NotFoundError("item", item_id)

            rows = await session.execute(
                select(Location)
                .where(Location.company_id == ctx.company_id)
                .where(Location.is_active.is_(True))
                .where(Location.category == LocationCategory.STORAGE)
                .where(Location.max_capacity > 0)
                .where(Location.max_capacity - Location.current_capacity >= quantity)
            )
            candidates: List[Location] = list(rows.scalars())

        if not candidates:
            logger.info("no location fits item=%s qty=%s", item_id, quantity)
            return None

        best = min(candidates, key=lambda loc: (loc.capacity_percentage, loc.code))
        logger.info(
            "suggested location %s for item=%s qty=%s (available=%s)",
            best.code,
            item_id,
            quantity,
            best.available_capacity,
        )
        return best

    async def utilization(self, ctx: TenantContext) -> UtilizationStats:
        async with self._session_factory() as session:
            rows = await session.execute(
                select(Location).where(Location.company_id == ctx.company_id)
            )
            locations: List[Location] = list(rows.scalars())

        total_capacity = sum(int(loc.max_capacity) for loc in locations)
        used_capacity = sum(int(loc.current_capacity) for loc in locations)
        return UtilizationStats(
            total_locations=len(locations),
            active_locations=sum(1 for loc in locations if loc.is_active),
            full_locations=sum(1 for loc in locations if loc.is_full),
            near_full_locations=sum(
                1
                for loc in locations
                if not loc.is_full and loc.capacity_percentage >= NEAR_FULL_PCT
            ),
            total_capacity=total_capacity,
            used_capacity=used_capacity,
            available_capacity=max(0, total_capacity - used_capacity),
            utilization_pct=(
                round(used_capacity / total_capacity * 100, 2) if total_capacity > 0 else 0.0
            ),
        )

    async def capacity(self, ctx: TenantContext, location_id: int) -> CapacityReport:
        async with self._session_factory() as session:
            loc = await self.ledger.load_location(session, ctx, location_id, active_only=False)
            if loc is None:
                raise NotFoundError("location", location_id)
            return CapacityReport.of(loc)

    async def resync(self, ctx: TenantContext, location_id: int) -> Dict[str, Any]:
        """按库存汇总修复 current_capacity。"""
        async with UnitOfWork(self._session_factory) as uow:
            loc = await self.ledger.load_location(
                uow.session, ctx, location_id, for_update=True, active_only=False
            )
            if loc is None:
                raise NotFoundError("location", location_id)
            before, after = await self.ledger.resync(uow.session, ctx, loc)
            report = CapacityReport.of(loc)

        if before != after:
            await emit_after_commit(
                self.audit_sink,
                ctx,
                [
                    AuditRecord(
                        entity_type="location",
                        entity_id=location_id,
                        action="resynced",
                        ref=report.code,
                        meta={"before": before, "after": after},
                    )
                ],
            )
        return {"before": before, "after": after, "changed": before != after, **report.to_dict()}
