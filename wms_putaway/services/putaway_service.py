# wms_putaway/services/putaway_service.py
from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from wms_putaway.core.config import AppSettings, get_settings
from wms_putaway.core.tenant import TenantContext
from wms_putaway.db.uow import UnitOfWork
from wms_putaway.metrics import PUTAWAY_COMMITS, PUTAWAY_FAILURES, PUTAWAY_LATENCY
from wms_putaway.models.enums import LocationCategory, ShipmentStatus
from wms_putaway.models.shipment import ShipmentNotice
from wms_putaway.services.audit_writer import (
    AuditRecord,
    AuditSink,
    LogAuditSink,
    emit_after_commit,
)
from wms_putaway.services.capacity_ledger import CapacityLedger
from wms_putaway.services.errors import (
    CapacityExceededError,
    HoldingLocationMissingError,
    InsufficientQuantityError,
    InvalidQuantityError,
    NotFoundError,
    OverPutawayError,
    PutawayError,
    PutawayInternalError,
    WrongLocationCategoryError,
)
from wms_putaway.services.inventory_store import InventoryStore, ZeroQuantityPolicy
from wms_putaway.services.shipment_line_tracker import ShipmentLineTracker

logger = logging.getLogger("wms_putaway.putaway")


def _is_positive_int(value: Any) -> bool:
    # bool 是 int 的子类，True 不能当 1 件；2.7 / "3" 一律拒绝，不做截断
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


@dataclass(frozen=True)
class PutawayResult:
    success: bool
    message: str
    remaining: int
    already_put_away: int
    is_completed: bool
    shipment_completed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class PutawayService:
    """
    上架事务协调器（暂存位 → 存储位）

    一次 putaway 调用 = 一个独立事务（UnitOfWork 自己开 session）：

      1) 锁定到货行（按 company 隔离）             → NotFound
      2) quantity <= 0                              → InvalidQuantity
      3) quantity > remaining                       → OverPutaway
      4) 锁定目标库位：启用中 + 同公司 + Storage    → NotFound / WrongLocationCategory
      5) 目标库位容量                               → CapacityExceeded
      6) 到货通知的暂存库位                         → HoldingLocationMissing
      7) 暂存位上该商品库存                         → InsufficientQuantity
      8) 同一事务内：
           目标位 reserve → 暂存位 release → 暂存库存扣减（归零删除）
           → 目标库存累加 → 到货行推进 → 全部行完成则到货通知置 Processed

    加锁顺序固定：到货行 → 目标库位 → 暂存库位 → 暂存库存 → 目标库存。
    任何一步失败整笔回滚；非领域异常统一包装为 PutawayInternalError（可重试）。
    审计在提交之后发出，失败不影响结果。
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        audit_sink: Optional[AuditSink] = None,
        settings: Optional[AppSettings] = None,
        ledger: Optional[CapacityLedger] = None,
        inventory: Optional[InventoryStore] = None,
        tracker: Optional[ShipmentLineTracker] = None,
    ) -> None:
        self._session_factory = session_factory
        self.audit_sink: AuditSink = audit_sink or LogAuditSink()
        self.settings = settings or get_settings()
        self.ledger = ledger or CapacityLedger()
        self.inventory = inventory or InventoryStore()
        self.tracker = tracker or ShipmentLineTracker()

    async def putaway(
        self,
        ctx: TenantContext,
        shipment_line_id: int,
        quantity: int,
        target_location_id: int,
        notes: Optional[str] = None,
    ) -> PutawayResult:
        started = time.perf_counter()
        logger.info(
            "putaway start: company=%s line=%s qty=%s target=%s",
            ctx.company_id,
            shipment_line_id,
            quantity,
            target_location_id,
        )

        try:
            async with UnitOfWork(self._session_factory) as uow:
                result, records = await self._putaway_in_tx(
                    uow.session,
                    ctx,
                    shipment_line_id=shipment_line_id,
                    quantity=quantity,
                    target_location_id=target_location_id,
                    notes=notes,
                )
        except PutawayError as e:
            PUTAWAY_FAILURES.labels(code=e.code).inc()
            logger.info(
                "putaway rejected: line=%s target=%s code=%s msg=%s",
                shipment_line_id,
                target_location_id,
                e.code,
                e.message,
            )
            raise
        except Exception as e:
            PUTAWAY_FAILURES.labels(code=PutawayInternalError.code).inc()
            logger.exception(
                "putaway failed, rolled back: company=%s line=%s qty=%s target=%s",
                ctx.company_id,
                shipment_line_id,
                quantity,
                target_location_id,
            )
            raise PutawayInternalError(
                line_id=shipment_line_id, target_location_id=target_location_id
            ) from e

        PUTAWAY_COMMITS.inc()
        PUTAWAY_LATENCY.observe(time.perf_counter() - started)
        logger.info(
            "putaway committed: line=%s qty=%s target=%s remaining=%s shipment_completed=%s",
            shipment_line_id,
            quantity,
            target_location_id,
            result.remaining,
            result.shipment_completed,
        )

        await emit_after_commit(self.audit_sink, ctx, records)
        return result

    # ------------------------------------------------------------------ #
    # 事务内主体
    # ------------------------------------------------------------------ #
    async def _putaway_in_tx(
        self,
        session: AsyncSession,
        ctx: TenantContext,
        *,
        shipment_line_id: int,
        quantity: int,
        target_location_id: int,
        notes: Optional[str],
    ) -> Tuple[PutawayResult, List[AuditRecord]]:
        # 1) 到货行
        line = await self.tracker.load(session, ctx, shipment_line_id, for_update=True)

        # 2) / 3) 数量
        if not _is_positive_int(quantity):
            raise InvalidQuantityError(quantity)
        remaining = self.tracker.remaining(line)
        if quantity > remaining:
            raise OverPutawayError(line.id, quantity, remaining)

        # 4) 目标库位
        target = await self.ledger.load_location(
            session, ctx, target_location_id, for_update=True
        )
        if target is None:
            raise NotFoundError("location", target_location_id)
        if target.category != LocationCategory.STORAGE:
            raise WrongLocationCategoryError(
                target.id, LocationCategory.STORAGE.value, target.category.value
            )

        # 5) 容量（只看目标位；reserve 里还会再用条件 UPDATE 守一次）
        if not target.can_accommodate(quantity):
            raise CapacityExceededError(target.id, quantity, target.available_capacity)

        # 6) 暂存库位
        shipment = await self.tracker.load_shipment(session, ctx, line.shipment_id)
        if shipment.holding_location_id is None:
            raise HoldingLocationMissingError(shipment.id)
        holding = await self.ledger.load_location(
            session, ctx, shipment.holding_location_id, for_update=True, active_only=False
        )
        if holding is None:
            raise HoldingLocationMissingError(shipment.id)
        if holding.category != LocationCategory.HOLDING:
            raise WrongLocationCategoryError(
                holding.id, LocationCategory.HOLDING.value, holding.category.value
            )

        # 7) 暂存库存
        holding_inv = await self.inventory.get(
            session, ctx, line.item_id, holding.id, for_update=True
        )
        on_hand = int(holding_inv.quantity) if holding_inv is not None else 0
        if quantity > on_hand:
            raise InsufficientQuantityError(line.item_id, holding.id, quantity, on_hand)

        # 8) 变更
        await self.ledger.reserve(session, ctx, target, quantity)
        await self.ledger.release(session, ctx, holding, quantity)
        await self.inventory.subtract(
            session,
            ctx,
            item_id=line.item_id,
            location_id=holding.id,
            qty=quantity,
            policy=ZeroQuantityPolicy.for_category(holding.category),
        )
        target_inv, created = await self.inventory.upsert_add(
            session,
            ctx,
            item_id=line.item_id,
            location_id=target.id,
            qty=quantity,
            cost_price=line.unit_price,
            source_ref=shipment.asn_number,
            notes=notes,
        )
        await self.tracker.apply_putaway(session, ctx, line, quantity)

        shipment_completed = False
        if line.remaining_qty == 0 and await self.tracker.is_shipment_complete(
            session, ctx, shipment.id
        ):
            shipment_completed = await self._complete_shipment(session, ctx, shipment)

        if self.settings.PUTAWAY_VERIFY_CAPACITY:
            await self.ledger.verify(session, ctx, target)
            await self.ledger.verify(session, ctx, holding)

        remaining_after = self.tracker.remaining(line)
        result = PutawayResult(
            success=True,
            message=f"已上架 {quantity} 件到库位 {target.code}",
            remaining=remaining_after,
            already_put_away=int(line.put_away_qty),
            is_completed=remaining_after == 0,
            shipment_completed=shipment_completed,
        )

        records = [
            AuditRecord(
                entity_type="inventory",
                entity_id=target_inv.id,
                action="created" if created else "updated",
                ref=shipment.asn_number,
                meta={
                    "item_id": line.item_id,
                    "location_id": target.id,
                    "delta": quantity,
                    "quantity": int(target_inv.quantity),
                    "from_location_id": holding.id,
                },
            ),
            AuditRecord(
                entity_type="shipment_line",
                entity_id=line.id,
                action="putaway",
                ref=shipment.asn_number,
                meta={
                    "quantity": quantity,
                    "put_away_qty": int(line.put_away_qty),
                    "shipped_qty": int(line.shipped_qty),
                    "target_location_id": target.id,
                },
            ),
        ]
        if shipment_completed:
            records.append(
                AuditRecord(
                    entity_type="shipment",
                    entity_id=shipment.id,
                    action="completed",
                    ref=shipment.asn_number,
                    meta={"status": ShipmentStatus.PROCESSED.value},
                )
            )
        return result, records

    @staticmethod
    async def _complete_shipment(
        session: AsyncSession, ctx: TenantContext, shipment: ShipmentNotice
    ) -> bool:
        """所有行上架完成：到货通知置 Processed（只转一次）。"""
        res = await session.execute(
            update(ShipmentNotice)
            .where(ShipmentNotice.id == shipment.id)
            .where(ShipmentNotice.company_id == ctx.company_id)
            .where(ShipmentNotice.status != ShipmentStatus.PROCESSED)
            .values(status=ShipmentStatus.PROCESSED, completed_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        await session.refresh(shipment)
        return res.rowcount == 1
