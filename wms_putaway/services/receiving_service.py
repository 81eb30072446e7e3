# wms_putaway/services/receiving_service.py
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from wms_putaway.core.tenant import TenantContext
from wms_putaway.db.uow import UnitOfWork
from wms_putaway.metrics import RECEIVED
from wms_putaway.models.enums import RECEIVABLE_STATUSES, LocationCategory, ShipmentStatus
from wms_putaway.services.audit_writer import (
    AuditRecord,
    AuditSink,
    LogAuditSink,
    emit_after_commit,
)
from wms_putaway.services.capacity_ledger import CapacityLedger
from wms_putaway.services.errors import (
    HoldingLocationMissingError,
    ShipmentStateError,
    WrongLocationCategoryError,
)
from wms_putaway.services.inventory_store import InventoryStore
from wms_putaway.services.shipment_line_tracker import ShipmentLineTracker

logger = logging.getLogger("wms_putaway.receiving")


@dataclass(frozen=True)
class ReceiveResult:
    shipment_id: int
    holding_location_id: int
    line_count: int
    total_quantity: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class ReceivingService:
    """
    到货落暂存位（上架的前置步骤）

    - 到货通知必须处于 Pending / In Transit；
    - 暂存库位必须已配置且类别为 Holding；
    - 一个事务内：暂存位 reserve 总到货数 → 每行累加暂存库存 → 状态置 Arrived。
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        audit_sink: Optional[AuditSink] = None,
        ledger: Optional[CapacityLedger] = None,
        inventory: Optional[InventoryStore] = None,
        tracker: Optional[ShipmentLineTracker] = None,
    ) -> None:
        self._session_factory = session_factory
        self.audit_sink: AuditSink = audit_sink or LogAuditSink()
        self.ledger = ledger or CapacityLedger()
        self.inventory = inventory or InventoryStore()
        self.tracker = tracker or ShipmentLineTracker()

    async def receive_at_holding(self, ctx: TenantContext, shipment_id: int) -> ReceiveResult:
        async with UnitOfWork(self._session_factory) as uow:
            session = uow.session
            shipment = await self.tracker.load_shipment(session, ctx, shipment_id, for_update=True)

            if shipment.status not in RECEIVABLE_STATUSES:
                raise ShipmentStateError(shipment.id, shipment.status.value, "receive")
            if shipment.holding_location_id is None:
                raise HoldingLocationMissingError(shipment.id)

            holding = await self.ledger.load_location(
                session, ctx, shipment.holding_location_id, for_update=True
            )
            if holding is None:
                raise HoldingLocationMissingError(shipment.id)
            if holding.category != LocationCategory.HOLDING:
                raise WrongLocationCategoryError(
                    holding.id, LocationCategory.HOLDING.value, holding.category.value
                )

            lines = await self.tracker.lines_of(session, ctx, shipment.id)
            if not lines:
                raise ShipmentStateError(shipment.id, shipment.status.value, "receive without lines")
            total = sum(int(ln.shipped_qty) for ln in lines)

            await self.ledger.reserve(session, ctx, holding, total)
            for ln in lines:
                await self.inventory.upsert_add(
                    session,
                    ctx,
                    item_id=ln.item_id,
                    location_id=holding.id,
                    qty=int(ln.shipped_qty),
                    cost_price=ln.unit_price,
                    source_ref=shipment.asn_number,
                )

            shipment.status = ShipmentStatus.ARRIVED
            shipment.arrived_at = datetime.now(timezone.utc)

            result = ReceiveResult(
                shipment_id=shipment.id,
                holding_location_id=holding.id,
                line_count=len(lines),
                total_quantity=total,
            )
            asn_number = shipment.asn_number

        RECEIVED.inc()
        logger.info(
            "shipment arrived: company=%s shipment=%s holding=%s qty=%s",
            ctx.company_id,
            shipment_id,
            result.holding_location_id,
            result.total_quantity,
        )
        await emit_after_commit(
            self.audit_sink,
            ctx,
            [
                AuditRecord(
                    entity_type="shipment",
                    entity_id=shipment_id,
                    action="arrived",
                    ref=asn_number,
                    meta=result.to_dict(),
                )
            ],
        )
        return result
