# wms_putaway/services/audit_writer.py
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol, Sequence

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from wms_putaway.core.tenant import TenantContext
from wms_putaway.db.uow import UnitOfWork
from wms_putaway.models.audit_event import AuditEvent

logger = logging.getLogger("wms_putaway.audit")


@dataclass(frozen=True)
class AuditRecord:
    """一条待写的审计事件（在业务事务里收集，提交后再发出）。"""

    entity_type: str
    entity_id: int
    action: str
    ref: Optional[str] = None
    meta: Dict[str, Any] = field(default_factory=dict)


class AuditSink(Protocol):
    async def emit(self, ctx: TenantContext, records: Sequence[AuditRecord]) -> None: ...


class LogAuditSink:
    """只打日志，不落库。"""

    async def emit(self, ctx: TenantContext, records: Sequence[AuditRecord]) -> None:
        for r in records:
            logger.info(
                "[audit] company=%s user=%s %s:%s %s ref=%s %s",
                ctx.company_id,
                ctx.actor,
                r.entity_type,
                r.entity_id,
                r.action,
                r.ref,
                json.dumps(r.meta, ensure_ascii=False, default=str),
            )


class DbAuditSink:
    """
    审计写入器：

    - 在自己的短事务里写 audit_events（业务事务已提交之后）；
    - 写入失败只记 WARNING，不影响主流程（上架结果已经生效）。
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def emit(self, ctx: TenantContext, records: Sequence[AuditRecord]) -> None:
        if not records:
            return
        try:
            async with UnitOfWork(self._session_factory) as uow:
                uow.session.add_all(
                    [
                        AuditEvent(
                            company_id=ctx.company_id,
                            entity_type=r.entity_type,
                            entity_id=r.entity_id,
                            action=r.action,
                            ref=r.ref,
                            meta=json.loads(json.dumps(r.meta, default=str)),
                            user_id=ctx.user_id,
                        )
                        for r in records
                    ]
                )
        except Exception as e:
            logger.warning("audit_events insert failed (%d records): %s", len(records), e)
            await LogAuditSink().emit(ctx, records)


async def emit_after_commit(
    sink: AuditSink, ctx: TenantContext, records: Sequence[AuditRecord]
) -> None:
    """
    业务事务提交后发审计：任何 sink 抛错都只记 WARNING，
    不能让已经生效的上架 / 到货在调用方看来“失败”。
    """
    try:
        await sink.emit(ctx, records)
    except Exception:
        logger.warning(
            "audit emit failed (%d records, sink=%s)",
            len(records),
            type(sink).__name__,
            exc_info=True,
        )


def build_audit_sink(
    kind: str, session_factory: async_sessionmaker[AsyncSession]
) -> AuditSink:
    """AUDIT_SINK=db → DbAuditSink；其余 → LogAuditSink。"""
    if (kind or "").strip().lower() == "db":
        return DbAuditSink(session_factory)
    return LogAuditSink()
