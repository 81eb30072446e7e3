# wms_putaway/api/deps.py
from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from wms_putaway.api.problem import raise_problem
from wms_putaway.core.config import AppSettings, get_settings
from wms_putaway.core.tenant import TenantContext
from wms_putaway.db.session import get_session_factory
from wms_putaway.services.audit_writer import AuditSink, build_audit_sink
from wms_putaway.services.bulk_putaway import BulkPutawayPlanner
from wms_putaway.services.location_suggest import LocationService
from wms_putaway.services.putaway_service import PutawayService
from wms_putaway.services.receiving_service import ReceivingService


# ---------------------------
# 租户上下文（由网关 / 认证层注入的请求头）
# ---------------------------


async def get_tenant(
    x_company_id: Optional[int] = Header(default=None, alias="X-Company-Id"),
    x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
) -> TenantContext:
    if x_company_id is None:
        raise_problem(
            status_code=401,
            error_code="TENANT_REQUIRED",
            message="缺少公司上下文（X-Company-Id）",
        )
    return TenantContext(company_id=int(x_company_id), user_id=x_user_id)


# ---------------------------
# 会话工厂 / 服务装配（测试里 dependency_overrides 替换 get_db_session_factory）
# ---------------------------


def get_db_session_factory() -> async_sessionmaker[AsyncSession]:
    return get_session_factory()


def get_audit_sink(
    sf: async_sessionmaker[AsyncSession] = Depends(get_db_session_factory),
    settings: AppSettings = Depends(get_settings),
) -> AuditSink:
    return build_audit_sink(settings.AUDIT_SINK, sf)


def get_putaway_service(
    sf: async_sessionmaker[AsyncSession] = Depends(get_db_session_factory),
    audit_sink: AuditSink = Depends(get_audit_sink),
    settings: AppSettings = Depends(get_settings),
) -> PutawayService:
    return PutawayService(sf, audit_sink=audit_sink, settings=settings)


def get_bulk_planner(
    sf: async_sessionmaker[AsyncSession] = Depends(get_db_session_factory),
    svc: PutawayService = Depends(get_putaway_service),
) -> BulkPutawayPlanner:
    return BulkPutawayPlanner(sf, svc)


def get_receiving_service(
    sf: async_sessionmaker[AsyncSession] = Depends(get_db_session_factory),
    audit_sink: AuditSink = Depends(get_audit_sink),
) -> ReceivingService:
    return ReceivingService(sf, audit_sink=audit_sink)


def get_location_service(
    sf: async_sessionmaker[AsyncSession] = Depends(get_db_session_factory),
    audit_sink: AuditSink = Depends(get_audit_sink),
) -> LocationService:
    return LocationService(sf, audit_sink=audit_sink)
