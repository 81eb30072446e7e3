# wms_putaway/db/session.py
# 统一的异步引擎 / 会话工厂 + FastAPI 依赖（get_session）
from __future__ import annotations

import logging
import re
from collections.abc import AsyncGenerator
from functools import lru_cache
from typing import Any

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from wms_putaway.core.config import get_settings

log = logging.getLogger("wms_putaway.db")


# ---- DSN 归一：把 DSN 统一到 psycopg3 与 aiosqlite ----
def normalize_async_dsn(url: str) -> str:
    url = (url or "").strip()
    # 有些环境会把值写成 '"postgresql+psycopg://.../wms"'，这里统一剥掉两侧引号
    if len(url) >= 2 and url[0] == url[-1] and url[0] in ("'", '"'):
        url = url[1:-1].strip()
    # sqlite:/// → sqlite+aiosqlite:///
    if url.startswith("sqlite:///"):
        return "sqlite+aiosqlite://" + url[len("sqlite://") :]
    # postgres/postgresql(+*) → postgresql+psycopg
    if url.startswith("postgresql+asyncpg://") or url.startswith("postgres+asyncpg://"):
        return re.sub(r"^postgres(?:ql)?\+asyncpg://", "postgresql+psycopg://", url)
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+psycopg://", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


def _install_sqlite_immediate_tx(engine: AsyncEngine) -> None:
    """
    SQLite 下让每个事务都以 BEGIN IMMEDIATE 开始：
    写事务在 begin 时就拿到 RESERVED 锁，读-判断-写之间不会被其他写者插队。
    （PG 走 SELECT ... FOR UPDATE，不需要这一步）
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, _record):  # pragma: no cover - driver hook
        # 关掉驱动自己的隐式 BEGIN，由下面的 begin 事件接管
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):  # pragma: no cover - driver hook
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_engine_for(url: str, *, echo: bool = False, **engine_kwargs: Any) -> AsyncEngine:
    """
    统一引擎工厂：
    - PostgreSQL(psycopg): pool_pre_ping + application_name
    - SQLite(aiosqlite):   busy timeout + BEGIN IMMEDIATE
    """
    dsn = normalize_async_dsn(url)
    backend = make_url(dsn).get_backend_name()

    kwargs: dict[str, Any] = {"echo": echo}
    if backend.startswith("postgresql"):
        kwargs["pool_pre_ping"] = True
        kwargs["connect_args"] = {"application_name": "wms-putaway"}
    elif backend.startswith("sqlite"):
        kwargs["connect_args"] = {"timeout": get_settings().SQLITE_BUSY_TIMEOUT}

    kwargs.update(engine_kwargs)
    engine = create_async_engine(dsn, **kwargs)
    if backend.startswith("sqlite"):
        _install_sqlite_immediate_tx(engine)

    log.info("[DB] Using DSN (async): %s", engine.url.render_as_string(hide_password=True))
    return engine


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@lru_cache
def get_engine() -> AsyncEngine:
    settings = get_settings()
    return create_engine_for(settings.DATABASE_URL, echo=settings.SQL_ECHO)


@lru_cache
def get_session_factory() -> async_sessionmaker[AsyncSession]:
    return make_session_factory(get_engine())


# ---- FastAPI 依赖 ----
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with get_session_factory()() as session:
        yield session


# ---- 关闭引擎（测试/生命周期） ----
async def close_engine() -> None:
    if get_engine.cache_info().currsize:
        await get_engine().dispose()
        get_engine.cache_clear()
        get_session_factory.cache_clear()
