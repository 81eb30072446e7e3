# tests/conftest.py
from __future__ import annotations

import os
from typing import AsyncGenerator

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool

# ============================================================
# 在 import wms_putaway.main 之前固定测试配置
# ============================================================
os.environ.setdefault("ENV", "test")
os.environ.setdefault("AUDIT_SINK", "db")
os.environ.setdefault("PUTAWAY_VERIFY_CAPACITY", "true")

from wms_putaway.api.deps import get_db_session_factory  # noqa: E402
from wms_putaway.core.tenant import TenantContext  # noqa: E402
from wms_putaway.db.base import init_db  # noqa: E402
from wms_putaway.db.session import create_engine_for, make_session_factory  # noqa: E402
from wms_putaway.main import app  # noqa: E402


# =========================================
# 每用例独立 SQLite 文件库（NullPool，避免跨 loop）
# =========================================
@pytest_asyncio.fixture(scope="function")
async def async_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    url = f"sqlite+aiosqlite:///{tmp_path / 'putaway.db'}"
    engine = create_engine_for(url, poolclass=NullPool)
    await init_db(engine)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture(scope="function")
def async_session_maker(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return make_session_factory(async_engine)


@pytest_asyncio.fixture(scope="function")
async def session(async_session_maker) -> AsyncGenerator[AsyncSession, None]:
    """
    造数 / 断言用 Session（用例结束时回滚未提交内容）
    """
    async with async_session_maker() as sess:
        try:
            yield sess
        finally:
            if sess.in_transaction():
                await sess.rollback()


# =========================================
# 租户上下文
# =========================================
@pytest.fixture
def ctx() -> TenantContext:
    return TenantContext(company_id=1, user_id="tester")


@pytest.fixture
def other_ctx() -> TenantContext:
    return TenantContext(company_id=2, user_id="intruder")


# =========================================
# FastAPI / httpx AsyncClient
# =========================================
@pytest_asyncio.fixture(scope="function")
async def client(async_session_maker) -> AsyncGenerator[httpx.AsyncClient, None]:
    app.dependency_overrides[get_db_session_factory] = lambda: async_session_maker
    transport = httpx.ASGITransport(app=app)
    try:
        async with httpx.AsyncClient(
            transport=transport,
            base_url="http://testserver",
            headers={"X-Company-Id": "1", "X-User-Id": "tester"},
            timeout=httpx.Timeout(10.0, connect=5.0, read=10.0, write=5.0, pool=5.0),
        ) as c:
            yield c
    finally:
        app.dependency_overrides.pop(get_db_session_factory, None)
