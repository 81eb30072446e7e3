# wms_putaway/db/uow.py
"""
UnitOfWork：一次业务调用 = 一个事务。

    async with UnitOfWork(session_factory) as uow:
        await ledger.reserve(uow.session, ctx, loc, qty)

- 正常退出 commit；抛异常 rollback，异常继续向外传播；
- 传入 session 工厂：UoW 自己开 session，退出时关闭；
- 传入现成 AsyncSession：只负责提交 / 回滚，不关闭（调用方还要用）。
"""

from __future__ import annotations

from typing import Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

SessionSource = Union[AsyncSession, async_sessionmaker[AsyncSession]]


class UnitOfWork:
    def __init__(self, source: SessionSource) -> None:
        self._source = source
        self._owns_session = not isinstance(source, AsyncSession)
        self.session: Optional[AsyncSession] = None

    async def __aenter__(self) -> "UnitOfWork":
        if self._owns_session:
            self.session = self._source()
        else:
            self.session = self._source
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        session = self.session
        if session is None:
            return False
        try:
            if exc_type is None:
                await session.commit()
            else:
                await session.rollback()
        finally:
            if self._owns_session:
                self.session = None
                await session.close()
        return False
