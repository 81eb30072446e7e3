# wms_putaway/db/base.py
from __future__ import annotations

import importlib
import logging
import pkgutil
from typing import Iterator

from sqlalchemy.ext.asyncio import AsyncEngine
from sqlalchemy.orm import DeclarativeBase, configure_mappers

log = logging.getLogger("wms_putaway.models")


class Base(DeclarativeBase):
    """全局唯一 ORM Base"""

    pass


_INITIALIZED: bool = False  # 防重复初始化


def _iter_model_modules(pkg_name: str = "wms_putaway.models") -> Iterator[str]:
    """发现 wms_putaway.models.* 下的所有模块（排除以下划线开头的内部模块）"""
    pkg = importlib.import_module(pkg_name)
    for _, name, _ in pkgutil.walk_packages(list(pkg.__path__), prefix=pkg_name + "."):
        if name.rsplit(".", 1)[-1].startswith("_"):
            continue
        yield name


def init_models(*, force: bool = False) -> None:
    """
    集中导入模型 + 固化关系映射：
      1) 递归导入 wms_putaway.models.*（保证字符串关系目标类已注册）
      2) 统一 configure_mappers()
    """
    global _INITIALIZED
    if _INITIALIZED and not force:
        return

    loaded = 0
    for mod in _iter_model_modules():
        importlib.import_module(mod)
        loaded += 1

    configure_mappers()
    _INITIALIZED = True
    log.info("ORM models initialized & mappers configured (loaded %d modules)", loaded)


async def init_db(engine: AsyncEngine, *, drop_first: bool = False) -> None:
    """按模型建表（本项目不带迁移工具；测试 / 本地直接 create_all）。"""
    init_models()
    async with engine.begin() as conn:
        if drop_first:
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
