# wms_putaway/main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from wms_putaway.api.routers.locations import router as locations_router
from wms_putaway.api.routers.putaway import router as putaway_router
from wms_putaway.core.config import get_settings
from wms_putaway.core.logging import setup_logging
from wms_putaway.db.base import init_db
from wms_putaway.db.session import close_engine, get_engine
from wms_putaway.http_problem_handlers import register_exception_handlers
from wms_putaway.metrics import router as metrics_router

logger = logging.getLogger("wms_putaway")


@asynccontextmanager
async def lifespan(_app: FastAPI):
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL)
    # 本项目不带迁移工具：dev / test 环境启动时按模型建表
    if settings.ENV.lower() in ("dev", "test"):
        await init_db(get_engine())
    logger.info("wms-putaway started (env=%s)", settings.ENV)
    try:
        yield
    finally:
        await close_engine()


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(
        title="WMS Putaway",
        version="0.1.0",
        debug=settings.DEBUG,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    register_exception_handlers(app)

    # ===========================
    #          挂载路由
    # ===========================
    # 上架（单行 / 整单自动 / 查询 / 库位建议）
    app.include_router(putaway_router)
    # 到货落暂存位 + 库位容量
    app.include_router(locations_router)
    # 观测
    app.include_router(metrics_router)

    @app.get("/ping")
    async def ping():
        return {"pong": True}

    return app


app = create_app()
