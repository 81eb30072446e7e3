# wms_putaway/core/logging.py
from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

# 第三方 logger：平时只看 WARNING 以上
_NOISY_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool", "aiosqlite", "httpx")


def setup_logging(level: str = "INFO") -> None:
    """
    进程启动时调用一次：根 logger 只挂一个 stdout handler（重复调用不会叠加），
    业务 logger 统一挂在 "wms_putaway.*" 下。LOG_LEVEL=DEBUG 时放开 SQL 日志。
    """
    lvl = (level or "INFO").upper()
    root = logging.getLogger()
    root.setLevel(lvl)
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)

    quiet = logging.INFO if lvl == "DEBUG" else logging.WARNING
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(quiet)
    logging.getLogger("uvicorn.access").setLevel(logging.INFO)
