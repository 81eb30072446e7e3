# wms_putaway/db/__init__.py
from __future__ import annotations

from wms_putaway.db.base import Base, init_db, init_models
from wms_putaway.db.session import (
    create_engine_for,
    get_engine,
    get_session,
    get_session_factory,
    make_session_factory,
)
from wms_putaway.db.uow import UnitOfWork

__all__ = [
    "Base",
    "UnitOfWork",
    "create_engine_for",
    "get_engine",
    "get_session",
    "get_session_factory",
    "init_db",
    "init_models",
    "make_session_factory",
]
