"""Database layer - engine, base classes and append-only enforcement."""

from tanda_kernel.db.base import UUID, Base, TrackedBase, UUIDString
from tanda_kernel.db.engine import (
    create_tables,
    enable_sqlite_savepoints,
    get_engine,
    get_session,
    init_engine_from_url,
    session_scope,
)

__all__ = [
    "get_engine",
    "get_session",
    "init_engine_from_url",
    "session_scope",
    "create_tables",
    "enable_sqlite_savepoints",
    "Base",
    "TrackedBase",
    "UUIDString",
    "UUID",
]
