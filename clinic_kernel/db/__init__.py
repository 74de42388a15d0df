"""Database layer - engine, base classes, and upsert helpers."""

from clinic_kernel.db.base import Base, TrackedBase, UUIDString
from clinic_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    get_session_factory,
    init_engine_from_url,
    session_scope,
)
from clinic_kernel.db.upsert import insert_or_ignore, insert_or_update

__all__ = [
    "Base",
    "TrackedBase",
    "UUIDString",
    "create_tables",
    "get_engine",
    "get_session",
    "get_session_factory",
    "init_engine_from_url",
    "insert_or_ignore",
    "insert_or_update",
    "session_scope",
]
