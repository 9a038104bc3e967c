"""Database layer - engine, base classes and column types."""

from envelope_kernel.db.base import UUID, Base, TrackedBase, UUIDString
from envelope_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    init_database,
    init_engine_from_url,
    session_scope,
)
from envelope_kernel.db.types import MoneyType

__all__ = [
    "get_engine",
    "get_session",
    "create_tables",
    "init_database",
    "init_engine_from_url",
    "session_scope",
    "Base",
    "TrackedBase",
    "UUIDString",
    "UUID",
    "MoneyType",
]
