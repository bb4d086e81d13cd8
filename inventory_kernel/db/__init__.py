"""Database layer - engine, base classes, types, and immutability guards."""

from inventory_kernel.db.base import UUID, Base, TrackedBase, UTCDateTime, UUIDString
from inventory_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    get_session_factory,
    init_engine_from_url,
)

__all__ = [
    "get_engine",
    "get_session",
    "get_session_factory",
    "init_engine_from_url",
    "create_tables",
    "Base",
    "TrackedBase",
    "UUIDString",
    "UTCDateTime",
    "UUID",
]
