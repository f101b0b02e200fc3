"""Database layer - engine, base classes, unit of work, immutability."""

from labour_kernel.db.base import UUID, Base, TrackedBase, UTCDateTime, UUIDString
from labour_kernel.db.engine import (
    build_engine,
    create_tables,
    drop_tables,
    engine_from_config,
)
from labour_kernel.db.unit_of_work import UnitOfWork

__all__ = [
    "build_engine",
    "create_tables",
    "drop_tables",
    "engine_from_config",
    "Base",
    "TrackedBase",
    "UUIDString",
    "UTCDateTime",
    "UUID",
    "UnitOfWork",
]
