"""Database layer - engine, base classes, and write-once guards."""

from ledger_kernel.db.base import UUID, Base, CreatedAtMixin, UUIDString
from ledger_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    get_session_factory,
    session_scope,
)

__all__ = [
    "get_engine",
    "get_session",
    "get_session_factory",
    "session_scope",
    "create_tables",
    "Base",
    "CreatedAtMixin",
    "UUIDString",
    "UUID",
]
