"""Database layer - engine, base classes, and types."""

from messflow_kernel.db.base import Base, TenantScopedBase, UUIDString
from messflow_kernel.db.engine import (
    build_engine,
    create_tables,
    get_engine,
    get_session,
    init_engine_from_url,
    session_scope,
)
from messflow_kernel.db.types import round_money, to_decimal

__all__ = [
    "build_engine",
    "init_engine_from_url",
    "get_engine",
    "get_session",
    "session_scope",
    "create_tables",
    "Base",
    "TenantScopedBase",
    "UUIDString",
    "to_decimal",
    "round_money",
]
