"""Database connectivity, scopes and type mapping."""

from dbscope.db.connection import ConnectionConfig, SessionHandle, open_session
from dbscope.db.scopes import ScopeRegistry
from dbscope.db.types import type_name

__all__ = [
    "ConnectionConfig",
    "ScopeRegistry",
    "SessionHandle",
    "open_session",
    "type_name",
]
