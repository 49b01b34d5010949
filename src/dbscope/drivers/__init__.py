"""Driver abstraction layer.

Defines the protocols the data-access layer expects from a database driver
and provides a factory for creating the configured driver.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from dbscope.config import Settings, get_settings


@dataclass(frozen=True)
class TableInfo:
    """One entry of a database's table listing."""

    name: str


@dataclass(frozen=True)
class ViewInfo:
    """View details for a listed object. Non-zero ``view_type`` means it is a view."""

    name: str
    view_type: int = 1


@dataclass(frozen=True)
class ColumnInfo:
    """Column metadata as reported by a driver.

    ``null_flag`` is non-zero when the column carries a NOT NULL constraint.
    """

    name: str
    display_name: str
    type_code: int
    null_flag: int = 0
    precision: int = 0
    scale: int = 0
    unique: bool = False


@runtime_checkable
class Cursor(Protocol):
    """Statement cursor bound to one native connection."""

    @property
    def description(self) -> list[ColumnInfo]:
        """Columns of the last executed statement."""
        ...

    def execute(self, sql: str) -> None:
        """Execute a statement verbatim."""
        ...

    def fetchall(self) -> list[Sequence[Any]]:
        """Fetch all remaining rows."""
        ...

    def fetchmany(self, size: int) -> list[Sequence[Any]]:
        """Fetch up to ``size`` rows."""
        ...

    def close(self) -> None:
        """Release the cursor."""
        ...


@runtime_checkable
class NativeConnection(Protocol):
    """An open connection to a database server."""

    database: str

    @property
    def is_open(self) -> bool:
        """True while a database is open on this connection."""
        ...

    def open_database(self, name: str) -> None:
        """Open the named database."""
        ...

    def close(self) -> None:
        """Close the connection."""
        ...

    def list_tables(self) -> list[TableInfo]:
        """List tables and views of the open database in native order."""
        ...

    def get_view_info(self, name: str) -> ViewInfo | None:
        """Return view details, or None when ``name`` is not a view."""
        ...

    def get_schema(self, table: str) -> list[ColumnInfo]:
        """Return column metadata, empty when the table does not exist."""
        ...

    def cursor(self) -> Cursor:
        """Open a new cursor."""
        ...

    def quote_identifier(self, name: str) -> str:
        """Quote an identifier for the backing dialect."""
        ...


@runtime_checkable
class Driver(Protocol):
    """Entry point of a database driver."""

    def open(self, host: str, port: int, username: str, password: str) -> NativeConnection:
        """Open a native connection to a server."""
        ...


def get_driver(settings: Settings | None = None) -> Driver:
    """Factory: create the driver selected by ``DBSCOPE_DRIVER``.

    Args:
        settings: Optional settings. If not provided, uses cached settings.

    Returns:
        A Driver instance
    """
    from dbscope.drivers.sql import SQLDriver

    if settings is None:
        settings = get_settings()
    return SQLDriver(settings.driver)


__all__ = [
    "ColumnInfo",
    "Cursor",
    "Driver",
    "NativeConnection",
    "TableInfo",
    "ViewInfo",
    "get_driver",
]
