"""SQL database driver backed by SQLAlchemy.

Each native connection owns its own engine with ``NullPool``: sessions are
single-use, so nothing is pooled between tool calls.
"""

import datetime
import decimal
import logging
from collections.abc import Sequence
from typing import Any
from urllib.parse import quote

from sqlalchemy import URL, Connection, Engine, create_engine, inspect
from sqlalchemy.engine import CursorResult
from sqlalchemy.exc import NoSuchTableError, SQLAlchemyError
from sqlalchemy.pool import NullPool

from dbscope.db import types
from dbscope.drivers import ColumnInfo, TableInfo, ViewInfo
from dbscope.errors import DriverError

logger = logging.getLogger(__name__)

# Dialects where the database name is a file path and host/credentials are unused
FILE_BASED_DIALECTS = {"sqlite"}

# Order matters: bool before int, datetime before date
_PYTHON_TYPE_CODES: list[tuple[type, int]] = [
    (bool, types.INTEGER),
    (int, types.INTEGER),
    (float, types.REAL),
    (decimal.Decimal, types.NUMERIC),
    (datetime.datetime, types.TIMESTAMP),
    (datetime.date, types.DATE),
    (datetime.time, types.TIME),
    (datetime.timedelta, types.INTERVAL),
    (bytes, types.OBJECT),
    (bytearray, types.OBJECT),
    (memoryview, types.OBJECT),
    (str, types.VARCHAR),
]

# PEP 249 type objects, checked in order
_DBAPI_TYPE_CODES: list[tuple[str, int]] = [
    ("NUMBER", types.NUMERIC),
    ("DATETIME", types.TIMESTAMP),
    ("BINARY", types.OBJECT),
    ("STRING", types.VARCHAR),
]


def normalize_drivername(drivername: str) -> str:
    """Normalize a driver name for SQLAlchemy ('postgres' -> 'postgresql')."""
    if drivername == "postgres" or drivername.startswith("postgres+"):
        return "postgresql" + drivername[len("postgres") :]
    return drivername


def python_type_code(python_type: type) -> int | None:
    """Map a Python value type to a driver type code."""
    for candidate, code in _PYTHON_TYPE_CODES:
        if issubclass(python_type, candidate):
            return code
    return None


def column_type_code(column_type: Any) -> int:
    """Map a SQLAlchemy column type to a driver type code.

    Types without a known Python equivalent are reported as VARCHAR, since
    every value is rendered as text anyway.
    """
    try:
        python_type = column_type.python_type
    except NotImplementedError:
        return types.VARCHAR
    code = python_type_code(python_type)
    return types.VARCHAR if code is None else code


def dbapi_type_code(dbapi: Any, type_code: Any) -> int | None:
    """Map a DBAPI description type code using the module's PEP 249 type objects."""
    if dbapi is None or type_code is None:
        return None
    for attr, code in _DBAPI_TYPE_CODES:
        type_object = getattr(dbapi, attr, None)
        if type_object is not None and type_code == type_object:
            return code
    return None


class SQLCursor:
    """Cursor over a single SQLAlchemy connection.

    Column type codes come from the first non-null value fetched for each
    column, falling back to the DBAPI type objects, then VARCHAR.
    """

    def __init__(self, connection: Connection) -> None:
        self._connection = connection
        self._result: CursorResult | None = None
        self._raw_description: list[tuple] = []
        self._value_types: dict[int, type] = {}

    @property
    def description(self) -> list[ColumnInfo]:
        dbapi = getattr(self._connection.dialect, "dbapi", None)
        columns = []
        for index, entry in enumerate(self._raw_description):
            name = str(entry[0])
            code = None
            if index in self._value_types:
                code = python_type_code(self._value_types[index])
            if code is None:
                code = dbapi_type_code(dbapi, entry[1])
            if code is None:
                code = types.VARCHAR
            columns.append(ColumnInfo(name=name, display_name=name, type_code=code))
        return columns

    def execute(self, sql: str) -> None:
        self._release()
        try:
            # no_parameters keeps "%" literal for pyformat DBAPIs
            result = self._connection.exec_driver_sql(
                sql, execution_options={"no_parameters": True}
            )
        except SQLAlchemyError as e:
            raise DriverError(f"Failed to execute SQL: {e}") from e
        self._result = result
        if result.returns_rows and result.cursor is not None:
            self._raw_description = list(result.cursor.description or [])

    def fetchall(self) -> list[Sequence[Any]]:
        if not self._has_rows():
            return []
        try:
            rows = [tuple(row) for row in self._result.fetchall()]
        except SQLAlchemyError as e:
            raise DriverError(f"Failed to fetch rows: {e}") from e
        self._observe(rows)
        return rows

    def fetchmany(self, size: int) -> list[Sequence[Any]]:
        if not self._has_rows():
            return []
        try:
            rows = [tuple(row) for row in self._result.fetchmany(size)]
        except SQLAlchemyError as e:
            raise DriverError(f"Failed to fetch rows: {e}") from e
        self._observe(rows)
        return rows

    def close(self) -> None:
        self._release()

    def _has_rows(self) -> bool:
        return self._result is not None and self._result.returns_rows

    def _observe(self, rows: list[tuple]) -> None:
        for row in rows:
            for index, value in enumerate(row):
                if value is not None and index not in self._value_types:
                    self._value_types[index] = type(value)

    def _release(self) -> None:
        result, self._result = self._result, None
        self._raw_description = []
        self._value_types = {}
        if result is not None:
            try:
                result.close()
            except SQLAlchemyError as e:
                raise DriverError(f"Failed to close cursor: {e}") from e


class SQLConnection:
    """Native connection for a SQLAlchemy-supported database."""

    def __init__(
        self, drivername: str, host: str, port: int, username: str, password: str
    ) -> None:
        self.drivername = normalize_drivername(drivername)
        self.host = host
        self.port = port
        self.username = username
        self._password = password
        self.database = ""
        self._engine: Engine | None = None
        self._connection: Connection | None = None
        self._views: list[str] | None = None

    @property
    def is_open(self) -> bool:
        return self._connection is not None and not self._connection.closed

    @property
    def dialect(self) -> str:
        return self.drivername.split("+")[0]

    def build_url(self, database: str) -> URL:
        """Build the SQLAlchemy URL for a database on this server."""
        if self.dialect in FILE_BASED_DIALECTS:
            # mode=rw: a missing file is an error, never created
            return URL.create(
                self.drivername,
                database=f"file:{quote(database)}",
                query={"mode": "rw", "uri": "true"},
            )
        return URL.create(
            self.drivername,
            username=self.username,
            password=self._password or None,
            host=self.host,
            port=self.port,
            database=database,
        )

    def open_database(self, name: str) -> None:
        engine = None
        try:
            engine = create_engine(
                self.build_url(name),
                poolclass=NullPool,
                isolation_level="AUTOCOMMIT",
            )
            connection = engine.connect()
        except (SQLAlchemyError, ImportError) as e:
            if engine is not None:
                engine.dispose()
            raise DriverError(f"Failed to open database {name}: {e}") from e
        self._engine = engine
        self._connection = connection
        self._views = None
        self.database = name
        logger.debug(f"Opened {self.dialect} database {name}")

    def close(self) -> None:
        try:
            if self._connection is not None:
                self._connection.close()
            if self._engine is not None:
                self._engine.dispose()
        except SQLAlchemyError as e:
            raise DriverError(f"Failed to close connection: {e}") from e
        finally:
            self._connection = None
            self._engine = None
            self._views = None
            self.database = ""

    def list_tables(self) -> list[TableInfo]:
        connection = self._require()
        try:
            inspector = inspect(connection)
            names = list(inspector.get_table_names())
            views = self._load_views()
        except SQLAlchemyError as e:
            raise DriverError(f"Failed to list tables: {e}") from e
        names.extend(v for v in views if v not in names)
        return [TableInfo(name=name) for name in names]

    def get_view_info(self, name: str) -> ViewInfo | None:
        self._require()
        try:
            views = self._load_views()
        except SQLAlchemyError as e:
            raise DriverError(f"Failed to get view info for {name}: {e}") from e
        return ViewInfo(name=name) if name in views else None

    def get_schema(self, table: str) -> list[ColumnInfo]:
        connection = self._require()
        try:
            inspector = inspect(connection)
            try:
                columns = inspector.get_columns(table)
            except NoSuchTableError:
                return []
            if not columns:
                return []
            unique = self._unique_columns(inspector, table)
        except SQLAlchemyError as e:
            raise DriverError(f"Failed to get schema for {table}: {e}") from e

        result = []
        for col in columns:
            col_type = col["type"]
            precision = getattr(col_type, "precision", None) or getattr(col_type, "length", None)
            scale = getattr(col_type, "scale", None)
            result.append(
                ColumnInfo(
                    name=col["name"],
                    display_name=col.get("comment") or col["name"],
                    type_code=column_type_code(col_type),
                    null_flag=0 if col.get("nullable", True) else 1,
                    precision=int(precision or 0),
                    scale=int(scale or 0),
                    unique=col["name"] in unique,
                )
            )
        return result

    def cursor(self) -> SQLCursor:
        return SQLCursor(self._require())

    def quote_identifier(self, name: str) -> str:
        return self._require().dialect.identifier_preparer.quote(name)

    def _require(self) -> Connection:
        if not self.is_open:
            raise DriverError("No database is open on this connection")
        return self._connection

    def _load_views(self) -> list[str]:
        if self._views is None:
            inspector = inspect(self._require())
            try:
                self._views = list(inspector.get_view_names())
            except NotImplementedError:
                # Some dialects don't support view introspection
                self._views = []
        return self._views

    @staticmethod
    def _unique_columns(inspector: Any, table: str) -> set[str]:
        unique: set[str] = set()
        pk = inspector.get_pk_constraint(table) or {}
        pk_columns = pk.get("constrained_columns") or []
        if len(pk_columns) == 1:
            unique.update(pk_columns)
        try:
            constraints = inspector.get_unique_constraints(table)
        except NotImplementedError:
            constraints = []
        for constraint in constraints:
            columns = constraint.get("column_names") or []
            if len(columns) == 1:
                unique.update(columns)
        try:
            indexes = inspector.get_indexes(table)
        except NotImplementedError:
            indexes = []
        for index in indexes:
            columns = index.get("column_names") or []
            # Expression indexes report None for the column
            if index.get("unique") and len(columns) == 1 and columns[0] is not None:
                unique.update(columns)
        return unique


class SQLDriver:
    """Driver that opens SQLAlchemy connections for one driver name."""

    def __init__(self, drivername: str = "postgresql") -> None:
        self.drivername = normalize_drivername(drivername)

    def open(self, host: str, port: int, username: str, password: str) -> SQLConnection:
        # Nothing is sent to the server until a database is opened.
        return SQLConnection(self.drivername, host, port, username, password)
