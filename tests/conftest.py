"""Shared fixtures: an in-memory fake driver and a clean environment."""

import pytest

from dbscope.config import reset_settings
from dbscope.db.connection import ConnectionConfig, SessionHandle
from dbscope.drivers import ColumnInfo, TableInfo, ViewInfo
from dbscope.errors import DriverError

ENV_VARS = [
    "DBSCOPE_HOST",
    "DBSCOPE_PORT",
    "DBSCOPE_USERNAME",
    "DBSCOPE_PASSWORD",
    "DBSCOPE_DATABASE",
    "DBSCOPE_DRIVER",
    "DBSCOPE_SCOPES",
    "DBSCOPE_SCOPES_FILE",
    "DBSCOPE_LOG_LEVEL",
    "DBSCOPE_MCP_TRANSPORT",
]


class FakeCursor:
    def __init__(self, connection: "FakeConnection") -> None:
        self.connection = connection
        self.executed: list[str] = []
        self.closed = False
        self._rows: list[list] = []

    @property
    def description(self) -> list[ColumnInfo]:
        return list(self.connection.query_description)

    def execute(self, sql: str) -> None:
        self.executed.append(sql)
        self.connection.executed.append(sql)
        if self.connection.execute_error:
            raise DriverError(self.connection.execute_error)
        self._rows = list(self.connection.query_rows)

    def fetchall(self) -> list[list]:
        rows, self._rows = self._rows, []
        return rows

    def fetchmany(self, size: int) -> list[list]:
        rows, self._rows = self._rows[:size], self._rows[size:]
        return rows

    def close(self) -> None:
        self.closed = True


class FakeConnection:
    """Native connection holding canned tables, views, schemas and rows."""

    def __init__(self, driver: "FakeDriver") -> None:
        self.driver = driver
        self.database = ""
        self.closed = False
        self.tables: list[str] = list(driver.tables)
        self.views: set[str] = set(driver.views)
        self.schemas: dict[str, list[ColumnInfo]] = dict(driver.schemas)
        self.query_description: list[ColumnInfo] = list(driver.query_description)
        self.query_rows: list[list] = list(driver.query_rows)
        self.execute_error: str | None = driver.execute_error
        self.executed: list[str] = []
        self.cursors: list[FakeCursor] = []

    @property
    def is_open(self) -> bool:
        return bool(self.database) and not self.closed

    def open_database(self, name: str) -> None:
        if self.driver.open_database_error:
            raise DriverError(self.driver.open_database_error)
        self.database = name

    def close(self) -> None:
        self.closed = True
        if self.driver.close_error:
            raise DriverError(self.driver.close_error)

    def list_tables(self) -> list[TableInfo]:
        if self.driver.list_error:
            raise DriverError(self.driver.list_error)
        return [TableInfo(name) for name in self.tables]

    def get_view_info(self, name: str) -> ViewInfo | None:
        return ViewInfo(name, 1) if name in self.views else None

    def get_schema(self, table: str) -> list[ColumnInfo]:
        return list(self.schemas.get(table, []))

    def cursor(self) -> FakeCursor:
        cursor = FakeCursor(self)
        self.cursors.append(cursor)
        return cursor

    def quote_identifier(self, name: str) -> str:
        return f'"{name}"'


class FakeDriver:
    def __init__(
        self,
        tables: list[str] | None = None,
        views: list[str] | None = None,
        schemas: dict[str, list[ColumnInfo]] | None = None,
        query_description: list[ColumnInfo] | None = None,
        query_rows: list[list] | None = None,
    ) -> None:
        self.tables = tables or []
        self.views = views or []
        self.schemas = schemas or {}
        self.query_description = query_description or []
        self.query_rows = query_rows or []
        self.open_error: str | None = None
        self.open_database_error: str | None = None
        self.close_error: str | None = None
        self.list_error: str | None = None
        self.execute_error: str | None = None
        self.connections: list[FakeConnection] = []

    def open(self, host: str, port: int, username: str, password: str) -> FakeConnection:
        if self.open_error:
            raise DriverError(self.open_error)
        connection = FakeConnection(self)
        self.connections.append(connection)
        return connection


ORDERS_SCHEMA = [
    ColumnInfo("id", "ID", 1, null_flag=1, precision=10, unique=True),
    ColumnInfo("customer", "Customer", 0, precision=64),
    ColumnInfo("amount", "Amount", 7, precision=12, scale=2),
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Isolate tests from the caller's DBSCOPE_* environment."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def db_env(monkeypatch):
    """A complete connection configuration in the environment."""
    monkeypatch.setenv("DBSCOPE_HOST", "db.example.com")
    monkeypatch.setenv("DBSCOPE_PORT", "6001")
    monkeypatch.setenv("DBSCOPE_USERNAME", "analyst")
    monkeypatch.setenv("DBSCOPE_PASSWORD", "s3cret")
    monkeypatch.setenv("DBSCOPE_DATABASE", "SALES")


@pytest.fixture
def config() -> ConnectionConfig:
    return ConnectionConfig("db.example.com", 6001, "analyst", "s3cret", "SALES")


@pytest.fixture
def driver() -> FakeDriver:
    return FakeDriver(
        tables=["orders", "customers", "products", "order_summary"],
        views=["order_summary"],
        schemas={"orders": ORDERS_SCHEMA},
        query_description=[ColumnInfo("1", "1", 1)],
        query_rows=[[1]],
    )


@pytest.fixture
def session(driver, config) -> SessionHandle:
    handle = SessionHandle(driver)
    handle.connect(config)
    yield handle
    handle.disconnect()


@pytest.fixture
def make_driver():
    """Factory for drivers with custom canned data."""
    return FakeDriver
