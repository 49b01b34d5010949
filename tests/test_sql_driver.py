"""Tests for the SQLAlchemy driver against a real SQLite database."""

import datetime
import decimal
import sqlite3
from unittest.mock import MagicMock

import pytest
from sqlalchemy import Date, Integer, Interval, LargeBinary, Numeric, String, event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.types import NullType

from dbscope.config import Settings
from dbscope.db import types
from dbscope.db.connection import ConnectionConfig, SessionHandle
from dbscope.drivers import Cursor, NativeConnection, get_driver
from dbscope.drivers.sql import (
    SQLConnection,
    SQLDriver,
    column_type_code,
    normalize_drivername,
    python_type_code,
)
from dbscope.errors import ConnectionFailedError, DriverError
from dbscope.services import QueryService, SchemaService


@pytest.fixture
def sales_db(tmp_path):
    """SQLite database with two tables and a view."""
    path = tmp_path / "sales.db"
    conn = sqlite3.connect(path)
    conn.executescript(
        """
        CREATE TABLE orders (
            id INTEGER NOT NULL PRIMARY KEY,
            customer VARCHAR(64) NOT NULL,
            amount NUMERIC(12, 2),
            note TEXT
        );
        CREATE TABLE customers (
            id INTEGER NOT NULL PRIMARY KEY,
            email VARCHAR(128)
        );
        CREATE UNIQUE INDEX ix_customers_email ON customers (email);
        CREATE VIEW order_summary AS
            SELECT customer, COUNT(*) AS order_count FROM orders GROUP BY customer;
        INSERT INTO orders VALUES (1, 'acme', 10.5, NULL);
        INSERT INTO orders VALUES (2, 'globex', 20, '');
        INSERT INTO orders VALUES (3, 'acme', 7.25, 'rush');
        INSERT INTO orders VALUES (4, 'initech', 1, 'late');
        """
    )
    conn.commit()
    conn.close()
    return str(path)


@pytest.fixture
def native(sales_db):
    connection = SQLDriver("sqlite").open("localhost", 1, "unused", "")
    connection.open_database(sales_db)
    yield connection
    connection.close()


class TestTypeMapping:
    def test_python_type_codes(self):
        assert python_type_code(bool) == types.INTEGER
        assert python_type_code(int) == types.INTEGER
        assert python_type_code(float) == types.REAL
        assert python_type_code(decimal.Decimal) == types.NUMERIC
        assert python_type_code(datetime.datetime) == types.TIMESTAMP
        assert python_type_code(datetime.date) == types.DATE
        assert python_type_code(datetime.time) == types.TIME
        assert python_type_code(datetime.timedelta) == types.INTERVAL
        assert python_type_code(bytes) == types.OBJECT
        assert python_type_code(str) == types.VARCHAR
        assert python_type_code(dict) is None

    def test_column_type_codes(self):
        assert column_type_code(Integer()) == types.INTEGER
        assert column_type_code(String(10)) == types.VARCHAR
        assert column_type_code(Numeric(12, 2)) == types.NUMERIC
        assert column_type_code(Date()) == types.DATE
        assert column_type_code(Interval()) == types.INTERVAL
        assert column_type_code(LargeBinary()) == types.OBJECT

    def test_column_type_without_python_type(self):
        assert column_type_code(NullType()) == types.VARCHAR

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("postgres", "postgresql"),
            ("postgres+psycopg2", "postgresql+psycopg2"),
            ("postgresql", "postgresql"),
            ("mysql+pymysql", "mysql+pymysql"),
        ],
    )
    def test_normalize_drivername(self, name, expected):
        assert normalize_drivername(name) == expected


class TestSQLDriver:
    def test_satisfies_protocols(self, native):
        assert isinstance(native, NativeConnection)
        assert isinstance(native.cursor(), Cursor)

    def test_open_does_not_connect(self):
        connection = SQLDriver("sqlite").open("h", 1, "u", "p")
        assert not connection.is_open
        assert connection.database == ""

    def test_get_driver_uses_settings(self):
        driver = get_driver(Settings(driver="postgres+psycopg2"))
        assert isinstance(driver, SQLDriver)
        assert driver.drivername == "postgresql+psycopg2"

    def test_build_url(self):
        connection = SQLConnection("postgresql", "db.local", 5432, "u", "p@ss")
        url = connection.build_url("sales")
        assert url.host == "db.local"
        assert url.port == 5432
        assert url.username == "u"
        assert url.password == "p@ss"
        assert url.database == "sales"

    def test_build_url_file_based(self):
        url = SQLConnection("sqlite", "ignored", 1, "u", "p").build_url("/tmp/x.db")
        assert url.host is None
        assert url.database == "file:/tmp/x.db"
        assert url.query == {"mode": "rw", "uri": "true"}

    def test_missing_file_is_not_created(self, tmp_path):
        """A mistyped database path fails instead of creating an empty file."""
        path = tmp_path / "typo.db"
        connection = SQLDriver("sqlite").open("h", 1, "u", "")
        with pytest.raises(DriverError, match="Failed to open database"):
            connection.open_database(str(path))
        assert not connection.is_open
        assert not path.exists()

    def test_open_database_failure(self, tmp_path):
        connection = SQLDriver("sqlite").open("h", 1, "u", "")
        with pytest.raises(DriverError, match="Failed to open database"):
            connection.open_database(str(tmp_path / "missing" / "nested" / "x.db"))
        assert not connection.is_open

    def test_close(self, native):
        assert native.is_open
        native.close()
        assert not native.is_open
        assert native.database == ""
        native.close()

    def test_operations_require_open_database(self):
        connection = SQLDriver("sqlite").open("h", 1, "u", "")
        with pytest.raises(DriverError, match="No database is open"):
            connection.list_tables()


class TestSQLConnectionIntrospection:
    def test_list_tables_then_views(self, native):
        names = [t.name for t in native.list_tables()]
        assert sorted(names[:2]) == ["customers", "orders"]
        assert names[2:] == ["order_summary"]

    def test_view_info(self, native):
        assert native.get_view_info("order_summary").view_type != 0
        assert native.get_view_info("orders") is None

    def test_get_schema(self, native):
        columns = {c.name: c for c in native.get_schema("orders")}

        assert list(columns) == ["id", "customer", "amount", "note"]
        assert columns["id"].type_code == types.INTEGER
        assert columns["id"].null_flag != 0
        assert columns["id"].unique is True
        assert columns["customer"].type_code == types.VARCHAR
        assert columns["customer"].precision == 64
        assert columns["customer"].null_flag != 0
        assert columns["amount"].type_code == types.NUMERIC
        assert (columns["amount"].precision, columns["amount"].scale) == (12, 2)
        assert columns["note"].null_flag == 0
        assert columns["note"].unique is False

    def test_unique_index(self, native):
        columns = {c.name: c for c in native.get_schema("customers")}
        assert columns["email"].unique is True

    def test_display_name_defaults_to_name(self, native):
        assert all(c.display_name == c.name for c in native.get_schema("orders"))

    def test_missing_table(self, native):
        assert native.get_schema("nope") == []

    def test_quote_identifier(self, native):
        assert native.quote_identifier("order") == '"order"'
        assert native.quote_identifier("orders") == "orders"


class TestSQLCursor:
    def test_select_one(self, native):
        cursor = native.cursor()
        cursor.execute("SELECT 1")
        assert cursor.fetchall() == [(1,)]
        [column] = cursor.description
        assert (column.name, column.display_name, column.type_code) == ("1", "1", types.INTEGER)
        cursor.close()

    def test_fetchmany(self, native):
        cursor = native.cursor()
        cursor.execute("SELECT id FROM orders ORDER BY id")
        assert cursor.fetchmany(2) == [(1,), (2,)]
        cursor.close()

    def test_null_column_defaults_to_varchar(self, native):
        cursor = native.cursor()
        cursor.execute("SELECT NULL AS empty")
        assert cursor.fetchall() == [(None,)]
        assert cursor.description[0].type_code == types.VARCHAR
        cursor.close()

    def test_statement_without_rows(self, native):
        cursor = native.cursor()
        cursor.execute("CREATE TABLE scratch (a INTEGER)")
        assert cursor.fetchall() == []
        assert cursor.description == []
        cursor.close()

    def test_invalid_sql(self, native):
        cursor = native.cursor()
        with pytest.raises(DriverError, match="Failed to execute SQL"):
            cursor.execute("SELEC nonsense")
        cursor.close()

    def test_statement_sent_without_parameters(self, native):
        """Percent signs reach the DBAPI untouched, with no parameter set."""
        seen = []

        @event.listens_for(native._engine, "before_cursor_execute")
        def record(conn, cursor, statement, parameters, context, executemany):
            seen.append((statement, context.no_parameters))

        sql = "SELECT customer FROM orders WHERE customer LIKE 'a%' ORDER BY id"
        cursor = native.cursor()
        cursor.execute(sql)
        assert cursor.fetchall() == [("acme",), ("acme",)]
        cursor.close()
        assert seen == [(sql, True)]

    def test_modulo_operator(self, native):
        cursor = native.cursor()
        cursor.execute("SELECT 10 % 3")
        assert cursor.fetchall() == [(1,)]
        cursor.close()

    def test_close_failure_raises_driver_error(self, native):
        cursor = native.cursor()
        cursor.execute("SELECT 1")
        result = cursor._result
        failing = MagicMock()
        failing.close.side_effect = SQLAlchemyError("close failed")
        cursor._result = failing

        with pytest.raises(DriverError, match="close failed"):
            cursor.close()
        assert cursor._result is None
        assert cursor.description == []
        result.close()
        cursor.close()


class TestSQLiteEndToEnd:
    """Services over a real database through the session layer."""

    @pytest.fixture
    def session(self, sales_db):
        config = ConnectionConfig("localhost", 1, "unused", "", sales_db)
        handle = SessionHandle(SQLDriver("sqlite"))
        handle.connect(config)
        yield handle
        handle.disconnect()

    def test_connect_to_missing_database_fails(self, tmp_path):
        path = tmp_path / "typo.db"
        handle = SessionHandle(SQLDriver("sqlite"))
        with pytest.raises(ConnectionFailedError):
            handle.connect(ConnectionConfig("localhost", 1, "unused", "", str(path)))
        assert not handle.is_connected()
        assert not path.exists()

    def test_list_tables(self, session, sales_db):
        listing = SchemaService(session).list_tables()
        assert listing.database == sales_db
        assert sorted(listing.tables) == ["customers", "orders"]
        assert listing.views == ["order_summary"]
        assert listing.total_count == 3

    def test_metadata_with_samples(self, session):
        metadata = SchemaService(session).get_table_metadata("orders", 2)
        assert [c.name for c in metadata.columns] == ["id", "customer", "amount", "note"]
        assert metadata.columns[0].nullable is False
        assert metadata.columns[3].nullable is True
        assert len(metadata.sample_data) == 2
        assert metadata.sample_data[0][:2] == ["1", "acme"]
        assert metadata.sample_data[0][3] is None

    def test_execute_query(self, session):
        result = QueryService(session).execute_query(
            "SELECT customer, note FROM orders ORDER BY id"
        )
        assert [c.name for c in result.columns] == ["customer", "note"]
        assert result.rows == [
            ["acme", None],
            ["globex", ""],
            ["acme", "rush"],
            ["initech", "late"],
        ]
        assert result.row_count == 4

    def test_writes_are_committed(self, session, sales_db):
        QueryService(session).execute_query("INSERT INTO customers VALUES (9, 'x@y.z')")
        conn = sqlite3.connect(sales_db)
        try:
            assert conn.execute("SELECT email FROM customers WHERE id = 9").fetchone() == (
                "x@y.z",
            )
        finally:
            conn.close()
