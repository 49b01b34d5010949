"""Table listing and table metadata retrieval."""

import logging

from dbscope.db.connection import SessionHandle
from dbscope.db.scopes import ScopeRegistry
from dbscope.errors import (
    DriverError,
    InvalidArgumentError,
    QueryError,
    TableNotFoundError,
    UnknownScopeError,
)
from dbscope.formatting import format_table_listing, format_table_metadata
from dbscope.models import TableListing, TableMetadata

logger = logging.getLogger(__name__)

DEFAULT_SAMPLE_ROWS = 3


def validate_metadata_request(table_name: str | None, sample_rows: int) -> None:
    """Validate get_table_metadata arguments.

    Raises:
        InvalidArgumentError: If the table name is blank or sample_rows is negative
    """
    if not isinstance(table_name, str) or not table_name.strip():
        raise InvalidArgumentError("Table name cannot be null or empty")
    if isinstance(sample_rows, bool) or not isinstance(sample_rows, int):
        raise InvalidArgumentError("Sample rows must be an integer")
    if sample_rows < 0:
        raise InvalidArgumentError("Sample rows must be non-negative")


class SchemaService:
    """Lists tables and describes them over one connected session."""

    def __init__(self, session: SessionHandle) -> None:
        if session is None:
            raise InvalidArgumentError("SessionHandle cannot be null")
        self.session = session

    def list_tables(
        self, scope_name: str | None = None, scopes: ScopeRegistry | None = None
    ) -> TableListing:
        """List tables and views of the open database.

        Args:
            scope_name: Optional scope to filter by. Blank means no filter.
            scopes: Scope registry the scope is looked up in.

        Returns:
            Tables and views in the driver's native order

        Raises:
            NotConnectedError: If the session is not connected
            UnknownScopeError: If scope_name is not defined
            QueryError: If the driver fails
        """
        native = self.session.require_connection()
        database = native.database

        logger.info(f"Retrieving table list for database: {database}")

        scope_filter = None
        if scope_name is not None and scope_name.strip():
            if scopes is None or not scopes.has_scope(scope_name):
                available = scopes.names() if scopes is not None else []
                raise UnknownScopeError(scope_name, available)
            scope_filter = scope_name
            logger.info(
                f"Applying scope filter '{scope_name}' with {len(scopes[scope_name])} table(s)"
            )

        try:
            entries = native.list_tables()
            if not entries:
                logger.warning(f"No tables found in database: {database}")
                return format_table_listing(database, [], [])

            tables: list[str] = []
            views: list[str] = []
            for entry in entries:
                if scope_filter is not None and not scopes.matches(scope_filter, entry.name):
                    continue
                view_info = native.get_view_info(entry.name)
                if view_info is not None and view_info.view_type != 0:
                    views.append(entry.name)
                else:
                    tables.append(entry.name)
        except DriverError as e:
            logger.error(f"Failed to retrieve table list: {e}")
            raise QueryError(f"Failed to retrieve table list: {e}") from e

        suffix = f" (filtered by scope: {scope_filter})" if scope_filter else ""
        logger.info(f"Found {len(tables)} tables and {len(views)} views{suffix}")
        return format_table_listing(database, tables, views)

    def get_table_metadata(
        self, table_name: str, sample_rows: int = DEFAULT_SAMPLE_ROWS
    ) -> TableMetadata:
        """Get column metadata and up to ``sample_rows`` sample rows.

        Arguments are validated before the connection state is checked.

        Raises:
            InvalidArgumentError: If table_name is blank or sample_rows is negative
            NotConnectedError: If the session is not connected
            TableNotFoundError: If the table has no columns
            QueryError: If the driver fails
        """
        validate_metadata_request(table_name, sample_rows)

        native = self.session.require_connection()

        logger.info(f"Retrieving metadata for table: {table_name} with {sample_rows} sample rows")

        try:
            schema = native.get_schema(table_name)
            if not schema:
                raise TableNotFoundError(table_name)

            samples = []
            if sample_rows > 0:
                sql = f"SELECT * FROM {native.quote_identifier(table_name)} LIMIT {sample_rows}"
                cursor = native.cursor()
                try:
                    cursor.execute(sql)
                    samples = cursor.fetchmany(sample_rows)
                finally:
                    cursor.close()
        except DriverError as e:
            logger.error(f"Failed to retrieve metadata for table {table_name}: {e}")
            raise QueryError(f"Failed to retrieve metadata for table {table_name}: {e}") from e

        return format_table_metadata(table_name, schema, samples)
