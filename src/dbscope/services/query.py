"""SQL statement execution."""

import logging

from dbscope.db.connection import SessionHandle
from dbscope.errors import DriverError, InvalidArgumentError, QueryError
from dbscope.formatting import format_query_result
from dbscope.models import QueryResult

logger = logging.getLogger(__name__)


class QueryService:
    """Runs caller-supplied SQL over one connected session."""

    def __init__(self, session: SessionHandle) -> None:
        if session is None:
            raise InvalidArgumentError("SessionHandle cannot be null")
        self.session = session

    def execute_query(self, sql: str) -> QueryResult:
        """Execute a statement verbatim and return every row.

        The full result is materialized in memory.

        Raises:
            InvalidArgumentError: If sql is blank
            NotConnectedError: If the session is not connected
            QueryError: If the driver fails
        """
        if not isinstance(sql, str) or not sql.strip():
            raise InvalidArgumentError("SQL query cannot be null or empty")

        native = self.session.require_connection()

        logger.info(f"Executing SQL query: {sql[:100]}")

        cursor = native.cursor()
        try:
            cursor.execute(sql)
            rows = cursor.fetchall()
            description = cursor.description
        except DriverError as e:
            logger.error(f"Failed to execute query: {e}")
            raise QueryError(f"Failed to execute query: {e}") from e
        finally:
            cursor.close()

        return format_query_result(description, rows)
