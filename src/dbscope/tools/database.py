"""Database MCP tools.

Every tool call opens its own session from the environment configuration,
does its work, and disconnects before returning.
"""

import logging
from collections.abc import Callable
from typing import Any

from mcp.types import CallToolResult, TextContent
from pydantic import BaseModel

from dbscope.config import Settings
from dbscope.db.connection import ConnectionConfig, SessionHandle, open_session
from dbscope.db.scopes import ScopeRegistry
from dbscope.drivers import Driver, get_driver
from dbscope.errors import DbScopeError, DriverError, InvalidArgumentError
from dbscope.formatting import to_json, to_payload
from dbscope.services import DEFAULT_SAMPLE_ROWS, QueryService, SchemaService
from dbscope.services.schema import validate_metadata_request

logger = logging.getLogger(__name__)


def tool_result(model: BaseModel) -> CallToolResult:
    """Successful tool response: JSON text plus structured content."""
    return CallToolResult(
        content=[TextContent(type="text", text=to_json(model))],
        structuredContent=to_payload(model),
        isError=False,
    )


def tool_error(message: str) -> CallToolResult:
    """Error tool response. Never carries partial results."""
    return CallToolResult(
        content=[TextContent(type="text", text=f"Error: {message}")],
        isError=True,
    )


def error_message(error: Exception) -> str:
    """Human-readable message for an error reaching the tool boundary."""
    if isinstance(error, DriverError):
        return f"Database operation failed: {error}"
    if isinstance(error, DbScopeError):
        return str(error)
    return f"Internal error: {error}"


def run_with_session(
    operation: Callable[[SessionHandle], BaseModel],
    settings: Settings | None = None,
    driver: Driver | None = None,
) -> BaseModel:
    """Connect, run ``operation`` on the session, and always disconnect.

    Args:
        operation: Callable receiving the connected session
        settings: Optional settings. If not provided, reads the environment.
        driver: Optional driver. If not provided, uses the configured driver.

    Returns:
        The operation's result model
    """
    if settings is None:
        settings = Settings()
    config = ConnectionConfig.from_settings(settings)
    if driver is None:
        driver = get_driver(settings)

    with open_session(config, driver) as session:
        return operation(session)


def _respond(operation: Callable[[], BaseModel], tool: str) -> CallToolResult:
    try:
        result = operation()
    except DbScopeError as e:
        logger.error(f"{tool} failed: {e}")
        return tool_error(error_message(e))
    except Exception as e:
        logger.exception(f"{tool} failed with an unexpected error")
        return tool_error(error_message(e))
    logger.info(f"{tool} completed")
    return tool_result(result)


async def _list_tables(scope: str | None = None) -> CallToolResult:
    """List all tables and views in the database.

    Args:
        scope: Optional scope name. Only tables and views listed in that scope
            are returned. Scopes are configured with DBSCOPE_SCOPES.

    Returns:
        Database name, tables, views and total count
    """
    logger.info("Handling list_tables request")
    if scope is not None and scope.strip():
        logger.info(f"Scope filter requested: {scope}")

    def operation(session: SessionHandle) -> BaseModel:
        scopes = ScopeRegistry.from_settings()
        return SchemaService(session).list_tables(scope, scopes)

    return _respond(lambda: run_with_session(operation), "list_tables")


async def _get_metadata(
    table_name: str, sample_rows: int = DEFAULT_SAMPLE_ROWS
) -> CallToolResult:
    """Get table metadata with sample data.

    Args:
        table_name: Name of the table to get metadata for
        sample_rows: Number of sample rows to retrieve (default 3, 0 for none)

    Returns:
        Column metadata and sample rows
    """
    logger.info("Handling get_metadata request")

    def operation() -> BaseModel:
        # Validate before connecting
        validate_metadata_request(table_name, sample_rows)
        return run_with_session(
            lambda session: SchemaService(session).get_table_metadata(table_name, sample_rows)
        )

    return _respond(operation, "get_metadata")


async def _execute_query(sql_query: str) -> CallToolResult:
    """Execute a SQL query on the database.

    The statement is run as-is; all rows are returned.

    Args:
        sql_query: SQL query to execute

    Returns:
        Columns, rows and row count
    """
    logger.info("Handling execute_query request")

    def operation() -> BaseModel:
        if not isinstance(sql_query, str) or not sql_query.strip():
            raise InvalidArgumentError("sql_query parameter is required")
        return run_with_session(lambda session: QueryService(session).execute_query(sql_query))

    return _respond(operation, "execute_query")


def describe_configuration(settings: Settings | None = None) -> dict[str, Any]:
    """Non-sensitive view of the current configuration."""
    if settings is None:
        settings = Settings()
    scopes = ScopeRegistry.from_settings(settings)
    return {
        "host": settings.host or None,
        "port": settings.port or None,
        "username": settings.username or None,
        "database": settings.database or None,
        "driver": settings.driver,
        "password_set": bool(settings.password),
        "scopes": scopes.names(),
    }


def render_result(result: CallToolResult) -> str:
    """Text of a tool result (used by the CLI)."""
    texts = [c.text for c in result.content if isinstance(c, TextContent)]
    return "\n".join(texts)

