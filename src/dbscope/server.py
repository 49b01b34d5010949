"""FastMCP server for dbscope."""

import logging
import sys

from fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import JSONResponse

from dbscope import __version__
from dbscope.config import get_settings
from dbscope.tools.database import (
    _execute_query,
    _get_metadata,
    _list_tables,
    describe_configuration,
)

INSTRUCTIONS = """
Database introspection and query server.

Connection information comes from environment variables:
DBSCOPE_HOST, DBSCOPE_PORT, DBSCOPE_USERNAME, DBSCOPE_PASSWORD, DBSCOPE_DATABASE
(and DBSCOPE_DRIVER for the SQLAlchemy driver name).

DBSCOPE_SCOPES (JSON) or DBSCOPE_SCOPES_FILE (YAML) define named scopes that
group related tables.

## Tools

- list_tables: tables and views in the database, optionally filtered by scope
- get_metadata: column metadata for one table plus sample rows
- execute_query: run a SQL statement and return all rows

A connection is opened for each tool call and closed before it returns.
"""


def _create_server() -> FastMCP:
    """Create and configure the MCP server."""
    server = FastMCP(name="dbscope-mcp", instructions=INSTRUCTIONS)

    @server.custom_route("/health", methods=["GET"])
    async def health_check(request: Request) -> JSONResponse:
        """Health check endpoint for load balancers."""
        return JSONResponse({"status": "healthy", "service": "dbscope-mcp"})

    async def _ping() -> dict:
        """Health check - verify server is running."""
        return {"status": "ok", "version": __version__}

    async def _get_config() -> dict:
        """Get current server configuration (non-sensitive)."""
        return describe_configuration()

    server.tool(name="ping")(_ping)
    server.tool(name="get_config")(_get_config)

    server.tool(name="list_tables")(_list_tables)
    server.tool(name="get_metadata")(_get_metadata)
    server.tool(name="execute_query")(_execute_query)

    return server


# Create the server instance
mcp = _create_server()


def _configure_logging() -> None:
    """Configure logging before anything else.

    Logs go to stderr; stdout carries the stdio transport.
    """
    logging.basicConfig(
        level=get_settings().log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def main(transport: str | None = None) -> None:
    """Run the MCP server."""
    _configure_logging()

    settings = get_settings()
    logger = logging.getLogger(__name__)
    transport = transport or settings.mcp_transport

    logger.info(f"Starting dbscope-mcp {__version__} ({transport} transport)")

    if transport == "http":
        mcp.run(
            transport="http",
            host=settings.mcp_host,
            port=settings.mcp_port,
            path=settings.mcp_path,
        )
    else:
        # Default: stdio for local clients
        mcp.run()


if __name__ == "__main__":
    main()
