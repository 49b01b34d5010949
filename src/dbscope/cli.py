"""Click command group for dbscope.

Commands stay thin: they delegate to the tool implementations and the
connection layer, and only handle presentation.
"""

import asyncio
import sys

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from dbscope import __version__
from dbscope.config import Settings
from dbscope.db.connection import ConnectionConfig, open_session
from dbscope.db.scopes import ScopeRegistry
from dbscope.drivers import get_driver
from dbscope.errors import DbScopeError
from dbscope.services import DEFAULT_SAMPLE_ROWS
from dbscope.tools.database import (
    _execute_query,
    _get_metadata,
    _list_tables,
    error_message,
    render_result,
)

console = Console()


def _print_tool_result(result) -> None:
    """Print a tool result, exiting non-zero when it is an error."""
    text = render_result(result)
    if result.isError:
        console.print(text, style="red", markup=False)
        sys.exit(1)
    # Plain print keeps the JSON machine-readable
    click.echo(text)


@click.group()
@click.version_option(version=__version__)
def main():
    """dbscope - database introspection MCP server."""
    pass


@main.command()
@click.option(
    "--transport",
    type=click.Choice(["stdio", "http"]),
    default=None,
    help="MCP transport (default: DBSCOPE_MCP_TRANSPORT or stdio)",
)
def serve(transport: str | None):
    """Start the MCP server."""
    from dbscope.server import main as server_main

    server_main(transport=transport)


@main.command()
def status():
    """Check that the configured database can be reached."""
    settings = Settings()
    try:
        config = ConnectionConfig.from_settings(settings)
        with open_session(config, get_driver(settings)) as session:
            database = session.require_connection().database
    except DbScopeError as e:
        console.print(
            Panel.fit(
                f"[bold red]Connection failed[/bold red]\n\n{escape(error_message(e))}",
                border_style="red",
            )
        )
        sys.exit(1)

    console.print(
        Panel.fit(
            "[bold green]Connected[/bold green]\n\n"
            f"Host:     {config.host}:{config.port}\n"
            f"User:     {config.username}\n"
            f"Database: {database}\n"
            f"Driver:   {settings.driver}",
            border_style="green",
        )
    )


@main.command()
def scopes():
    """Show configured scopes."""
    registry = ScopeRegistry.from_settings()
    if not registry:
        console.print("[dim]No scopes configured.[/dim]")
        console.print("Set DBSCOPE_SCOPES or DBSCOPE_SCOPES_FILE to define scopes.")
        return

    table = Table(title="Scopes")
    table.add_column("Scope", style="cyan")
    table.add_column("Tables")
    for name in registry.names():
        table.add_row(name, ", ".join(registry[name]) or "[dim]-[/dim]")
    console.print(table)


@main.command()
@click.option("-s", "--scope", default=None, help="Only list tables in this scope")
def tables(scope: str | None):
    """List tables and views."""
    _print_tool_result(asyncio.run(_list_tables(scope=scope)))


@main.command()
@click.argument("table_name")
@click.option(
    "-n",
    "--sample-rows",
    default=DEFAULT_SAMPLE_ROWS,
    show_default=True,
    type=int,
    help="Number of sample rows",
)
def describe(table_name: str, sample_rows: int):
    """Show column metadata and sample rows for TABLE_NAME."""
    _print_tool_result(asyncio.run(_get_metadata(table_name=table_name, sample_rows=sample_rows)))


@main.command()
@click.argument("sql")
def query(sql: str):
    """Execute SQL and print the result."""
    _print_tool_result(asyncio.run(_execute_query(sql_query=sql)))


if __name__ == "__main__":
    main()
