"""dbscope - MCP server for scoped database introspection and SQL execution."""

__version__ = "0.1.0"
