"""Error taxonomy for dbscope.

Every error raised by the data-access layer derives from ``DbScopeError``.
Driver-reported failures derive from ``DriverError`` so the tool boundary can
tell them apart from caller mistakes.
"""


class DbScopeError(Exception):
    """Base class for all dbscope errors."""

    pass


class InvalidArgumentError(DbScopeError, ValueError):
    """Malformed caller input."""

    pass


class NotConnectedError(DbScopeError):
    """Operation needs an active session and there is none."""

    pass


class UnknownScopeError(DbScopeError):
    """Requested scope is not defined in the scope registry."""

    def __init__(self, scope: str, available: list[str]) -> None:
        self.scope = scope
        self.available = available
        super().__init__(f"Scope '{scope}' not found. Available scopes: {available}")


class TableNotFoundError(DbScopeError):
    """Schema lookup returned no columns for a table."""

    def __init__(self, table: str) -> None:
        self.table = table
        super().__init__(f"Table not found or has no columns: {table}")


class ConfigurationError(DbScopeError):
    """Required external configuration is missing or malformed."""

    pass


class DriverError(DbScopeError):
    """Failure reported by the database driver."""

    pass


class ConnectionFailedError(DriverError):
    """Opening the connection or the database failed."""

    pass


class DisconnectError(DriverError):
    """Closing the native connection failed."""

    pass


class QueryError(DriverError):
    """Listing, schema lookup or statement execution failed."""

    pass
