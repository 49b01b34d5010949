"""Database connection management.

``ConnectionConfig`` holds validated connection parameters and
``SessionHandle`` owns the lifecycle of one database session:

    Disconnected --connect()--> Connected --disconnect()--> Disconnected

A handle is never shared between calls; ``open_session`` scopes one session
to a ``with`` block and always disconnects on exit.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field

from dbscope.config import Settings
from dbscope.drivers import Driver, NativeConnection
from dbscope.errors import (
    ConfigurationError,
    ConnectionFailedError,
    DisconnectError,
    DriverError,
    InvalidArgumentError,
    NotConnectedError,
)

logger = logging.getLogger(__name__)

PASSWORD_MASK = "****"


@dataclass(frozen=True)
class ConnectionConfig:
    """Immutable connection parameters. The password is never rendered."""

    host: str
    port: int
    username: str
    password: str = field(repr=False)
    database: str

    def __post_init__(self) -> None:
        if not isinstance(self.host, str) or not self.host.strip():
            raise InvalidArgumentError("Host cannot be null or empty")
        if isinstance(self.port, bool) or not isinstance(self.port, int):
            raise InvalidArgumentError("Port must be an integer between 1 and 65535")
        if self.port <= 0 or self.port > 65535:
            raise InvalidArgumentError("Port must be between 1 and 65535")
        if not isinstance(self.username, str) or not self.username.strip():
            raise InvalidArgumentError("Username cannot be null or empty")
        if not isinstance(self.database, str) or not self.database.strip():
            raise InvalidArgumentError("Database name cannot be null or empty")
        if self.password is None:
            object.__setattr__(self, "password", "")

    def __repr__(self) -> str:
        return (
            f"ConnectionConfig(host='{self.host}', port={self.port}, "
            f"username='{self.username}', password={PASSWORD_MASK}, "
            f"database='{self.database}')"
        )

    __str__ = __repr__

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "ConnectionConfig":
        """Build a config from ``DBSCOPE_*`` environment variables.

        A fresh Settings instance is read when none is given, so every call
        sees the current environment.

        Raises:
            ConfigurationError: If a required variable is missing or malformed
        """
        if settings is None:
            settings = Settings()

        logger.info("Loading connection settings from environment")

        required = {
            "DBSCOPE_HOST": settings.host,
            "DBSCOPE_PORT": settings.port,
            "DBSCOPE_USERNAME": settings.username,
            "DBSCOPE_DATABASE": settings.database,
        }
        for env_name, value in required.items():
            if not value or not value.strip():
                raise ConfigurationError(
                    f"Environment variable {env_name} is not set. "
                    "Configure the database connection in the MCP server settings."
                )

        try:
            port = int(settings.port.strip())
        except ValueError:
            raise ConfigurationError(
                f"Environment variable DBSCOPE_PORT must be a valid integer, got: {settings.port}"
            ) from None

        try:
            config = cls(
                host=settings.host,
                port=port,
                username=settings.username,
                password=settings.password or "",
                database=settings.database,
            )
        except InvalidArgumentError as e:
            raise ConfigurationError(str(e)) from e

        logger.info(f"Loaded connection settings: {config}")
        return config


class SessionHandle:
    """Owns a single database session.

    Connected iff it holds a native connection whose database is open.
    """

    def __init__(self, driver: Driver) -> None:
        if driver is None:
            raise InvalidArgumentError("Driver cannot be null")
        self._driver = driver
        self._native: NativeConnection | None = None
        self._config: ConnectionConfig | None = None

    def __enter__(self) -> "SessionHandle":
        return self

    def __exit__(self, *exc_info) -> None:
        self.disconnect()

    @property
    def config(self) -> ConnectionConfig | None:
        """Config of the live session, or None when disconnected."""
        return self._config

    def connect(self, config: ConnectionConfig) -> None:
        """Open a session, closing any existing one first.

        Raises:
            InvalidArgumentError: If config is None
            ConnectionFailedError: If the driver cannot open the connection or
                database. The handle is left fully disconnected.
        """
        if config is None:
            raise InvalidArgumentError("ConnectionConfig cannot be null")

        if self.is_connected():
            logger.info("Closing existing connection before establishing new one")
            self.disconnect()

        logger.info(f"Connecting: {config}")

        native = None
        try:
            native = self._driver.open(
                config.host, config.port, config.username, config.password
            )
            native.open_database(config.database)
        except DriverError as e:
            logger.error(f"Failed to connect: {e}")
            if native is not None:
                self._close_quietly(native)
            self._native = None
            self._config = None
            raise ConnectionFailedError(str(e)) from e

        self._native = native
        self._config = config
        logger.info(f"Connected to database: {config.database}")

    def is_connected(self) -> bool:
        return self._native is not None and bool(self._native.is_open)

    def disconnect(self) -> None:
        """Close the session. A no-op when already disconnected.

        State is cleared even when the driver fails to close.

        Raises:
            DisconnectError: If the driver's close call fails
        """
        native = self._native
        if native is None:
            return
        try:
            logger.info("Disconnecting")
            native.close()
            logger.info("Disconnected")
        except DriverError as e:
            raise DisconnectError(str(e)) from e
        finally:
            self._native = None
            self._config = None

    def require_connection(self) -> NativeConnection:
        """Return the live native connection.

        Raises:
            NotConnectedError: If the handle is disconnected
        """
        if not self.is_connected():
            raise NotConnectedError("Not connected to the database. Please connect first.")
        return self._native

    @staticmethod
    def _close_quietly(native: NativeConnection) -> None:
        try:
            native.close()
        except DriverError as e:
            logger.warning(f"Failed to close partially opened connection: {e}")


@contextmanager
def open_session(config: ConnectionConfig, driver: Driver) -> Iterator[SessionHandle]:
    """Connect, yield the session, and always disconnect.

    A failure while disconnecting is logged and never masks an error raised
    inside the block.
    """
    session = SessionHandle(driver)
    session.connect(config)
    try:
        yield session
    finally:
        try:
            session.disconnect()
        except DisconnectError as e:
            logger.error(f"Disconnect failed: {e}")
