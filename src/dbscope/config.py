"""Configuration for dbscope."""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="DBSCOPE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ==========================================================================
    # Database connection
    # ==========================================================================

    host: str = Field(default="", description="Database server host")
    # Kept as a string so a malformed value surfaces as a ConfigurationError
    # when a connection is built, not as a startup failure.
    port: str = Field(default="", description="Database server port")
    username: str = Field(default="", description="Database username")
    password: str = Field(default="", description="Database password (may be empty)")
    database: str = Field(default="", description="Database name to open")
    driver: str = Field(
        default="postgresql",
        description="SQLAlchemy driver name (e.g. postgresql+psycopg2, mysql+pymysql, sqlite)",
    )

    # ==========================================================================
    # Scopes
    # ==========================================================================

    scopes: str = Field(
        default="",
        description='JSON object mapping scope name to table names, e.g. {"sales": ["orders"]}',
    )
    scopes_file: str = Field(
        default="",
        description="Path to a YAML file with the same shape as DBSCOPE_SCOPES",
    )

    # ==========================================================================
    # Server
    # ==========================================================================

    log_level: str = Field(default="INFO", description="Logging level")
    mcp_transport: Literal["stdio", "http"] = Field(
        default="stdio",
        description="MCP transport: 'stdio' for local, 'http' for remote",
    )
    mcp_host: str = Field(default="127.0.0.1", description="Host to bind MCP HTTP server")
    mcp_port: int = Field(default=8000, description="Port for MCP HTTP server")
    mcp_path: str = Field(default="/mcp", description="Path for MCP HTTP endpoint")


_settings: Settings | None = None


def get_settings() -> Settings:
    """Get cached settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset cached settings (useful for testing)."""
    global _settings
    _settings = None
