from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import SettingsConfigDict

from .base import SqlChainBaseSettings
from .compiler import CompilerSettings
from .connection import ConnectionSettings


class SqlChainSettings(SqlChainBaseSettings):
    """Aggregated sqlchain configuration.

    Groups:
        connection: how to reach the database (``SQLCHAIN_DB_*``)
        compiler: how SQL text is produced (``SQLCHAIN_SQL_*``)

    Nested values can also be set through the aggregate prefix with the
    ``__`` delimiter, e.g. ``SQLCHAIN_CONNECTION__DSN``.
    """
    model_config = SettingsConfigDict(
        env_prefix="SQLCHAIN_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_nested_delimiter="__"
    )

    connection: ConnectionSettings = Field(
        default_factory=ConnectionSettings,
        description="Database connection configuration"
    )
    compiler: CompilerSettings = Field(
        default_factory=CompilerSettings,
        description="SQL compilation configuration"
    )
    log_level: str = Field(
        default="INFO",
        description="Log level used by setup_logging()"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid log level: {v}")
        return level


_settings: Optional[SqlChainSettings] = None


def get_settings(force_reload: bool = False) -> SqlChainSettings:
    """Get the shared settings instance.

    Settings are read from the environment on first access and reused
    afterwards. Database handles never read this implicitly except
    through ``Database.from_settings()`` when no settings are passed.

    Args:
        force_reload: If True, creates a new instance even if one already
            exists. Useful when environment variables have changed.

    Returns:
        SqlChainSettings: The shared settings instance
    """
    global _settings

    if _settings is None or force_reload:
        _settings = SqlChainSettings()

    return _settings


def _reload_settings() -> SqlChainSettings:
    """Force reload of settings (used by tests)."""
    global _settings
    _settings = None
    return get_settings(force_reload=True)
