from pydantic_settings import BaseSettings, SettingsConfigDict


class SqlChainBaseSettings(BaseSettings):
    """Base class for every sqlchain settings group.

    Values are read from environment variables (optionally through a
    ``.env`` file). Each subclass declares its own ``env_prefix`` so the
    groups stay namespaced, e.g. ``SQLCHAIN_DB_DSN`` for the connection
    DSN and ``SQLCHAIN_SQL_DIALECT`` for the compiler dialect.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_nested_delimiter="__"
    )
