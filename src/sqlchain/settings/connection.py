from typing import Any, Dict, Optional

from pydantic import Field, SecretStr
from pydantic_settings import SettingsConfigDict

from .base import SqlChainBaseSettings


class ConnectionSettings(SqlChainBaseSettings):
    """Settings consumed by the SQLAlchemy connection capability.

    Environment variables use the ``SQLCHAIN_DB_`` prefix.
    """
    model_config = SettingsConfigDict(env_prefix="SQLCHAIN_DB_")

    dsn: Optional[str] = Field(
        default=None,
        description="SQLAlchemy database URL (e.g. postgresql+psycopg://host/db, sqlite:///app.db)"
    )
    username: Optional[str] = Field(
        default=None,
        description="Database user. Overrides any user embedded in the DSN"
    )
    password: Optional[SecretStr] = Field(
        default=None,
        description="Database password. Overrides any password embedded in the DSN"
    )
    connect_options: Dict[str, Any] = Field(
        default_factory=dict,
        description="Extra keyword arguments forwarded to sqlalchemy.create_engine"
    )

    pool_size: int = Field(default=5, ge=1, le=100)
    max_overflow: int = Field(default=10, ge=0)
    pool_timeout: int = Field(default=30, ge=1)

    echo: bool = Field(
        default=False,
        description="Let SQLAlchemy echo every statement it runs"
    )
    hide_parameters: bool = Field(
        default=True,
        description="Keep bound parameter values out of driver error messages"
    )
