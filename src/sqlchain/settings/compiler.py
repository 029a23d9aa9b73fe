from pydantic import Field, field_validator
from pydantic_settings import SettingsConfigDict
from sqlglot.dialects.dialect import Dialect

from sqlchain.constants.sql import PlaceholderStyle
from .base import SqlChainBaseSettings


class CompilerSettings(SqlChainBaseSettings):
    """Settings that shape the SQL text produced by the compiler.

    Environment variables use the ``SQLCHAIN_SQL_`` prefix.
    """
    model_config = SettingsConfigDict(env_prefix="SQLCHAIN_SQL_")

    placeholder_style: PlaceholderStyle = Field(
        default=PlaceholderStyle.QMARK,
        description="Bind placeholder style; must match the driver's paramstyle"
    )
    dialect: str = Field(
        default="sqlite",
        description="SQL dialect used for identifier quoting and pagination syntax (sqlglot dialect name)"
    )
    quote_identifiers: bool = Field(
        default=False,
        description="Quote table and column identifiers using the dialect's quoting rules"
    )
    allow_unconditional_writes: bool = Field(
        default=False,
        description="Allow UPDATE/DELETE without a WHERE clause and without an explicit unconditional() marker"
    )

    @field_validator("dialect")
    @classmethod
    def validate_dialect(cls, v: str) -> str:
        """Validate that sqlglot knows the dialect."""
        name = v.strip().lower()
        try:
            Dialect.get_or_raise(name)
        except ValueError:
            raise ValueError(f"Unknown SQL dialect: {v}. Use a sqlglot dialect name like 'postgres' or 'mysql'")
        return name
