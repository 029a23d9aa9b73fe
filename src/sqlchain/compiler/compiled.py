from typing import Any, Optional

from pydantic import Field

from sqlchain.types.base import SqlChainBaseModel


class CompiledStatement(SqlChainBaseModel):
    """SQL text plus the parameters bound to it.

    ``parameters`` is a list for positional placeholder styles, a dict
    for named styles, or whatever was passed to ``raw_sql`` unchanged.
    """
    sql: str
    parameters: Any = Field(default=None)
    operation: Optional[str] = Field(default=None, description="Statement kind, used for logs and spans")
    table: Optional[str] = Field(default=None, description="Target table, used for logs and spans")

    @property
    def param_count(self) -> int:
        if not self.parameters:
            return 0
        return len(self.parameters)

    def __str__(self) -> str:
        return self.sql
