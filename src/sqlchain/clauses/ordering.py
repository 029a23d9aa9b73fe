from typing import Any, Dict, List, Optional, Union

from pydantic import field_validator, model_validator

from sqlchain.common.exceptions import ErrorCode, build_error
from sqlchain.constants.sql import SortDirection
from sqlchain.types.base import SqlChainBaseModel
from .validation import normalize_params, validate_identifier


def _validate_raw_clause(v: Any, clause: str) -> Optional[str]:
    if v is None:
        return None
    if not isinstance(v, str) or not v.strip():
        raise build_error(
            f"Raw {clause} clause must be a non-empty string",
            error_code=ErrorCode.BUILD_INVALID_ARGUMENT,
            field=clause
        )
    return v.strip()


class _ColumnOrRaw(SqlChainBaseModel):
    """Either a validated column or a raw fragment with its own parameters."""
    column: Optional[str] = None
    raw: Optional[str] = None
    params: Optional[Union[List[Any], Dict[str, Any]]] = None

    @field_validator("column", mode="before")
    @classmethod
    def validate_column(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        return validate_identifier(v, "column")

    @field_validator("params", mode="before")
    @classmethod
    def validate_params(cls, v: Any) -> Any:
        return normalize_params(v)

    @model_validator(mode="after")
    def validate_form(self):
        if (self.column is None) == (self.raw is None):
            raise build_error(
                f"{type(self).__name__} requires exactly one of column or raw",
                error_code=ErrorCode.BUILD_INVALID_ARGUMENT,
                field="column"
            )
        if self.column is not None and self.params:
            raise build_error(
                "Parameters are only accepted for raw clauses",
                error_code=ErrorCode.BUILD_INVALID_ARGUMENT,
                field="params"
            )
        return self

    @property
    def is_raw(self) -> bool:
        return self.raw is not None


class OrderItem(_ColumnOrRaw):
    """ORDER BY entry: ``column ASC|DESC`` or a raw fragment."""
    direction: SortDirection = SortDirection.ASC

    @field_validator("direction", mode="before")
    @classmethod
    def validate_direction(cls, v: Any) -> Any:
        if isinstance(v, SortDirection):
            return v
        if isinstance(v, str) and v.strip().upper() in SortDirection.__members__:
            return SortDirection(v.strip().upper())
        raise build_error(
            f"Invalid sort direction: {v}. Use ASC or DESC",
            error_code=ErrorCode.BUILD_INVALID_ARGUMENT,
            field="direction",
            value=v
        )

    @field_validator("raw", mode="before")
    @classmethod
    def validate_raw(cls, v: Any) -> Optional[str]:
        return _validate_raw_clause(v, "order_by")


class GroupItem(_ColumnOrRaw):
    """GROUP BY entry: a column or a raw fragment."""

    @field_validator("raw", mode="before")
    @classmethod
    def validate_raw(cls, v: Any) -> Optional[str]:
        return _validate_raw_clause(v, "group_by")
