from typing import Any, Optional

from pydantic import field_validator, model_validator

from sqlchain.common.exceptions import ErrorCode, build_error
from sqlchain.constants.sql import COMPARISON_OPERATORS, JoinType
from sqlchain.types.base import SqlChainBaseModel
from .validation import normalize_operator, validate_identifier, validate_table_reference


class Join(SqlChainBaseModel):
    """A JOIN clause in one of two forms.

    Structured: ``left_field <operator> right_field`` with both sides
    validated as identifiers. Raw: a free-form ``condition`` string that
    is rendered verbatim after ``ON``. Exactly one form must be given.
    """
    kind: JoinType = JoinType.INNER
    table: str
    condition: Optional[str] = None
    left_field: Optional[str] = None
    operator: Optional[str] = None
    right_field: Optional[str] = None

    @field_validator("table", mode="before")
    @classmethod
    def validate_table(cls, v: Any) -> str:
        return validate_table_reference(v)

    @field_validator("left_field", "right_field", mode="before")
    @classmethod
    def validate_fields(cls, v: Any, info) -> Optional[str]:
        if v is None:
            return None
        return validate_identifier(v, info.field_name)

    @field_validator("operator", mode="before")
    @classmethod
    def validate_operator(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        return normalize_operator(v, COMPARISON_OPERATORS)

    @field_validator("condition", mode="before")
    @classmethod
    def validate_condition(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        if not isinstance(v, str) or not v.strip():
            raise build_error(
                "Join condition must be a non-empty string",
                error_code=ErrorCode.BUILD_INVALID_ARGUMENT,
                field="condition"
            )
        return v.strip()

    @model_validator(mode="after")
    def validate_form(self):
        """Ensure exactly one join form is provided."""
        structured = (self.left_field, self.operator, self.right_field)
        has_structured = all(part is not None for part in structured)
        partial_structured = any(part is not None for part in structured) and not has_structured

        if partial_structured or has_structured == (self.condition is not None):
            raise build_error(
                "Join requires either a condition string or left field, operator and right field",
                error_code=ErrorCode.BUILD_INVALID_ARGUMENT,
                field="join",
                value=self.table
            )
        return self

    @property
    def is_raw(self) -> bool:
        return self.condition is not None

    @classmethod
    def on(
        cls,
        table: str,
        left_field: str,
        operator: str,
        right_field: str,
        kind: JoinType = JoinType.INNER
    ) -> "Join":
        return cls(kind=kind, table=table, left_field=left_field, operator=operator, right_field=right_field)

    @classmethod
    def raw(cls, table: str, condition: str, kind: JoinType = JoinType.INNER) -> "Join":
        return cls(kind=kind, table=table, condition=condition)
