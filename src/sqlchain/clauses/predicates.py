"""Predicate nodes of the clause model.

A predicate tree is a list of tagged nodes. Every node carries the
connector that joins it to the previous sibling; the first node's
connector is ignored when rendering.

    - ``Predicate``: ``field <operator> value`` leaf, value always bound
    - ``RawPredicate``: literal SQL fragment with its own parameters
    - ``PredicateGroup``: parenthesized sub-tree

The factory functions at the bottom resolve the polymorphic argument
shapes accepted by ``where()`` into these nodes.
"""

from collections.abc import Iterable, Mapping
from typing import Annotated, Any, Dict, List, Literal, Optional, Sequence, Union

from pydantic import Field, field_validator, model_validator

from sqlchain.common.exceptions import ErrorCode, build_error
from sqlchain.constants.sql import Connector, LIST_OPERATORS, RANGE_OPERATORS
from sqlchain.types.base import SqlChainBaseModel
from .validation import normalize_operator, normalize_params, validate_identifier


class Predicate(SqlChainBaseModel):
    """Leaf comparison ``field <operator> value``.

    ``IN``/``NOT IN`` values are stored as a non-empty tuple and
    ``BETWEEN``/``NOT BETWEEN`` values as a 2-tuple.
    """
    kind: Literal["predicate"] = "predicate"
    field: str
    operator: str = "="
    value: Any = None
    connector: Connector = Connector.AND

    @field_validator("field", mode="before")
    @classmethod
    def validate_field(cls, v: Any) -> str:
        return validate_identifier(v, "field")

    @field_validator("operator", mode="before")
    @classmethod
    def validate_operator(cls, v: Any) -> str:
        return normalize_operator(v)

    @model_validator(mode="before")
    @classmethod
    def normalize_value(cls, data: Any) -> Any:
        """Materialize list and range operands."""
        if not isinstance(data, dict):
            return data

        operator = normalize_operator(data.get("operator", "="))
        value = data.get("value")

        if operator in LIST_OPERATORS:
            if isinstance(value, (str, bytes, Mapping)) or not isinstance(value, Iterable):
                raise build_error(
                    f"{operator} requires a sequence of values",
                    error_code=ErrorCode.BUILD_INVALID_ARGUMENT,
                    field=data.get("field")
                )
            value = tuple(value)
            if not value:
                raise build_error(
                    f"{operator} requires at least one value",
                    error_code=ErrorCode.BUILD_INVALID_ARGUMENT,
                    field=data.get("field")
                )

        elif operator in RANGE_OPERATORS:
            if isinstance(value, (str, bytes, Mapping)) or not isinstance(value, Iterable):
                raise build_error(
                    f"{operator} requires a pair of values",
                    error_code=ErrorCode.BUILD_INVALID_ARGUMENT,
                    field=data.get("field")
                )
            value = tuple(value)
            if len(value) != 2:
                raise build_error(
                    f"{operator} requires exactly two values, got {len(value)}",
                    error_code=ErrorCode.BUILD_INVALID_ARGUMENT,
                    field=data.get("field")
                )

        return {**data, "operator": operator, "value": value}


class RawPredicate(SqlChainBaseModel):
    """Literal condition fragment with its own parameters."""
    kind: Literal["raw"] = "raw"
    sql: str
    params: Optional[Union[List[Any], Dict[str, Any]]] = None
    connector: Connector = Connector.AND

    @field_validator("sql", mode="before")
    @classmethod
    def validate_sql(cls, v: Any) -> str:
        if not isinstance(v, str) or not v.strip():
            raise build_error(
                "Raw condition must be a non-empty string",
                error_code=ErrorCode.BUILD_INVALID_ARGUMENT,
                field="sql"
            )
        return v.strip()

    @field_validator("params", mode="before")
    @classmethod
    def validate_params(cls, v: Any) -> Any:
        return normalize_params(v)


class PredicateGroup(SqlChainBaseModel):
    """Parenthesized sub-tree of predicate nodes."""
    kind: Literal["group"] = "group"
    items: List["PredicateNode"] = Field(default_factory=list)
    connector: Connector = Connector.AND

    @field_validator("items")
    @classmethod
    def validate_items(cls, v: List[Any]) -> List[Any]:
        if not v:
            raise build_error(
                "Condition group must contain at least one condition",
                error_code=ErrorCode.BUILD_INVALID_ARGUMENT,
                field="items"
            )
        return v


PredicateNode = Annotated[
    Union[Predicate, RawPredicate, PredicateGroup],
    Field(discriminator="kind")
]

PredicateGroup.model_rebuild()


def predicate_equals(field: str, value: Any, connector: Connector = Connector.AND) -> Predicate:
    """``field = value`` (``IS NULL`` when value is None)."""
    return Predicate(field=field, operator="=", value=value, connector=connector)


def predicate_op(
    field: str,
    operator: str,
    value: Any,
    connector: Connector = Connector.AND
) -> Predicate:
    """``field <operator> value`` for any supported operator."""
    return Predicate(field=field, operator=operator, value=value, connector=connector)


def predicate_raw(sql: str, params: Any = None, connector: Connector = Connector.AND) -> RawPredicate:
    return RawPredicate(sql=sql, params=params, connector=connector)


def predicate_group(
    conditions: Union[Sequence[Sequence[Any]], Mapping],
    connector: Connector = Connector.AND
) -> PredicateGroup:
    """Build an AND-connected group from a list of conditions or a mapping.

    Args:
        conditions: Either a sequence of ``(field, value)`` /
            ``(field, operator, value)`` entries, or a mapping of
            ``field -> value`` equalities
        connector: Connector joining the group to its previous sibling

    Returns:
        PredicateGroup holding one leaf per entry, in input order

    Raises:
        SqlChainError: BUILD_INVALID_ARGUMENT for empty input or malformed entries
    """
    if isinstance(conditions, Mapping):
        items = [predicate_equals(field, value) for field, value in conditions.items()]
    else:
        items = []
        for entry in conditions:
            if isinstance(entry, (str, bytes)) or not isinstance(entry, Sequence):
                raise build_error(
                    "A condition list must be a sequence of conditions such as "
                    f"[('age', '>', 18)], got entry {entry!r} of type {type(entry).__name__}; "
                    "wrap a single (field, operator, value) condition in a list",
                    error_code=ErrorCode.BUILD_INVALID_ARGUMENT,
                    field="where"
                )
            if len(entry) == 2:
                items.append(predicate_equals(entry[0], entry[1]))
            elif len(entry) == 3:
                items.append(predicate_op(entry[0], entry[1], entry[2]))
            else:
                raise build_error(
                    f"Condition entries must have 2 or 3 items, got {len(entry)}",
                    error_code=ErrorCode.BUILD_INVALID_ARGUMENT,
                    field="where"
                )

    return PredicateGroup(items=items, connector=connector)
