"""Input validation shared by the clause model and the builder.

Identifiers are validated against a whitelist, operators against the
supported operator set, and projection expressions are screened for
stacked-statement and comment injection patterns. Raw fragments are
never validated here: they are the caller's responsibility.
"""

import re
from collections.abc import Mapping
from typing import Any, Dict, FrozenSet, List, Optional, Tuple, Union

from sqlchain.common.exceptions import ErrorCode, build_error
from sqlchain.constants.sql import MAX_IDENTIFIER_LENGTH, PREDICATE_OPERATORS

_NAME = r'[A-Za-z_][A-Za-z0-9_$]*'

# Dotted identifier, optionally ending in ``.*`` (e.g. ``users.*``)
IDENTIFIER_PATTERN = re.compile(rf'^{_NAME}(\.({_NAME}|\*))*$')

# Dotted table name with an optional alias (``users AS u`` or ``users u``)
TABLE_REFERENCE_PATTERN = re.compile(
    rf'^(?P<name>{_NAME}(\.{_NAME})*)(\s+(AS\s+)?(?P<alias>{_NAME}))?$',
    re.IGNORECASE
)

DANGEROUS_PATTERNS = [
    r';\s*DROP',
    r';\s*DELETE',
    r';\s*UPDATE',
    r';\s*INSERT',
    r'--',
    r'/\*',
    r'\*/',
    r'UNION\s+SELECT',
    r'OR\s+1\s*=\s*1',
    r"OR\s+'1'\s*=\s*'1'"
]


def validate_identifier(identifier: Any, identifier_type: str = "identifier") -> str:
    """Validate a column or table identifier.

    Args:
        identifier: The identifier to validate
        identifier_type: Type of identifier for error messages

    Returns:
        The identifier with surrounding whitespace removed

    Raises:
        SqlChainError: BUILD_INVALID_IDENTIFIER if the identifier is empty,
            too long or contains characters outside the whitelist
    """
    if not isinstance(identifier, str) or not identifier.strip():
        raise build_error(
            f"Empty {identifier_type} name",
            error_code=ErrorCode.BUILD_INVALID_IDENTIFIER,
            field=identifier_type,
            value=identifier
        )

    identifier = identifier.strip()
    if not IDENTIFIER_PATTERN.match(identifier):
        raise build_error(
            f"Invalid {identifier_type} name: {identifier}",
            error_code=ErrorCode.BUILD_INVALID_IDENTIFIER,
            field=identifier_type,
            value=identifier
        )

    if any(len(part) > MAX_IDENTIFIER_LENGTH for part in identifier.split(".")):
        raise build_error(
            f"{identifier_type} name too long: {identifier}",
            error_code=ErrorCode.BUILD_INVALID_IDENTIFIER,
            field=identifier_type,
            value=identifier
        )

    return identifier


def split_table_reference(reference: Any) -> Tuple[str, Optional[str]]:
    """Split a table reference into its name and optional alias.

    Raises:
        SqlChainError: BUILD_INVALID_IDENTIFIER for malformed references
    """
    if not isinstance(reference, str) or not reference.strip():
        raise build_error(
            "Empty table name",
            error_code=ErrorCode.BUILD_INVALID_IDENTIFIER,
            field="table",
            value=reference
        )

    match = TABLE_REFERENCE_PATTERN.match(reference.strip())
    if not match or (match.group("alias") or "").upper() == "AS":
        raise build_error(
            f"Invalid table name: {reference}",
            error_code=ErrorCode.BUILD_INVALID_IDENTIFIER,
            field="table",
            value=reference
        )

    name = validate_identifier(match.group("name"), "table")
    return name, match.group("alias")


def validate_table_reference(reference: Any) -> str:
    """Validate a table reference and return it in canonical ``name [AS alias]`` form."""
    name, alias = split_table_reference(reference)
    return f"{name} AS {alias}" if alias else name


def normalize_operator(
    operator: Any,
    allowed: FrozenSet[str] = PREDICATE_OPERATORS
) -> str:
    """Upper-case an operator, collapse inner whitespace and check it is allowed.

    Raises:
        SqlChainError: BUILD_INVALID_OPERATOR for unknown operators
    """
    if not isinstance(operator, str):
        raise build_error(
            f"Operator must be a string, got {type(operator).__name__}",
            error_code=ErrorCode.BUILD_INVALID_OPERATOR,
            field="operator"
        )

    normalized = " ".join(operator.split()).upper()
    if normalized not in allowed:
        raise build_error(
            f"Unsupported operator: {operator}",
            error_code=ErrorCode.BUILD_INVALID_OPERATOR,
            field="operator",
            value=operator,
            details={"allowed": sorted(allowed)}
        )
    return normalized


def screen_expression(expression: str, expression_type: str = "expression") -> str:
    """Reject expressions that contain stacked statements or comments.

    Raises:
        SqlChainError: BUILD_INVALID_ARGUMENT if a dangerous pattern is found
    """
    expression_upper = expression.upper()
    for pattern in DANGEROUS_PATTERNS:
        if re.search(pattern, expression_upper):
            raise build_error(
                f"Potentially dangerous {expression_type}: {expression}",
                error_code=ErrorCode.BUILD_INVALID_ARGUMENT,
                field=expression_type,
                value=expression
            )
    return expression


def split_projection(columns: str) -> List[str]:
    """Split a comma-delimited projection at top-level commas.

    Commas inside parentheses or quotes do not split, so
    ``"COALESCE(a, b) AS c, d"`` yields two expressions.

    Raises:
        SqlChainError: BUILD_INVALID_ARGUMENT for empty or dangerous expressions
    """
    if not isinstance(columns, str):
        raise build_error(
            f"Projection must be a string, got {type(columns).__name__}",
            error_code=ErrorCode.BUILD_INVALID_ARGUMENT,
            field="columns"
        )

    parts: List[str] = []
    current: List[str] = []
    depth = 0
    quote: Optional[str] = None

    for char in columns:
        if quote:
            if char == quote:
                quote = None
        elif char in ("'", '"', '`'):
            quote = char
        elif char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        elif char == "," and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        current.append(char)
    parts.append("".join(current))

    expressions = [part.strip() for part in parts]
    if quote or depth != 0 or any(not expression for expression in expressions):
        raise build_error(
            f"Malformed projection: {columns}",
            error_code=ErrorCode.BUILD_INVALID_ARGUMENT,
            field="columns",
            value=columns
        )

    return [screen_expression(expression, "projection") for expression in expressions]


def normalize_params(params: Any) -> Optional[Union[List[Any], Dict[str, Any]]]:
    """Normalize raw fragment parameters to a list or a dict.

    ``None`` stays ``None``. Strings and other scalars are rejected so a
    single value is never mistaken for a sequence of characters.

    Raises:
        SqlChainError: BUILD_INVALID_ARGUMENT for unsupported parameter containers
    """
    if params is None:
        return None
    if isinstance(params, Mapping):
        return dict(params)
    if isinstance(params, (list, tuple)):
        return list(params)
    raise build_error(
        f"Raw parameters must be a sequence or a mapping, got {type(params).__name__}",
        error_code=ErrorCode.BUILD_INVALID_ARGUMENT,
        field="params"
    )
