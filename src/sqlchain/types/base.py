"""Base model class for all sqlchain models."""

from pydantic import BaseModel, ConfigDict


class SqlChainBaseModel(BaseModel):
    """Base model for the clause model and compiled statements.

    Provides consistent configuration for all sqlchain models:
    - Enum values stored as plain strings
    - Assignments and defaults validated like explicit input
    - Arbitrary types allowed for bound parameter values
    """
    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        use_enum_values=True,
        validate_assignment=True,
        validate_default=True,
    )
