"""Type definitions for sqlchain."""

from .base import SqlChainBaseModel

__all__ = [
    "SqlChainBaseModel",
]
