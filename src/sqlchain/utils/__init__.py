"""Utility functions and helpers for sqlchain."""

from sqlchain.utils.decorators import traced

__all__ = [
    "traced",
]
