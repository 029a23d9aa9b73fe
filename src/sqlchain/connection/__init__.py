"""Connection capability: the protocol and its SQLAlchemy implementation."""

from sqlchain.protocols import ConnectionProvider
from .engine import SQLAlchemyConnection

__all__ = [
    "ConnectionProvider",
    "SQLAlchemyConnection",
]
