from .providers import ConnectionProvider

__all__ = ["ConnectionProvider"]
