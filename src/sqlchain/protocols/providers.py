"""Provider protocol definitions.

The query core never creates database connections itself. It consumes
a connection capability through the protocol below, so any object with
``connect()`` and ``get()`` can back a ``Database`` handle.
"""

from typing import Any, Dict, Optional, Protocol, Union, runtime_checkable

from sqlalchemy.engine import Connection, Engine


@runtime_checkable
class ConnectionProvider(Protocol):
    """Protocol for the connection capability consumed by the executor.

    The protocol is marked as runtime_checkable to allow isinstance()
    checks at runtime, which is useful for validation and testing.
    """

    def connect(
        self,
        dsn: Optional[str] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> Union[Engine, Connection]:
        """Open the underlying handle.

        Args:
            dsn: Database URL. Falls back to configuration when omitted
            username: Database user
            password: Database password
            options: Driver/engine specific options

        Returns:
            The live handle

        Raises:
            SqlChainError: CONNECTION_* when the handle cannot be created
        """
        ...

    def get(self) -> Union[Engine, Connection]:
        """Return the live handle, connecting on first use."""
        ...
