from typing import Any, Dict, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError

from sqlchain.common.exceptions import ErrorCode, connection_error
from sqlchain.logging import get_logger
from sqlchain.settings import ConnectionSettings

logger = get_logger(__name__)


class SQLAlchemyConnection:
    """Connection capability backed by a SQLAlchemy engine.

    The engine is created lazily from ``ConnectionSettings`` on the first
    ``get()`` unless ``connect()`` was called explicitly. Credentials
    passed to ``connect()`` (or set in configuration) are injected into
    the URL; ``options`` are forwarded to ``create_engine``.

    Example:
        >>> connection = SQLAlchemyConnection()
        >>> connection.connect("sqlite:///app.db")
        >>> engine = connection.get()
    """

    def __init__(self, settings: Optional[ConnectionSettings] = None):
        self.settings = settings or ConnectionSettings()
        self._engine: Optional[Engine] = None
        self._backend: Optional[str] = None

    @property
    def is_connected(self) -> bool:
        return self._engine is not None

    @property
    def backend_name(self) -> Optional[str]:
        return self._backend

    def connect(
        self,
        dsn: Optional[str] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> Engine:
        """Create the engine, replacing any existing one.

        Args:
            dsn: SQLAlchemy URL. Defaults to ``settings.dsn``
            username: Overrides the user in the URL and in settings
            password: Overrides the password in the URL and in settings
            options: Extra ``create_engine`` keyword arguments, applied
                after ``settings.connect_options``

        Returns:
            Engine: Configured SQLAlchemy engine

        Raises:
            SqlChainError: CONNECTION_NOT_CONFIGURED when no DSN is available,
                CONNECTION_ERROR when the engine cannot be created
        """
        dsn = dsn or self.settings.dsn
        if not dsn:
            raise connection_error(
                "No database DSN configured; pass one to connect() or set SQLCHAIN_DB_DSN",
                error_code=ErrorCode.CONNECTION_NOT_CONFIGURED
            )

        username = username or self.settings.username
        if password is None and self.settings.password is not None:
            password = self.settings.password.get_secret_value()

        backend = None
        try:
            url = make_url(dsn)
            backend = url.get_backend_name()
            if username:
                url = url.set(username=username)
            if password:
                url = url.set(password=password)

            engine_kwargs: Dict[str, Any] = {
                "echo": self.settings.echo,
                "hide_parameters": self.settings.hide_parameters,
                "pool_pre_ping": True,  # Verify connections before use
            }
            # SQLite uses pools that take no sizing arguments
            if backend != "sqlite":
                engine_kwargs.update(
                    pool_size=self.settings.pool_size,
                    max_overflow=self.settings.max_overflow,
                    pool_timeout=self.settings.pool_timeout,
                )
            engine_kwargs.update(self.settings.connect_options)
            engine_kwargs.update(options or {})

            engine = create_engine(url, **engine_kwargs)

        except (SQLAlchemyError, TypeError, ImportError) as exc:
            raise connection_error(
                f"Failed to create engine for {backend or 'database'}",
                service=backend,
                cause=exc
            ) from exc

        self.close()
        self._engine = engine
        self._backend = backend
        logger.info("Created database engine", extra={"db.system": backend})
        return engine

    def get(self) -> Engine:
        """Get the engine, connecting from settings on first use."""
        if self._engine is None:
            return self.connect()
        return self._engine

    def test_connection(self) -> bool:
        """Run ``SELECT 1`` and report whether it succeeded.

        Raises:
            SqlChainError: CONNECTION_* when no engine can be created
        """
        engine = self.get()
        try:
            with engine.connect() as conn:
                conn.exec_driver_sql("SELECT 1")
            return True
        except SQLAlchemyError as exc:
            logger.error(
                "Database connection test failed",
                extra={"db.system": self._backend, "error.type": type(exc).__name__},
                exc_info=True,
            )
            return False

    def close(self) -> None:
        """Dispose the engine and its pooled connections."""
        if self._engine is not None:
            self._engine.dispose()
            logger.debug("Disposed database engine", extra={"db.system": self._backend})
        self._engine = None
