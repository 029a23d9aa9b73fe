from typing import Any, Optional

from sqlchain.builder import QueryBuilder
from sqlchain.compiler import StatementCompiler
from sqlchain.connection import SQLAlchemyConnection
from sqlchain.executor import StatementExecutor
from sqlchain.protocols import ConnectionProvider
from sqlchain.settings import SqlChainSettings, get_settings


class Database:
    """Entry point that wires a connection to the compiler and executor.

    Handles are passed explicitly to the code that needs them; there is
    no module-level default instance.

    Example:
        >>> db = Database.from_settings()
        >>> db.table("users").where("id", 5).one()
        >>> db.raw_sql("SELECT COUNT(*) FROM users WHERE age > :age", {":age": 18}).get()
    """

    def __init__(
        self,
        connection: ConnectionProvider,
        compiler: Optional[StatementCompiler] = None,
        settings: Optional[SqlChainSettings] = None,
    ):
        """Initialize the handle.

        Args:
            connection: Connection capability shared by every query
            compiler: Compiler for every query. Built from
                ``settings.compiler`` when omitted
            settings: Settings used to build the compiler. Defaults to
                ``get_settings()``
        """
        self.connection = connection
        if compiler is None:
            settings = settings or get_settings()
            compiler = StatementCompiler.from_settings(settings.compiler)
        self.compiler = compiler
        self.executor = StatementExecutor(connection, db_system=compiler.dialect or None)

    @classmethod
    def from_settings(cls, settings: Optional[SqlChainSettings] = None) -> "Database":
        """Build connection and compiler from configuration."""
        settings = settings or get_settings()
        return cls(SQLAlchemyConnection(settings.connection), settings=settings)

    def get_connection(self) -> Any:
        """Return the live handle from the connection capability."""
        return self.connection.get()

    def query(self) -> QueryBuilder:
        """Start a new, empty query."""
        return QueryBuilder(compiler=self.compiler, executor=self.executor)

    def table(self, name: str) -> QueryBuilder:
        return self.query().table(name)

    def raw_sql(self, sql: str, params: Any = None) -> QueryBuilder:
        return self.query().raw_sql(sql, params)

    def close(self) -> None:
        close = getattr(self.connection, "close", None)
        if callable(close):
            close()

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
