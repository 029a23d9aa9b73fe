import pytest
from unittest.mock import Mock

from sqlchain import Database, QueryBuilder, StatementCompiler, StatementExecutor
from sqlchain.settings import CompilerSettings, ConnectionSettings, SqlChainSettings


@pytest.fixture
def compiler():
    """Default compiler: qmark placeholders, sqlite dialect, no quoting."""
    return StatementCompiler()


@pytest.fixture
def mock_executor():
    return Mock(spec=StatementExecutor)


@pytest.fixture
def builder(compiler, mock_executor):
    return QueryBuilder(compiler=compiler, executor=mock_executor)


@pytest.fixture
def sqlite_settings():
    return SqlChainSettings(
        connection=ConnectionSettings(dsn="sqlite://"),
        compiler=CompilerSettings(placeholder_style="qmark", dialect="sqlite"),
    )


@pytest.fixture
def db(sqlite_settings):
    """In-memory SQLite database with a users table."""
    database = Database.from_settings(sqlite_settings)
    database.raw_sql(
        "CREATE TABLE users ("
        "id INTEGER PRIMARY KEY AUTOINCREMENT, "
        "name TEXT NOT NULL, "
        "email TEXT, "
        "age INTEGER, "
        "votes INTEGER DEFAULT 0, "
        "dept TEXT)"
    ).execute()
    yield database
    database.close()
