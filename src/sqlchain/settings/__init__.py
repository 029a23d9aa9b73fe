"""Settings module providing configuration management for sqlchain.

Configuration is built on Pydantic Settings and split into groups:

    - base.py: SqlChainBaseSettings with the shared env-file behaviour
    - connection.py: ConnectionSettings (DSN, credentials, pool)
    - compiler.py: CompilerSettings (placeholder style, dialect, quoting)
    - main.py: SqlChainSettings aggregate and get_settings()

Configuration Sources (precedence order):
    1. Values passed to the constructor
    2. Environment variables
    3. ``.env`` file
    4. Defaults in code

Quick Start:
    >>> from sqlchain.settings import get_settings
    >>> settings = get_settings()
    >>> settings.compiler.placeholder_style
    <PlaceholderStyle.QMARK: 'qmark'>
"""

from .base import SqlChainBaseSettings
from .compiler import CompilerSettings
from .connection import ConnectionSettings
from .main import SqlChainSettings, _reload_settings, get_settings

__all__ = [
    "SqlChainBaseSettings",
    "ConnectionSettings",
    "CompilerSettings",
    "SqlChainSettings",
    "get_settings",
]
