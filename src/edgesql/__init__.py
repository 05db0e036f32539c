"""
edgesql - resilient data access over an async prepare/bind/run SQL store.

Re-exports the service facade and the types most callers touch.
"""

__version__ = "0.1.0"

from edgesql.core.database import DatabaseService
from edgesql.core.errors import (
    ConfigurationError,
    EdgeSQLError,
    MigrationError,
    QueryFailedError,
    UnsupportedOperationError,
)
from edgesql.core.settings import DatabaseSettings, get_settings
from edgesql.core.store import SqliteBinding

__all__ = [
    "__version__",
    "ConfigurationError",
    "DatabaseService",
    "DatabaseSettings",
    "EdgeSQLError",
    "MigrationError",
    "QueryFailedError",
    "SqliteBinding",
    "UnsupportedOperationError",
    "get_settings",
]
