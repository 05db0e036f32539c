"""Schema migration runner for edgesql.

Applies the built-in migration definitions in id order, tracking which have
already been applied in the ``migrations`` table.

Modules
-------
definitions    Migration / MigrationRecord models and BUILTIN_MIGRATIONS
runner         MigrationRunner class with run() / status() / verify_checksums()

Tags:
    edgesql, migrations, schema, database, idempotent, DDL
"""

from edgesql.core.migrations.definitions import (
    BUILTIN_MIGRATIONS,
    REQUIRED_TABLES,
    Migration,
    MigrationRecord,
)
from edgesql.core.migrations.runner import MigrationResult, MigrationRunner, MigrationState

__all__ = [
    "BUILTIN_MIGRATIONS",
    "REQUIRED_TABLES",
    "Migration",
    "MigrationRecord",
    "MigrationResult",
    "MigrationRunner",
    "MigrationState",
]
