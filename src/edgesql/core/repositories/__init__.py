"""Repositories for the edgesql schema tables.

Each repository class extends :class:`BaseRepository` and runs every
statement through :class:`~edgesql.core.database.DatabaseService`, so
retries, timeouts and metrics apply to repository calls too.

Architecture::

    ┌────────────────────────────────────────────────────────────────┐
    │  RepositoryRegistry  (lazy, one instance per repository)       │
    └────────────────────────────┬───────────────────────────────────┘
                                 │ creates
                                 ▼
    ┌────────────────────────────────────────────────────────────────┐
    │  base.py        - BaseRepository (generic CRUD)               │
    │  users.py       - UserRepository (validated via pydantic)     │
    │  sessions.py    - SessionRepository                           │
    │  audit_logs.py  - AuditLogRepository                          │
    │  _helpers.py    - utcnow_iso, column-name check               │
    └────────────────────────────────────────────────────────────────┘

Tags:
    repository, sql, crud, edgesql
"""

from edgesql.core.repositories.audit_logs import AuditLogRepository
from edgesql.core.repositories.base import BaseRepository
from edgesql.core.repositories.registry import RepositoryRegistry
from edgesql.core.repositories.sessions import SessionRepository
from edgesql.core.repositories.users import UserCreate, UserRepository, UserUpdate

__all__ = [
    "AuditLogRepository",
    "BaseRepository",
    "RepositoryRegistry",
    "SessionRepository",
    "UserCreate",
    "UserRepository",
    "UserUpdate",
]
