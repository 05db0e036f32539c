"""Lazy registry of the domain repositories bound to one database service."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from edgesql.core.health import HealthStatus, aggregate_status
from edgesql.core.logging import get_logger

from .audit_logs import AuditLogRepository
from .base import BaseRepository
from .sessions import SessionRepository
from .users import UserRepository

if TYPE_CHECKING:
    from edgesql.core.database import DatabaseService


class RepositoryRegistry:
    """Creates each repository on first use and caches it."""

    def __init__(self, db: DatabaseService, logger: Any = None) -> None:
        self.db = db
        self.logger = logger or get_logger(__name__)
        self._users: UserRepository | None = None
        self._sessions: SessionRepository | None = None
        self._audit_logs: AuditLogRepository | None = None

    @property
    def users(self) -> UserRepository:
        if self._users is None:
            self._users = UserRepository(self.db)
        return self._users

    @property
    def sessions(self) -> SessionRepository:
        if self._sessions is None:
            self._sessions = SessionRepository(self.db)
        return self._sessions

    @property
    def audit_logs(self) -> AuditLogRepository:
        if self._audit_logs is None:
            self._audit_logs = AuditLogRepository(self.db)
        return self._audit_logs

    def all(self) -> dict[str, BaseRepository]:
        return {
            "users": self.users,
            "sessions": self.sessions,
            "audit_logs": self.audit_logs,
        }

    async def health_check(self) -> HealthStatus:
        """Run ``count()`` on every repository and combine the outcomes.

        No failures is healthy, some is degraded, all is unhealthy.
        """
        results: dict[str, dict[str, str]] = {}
        for name, repo in self.all().items():
            try:
                await repo.count()
            except Exception as exc:
                self.logger.warning("repository.health_failed", repository=name, error=str(exc))
                results[name] = {"status": "unhealthy", "error": str(exc)}
            else:
                results[name] = {"status": "healthy"}

        status = aggregate_status([r["status"] for r in results.values()])
        failing = sum(1 for r in results.values() if r["status"] == "unhealthy")
        return HealthStatus(
            status=status,
            message=f"{len(results) - failing}/{len(results)} repositories healthy",
            details={"repositories": results},
        )


__all__ = ["RepositoryRegistry"]
