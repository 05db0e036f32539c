"""Session repository.

Expiry is compared against a bound ISO-8601 ``now`` rather than SQLite's
``datetime('now')`` so that stored and compared timestamps share one format.

Tags:
    edgesql, repository, sessions
"""

from __future__ import annotations

from typing import Any

from edgesql.core.results import Row

from ._helpers import utcnow_iso
from .base import BaseRepository


class SessionRepository(BaseRepository):
    """CRUD and lifecycle queries for the ``sessions`` table."""

    table_name = "sessions"

    async def find_by_token_hash(self, token_hash: str) -> Row | None:
        return await self.find_one_by("token_hash", token_hash)

    async def find_active_sessions_for_user(self, user_id: str) -> list[Row]:
        """Active, unexpired sessions, newest first."""
        return await self.raw(
            f"SELECT * FROM {self.table_name} "
            "WHERE user_id = ? AND is_active = 1 AND expires_at > ? "
            "ORDER BY created_at DESC",
            [user_id, utcnow_iso()],
        )

    async def create_session(
        self,
        user_id: str,
        token_hash: str,
        expires_at: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> Row:
        return await self.create(
            {
                "user_id": user_id,
                "token_hash": token_hash,
                "expires_at": expires_at,
                "ip_address": ip_address,
                "user_agent": user_agent,
                "is_active": True,
            }
        )

    async def deactivate_session(self, session_id: str) -> Row:
        return await self.update(session_id, {"is_active": False})

    async def deactivate_session_by_token(self, token_hash: str) -> bool:
        result = await self.db.execute(
            f"UPDATE {self.table_name} SET is_active = 0, updated_at = ? WHERE token_hash = ?",
            [utcnow_iso(), token_hash],
        )
        return result.meta.changes > 0

    async def deactivate_all_user_sessions(self, user_id: str) -> int:
        """Deactivate every active session of a user. Returns the number changed."""
        result = await self.db.execute(
            f"UPDATE {self.table_name} SET is_active = 0, updated_at = ? "
            "WHERE user_id = ? AND is_active = 1",
            [utcnow_iso(), user_id],
        )
        return result.meta.changes

    async def cleanup_expired_sessions(self) -> int:
        """Delete expired or deactivated sessions. Returns the number deleted."""
        result = await self.db.execute(
            f"DELETE FROM {self.table_name} WHERE expires_at < ? OR is_active = 0",
            [utcnow_iso()],
        )
        return result.meta.changes

    async def get_session_stats(self) -> dict[str, Any]:
        now = utcnow_iso()
        row = await self.raw_one(
            "SELECT COUNT(*) AS total, "
            "SUM(CASE WHEN is_active = 1 AND expires_at > ? THEN 1 ELSE 0 END) AS active, "
            "SUM(CASE WHEN expires_at <= ? THEN 1 ELSE 0 END) AS expired, "
            "SUM(CASE WHEN is_active = 0 THEN 1 ELSE 0 END) AS inactive "
            f"FROM {self.table_name}",
            [now, now],
        )
        row = row or {}
        return {key: int(row.get(key) or 0) for key in ("total", "active", "expired", "inactive")}


__all__ = ["SessionRepository"]
