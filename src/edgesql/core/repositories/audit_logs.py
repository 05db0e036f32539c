"""Audit log repository.

Tags:
    edgesql, repository, audit
"""

from __future__ import annotations

import json
from datetime import timedelta
from typing import Any

from edgesql.core.results import Row

from ._helpers import utcnow_iso
from .base import BaseRepository


class AuditLogRepository(BaseRepository):
    """Append-mostly access to the ``audit_logs`` table."""

    table_name = "audit_logs"

    async def create_audit_log(
        self,
        action: str,
        resource_type: str,
        *,
        user_id: str | None = None,
        resource_id: str | None = None,
        old_values: dict[str, Any] | None = None,
        new_values: dict[str, Any] | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> Row:
        """Record an action. ``old_values`` / ``new_values`` are stored as JSON text."""
        return await self.create(
            {
                "user_id": user_id,
                "action": action,
                "resource_type": resource_type,
                "resource_id": resource_id,
                "old_values": json.dumps(old_values) if old_values else None,
                "new_values": json.dumps(new_values) if new_values else None,
                "ip_address": ip_address,
                "user_agent": user_agent,
            }
        )

    async def find_by_user(self, user_id: str, limit: int = 50) -> list[Row]:
        return await self.raw(
            f"SELECT * FROM {self.table_name} WHERE user_id = ? ORDER BY created_at DESC LIMIT ?",
            [user_id, limit],
        )

    async def find_by_resource(self, resource_type: str, resource_id: str) -> list[Row]:
        return await self.raw(
            f"SELECT * FROM {self.table_name} "
            "WHERE resource_type = ? AND resource_id = ? ORDER BY created_at DESC",
            [resource_type, resource_id],
        )

    async def find_by_action(self, action: str, limit: int = 100) -> list[Row]:
        return await self.raw(
            f"SELECT * FROM {self.table_name} WHERE action = ? ORDER BY created_at DESC LIMIT ?",
            [action, limit],
        )

    async def get_recent_activity(self, limit: int = 20) -> list[Row]:
        return await self.raw(
            f"SELECT * FROM {self.table_name} ORDER BY created_at DESC LIMIT ?", [limit]
        )

    async def get_audit_stats(self) -> dict[str, Any]:
        """Totals plus per-action and per-resource counts, largest first."""
        total = await self.raw_one(f"SELECT COUNT(*) AS count FROM {self.table_name}")
        users = await self.raw_one(
            f"SELECT COUNT(DISTINCT user_id) AS count FROM {self.table_name} "
            "WHERE user_id IS NOT NULL"
        )
        by_action = await self.raw(
            f"SELECT action, COUNT(*) AS count FROM {self.table_name} "
            "GROUP BY action ORDER BY count DESC"
        )
        by_resource = await self.raw(
            f"SELECT resource_type, COUNT(*) AS count FROM {self.table_name} "
            "GROUP BY resource_type ORDER BY count DESC"
        )
        return {
            "total_logs": int((total or {}).get("count") or 0),
            "unique_users": int((users or {}).get("count") or 0),
            "unique_actions": len(by_action),
            "unique_resources": len(by_resource),
            "logs_by_action": by_action,
            "logs_by_resource": by_resource,
        }

    async def cleanup_old_logs(self, days_to_keep: int = 365) -> int:
        """Delete entries older than ``days_to_keep`` days. Returns the number deleted."""
        cutoff = utcnow_iso(timedelta(days=-days_to_keep))
        result = await self.db.execute(
            f"DELETE FROM {self.table_name} WHERE created_at < ?", [cutoff]
        )
        return result.meta.changes


__all__ = ["AuditLogRepository"]
