"""User repository.

Tags:
    edgesql, repository, users
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from edgesql.core.errors import RecordValidationError
from edgesql.core.results import Row

from .base import BaseRepository

UserStatus = Literal["active", "inactive", "suspended"]
UserRole = Literal["USER", "ADMIN", "MODERATOR"]
UserProvider = Literal["email", "google", "github"]

USER_STATUSES: tuple[str, ...] = ("active", "inactive", "suspended")
USER_ROLES: tuple[str, ...] = ("USER", "ADMIN", "MODERATOR")
USER_PROVIDERS: tuple[str, ...] = ("email", "google", "github")

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class UserCreate(BaseModel):
    """Fields accepted when creating a user."""

    model_config = ConfigDict(extra="forbid")

    email: str = Field(pattern=EMAIL_PATTERN)
    name: str = Field(min_length=1)
    picture: str | None = None
    verified_email: bool = False
    last_login_at: str | None = None
    status: UserStatus = "active"
    role: UserRole = "USER"
    provider: UserProvider = "email"
    provider_id: str | None = None
    metadata: str | None = None


class UserUpdate(BaseModel):
    """Fields accepted when updating a user; all optional."""

    model_config = ConfigDict(extra="forbid")

    email: str | None = Field(default=None, pattern=EMAIL_PATTERN)
    name: str | None = Field(default=None, min_length=1)
    picture: str | None = None
    verified_email: bool | None = None
    last_login_at: str | None = None
    status: UserStatus | None = None
    role: UserRole | None = None
    provider: UserProvider | None = None
    provider_id: str | None = None
    metadata: str | None = None


def _validate(model: type[BaseModel], data: Mapping[str, Any]) -> BaseModel:
    try:
        return model.model_validate(dict(data))
    except ValidationError as exc:
        errors = [
            {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
            for err in exc.errors()
        ]
        summary = "; ".join(f"{e['field']}: {e['message']}" for e in errors)
        raise RecordValidationError(f"Invalid user data: {summary}", errors=errors) from exc


class UserRepository(BaseRepository):
    """CRUD and lookups for the ``users`` table, with input validation."""

    table_name = "users"

    async def create(self, data: Mapping[str, Any]) -> Row:
        validated = _validate(UserCreate, data)
        return await super().create(validated.model_dump())

    async def update(self, record_id: str, data: Mapping[str, Any]) -> Row:
        validated = _validate(UserUpdate, data)
        return await super().update(record_id, validated.model_dump(exclude_unset=True))

    async def find_by_email(self, email: str) -> Row | None:
        return await self.find_one_by("email", email)

    async def find_by_provider_id(self, provider: str, provider_id: str) -> Row | None:
        return await self.raw_one(
            f"SELECT * FROM {self.table_name} WHERE provider = ? AND provider_id = ? LIMIT 1",
            [provider, provider_id],
        )

    async def find_by_status(self, status: str) -> list[Row]:
        return await self.find_by("status", status)

    async def find_by_role(self, role: str) -> list[Row]:
        return await self.find_by("role", role)

    async def find_active_users(self) -> list[Row]:
        return await self.find_by("status", "active")

    async def search_users(self, query: str, limit: int = 50) -> list[Row]:
        """Case-insensitive substring match on name or email."""
        term = f"%{query}%"
        return await self.raw(
            f"SELECT * FROM {self.table_name} "
            "WHERE name LIKE ? OR email LIKE ? ORDER BY name ASC LIMIT ?",
            [term, term, limit],
        )

    async def update_status(self, user_id: str, status: UserStatus) -> Row:
        return await self.update(user_id, {"status": status})

    async def get_user_stats(self) -> dict[str, Any]:
        """Totals by status, provider and role. Missing groups count as zero."""
        total = await self.count()
        by_status = await self._grouped("status", USER_STATUSES)
        by_provider = await self._grouped("provider", USER_PROVIDERS)
        by_role = await self._grouped("role", USER_ROLES)
        return {
            "total": total,
            "active": by_status["active"],
            "inactive": by_status["inactive"],
            "suspended": by_status["suspended"],
            "by_provider": by_provider,
            "by_role": by_role,
        }

    async def _grouped(self, column: str, keys: tuple[str, ...]) -> dict[str, int]:
        rows = await self.raw(
            f"SELECT {column} AS grp, COUNT(*) AS count FROM {self.table_name} GROUP BY {column}"
        )
        counts = dict.fromkeys(keys, 0)
        for row in rows:
            counts[row["grp"]] = int(row["count"])
        return counts


__all__ = ["UserRepository", "UserCreate", "UserUpdate"]
