"""Shared helpers for repository classes.

Tags:
    edgesql, repository, helpers
"""

from __future__ import annotations

import re
from datetime import UTC, datetime, timedelta

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def utcnow_iso(offset: timedelta | None = None) -> str:
    """ISO-8601 UTC timestamp, optionally shifted by ``offset``.

    Every timestamp the repositories write or compare against uses this
    format so that string comparison in SQL matches time order.
    """
    now = datetime.now(UTC)
    if offset is not None:
        now += offset
    return now.isoformat()


def _check_column(name: str) -> str:
    """Reject column names that would not be a bare SQL identifier."""
    if not _IDENTIFIER.match(name):
        raise ValueError(f"Invalid column name {name!r}")
    return name
