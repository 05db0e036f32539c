"""Health verdicts for the data-access layer.

The verdict is derived from the error rate of the current metrics snapshot:

==============  ===========================
error rate      status
==============  ===========================
``< 0.1``       ``healthy``
``< 0.5``       ``degraded``
otherwise       ``unhealthy``
==============  ===========================

A failed round-trip check is always ``unhealthy`` regardless of the rate.
Health checks report, they never raise.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

from edgesql.core.metrics import MetricsSnapshot

HealthState = Literal["healthy", "degraded", "unhealthy"]

HEALTHY_ERROR_RATE = 0.1
DEGRADED_ERROR_RATE = 0.5


class HealthStatus(BaseModel):
    """Result of a health check."""

    status: HealthState
    message: str = ""
    details: dict[str, Any] = Field(default_factory=dict)


def status_for_error_rate(error_rate: float) -> HealthState:
    if error_rate < HEALTHY_ERROR_RATE:
        return "healthy"
    if error_rate < DEGRADED_ERROR_RATE:
        return "degraded"
    return "unhealthy"


def healthy_check(snapshot: MetricsSnapshot, response_time_ms: float) -> HealthStatus:
    """Verdict after a successful round-trip check."""
    error_rate = snapshot.error_rate
    return HealthStatus(
        status=status_for_error_rate(error_rate),
        message="Database service is operational",
        details={
            "response_time_ms": round(response_time_ms, 2),
            "error_rate": round(error_rate, 2),
            "metrics": snapshot.model_dump(),
        },
    )


def failed_check(error: BaseException) -> HealthStatus:
    """Verdict after the round-trip check raised."""
    return HealthStatus(
        status="unhealthy",
        message="Database connection failed",
        details={"error": str(error)[:200]},
    )


def aggregate_status(statuses: list[HealthState]) -> HealthState:
    """Combine per-component statuses: all failing is unhealthy, some is degraded."""
    unhealthy = sum(1 for status in statuses if status == "unhealthy")
    if unhealthy == 0:
        return "healthy"
    if unhealthy < len(statuses):
        return "degraded"
    return "unhealthy"


__all__ = [
    "HealthState",
    "HealthStatus",
    "status_for_error_rate",
    "healthy_check",
    "failed_check",
    "aggregate_status",
]
