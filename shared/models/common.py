"""
Common Models
=============

Envelopes returned at the HTTP boundary: successful payloads, errors
and the health report.

Version: 0.1.0
"""

from datetime import UTC, datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")

# Component states that do not degrade the service
OK_STATES = frozenset({"healthy", "disabled"})


def utc_now() -> datetime:
    return datetime.now(UTC)


class BaseResponse(BaseModel, Generic[T]):
    """Payload envelope for successful calls."""

    success: bool = True
    data: T | None = None
    message: str | None = None
    timestamp: datetime = Field(default_factory=utc_now)


class ErrorResponse(BaseModel):
    """Error envelope. `details` holds validation errors only, never a traceback."""

    success: bool = False
    error: str
    error_code: str | None = None
    details: dict[str, Any] | list[Any] | None = None
    timestamp: datetime = Field(default_factory=utc_now)


class HealthResponse(BaseModel):
    status: str = "healthy"
    service: str
    version: str
    components: dict[str, dict[str, Any]] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=utc_now)

    @classmethod
    def from_components(
        cls, service: str, version: str, components: dict[str, dict[str, Any]]
    ) -> "HealthResponse":
        """Report `degraded` as soon as one component is neither healthy nor disabled."""
        degraded = any(c.get("status") not in OK_STATES for c in components.values())
        return cls(
            status="degraded" if degraded else "healthy",
            service=service,
            version=version,
            components=components,
        )
