"""
Error Taxonomy
==============

Errors and data-quality records raised or collected by the compliance engine.

Propagation:
- SourceError / SourceFailure: one rule source failed for one query.
  Recorded, never fatal to the request.
- GenerationFailure: narrative synthesis failed. Triggers the local
  fallback report, never fatal.
- ValidationDefect: a rule or profile breaks an invariant. Filtering stays
  permissive; the defect is flagged for offline review.
- ConfigurationError: a required credential or endpoint is absent at
  startup. Fatal and surfaced immediately.

Version: 0.1.0
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any


class ComplianceEngineError(Exception):
    """Base class for compliance engine errors."""


class ConfigurationError(ComplianceEngineError):
    """A required credential or endpoint is missing or invalid."""


class SourceError(ComplianceEngineError):
    """A rule source could not produce results for a query."""

    def __init__(self, source: str, message: str) -> None:
        super().__init__(f"{source}: {message}")
        self.source = source


class GenerationFailure(ComplianceEngineError):
    """An LLM step (narrative, relevance classification) failed or produced nothing usable."""


@dataclass(frozen=True)
class SourceFailure:
    """Record of one failed (source, query) call."""

    source: str
    query: str
    error: str
    error_type: str
    timed_out: bool = False
    occurred_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def from_exception(cls, source: str, query: str, exc: BaseException) -> "SourceFailure":
        """Build a failure record from a raised exception."""
        timed_out = isinstance(exc, TimeoutError)
        message = str(exc) or ("call timed out" if timed_out else type(exc).__name__)
        return cls(
            source=source,
            query=query,
            error=message,
            error_type=type(exc).__name__,
            timed_out=timed_out,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "query": self.query,
            "error": self.error,
            "error_type": self.error_type,
            "timed_out": self.timed_out,
        }


@dataclass(frozen=True)
class ValidationDefect:
    """A data-quality problem found on a rule or profile."""

    rule_id: str
    field: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"rule_id": self.rule_id, "field": self.field, "message": self.message}
