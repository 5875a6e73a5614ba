"""
Compliance Rule Models
======================

Canonical shape of a compliance rule as produced by rule sources,
persisted in the document store and matched against business profiles.

Parsing is deliberately lenient on the applicability criteria: malformed
bounds are kept as "no constraint" and marked so the applicability filter
can flag them, because the filter must return a decision for every rule.

Version: 0.1.0
"""

import hashlib
import re
import uuid
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


_WHITESPACE = re.compile(r"\s+")

# Values used by seeded and generated data to mean "no constraint"
ALL_SENTINEL = "all"


def normalize_text(value: str | None) -> str:
    """Case-fold and collapse whitespace."""
    if not value:
        return ""
    return _WHITESPACE.sub(" ", value.casefold()).strip()


def content_fingerprint(title: str, content: str) -> str:
    """
    Content-addressed fingerprint of a rule.

    Same semantic content from different sources hashes identically
    after normalization.
    """
    normalized = f"{normalize_text(title)}\n{normalize_text(content)}"
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


def canonical_rule_id(title: str, authority: str, level: str) -> str:
    """Stable id for the (title, authority, level) identity of a rule."""
    key = "|".join([normalize_text(title), normalize_text(authority), level])
    return hashlib.md5(key.encode("utf-8")).hexdigest()


class RuleLevel(str, Enum):
    """Government level issuing the rule."""

    FEDERAL = "federal"
    STATE = "state"
    LOCAL = "local"


class RulePriority(str, Enum):
    """Rule priority. Ordinal: critical > high > medium > low > unknown."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    UNKNOWN = "unknown"

    @property
    def rank(self) -> int:
        return PRIORITY_RANK[self]


PRIORITY_RANK: dict[RulePriority, int] = {
    RulePriority.CRITICAL: 4,
    RulePriority.HIGH: 3,
    RulePriority.MEDIUM: 2,
    RulePriority.LOW: 1,
    RulePriority.UNKNOWN: 0,
}


class RuleStatus(str, Enum):
    """Lifecycle status of a rule."""

    ACTIVE = "active"
    PROPOSED = "proposed"
    DEPRECATED = "deprecated"
    SUPERSEDED = "superseded"


class SourceType(str, Enum):
    """Kind of source a rule was obtained from."""

    API = "api"
    WEBSITE = "website"
    PDF = "pdf"
    MANUAL = "manual"
    AI_GENERATED = "ai_generated"


class VerificationStatus(str, Enum):
    """Verification state of a source reference."""

    VERIFIED = "verified"
    PENDING = "pending"
    OUTDATED = "outdated"


class FormReference(BaseModel):
    """A government form required by a compliance step."""

    model_config = ConfigDict(extra="ignore")

    form_name: str
    form_url: str = ""


class ComplianceStep(BaseModel):
    """One ordered step towards meeting a rule."""

    model_config = ConfigDict(extra="ignore")

    step_number: int = Field(..., ge=1)
    step_description: str
    deadline: str = ""
    estimated_cost: float = Field(default=0.0, ge=0)
    estimated_time: str = ""
    required_forms: list[FormReference] = Field(default_factory=list)


class Deadlines(BaseModel):
    """Initial and recurring deadlines of a rule."""

    model_config = ConfigDict(extra="ignore")

    initial_deadline: str = ""
    recurring_deadline: str | None = None


class Penalties(BaseModel):
    """Penalties for non-compliance."""

    model_config = ConfigDict(extra="ignore")

    monetary_penalty: float | None = None
    other_penalties: list[str] = Field(default_factory=list)
    enforcement_agency: str = ""


def _as_number(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.replace(",", "").replace("$", "").strip())
        except ValueError:
            return None
    return None


class CountRange(BaseModel):
    """
    Inclusive numeric bounds. An absent bound is unbounded on that side.

    `malformed` is set when the source data could not be read as numbers;
    the unreadable bound is then treated as absent.
    """

    model_config = ConfigDict(extra="ignore")

    min: float | None = None
    max: float | None = None
    malformed: bool = False

    @model_validator(mode="before")
    @classmethod
    def coerce_bounds(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return {"malformed": True}
        result: dict[str, Any] = {"malformed": bool(data.get("malformed", False))}
        for bound in ("min", "max"):
            raw = data.get(bound)
            number = _as_number(raw)
            if raw is not None and number is None:
                result["malformed"] = True
            result[bound] = number
        return result

    @property
    def is_inverted(self) -> bool:
        return self.min is not None and self.max is not None and self.min > self.max

    def contains(self, value: float) -> bool:
        if self.min is not None and value < self.min:
            return False
        if self.max is not None and value > self.max:
            return False
        return True


def _as_utc(value: datetime) -> datetime:
    """Naive timestamps from stored data are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _as_string_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, list | tuple | set):
        return [str(v).strip() for v in value if v is not None and str(v).strip()]
    return []


class ApplicabilityCriteria(BaseModel):
    """Which businesses a rule binds. Empty/absent dimensions do not constrain."""

    model_config = ConfigDict(extra="ignore")

    business_types: list[str] = Field(default_factory=list)
    states: list[str] = Field(default_factory=list)
    employee_count: CountRange | None = None
    industries: list[str] | None = None
    annual_revenue: CountRange | None = None
    special_conditions: list[str] = Field(default_factory=list)

    @field_validator("business_types", "states", "special_conditions", mode="before")
    @classmethod
    def coerce_lists(cls, v: Any) -> list[str]:
        return _as_string_list(v)

    @field_validator("industries", mode="before")
    @classmethod
    def coerce_industries(cls, v: Any) -> list[str] | None:
        if v is None:
            return None
        return _as_string_list(v)

    @field_validator("employee_count", "annual_revenue", mode="before")
    @classmethod
    def coerce_ranges(cls, v: Any) -> Any:
        if v is None:
            return None
        if isinstance(v, CountRange):
            return v
        if not isinstance(v, dict):
            return {"malformed": True}
        return v


class ComplianceSource(BaseModel):
    """Where a rule came from and how much it is trusted."""

    model_config = ConfigDict(extra="ignore")

    source_id: str
    source_type: SourceType
    source_name: str
    source_url: str = ""
    external_id: str | None = None
    reliability_score: float = Field(default=5.0, ge=0, le=10)
    last_updated: datetime = Field(default_factory=lambda: datetime.now(UTC))
    verification_status: VerificationStatus = VerificationStatus.PENDING
    content_hash: str = ""

    @field_validator("source_type", mode="before")
    @classmethod
    def coerce_source_type(cls, v: Any) -> Any:
        # Scraped records were historically tagged "government_website"
        if isinstance(v, str) and v.lower() in {"government_website", "scraped"}:
            return SourceType.WEBSITE
        return v

    @field_validator("last_updated")
    @classmethod
    def ensure_aware(cls, v: datetime) -> datetime:
        return _as_utc(v)


class ComplianceRule(BaseModel):
    """A compliance obligation issued by a government authority."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    canonical_id: str = ""
    title: str = Field(..., min_length=1)
    description: str = ""

    # Authority & classification
    authority: str = ""
    level: RuleLevel = RuleLevel.FEDERAL
    jurisdiction: str = "US"

    # Priority & status
    priority: RulePriority = RulePriority.MEDIUM
    status: RuleStatus = RuleStatus.ACTIVE

    # Effort
    estimated_cost: float = Field(default=0.0, ge=0)
    estimated_time: str = ""
    deadlines: Deadlines = Field(default_factory=Deadlines)
    compliance_steps: list[ComplianceStep] = Field(default_factory=list)
    penalties: Penalties = Field(default_factory=Penalties)

    # Applicability (None when the source supplied nothing)
    applicability_criteria: ApplicabilityCriteria | None = None

    sources: list[ComplianceSource] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    search_keywords: list[str] = Field(default_factory=list)

    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_validator("level", "status", mode="before")
    @classmethod
    def lowercase_enums(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("priority", mode="before")
    @classmethod
    def coerce_priority(cls, v: Any) -> Any:
        """Missing priority means medium; an unrecognized label is kept as unknown."""
        if v is None:
            return RulePriority.MEDIUM
        if isinstance(v, RulePriority):
            return v
        label = str(v).strip().lower()
        if label not in {p.value for p in RulePriority}:
            return RulePriority.UNKNOWN
        return label

    @field_validator("created_at", "updated_at")
    @classmethod
    def ensure_aware(cls, v: datetime) -> datetime:
        return _as_utc(v)

    @field_validator("estimated_cost", mode="before")
    @classmethod
    def coerce_cost(cls, v: Any) -> float:
        """Accept a plain number or a {filing_fees, ongoing_costs} breakdown."""
        if isinstance(v, dict):
            total = sum(
                _as_number(v.get(key)) or 0.0 for key in ("filing_fees", "ongoing_costs")
            )
            return max(total, 0.0)
        number = _as_number(v)
        return max(number, 0.0) if number is not None else 0.0

    @field_validator("tags", "search_keywords", mode="before")
    @classmethod
    def coerce_tags(cls, v: Any) -> list[str]:
        return _as_string_list(v)

    @field_validator("compliance_steps")
    @classmethod
    def validate_step_order(cls, steps: list[ComplianceStep]) -> list[ComplianceStep]:
        """Steps must be numbered 1..n in order."""
        numbers = [step.step_number for step in steps]
        if numbers != list(range(1, len(steps) + 1)):
            raise ValueError(f"compliance_steps must be numbered 1..n in order, got {numbers}")
        return steps

    @model_validator(mode="after")
    def fill_canonical_id(self) -> "ComplianceRule":
        if not self.canonical_id:
            self.canonical_id = canonical_rule_id(self.title, self.authority, self.level.value)
        return self

    @property
    def content_hash(self) -> str:
        """
        Normalized content hash used for deduplication.

        Taken from the first source that carries one; otherwise the
        fingerprint of the rule's own title and description.
        """
        for source in self.sources:
            if source.content_hash.strip():
                return source.content_hash.strip().lower()
        return content_fingerprint(self.title, self.description)

    @property
    def reliability_score(self) -> float:
        """Best reliability score across sources (0 when unsourced)."""
        return max((s.reliability_score for s in self.sources), default=0.0)

    @property
    def last_updated(self) -> datetime:
        """Most recent source update, falling back to rule update time."""
        return max((s.last_updated for s in self.sources), default=self.updated_at)

    @property
    def priority_rank(self) -> int:
        return self.priority.rank
