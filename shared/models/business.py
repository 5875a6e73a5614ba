"""
Business Profile Models
=======================

The business profile submitted for a compliance analysis request.

A profile is a snapshot: it is frozen once validated, and every analysis
request carries its own snapshot.

Version: 0.1.0
"""

import time
from datetime import UTC, datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


def _default_session_id() -> str:
    return f"session_{int(time.time() * 1000)}"


class BusinessProfile(BaseModel):
    """
    Business profile used to decide which rules apply.

    Accepts both the snake_case model shape and the camelCase shape posted
    by the web form (businessName, businessType, industry, state, ...).
    """

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )

    business_name: str = Field(
        ...,
        min_length=1,
        max_length=300,
        validation_alias=AliasChoices("business_name", "businessName"),
    )
    business_type: str = Field(
        ...,
        min_length=1,
        description="LLC, Corporation, S-Corp, Partnership, Sole Proprietorship, Non-Profit",
        validation_alias=AliasChoices("business_type", "businessType"),
    )

    # Industry classification
    primary_industry: str = Field(
        default="",
        validation_alias=AliasChoices("primary_industry", "industry"),
    )
    industry_code: str | None = Field(
        default=None,
        description="Industry classification code (NAICS)",
        validation_alias=AliasChoices("industry_code", "naicsCode", "naics_code"),
    )
    secondary_industries: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("secondary_industries", "secondaryIndustries"),
    )

    # Location
    headquarters_state: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("headquarters_state", "state"),
    )
    headquarters_city: str | None = Field(
        default=None,
        validation_alias=AliasChoices("headquarters_city", "city"),
    )

    # Size & scale
    employee_count: int = Field(
        default=0,
        ge=0,
        validation_alias=AliasChoices("employee_count", "employees"),
    )
    annual_revenue: float = Field(
        default=0.0,
        ge=0,
        validation_alias=AliasChoices("annual_revenue", "revenue"),
    )

    business_description: str = Field(
        default="",
        validation_alias=AliasChoices(
            "business_description",
            "businessDescription",
            "description",
        ),
    )

    # Characteristics (None = not stated)
    has_employees: bool | None = None
    handles_personal_data: bool | None = None
    sells_online: bool | None = None
    processes_payments: bool | None = None
    interstate_commerce: bool | None = None
    has_physical_location: bool | None = None

    # Metadata
    session_id: str = Field(
        default_factory=_default_session_id,
        validation_alias=AliasChoices("session_id", "sessionId"),
    )
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_validator("secondary_industries", mode="before")
    @classmethod
    def split_industries(cls, v: Any) -> Any:
        """Accept a comma separated string as well as a list."""
        if v is None:
            return []
        if isinstance(v, str):
            return [part.strip() for part in v.split(",") if part.strip()]
        return v

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "BusinessProfile":
        """
        Build a profile from an HTTP payload.

        Null values are dropped so that defaults (session id, timestamps)
        apply instead of failing validation.
        """
        cleaned = {key: value for key, value in payload.items() if value is not None}
        return cls.model_validate(cleaned)

    @property
    def industry_terms(self) -> list[str]:
        """All industry descriptors of the profile, primary first."""
        terms = [self.primary_industry, self.industry_code or "", *self.secondary_industries]
        return [t for t in terms if t]

    @property
    def characteristics(self) -> dict[str, bool | None]:
        """Special-condition flags, with has_employees derived from headcount."""
        has_employees = self.has_employees
        if has_employees is None:
            has_employees = self.employee_count > 0
        return {
            "has_employees": has_employees,
            "handles_personal_data": self.handles_personal_data,
            "sells_online": self.sells_online,
            "processes_payments": self.processes_payments,
            "interstate_commerce": self.interstate_commerce,
            "has_physical_location": self.has_physical_location,
        }
