"""
Shared Models
=============

Pydantic models shared across the compliance engine.

Models:
- Business profile (BusinessProfile)
- Compliance rule (ComplianceRule and its parts)
- Response envelopes (BaseResponse, ErrorResponse, HealthResponse)
"""

from shared.models.business import BusinessProfile
from shared.models.rule import (
    ALL_SENTINEL,
    ApplicabilityCriteria,
    ComplianceRule,
    ComplianceSource,
    ComplianceStep,
    CountRange,
    Deadlines,
    FormReference,
    Penalties,
    RuleLevel,
    RulePriority,
    RuleStatus,
    SourceType,
    VerificationStatus,
    canonical_rule_id,
    content_fingerprint,
    normalize_text,
)
from shared.models.common import (
    BaseResponse,
    ErrorResponse,
    HealthResponse,
)

__all__ = [
    # Business
    "BusinessProfile",
    # Rule
    "ALL_SENTINEL",
    "ApplicabilityCriteria",
    "ComplianceRule",
    "ComplianceSource",
    "ComplianceStep",
    "CountRange",
    "Deadlines",
    "FormReference",
    "Penalties",
    "RuleLevel",
    "RulePriority",
    "RuleStatus",
    "SourceType",
    "VerificationStatus",
    "canonical_rule_id",
    "content_fingerprint",
    "normalize_text",
    # Common
    "BaseResponse",
    "ErrorResponse",
    "HealthResponse",
]
