"""
Rule Sources
============

Providers of candidate compliance rules.

Supported sources:
- LLM generated rules (OpenAI / Claude)
- Regulations.gov (api.regulations.gov v4)
- Federal Register (federalregister.gov)
- Curated SBA / IRS guidance

Version: 0.1.0
"""

from services.compliance_engine.sources.base import (
    HttpRuleSource,
    HttpSourceConfig,
    RawRule,
    RuleSource,
    SourceKind,
    structure_rule,
)
from services.compliance_engine.sources.agency_guidance import AgencyGuidanceSource
from services.compliance_engine.sources.ai_generated import (
    AIGeneratedSource,
    parse_rules_response,
)
from services.compliance_engine.sources.federal_register import FederalRegisterSource
from services.compliance_engine.sources.regulations_gov import RegulationsGovSource
from services.compliance_engine.sources.registry import build_sources, parse_kinds

__all__ = [
    # Base
    "HttpRuleSource",
    "HttpSourceConfig",
    "RawRule",
    "RuleSource",
    "SourceKind",
    "structure_rule",
    # Implementations
    "AIGeneratedSource",
    "AgencyGuidanceSource",
    "FederalRegisterSource",
    "RegulationsGovSource",
    "parse_rules_response",
    # Registry
    "build_sources",
    "parse_kinds",
]
