"""
AI Generated Source
===================

Rule source backed by the configured LLM provider.

The model is prompted with the business profile and the planned query and
asked for a JSON array of rules. Model output is frequently imperfect
JSON, so the response parser tolerates markdown fences, prose around the
payload, trailing commas, a single object or an object of objects, and
drops entries that have no title or no content.

Generated rules are trusted less than official sources (reliability 7)
and are marked as pending verification.

Version: 0.1.0
"""

import json
import re
from typing import Any

from pydantic import ValidationError

from shared.config import settings
from shared.llm import LLMProvider, get_llm_provider
from shared.logging import get_logger
from shared.models import (
    BusinessProfile,
    ComplianceRule,
    ComplianceSource,
    SourceType,
    VerificationStatus,
    content_fingerprint,
)
from services.compliance_engine.jurisdictions import state_code
from services.compliance_engine.sources.base import (
    DEFAULT_REVIEW_STEP,
    RuleSource,
    SourceKind,
    search_keywords,
)

logger = get_logger(__name__)

RELIABILITY_SCORE = 7.0
DEFAULT_RULE_COUNT = 10

SYSTEM_PROMPT = (
    "You are a US business compliance expert. You list the government "
    "compliance rules a business must follow as structured JSON. Only list "
    "rules that actually exist and name the issuing authority."
)

RULE_EXAMPLE = """[
  {
    "title": "EIN Registration",
    "description": "Get an Employer Identification Number from the IRS",
    "authority": "IRS",
    "level": "federal",
    "jurisdiction": "US",
    "priority": "high",
    "applicability_criteria": {
      "business_types": ["LLC", "Corporation"],
      "employee_count": {"min": 1, "max": 999999},
      "annual_revenue": {"min": 0, "max": 999999999},
      "industries": ["ALL"],
      "states": ["ALL"],
      "special_conditions": ["has_employees"]
    },
    "compliance_steps": [
      {
        "step_number": 1,
        "step_description": "File Form SS-4",
        "deadline": "30 days",
        "required_forms": [{"form_name": "SS-4", "form_url": "https://www.irs.gov/forms-pubs/about-form-ss-4"}],
        "estimated_cost": 0,
        "estimated_time": "30 minutes"
      }
    ],
    "estimated_cost": {"filing_fees": 0, "ongoing_costs": 0},
    "estimated_time": "1 day",
    "deadlines": {"initial_deadline": "Before hiring employees", "recurring_deadline": null},
    "penalties": {"monetary_penalty": 500, "other_penalties": [], "enforcement_agency": "IRS"},
    "tags": ["tax", "federal"]
  }
]"""

_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)
_TRAILING_COMMA = re.compile(r",\s*([}\]])")

_TITLE_KEYS = ("title", "name")
_CONTENT_KEYS = ("description", "requirement", "requirements")


def _loads(candidate: str) -> Any:
    """json.loads, retrying once with trailing commas removed."""
    try:
        return json.loads(candidate)
    except json.JSONDecodeError:
        return json.loads(_TRAILING_COMMA.sub(r"\1", candidate))


def _outer_span(text: str, opener: str, closer: str) -> str | None:
    start, end = text.find(opener), text.rfind(closer)
    if start == -1 or end <= start:
        return None
    return text[start : end + 1]


def _scan_objects(text: str) -> list[Any]:
    """Decode every top-level JSON object embedded in the text."""
    decoder = json.JSONDecoder()
    found: list[Any] = []
    index = text.find("{")
    while index != -1:
        try:
            obj, end = decoder.raw_decode(text, index)
        except json.JSONDecodeError:
            index = text.find("{", index + 1)
            continue
        found.append(obj)
        index = text.find("{", end)
    return found


def _as_entries(data: Any) -> list[Any]:
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        if any(key in data for key in _TITLE_KEYS):
            return [data]
        if isinstance(data.get("rules"), list):
            return data["rules"]
        return [value for value in data.values() if isinstance(value, dict)]
    return []


def _first_text(entry: dict[str, Any], keys: tuple[str, ...]) -> str:
    """First value under `keys` that is a non-blank string, stripped."""
    for key in keys:
        value = entry.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


def _is_usable(entry: Any) -> bool:
    if not isinstance(entry, dict):
        return False
    has_title = bool(_first_text(entry, _TITLE_KEYS))
    has_content = any(entry.get(k) for k in _CONTENT_KEYS) or bool(entry.get("compliance_steps"))
    return has_title and has_content


def parse_rules_response(text: str) -> list[dict[str, Any]]:
    """
    Extract rule dictionaries from raw model output.

    Returns an empty list if nothing usable can be recovered.
    """
    if not text or not text.strip():
        return []

    cleaned = _FENCE.sub("", text).strip()

    spans = [
        span
        for span in (_outer_span(cleaned, "[", "]"), _outer_span(cleaned, "{", "}"))
        if span is not None
    ]
    spans.sort(key=cleaned.find)

    data: Any = None
    for candidate in (cleaned, *spans):
        try:
            data = _loads(candidate)
            break
        except json.JSONDecodeError:
            continue
    else:
        data = _scan_objects(cleaned)

    entries = _as_entries(data)
    usable = [entry for entry in entries if _is_usable(entry)]
    if len(usable) < len(entries):
        logger.debug(
            "generated_rules_filtered",
            received=len(entries),
            kept=len(usable),
        )
    return usable


def _normalize_steps(steps: Any) -> list[dict[str, Any]]:
    """Renumber steps 1..n in the given order."""
    if not isinstance(steps, list):
        return []
    normalized = []
    for step in steps:
        if isinstance(step, str) and step.strip():
            step = {"step_description": step.strip()}
        if not isinstance(step, dict) or not step.get("step_description"):
            continue
        normalized.append({**step, "step_number": len(normalized) + 1})
    return normalized


def rule_from_generated(
    entry: dict[str, Any],
    source_name: str,
    default_state: str | None = None,
) -> ComplianceRule:
    """
    Build a ComplianceRule from one generated entry.

    Raises:
        ValueError: if the entry cannot form a valid rule (pydantic
            ValidationError included)
    """
    data = {k: v for k, v in entry.items() if k not in {"id", "sources", "canonical_id"}}
    data["title"] = _first_text(entry, _TITLE_KEYS)
    if not data.get("description"):
        requirement = entry.get("requirement") or entry.get("requirements") or ""
        data["description"] = (
            "; ".join(map(str, requirement)) if isinstance(requirement, list) else str(requirement)
        )

    steps = _normalize_steps(entry.get("compliance_steps"))
    data["compliance_steps"] = steps or [dict(DEFAULT_REVIEW_STEP)]

    level = str(entry.get("level") or "federal").strip().lower()
    if not entry.get("jurisdiction"):
        if level == "federal":
            data["jurisdiction"] = "US"
        else:
            criteria = entry.get("applicability_criteria") or {}
            states = criteria.get("states") if isinstance(criteria, dict) else None
            if not isinstance(states, list):
                states = []
            named = [s for s in states if isinstance(s, str) and s.strip()]
            first = named[0] if named else default_state
            data["jurisdiction"] = state_code(first) or first or "US"

    data["sources"] = [
        ComplianceSource(
            source_id=f"ai_{source_name}",
            source_type=SourceType.AI_GENERATED,
            source_name=source_name,
            reliability_score=RELIABILITY_SCORE,
            verification_status=VerificationStatus.PENDING,
            content_hash=content_fingerprint(data["title"], data["description"]),
        )
    ]
    if not data.get("search_keywords"):
        data["search_keywords"] = search_keywords(data["title"], data["description"])

    return ComplianceRule.model_validate(data)


class AIGeneratedSource(RuleSource):
    """Generates candidate rules with the configured LLM provider."""

    def __init__(
        self,
        provider: LLMProvider | None = None,
        rule_count: int = DEFAULT_RULE_COUNT,
    ) -> None:
        self._provider = provider
        self._rule_count = rule_count

    @property
    def kind(self) -> SourceKind:
        return SourceKind.AI_GENERATED

    @property
    def provider(self) -> LLMProvider:
        if self._provider is None:
            self._provider = get_llm_provider()
        return self._provider

    async def search(
        self,
        query: str,
        industry: str,
        profile: BusinessProfile,
    ) -> list[ComplianceRule]:
        prompt = self._profile_prompt(query, industry, profile)
        return await self._generate(prompt, default_state=profile.headquarters_state)

    async def generate_federal_rules(self, count: int = DEFAULT_RULE_COUNT) -> list[ComplianceRule]:
        """Generate general US federal rules, independent of any profile."""
        prompt = (
            f"Generate {count} US federal business compliance rules as a JSON array.\n\n"
            f"Return only a JSON array shaped like:\n{RULE_EXAMPLE}"
        )
        return await self._generate(prompt)

    async def generate_state_rules(
        self,
        state: str,
        count: int = DEFAULT_RULE_COUNT,
    ) -> list[ComplianceRule]:
        """Generate state-level rules for one state."""
        prompt = (
            f"Generate {count} {state} state business compliance rules as a JSON array. "
            f'Use level "state", jurisdiction "{state}" and states ["{state}"].\n\n'
            f"Return only a JSON array shaped like:\n{RULE_EXAMPLE}"
        )
        return await self._generate(prompt, default_state=state)

    async def generate_industry_rules(
        self,
        industry: str,
        industry_code: str | None = None,
        count: int = DEFAULT_RULE_COUNT,
    ) -> list[ComplianceRule]:
        """Generate industry-specific federal rules."""
        code = f" (NAICS {industry_code})" if industry_code else ""
        prompt = (
            f"Generate {count} US compliance rules specific to the {industry}{code} "
            f'industry as a JSON array. List "{industry}" in industries.\n\n'
            f"Return only a JSON array shaped like:\n{RULE_EXAMPLE}"
        )
        return await self._generate(prompt)

    def _profile_prompt(self, query: str, industry: str, profile: BusinessProfile) -> str:
        lines = [
            f"List up to {self._rule_count} federal and {profile.headquarters_state} "
            "compliance rules relevant to this search and business.",
            "",
            f"Search: {query}",
            f"Business type: {profile.business_type}",
            f"Industry: {industry or 'Not specified'}",
            f"State: {profile.headquarters_state}",
            f"Employees: {profile.employee_count}",
            f"Annual revenue: ${profile.annual_revenue:,.0f}",
        ]
        if profile.industry_code:
            lines.append(f"NAICS code: {profile.industry_code}")
        if profile.business_description:
            lines.append(f"Description: {profile.business_description}")
        lines += ["", f"Return only a JSON array shaped like:\n{RULE_EXAMPLE}"]
        return "\n".join(lines)

    async def _generate(self, prompt: str, default_state: str | None = None) -> list[ComplianceRule]:
        provider = self.provider
        text = await provider.generate_text(
            prompt,
            system_prompt=SYSTEM_PROMPT,
            temperature=settings.llm.temperature,
        )

        entries = parse_rules_response(text)
        if not entries:
            logger.warning("generated_rules_unparseable", provider=provider.name, length=len(text))
            return []

        rules: list[ComplianceRule] = []
        for entry in entries:
            try:
                rules.append(rule_from_generated(entry, provider.name, default_state))
            except ValidationError as e:
                logger.warning(
                    "generated_rule_invalid",
                    title=_first_text(entry, _TITLE_KEYS),
                    errors=e.error_count(),
                )
            except (TypeError, AttributeError, ValueError) as e:
                logger.warning(
                    "generated_rule_malformed",
                    title=_first_text(entry, _TITLE_KEYS),
                    error_type=type(e).__name__,
                    error=str(e),
                )

        logger.info("generated_rules", provider=provider.name, count=len(rules))
        return rules
