"""
Report Synthesizer
==================

Turns the applicable rules into a narrative compliance report.

- No applicable rules: a fixed "no findings" report; the narrative
  generator is not called.
- Otherwise the narrative generator is called under a timeout. If it
  raises, times out or returns blank text, a deterministic report is
  built locally from the rules.

Version: 0.1.0
"""

import asyncio
from abc import ABC, abstractmethod
from collections import Counter
from dataclasses import dataclass
from enum import Enum

from shared.config import settings
from shared.errors import GenerationFailure
from shared.llm import LLMProvider, get_llm_provider
from shared.logging import get_logger
from shared.models import BusinessProfile, ComplianceRule, RulePriority

logger = get_logger(__name__)


class ReportMode(str, Enum):
    """How the report text was produced."""

    GENERATED = "generated"
    FALLBACK = "fallback"
    NO_FINDINGS = "no_findings"


@dataclass(frozen=True)
class ReportOutcome:
    text: str
    mode: ReportMode
    error: str | None = None


class NarrativeGenerator(ABC):
    """Produces report text from a profile and its applicable rules."""

    @abstractmethod
    async def generate_report(
        self,
        profile: BusinessProfile,
        rules: list[ComplianceRule],
    ) -> str:
        ...


REPORT_SECTIONS = """Please generate a professional compliance report with the following sections:

## Executive Summary
Brief overview of compliance status and key requirements.

## Critical Action Items
List the most urgent compliance requirements with deadlines.

## Compliance Overview
Summary of all applicable rules organized by priority and jurisdiction.

## Cost Analysis
Breakdown of estimated compliance costs and timeline.

## Recommended Next Steps
Prioritized action plan for achieving compliance.

## Resources and Links
Relevant government websites and resources.

Format the response in clean markdown with proper headings, bullet points, and emphasis. \
Make it professional and actionable for a business owner."""


def _flag(value: bool | None) -> str:
    if value is None:
        return "Not specified"
    return "Yes" if value else "No"


class LLMNarrativeGenerator(NarrativeGenerator):
    """Narrative generator backed by the configured LLM provider."""

    SYSTEM_PROMPT = (
        "You are a US business compliance advisor writing reports for small "
        "business owners. Only reference the rules you are given."
    )

    def __init__(
        self,
        provider: LLMProvider | None = None,
        max_rules: int | None = None,
    ) -> None:
        self._provider = provider
        self.max_rules = max_rules or settings.report.max_rules_in_prompt

    @property
    def provider(self) -> LLMProvider:
        if self._provider is None:
            self._provider = get_llm_provider()
        return self._provider

    def build_prompt(self, profile: BusinessProfile, rules: list[ComplianceRule]) -> str:
        shown = rules[: self.max_rules]
        rule_lines = "\n".join(
            f"- **{rule.title}** ({rule.priority.value} priority)\n"
            f"  - Authority: {rule.authority or 'Unknown'}\n"
            f"  - Level: {rule.level.value}\n"
            f"  - Description: {rule.description}\n"
            f"  - Estimated Cost: ${rule.estimated_cost:,.0f}"
            for rule in shown
        )
        omitted = len(rules) - len(shown)
        if omitted > 0:
            rule_lines += f"\n- ...and {omitted} lower-ranked rules"

        return (
            "Generate a comprehensive compliance report for the following business:\n\n"
            "**Business Details:**\n"
            f"- Name: {profile.business_name}\n"
            f"- Type: {profile.business_type}\n"
            f"- State: {profile.headquarters_state}\n"
            f"- Industry: {profile.primary_industry or 'Not specified'}\n"
            f"- Employees: {profile.employee_count}\n"
            f"- Revenue: ${profile.annual_revenue:,.0f}\n"
            f"- Has Employees: {_flag(profile.characteristics['has_employees'])}\n"
            f"- Handles Personal Data: {_flag(profile.handles_personal_data)}\n\n"
            f"**Applicable Compliance Rules ({len(rules)} found):**\n"
            f"{rule_lines}\n\n"
            f"{REPORT_SECTIONS}"
        )

    async def generate_report(
        self,
        profile: BusinessProfile,
        rules: list[ComplianceRule],
    ) -> str:
        return await self.provider.generate_text(
            self.build_prompt(profile, rules),
            system_prompt=self.SYSTEM_PROMPT,
        )


NEXT_STEPS = (
    "1. Review each compliance requirement carefully\n"
    "2. Consult with legal counsel for specific guidance\n"
    "3. Implement necessary compliance measures\n"
    "4. Set up monitoring for regulatory changes"
)


def no_findings_report(profile: BusinessProfile) -> str:
    return (
        f"# Compliance Analysis for {profile.business_name}\n\n"
        "## Summary\n"
        "No specific compliance requirements were found in our current search. "
        "This could mean:\n"
        "- Your business type and location have minimal regulatory requirements\n"
        "- The search terms may need refinement\n"
        "- Some regulations may not be captured in our current data sources\n\n"
        "## Recommendations\n"
        "1. Consult with a local business attorney\n"
        "2. Check with your state's business registration office\n"
        "3. Review industry-specific regulations\n"
        "4. Consider common business requirements like business licenses and tax obligations\n\n"
        "A manual review of your obligations is recommended."
    )


def fallback_report(profile: BusinessProfile, rules: list[ComplianceRule]) -> str:
    """Deterministic report built from the rules alone."""
    counts = Counter(rule.priority for rule in rules)
    breakdown = "\n".join(
        f"- {priority.value.capitalize()}: {counts[priority]}"
        for priority in RulePriority
        if counts[priority]
    )
    listing = "\n".join(
        f"{index}. **{rule.title}** ({rule.priority.value} priority, "
        f"{rule.authority or 'Unknown authority'})"
        for index, rule in enumerate(rules, start=1)
    )
    total_cost = sum(rule.estimated_cost for rule in rules)

    return (
        f"# Compliance Analysis for {profile.business_name}\n\n"
        "> This report was generated in degraded mode: automated analysis was "
        "unavailable, so it lists the applicable rules without commentary.\n\n"
        "## Business Overview\n"
        f"- Type: {profile.business_type}\n"
        f"- Industry: {profile.primary_industry or 'Not specified'}\n"
        f"- State: {profile.headquarters_state}\n"
        f"- Employees: {profile.employee_count}\n"
        f"- Annual Revenue: ${profile.annual_revenue:,.0f}\n\n"
        "## Summary\n"
        f"We found {len(rules)} compliance requirements that may apply to your business.\n\n"
        "## Requirements by Priority\n"
        f"{breakdown}\n\n"
        "## Applicable Requirements\n"
        f"{listing}\n\n"
        "## Estimated Cost\n"
        f"Total estimated cost: ${total_cost:,.2f}\n\n"
        "## Next Steps\n"
        f"{NEXT_STEPS}"
    )


class ReportSynthesizer:
    """Narrative report with a guaranteed deterministic fallback."""

    def __init__(
        self,
        generator: NarrativeGenerator | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        self.generator = generator
        self.timeout_seconds = timeout_seconds or settings.report.timeout_seconds

    async def _generate(self, profile: BusinessProfile, rules: list[ComplianceRule]) -> str:
        if self.generator is None:
            raise GenerationFailure("no narrative generator configured")
        try:
            text = await asyncio.wait_for(
                self.generator.generate_report(profile, list(rules)),
                timeout=self.timeout_seconds,
            )
        except TimeoutError as e:
            raise GenerationFailure(
                f"narrative generation timed out after {self.timeout_seconds}s"
            ) from e
        except Exception as e:
            raise GenerationFailure(f"{type(e).__name__}: {e}") from e

        if not isinstance(text, str) or not text.strip():
            raise GenerationFailure("narrative generator returned no text")
        return text

    async def synthesize_report(
        self,
        profile: BusinessProfile,
        rules: list[ComplianceRule],
    ) -> ReportOutcome:
        """
        Produce the report for a profile's applicable rules.

        Never raises for generator problems; see ReportOutcome.mode.
        """
        if not rules:
            return ReportOutcome(text=no_findings_report(profile), mode=ReportMode.NO_FINDINGS)

        try:
            text = await self._generate(profile, rules)
        except GenerationFailure as e:
            logger.warning(
                "report_generation_failed",
                session_id=profile.session_id,
                error=str(e),
                rules=len(rules),
            )
            return ReportOutcome(
                text=fallback_report(profile, rules),
                mode=ReportMode.FALLBACK,
                error=str(e),
            )

        logger.info("report_generated", session_id=profile.session_id, length=len(text))
        return ReportOutcome(text=text, mode=ReportMode.GENERATED)

    async def synthesize(self, profile: BusinessProfile, rules: list[ComplianceRule]) -> str:
        outcome = await self.synthesize_report(profile, rules)
        return outcome.text
