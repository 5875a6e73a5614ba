"""
Test Helpers
============

Rule factories and fake collaborators shared by the test suite.
"""

import asyncio
from datetime import UTC, datetime
from typing import Any

from shared.llm import LLMMessage, LLMProvider, LLMResponse
from shared.models import (
    BusinessProfile,
    ComplianceRule,
    ComplianceSource,
    SourceType,
    VerificationStatus,
)
from services.compliance_engine.report import NarrativeGenerator
from services.compliance_engine.sources import RuleSource, SourceKind


def make_source(
    reliability_score: float = 8.0,
    content_hash: str = "",
    source_type: SourceType = SourceType.API,
    last_updated: datetime | None = None,
    source_name: str = "test-source",
) -> ComplianceSource:
    return ComplianceSource(
        source_id=f"{source_name}-{reliability_score}",
        source_type=source_type,
        source_name=source_name,
        reliability_score=reliability_score,
        last_updated=last_updated or datetime(2024, 1, 1, tzinfo=UTC),
        verification_status=VerificationStatus.VERIFIED,
        content_hash=content_hash,
    )


def make_rule(
    title: str = "Business Registration",
    description: str = "Register the business with the state.",
    *,
    reliability_score: float = 8.0,
    content_hash: str = "",
    last_updated: datetime | None = None,
    **overrides: Any,
) -> ComplianceRule:
    """Build a valid rule; keyword overrides are passed to the model."""
    data: dict[str, Any] = {
        "title": title,
        "description": description,
        "authority": "Secretary of State",
        "level": "federal",
        "priority": "medium",
        "applicability_criteria": {},
        "sources": [
            make_source(
                reliability_score=reliability_score,
                content_hash=content_hash,
                last_updated=last_updated,
            )
        ],
    }
    data.update(overrides)
    return ComplianceRule.model_validate(data)


class StaticSource(RuleSource):
    """Fake source returning canned rules per query, or raising for chosen queries."""

    def __init__(
        self,
        name: str,
        rules_by_query: dict[str, list[ComplianceRule]] | None = None,
        default: list[ComplianceRule] | None = None,
        fail_on: set[str] | None = None,
        delay: float = 0.0,
    ) -> None:
        self._name = name
        self.rules_by_query = rules_by_query or {}
        self.default = default or []
        self.fail_on = fail_on or set()
        self.delay = delay
        self.calls: list[str] = []
        self.closed = False

    @property
    def kind(self) -> SourceKind:
        return SourceKind.AGENCY_GUIDANCE

    @property
    def name(self) -> str:
        return self._name

    async def search(
        self,
        query: str,
        industry: str,
        profile: BusinessProfile,
    ) -> list[ComplianceRule]:
        self.calls.append(query)
        if self.delay:
            await asyncio.sleep(self.delay)
        if query in self.fail_on:
            raise RuntimeError(f"{self._name} unavailable")
        return list(self.rules_by_query.get(query, self.default))

    async def close(self) -> None:
        self.closed = True


class StaticNarrative(NarrativeGenerator):
    """Fake narrative generator."""

    def __init__(
        self,
        text: str = "# Generated report",
        error: Exception | None = None,
        delay: float = 0.0,
    ) -> None:
        self.text = text
        self.error = error
        self.delay = delay
        self.calls = 0

    async def generate_report(
        self,
        profile: BusinessProfile,
        rules: list[ComplianceRule],
    ) -> str:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.text


class StaticLLMProvider(LLMProvider):
    """Fake LLM provider returning a fixed completion."""

    def __init__(self, content: str = "") -> None:
        self.content = content
        self.prompts: list[list[LLMMessage]] = []

    @property
    def name(self) -> str:
        return "static"

    @property
    def model(self) -> str:
        return "static-1"

    async def complete(
        self,
        messages: list[LLMMessage],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        self.prompts.append(messages)
        return LLMResponse(content=self.content, model=self.model, provider=self.name)

    async def health_check(self) -> dict[str, Any]:
        return {"status": "healthy", "provider": self.name}
