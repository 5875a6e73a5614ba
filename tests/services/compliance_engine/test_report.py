"""
Tests for the Report Synthesizer
================================

Tests for:
- No-findings report without generator call
- Generated narrative
- Deterministic fallback on generator failure, timeout and blank output
- LLM prompt construction

Version: 0.1.0
"""

import pytest

from services.compliance_engine.report import (
    LLMNarrativeGenerator,
    ReportMode,
    ReportSynthesizer,
    fallback_report,
)
from tests.helpers import StaticLLMProvider, StaticNarrative, make_rule


class TestReportSynthesizer:
    """Tests for ReportSynthesizer.synthesize_report()."""

    @pytest.mark.asyncio
    async def test_no_rules_skips_generator(self, sample_profile) -> None:
        narrative = StaticNarrative()
        synthesizer = ReportSynthesizer(narrative, timeout_seconds=1)

        outcome = await synthesizer.synthesize_report(sample_profile, [])

        assert outcome.mode == ReportMode.NO_FINDINGS
        assert "No specific compliance requirements were found" in outcome.text
        assert "manual review" in outcome.text
        assert narrative.calls == 0

    @pytest.mark.asyncio
    async def test_generated_text_returned(self, sample_profile, federal_rule) -> None:
        synthesizer = ReportSynthesizer(StaticNarrative(text="# Report"), timeout_seconds=1)

        outcome = await synthesizer.synthesize_report(sample_profile, [federal_rule])

        assert outcome.mode == ReportMode.GENERATED
        assert outcome.text == "# Report"
        assert outcome.error is None

    @pytest.mark.asyncio
    async def test_generator_error_falls_back(self, sample_profile, federal_rule) -> None:
        narrative = StaticNarrative(error=RuntimeError("provider down"))
        synthesizer = ReportSynthesizer(narrative, timeout_seconds=1)

        outcome = await synthesizer.synthesize_report(sample_profile, [federal_rule])

        assert outcome.mode == ReportMode.FALLBACK
        assert "provider down" in outcome.error
        assert "degraded mode" in outcome.text
        assert federal_rule.title in outcome.text

    @pytest.mark.asyncio
    async def test_timeout_falls_back(self, sample_profile, federal_rule) -> None:
        synthesizer = ReportSynthesizer(StaticNarrative(delay=0.5), timeout_seconds=0.05)

        outcome = await synthesizer.synthesize_report(sample_profile, [federal_rule])

        assert outcome.mode == ReportMode.FALLBACK
        assert "timed out" in outcome.error

    @pytest.mark.asyncio
    async def test_blank_text_falls_back(self, sample_profile, federal_rule) -> None:
        synthesizer = ReportSynthesizer(StaticNarrative(text="   "), timeout_seconds=1)

        outcome = await synthesizer.synthesize_report(sample_profile, [federal_rule])

        assert outcome.mode == ReportMode.FALLBACK

    @pytest.mark.asyncio
    async def test_missing_generator_falls_back(self, sample_profile, federal_rule) -> None:
        text = await ReportSynthesizer(None, timeout_seconds=1).synthesize(sample_profile, [federal_rule])

        assert text.startswith("# Compliance Analysis for Golden Gate Tacos")


class TestFallbackReport:
    """Tests for fallback_report()."""

    def test_summarizes_rules(self, sample_profile) -> None:
        rules = [
            make_rule("EIN", priority="critical", estimated_cost=0, authority="IRS"),
            make_rule("Seller's Permit", priority="high", estimated_cost=100),
            make_rule("Sign Permit", priority="high", estimated_cost=50.5),
        ]

        text = fallback_report(sample_profile, rules)

        assert "We found 3 compliance requirements" in text
        assert "- Critical: 1" in text
        assert "- High: 2" in text
        assert "Medium" not in text
        assert "1. **EIN** (critical priority, IRS)" in text
        assert "Total estimated cost: $150.50" in text


class TestLLMNarrativeGenerator:
    """Tests for LLMNarrativeGenerator."""

    def test_prompt_contents(self, sample_profile, federal_rule, california_rule) -> None:
        generator = LLMNarrativeGenerator(provider=StaticLLMProvider(), max_rules=1)

        prompt = generator.build_prompt(sample_profile, [california_rule, federal_rule])

        assert "- Name: Golden Gate Tacos" in prompt
        assert "- Has Employees: Yes" in prompt
        assert "(2 found)" in prompt
        assert california_rule.title in prompt
        assert federal_rule.title not in prompt
        assert "...and 1 lower-ranked rules" in prompt
        assert "## Executive Summary" in prompt

    @pytest.mark.asyncio
    async def test_generate_report_uses_provider(self, sample_profile, federal_rule) -> None:
        provider = StaticLLMProvider(content="# Narrative")
        generator = LLMNarrativeGenerator(provider=provider)

        text = await generator.generate_report(sample_profile, [federal_rule])

        assert text == "# Narrative"
        assert provider.prompts[0][0].content == LLMNarrativeGenerator.SYSTEM_PROMPT
