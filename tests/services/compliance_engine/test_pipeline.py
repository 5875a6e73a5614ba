"""
Tests for the Compliance Analysis Pipeline
==========================================

Tests for:
- End-to-end analysis with fake sources and narrative
- Degraded results when sources or narrative fail
- Use of stored rules when persistence is active
- Relevance screening of search hits

Version: 0.1.0
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from services.compliance_engine.aggregator import SourceAggregator
from services.compliance_engine.container import EngineContainer
from services.compliance_engine.pipeline import ComplianceAnalyzer
from services.compliance_engine.relevance import RelevanceScreen
from services.compliance_engine.report import ReportSynthesizer
from tests.helpers import StaticNarrative, StaticSource, make_rule


class TestComplianceAnalyzer:
    """Tests for ComplianceAnalyzer.analyze()."""

    @pytest.mark.asyncio
    async def test_end_to_end(self, engine_container, sample_profile, narrative) -> None:
        analyzer = engine_container.analyzer
        analyzer.split_industry_queries = True

        result = await analyzer.analyze(sample_profile)

        assert len(result.queries) == 2
        assert [r.title for r in result.rules] == [
            "California Seller's Permit",
            "Federal Tax ID (EIN) Requirement",
        ]
        assert result.report.text == narrative.text
        assert narrative.calls == 1

        metadata = result.metadata()
        assert metadata["total_queries"] == 2
        assert metadata["aggregated_results"] == 6
        assert metadata["screened_out"] == 0
        assert metadata["total_results"] == 6
        assert metadata["unique_results"] == 3
        assert metadata["applicable_results"] == 2
        assert metadata["source_failures"] == []
        assert metadata["report_mode"] == "generated"
        assert metadata["persistence_active"] is False
        assert metadata["priority_breakdown"] == {"critical": 1, "high": 1}

    @pytest.mark.asyncio
    async def test_source_failure_recorded(self, sample_profile, federal_rule) -> None:
        container = EngineContainer.from_components(
            [
                StaticSource("good", default=[federal_rule]),
                StaticSource("bad", fail_on={"never-matches"}),
            ],
            narrative=StaticNarrative(),
        )
        bad = container.sources[1]
        analyzer = container.analyzer
        analyzer.split_industry_queries = False
        bad.fail_on = set(analyzer.plan(sample_profile))

        result = await analyzer.analyze(sample_profile)

        assert [r.title for r in result.rules] == [federal_rule.title]
        failures = result.metadata()["source_failures"]
        assert [f["source"] for f in failures] == ["bad"]

    @pytest.mark.asyncio
    async def test_no_applicable_rules(self, sample_profile, texas_rule) -> None:
        narrative = StaticNarrative()
        container = EngineContainer.from_components(
            [StaticSource("only", default=[texas_rule])], narrative=narrative
        )

        result = await container.analyzer.analyze(sample_profile)

        assert result.rules == []
        assert result.report.mode.value == "no_findings"
        assert narrative.calls == 0

    @pytest.mark.asyncio
    async def test_narrative_failure_degrades(self, sample_profile, federal_rule) -> None:
        container = EngineContainer.from_components(
            [StaticSource("only", default=[federal_rule])],
            narrative=StaticNarrative(error=RuntimeError("quota exceeded")),
        )

        result = await container.analyzer.analyze(sample_profile)

        assert result.metadata()["report_mode"] == "fallback"
        assert federal_rule.title in result.report.text

    @pytest.mark.asyncio
    async def test_stored_rules_merged_and_new_rules_stored(self, sample_profile, federal_rule, california_rule) -> None:
        stored_copy = make_rule(
            federal_rule.title,
            federal_rule.description,
            authority=federal_rule.authority,
            reliability_score=9,
        )
        repository = MagicMock()
        repository.is_active = True
        repository.get_matching_rules = AsyncMock(return_value=[stored_copy])
        repository.store_rules = AsyncMock()

        analyzer = ComplianceAnalyzer(
            aggregator=SourceAggregator([StaticSource("only", default=[federal_rule, california_rule])]),
            synthesizer=ReportSynthesizer(StaticNarrative()),
            repository=repository,
            split_industry_queries=False,
        )

        result = await analyzer.analyze(sample_profile)

        assert result.stored_candidates == 1
        metadata = result.metadata()
        assert metadata["aggregated_results"] == 2
        assert metadata["total_results"] == 3
        assert stored_copy in result.rules
        assert federal_rule not in result.rules
        stored = repository.store_rules.await_args.args[0]
        assert [r.id for r in stored] == [california_rule.id]

    @pytest.mark.asyncio
    async def test_unrelated_search_hits_screened_out(self, sample_profile, federal_rule) -> None:
        dialysis = make_rule(
            "ESRD Dialysis Facility Payment Requirements",
            "Medicare payment updates for outpatient dialysis facilities.",
        )
        container = EngineContainer.from_components(
            [StaticSource("search", default=[federal_rule, dialysis])],
            narrative=StaticNarrative(),
            relevance=RelevanceScreen(min_score=0.2),
        )
        analyzer = container.analyzer
        analyzer.split_industry_queries = False

        result = await analyzer.analyze(sample_profile)

        assert [r.title for r in result.rules] == [federal_rule.title]
        metadata = result.metadata()
        assert metadata["aggregated_results"] == 2
        assert metadata["screened_out"] == 1
        assert metadata["total_results"] == 1
