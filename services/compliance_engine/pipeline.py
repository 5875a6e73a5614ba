"""
Compliance Analysis Pipeline
============================

profile -> plan -> aggregate -> screen -> deduplicate -> filter -> report

Search hits are relevance screened only when a screen is configured;
stored rules and generated rules are never screened.

Version: 0.1.0
"""

from collections import Counter
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from shared.errors import ValidationDefect
from shared.logging import bind_context, get_logger
from shared.models import BusinessProfile, ComplianceRule
from services.compliance_engine import planner
from services.compliance_engine.aggregator import AggregationResult, SourceAggregator
from services.compliance_engine.applicability import ApplicabilityFilter
from services.compliance_engine.dedup import DedupStats, Deduplicator
from services.compliance_engine.persistence import RuleRepository
from services.compliance_engine.relevance import RelevanceScreen
from services.compliance_engine.report import ReportOutcome, ReportSynthesizer

logger = get_logger(__name__)


@dataclass
class AnalysisResult:
    """Everything produced for one analysis request."""

    profile: BusinessProfile
    queries: list[str]
    aggregation: AggregationResult
    dedup_stats: DedupStats
    rules: list[ComplianceRule]
    report: ReportOutcome
    defects: list[ValidationDefect] = field(default_factory=list)
    stored_candidates: int = 0
    screened_out: int = 0
    persistence_active: bool = False
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def estimated_total_cost(self) -> float:
        return sum(rule.estimated_cost for rule in self.rules)

    @property
    def priority_breakdown(self) -> dict[str, int]:
        counts = Counter(rule.priority.value for rule in self.rules)
        return dict(counts)

    def metadata(self) -> dict[str, Any]:
        return {
            "total_queries": len(self.queries),
            "queries": self.queries,
            "aggregated_results": self.aggregation.total_results,
            "screened_out": self.screened_out,
            "total_results": self.dedup_stats.input_count,
            "unique_results": self.dedup_stats.output_count,
            "applicable_results": len(self.rules),
            "stored_candidates": self.stored_candidates,
            "source_failures": [failure.to_dict() for failure in self.aggregation.failures],
            "report_mode": self.report.mode.value,
            "persistence_active": self.persistence_active,
            "data_quality_flags": [defect.to_dict() for defect in self.defects],
            "estimated_total_cost": self.estimated_total_cost,
            "priority_breakdown": self.priority_breakdown,
            "timestamp": self.timestamp.isoformat(),
        }

    def to_response_data(self) -> dict[str, Any]:
        return {
            "matching_rules": [rule.model_dump(mode="json") for rule in self.rules],
            "ai_report": self.report.text,
            "metadata": self.metadata(),
        }


class ComplianceAnalyzer:
    """Runs the full analysis for a business profile."""

    def __init__(
        self,
        aggregator: SourceAggregator,
        synthesizer: ReportSynthesizer,
        repository: RuleRepository,
        deduplicator: Deduplicator | None = None,
        applicability: ApplicabilityFilter | None = None,
        split_industry_queries: bool | None = None,
        relevance: RelevanceScreen | None = None,
    ) -> None:
        self.aggregator = aggregator
        self.synthesizer = synthesizer
        self.repository = repository
        self.deduplicator = deduplicator or Deduplicator()
        self.applicability = applicability or ApplicabilityFilter()
        self.split_industry_queries = split_industry_queries
        self.relevance = relevance

    def plan(self, profile: BusinessProfile) -> list[str]:
        return planner.plan(profile, split_industry=self.split_industry_queries)

    async def analyze(self, profile: BusinessProfile) -> AnalysisResult:
        """
        Analyze a profile end to end.

        Source, generation and persistence failures degrade the result
        (recorded in metadata) instead of failing the request.
        """
        bind_context(session_id=profile.session_id)
        logger.info(
            "analysis_started",
            business_type=profile.business_type,
            industry=profile.primary_industry,
            state=profile.headquarters_state,
        )

        queries = self.plan(profile)
        aggregation = await self.aggregator.aggregate(queries, profile)
        stored = await self.repository.get_matching_rules(profile)

        candidates, screened_out = aggregation.rules, 0
        if self.relevance is not None:
            screened = await self.relevance.screen(aggregation.rules, profile, queries)
            candidates, screened_out = screened.rules, screened.screened_out

        unique, dedup_stats = self.deduplicator.dedupe_with_stats([*candidates, *stored])
        outcome = self.applicability.evaluate_all(unique, profile)
        report = await self.synthesizer.synthesize_report(profile, outcome.rules)

        if self.repository.is_active:
            stored_ids = {rule.id for rule in stored}
            await self.repository.store_rules([r for r in unique if r.id not in stored_ids])

        result = AnalysisResult(
            profile=profile,
            queries=queries,
            aggregation=aggregation,
            dedup_stats=dedup_stats,
            rules=outcome.rules,
            report=report,
            defects=outcome.defects,
            stored_candidates=len(stored),
            screened_out=screened_out,
            persistence_active=self.repository.is_active,
        )

        logger.info(
            "analysis_complete",
            queries=len(queries),
            aggregated_results=aggregation.total_results,
            screened_out=screened_out,
            total_results=dedup_stats.input_count,
            unique_results=dedup_stats.output_count,
            applicable_results=len(result.rules),
            source_failures=len(aggregation.failures),
            report_mode=report.mode.value,
        )
        return result
