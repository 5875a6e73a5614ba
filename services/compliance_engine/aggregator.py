"""
Source Aggregator
=================

Runs every planned query against every configured rule source and
collects the candidate rules.

All (query, source) calls of a request run concurrently and are joined
before returning; each call has its own timeout. A failed or timed-out
call is recorded and never aborts the batch. Retries belong to the
sources themselves.

Version: 0.1.0
"""

import asyncio
import time
from dataclasses import dataclass, field

from shared.config import settings
from shared.errors import SourceFailure
from shared.logging import get_logger
from shared.models import BusinessProfile, ComplianceRule
from services.compliance_engine.sources import RuleSource

logger = get_logger(__name__)


@dataclass
class AggregationResult:
    """Candidate rules of one request, in (query, source) order."""

    queries: list[str]
    rules: list[ComplianceRule] = field(default_factory=list)
    failures: list[SourceFailure] = field(default_factory=list)
    calls: int = 0
    duration_ms: float = 0.0

    @property
    def total_results(self) -> int:
        return len(self.rules)

    @property
    def succeeded_calls(self) -> int:
        return self.calls - len(self.failures)


class SourceAggregator:
    """Fans queries out to rule sources and joins the results."""

    def __init__(
        self,
        sources: list[RuleSource],
        call_timeout_seconds: float | None = None,
    ) -> None:
        self.sources = list(sources)
        self.call_timeout_seconds = call_timeout_seconds or settings.sources.call_timeout_seconds

    async def _call(
        self,
        source: RuleSource,
        query: str,
        profile: BusinessProfile,
    ) -> list[ComplianceRule]:
        rules = await asyncio.wait_for(
            source.search(query, profile.primary_industry, profile),
            timeout=self.call_timeout_seconds,
        )
        if not isinstance(rules, list):
            raise TypeError(f"{source.name} returned {type(rules).__name__}, expected list")
        return rules

    async def aggregate(
        self,
        queries: list[str],
        profile: BusinessProfile,
    ) -> AggregationResult:
        """
        Collect candidate rules for all queries.

        Args:
            queries: Planned queries
            profile: Business profile

        Returns:
            AggregationResult with rules concatenated in query order, then
            source order, plus one SourceFailure per failed call
        """
        result = AggregationResult(queries=list(queries))
        pairs = [(query, source) for query in queries for source in self.sources]
        if not pairs:
            return result

        start = time.perf_counter()
        outcomes = await asyncio.gather(
            *(self._call(source, query, profile) for query, source in pairs),
            return_exceptions=True,
        )
        result.duration_ms = (time.perf_counter() - start) * 1000
        result.calls = len(pairs)

        for (query, source), outcome in zip(pairs, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                failure = SourceFailure.from_exception(source.name, query, outcome)
                result.failures.append(failure)
                logger.warning(
                    "source_call_failed",
                    source=source.name,
                    query=query,
                    error=failure.error,
                    error_type=failure.error_type,
                    timed_out=failure.timed_out,
                )
                continue

            rules = [rule for rule in outcome if isinstance(rule, ComplianceRule)]
            if not rules:
                logger.debug("source_call_empty", source=source.name, query=query)
            result.rules.extend(rules)

        logger.info(
            "aggregation_complete",
            queries=len(queries),
            sources=len(self.sources),
            calls=result.calls,
            failures=len(result.failures),
            total_results=result.total_results,
            duration_ms=round(result.duration_ms, 2),
        )
        return result

    async def close(self) -> None:
        """Close every source."""
        for source in self.sources:
            await source.close()
