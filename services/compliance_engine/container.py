"""
Engine Container
================

Builds the engine's long-lived collaborators once at startup and
releases them at shutdown.

Version: 0.1.0
"""

import httpx

from shared.config import settings
from shared.database import MongoDBClient
from shared.errors import ConfigurationError
from shared.llm import LLMProvider, get_llm_provider
from shared.logging import get_logger
from services.compliance_engine.aggregator import SourceAggregator
from services.compliance_engine.persistence import RuleRepository
from services.compliance_engine.pipeline import ComplianceAnalyzer
from services.compliance_engine.relevance import LLMRelevanceClassifier, RelevanceScreen
from services.compliance_engine.report import (
    LLMNarrativeGenerator,
    NarrativeGenerator,
    ReportSynthesizer,
)
from services.compliance_engine.sources import RuleSource, SourceKind, build_sources, parse_kinds

logger = get_logger(__name__)


def build_relevance_screen(provider: LLMProvider | None) -> RelevanceScreen | None:
    """Screen configured by RELEVANCE_*; None when screening is disabled."""
    if not settings.relevance.enabled:
        return None
    classifier = None
    if settings.relevance.use_llm:
        if provider is None:
            logger.warning("relevance_classifier_unavailable", reason="no LLM credentials")
        else:
            classifier = LLMRelevanceClassifier(provider=provider)
    return RelevanceScreen(classifier=classifier)


class EngineContainer:
    """Owns the analyzer and every client it depends on."""

    def __init__(
        self,
        analyzer: ComplianceAnalyzer,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.analyzer = analyzer
        self._http_client = http_client
        self._closed = False

    @property
    def repository(self) -> RuleRepository:
        return self.analyzer.repository

    @property
    def sources(self) -> list[RuleSource]:
        return self.analyzer.aggregator.sources

    @classmethod
    def from_components(
        cls,
        sources: list[RuleSource],
        narrative: NarrativeGenerator | None = None,
        repository: RuleRepository | None = None,
        relevance: RelevanceScreen | None = None,
    ) -> "EngineContainer":
        """Assemble a container from ready-made collaborators."""
        analyzer = ComplianceAnalyzer(
            aggregator=SourceAggregator(sources),
            synthesizer=ReportSynthesizer(narrative),
            repository=repository or RuleRepository(enabled=False),
            relevance=relevance,
        )
        return cls(analyzer)

    @classmethod
    async def create(cls, provider: LLMProvider | None = None) -> "EngineContainer":
        """
        Build the engine from settings.

        Raises:
            ConfigurationError: unknown source, or the AI source is enabled
                without usable LLM credentials
        """
        kinds = parse_kinds(settings.sources.enabled_list)
        if not kinds:
            raise ConfigurationError("No rule sources enabled (SOURCES_ENABLED)")

        if provider is None:
            try:
                provider = get_llm_provider()
            except ConfigurationError:
                if SourceKind.AI_GENERATED in kinds:
                    raise
                logger.warning("narrative_generation_unavailable", reason="no LLM credentials")

        http_client = httpx.AsyncClient(
            timeout=httpx.Timeout(settings.sources.call_timeout_seconds, connect=5.0),
            headers={
                "User-Agent": settings.sources.user_agent,
                "Accept": "application/json",
            },
            follow_redirects=True,
            http2=True,
        )
        try:
            sources = build_sources(kinds, provider=provider, http_client=http_client)

            repository = RuleRepository()
            if repository.is_active:
                MongoDBClient.get_client()
                await MongoDBClient.create_indexes()
        except Exception:
            await http_client.aclose()
            await MongoDBClient.close()
            raise

        narrative = LLMNarrativeGenerator(provider=provider) if provider is not None else None
        analyzer = ComplianceAnalyzer(
            aggregator=SourceAggregator(sources),
            synthesizer=ReportSynthesizer(narrative),
            repository=repository,
            relevance=build_relevance_screen(provider),
        )

        logger.info(
            "engine_container_ready",
            sources=[s.name for s in sources],
            narrative=provider.name if provider is not None else None,
            persistence_active=repository.is_active,
        )
        return cls(analyzer, http_client=http_client)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self.analyzer.aggregator.close()
        if self._http_client is not None:
            await self._http_client.aclose()
        if self.repository.is_active:
            await MongoDBClient.close()
        logger.info("engine_container_closed")
