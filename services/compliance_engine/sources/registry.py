"""
Source Registry
===============

Builds the configured rule sources from SOURCES_ENABLED.

Version: 0.1.0
"""

import httpx

from shared.config import settings
from shared.errors import ConfigurationError
from shared.llm import LLMProvider, get_llm_provider
from shared.logging import get_logger
from services.compliance_engine.sources.agency_guidance import AgencyGuidanceSource
from services.compliance_engine.sources.ai_generated import AIGeneratedSource
from services.compliance_engine.sources.base import RuleSource, SourceKind
from services.compliance_engine.sources.federal_register import FederalRegisterSource
from services.compliance_engine.sources.regulations_gov import RegulationsGovSource

logger = get_logger(__name__)


def parse_kinds(names: list[str]) -> list[SourceKind]:
    """
    Resolve configured source names, keeping order and dropping repeats.

    Raises:
        ConfigurationError: for an unknown source name
    """
    kinds: list[SourceKind] = []
    for name in names:
        try:
            kind = SourceKind(name.strip().lower())
        except ValueError:
            valid = ", ".join(k.value for k in SourceKind)
            raise ConfigurationError(f"Unknown rule source '{name}' (valid: {valid})") from None
        if kind not in kinds:
            kinds.append(kind)
    return kinds


def build_sources(
    kinds: list[SourceKind] | None = None,
    provider: LLMProvider | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> list[RuleSource]:
    """
    Instantiate rule sources in configured order.

    Args:
        kinds: Sources to build (defaults to settings.sources.enabled_list)
        provider: LLM provider for the AI source (defaults to the configured one)
        http_client: Shared client for API-backed sources

    Raises:
        ConfigurationError: unknown source, or AI source enabled without
            usable LLM credentials
    """
    if kinds is None:
        kinds = parse_kinds(settings.sources.enabled_list)

    sources: list[RuleSource] = []
    for kind in kinds:
        if kind == SourceKind.AI_GENERATED:
            sources.append(AIGeneratedSource(provider=provider or get_llm_provider()))
        elif kind == SourceKind.REGULATIONS_GOV:
            sources.append(RegulationsGovSource(client=http_client))
        elif kind == SourceKind.FEDERAL_REGISTER:
            sources.append(FederalRegisterSource(client=http_client))
        elif kind == SourceKind.AGENCY_GUIDANCE:
            sources.append(AgencyGuidanceSource())

    logger.info("rule_sources_built", sources=[s.name for s in sources])
    return sources
