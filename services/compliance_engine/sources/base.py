"""
Rule Source Base
================

Common interface for every rule source, a shared HTTP base for
API-backed sources, and the conversion of raw search hits into
structured compliance rules.

Version: 0.1.0
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

import httpx

from shared.config import settings
from shared.logging import get_logger
from shared.models import (
    ALL_SENTINEL,
    ApplicabilityCriteria,
    BusinessProfile,
    ComplianceRule,
    ComplianceSource,
    ComplianceStep,
    RuleLevel,
    SourceType,
    VerificationStatus,
    content_fingerprint,
)
from services.compliance_engine.planner import extract_keywords


logger = get_logger(__name__)


class SourceKind(str, Enum):
    """Closed set of rule source implementations."""

    AI_GENERATED = "ai_generated"
    REGULATIONS_GOV = "regulations_gov"
    FEDERAL_REGISTER = "federal_register"
    AGENCY_GUIDANCE = "agency_guidance"


class RuleSource(ABC):
    """A provider of candidate compliance rules for a search query."""

    @property
    @abstractmethod
    def kind(self) -> SourceKind:
        ...

    @property
    def name(self) -> str:
        return self.kind.value

    @abstractmethod
    async def search(
        self,
        query: str,
        industry: str,
        profile: BusinessProfile,
    ) -> list[ComplianceRule]:
        """
        Find candidate rules for a query.

        Args:
            query: Planned search query
            industry: Primary industry of the business
            profile: Full business profile

        Returns:
            Candidate rules, possibly empty

        Raises:
            SourceError or any transport error; the aggregator records it
        """
        ...

    async def close(self) -> None:
        """Release resources held by the source."""
        return None


@dataclass
class HttpSourceConfig:
    """HTTP behaviour shared by API-backed sources."""

    min_request_interval_seconds: float = 1.0
    retry_count: int = 2
    retry_delay_seconds: float = 1.0
    connect_timeout: float = 5.0
    read_timeout: float = 20.0
    user_agent: str = "ClawseBot/1.0"

    @classmethod
    def from_settings(cls) -> "HttpSourceConfig":
        return cls(
            min_request_interval_seconds=settings.sources.min_request_interval_seconds,
            retry_count=settings.sources.retry_count,
            retry_delay_seconds=settings.sources.retry_delay_seconds,
            user_agent=settings.sources.user_agent,
        )


class HttpRuleSource(RuleSource):
    """
    Base for sources backed by a JSON HTTP API.

    Provides a lazily created shared client, a minimum interval between
    requests and retry on rate limiting, server errors and connection
    failures.
    """

    def __init__(
        self,
        config: HttpSourceConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config or HttpSourceConfig.from_settings()
        self._client = client
        self._owns_client = client is None
        self._throttle = asyncio.Lock()
        self._last_request_time: datetime | None = None
        self._request_count = 0

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(
                    connect=self.config.connect_timeout,
                    read=self.config.read_timeout,
                    write=10.0,
                    pool=10.0,
                ),
                headers={
                    "User-Agent": self.config.user_agent,
                    "Accept": "application/json",
                },
                follow_redirects=True,
                http2=True,
            )
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if this source created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None

    async def _wait_for_slot(self) -> None:
        async with self._throttle:
            if self._last_request_time:
                elapsed = (datetime.now(UTC) - self._last_request_time).total_seconds()
                remaining = self.config.min_request_interval_seconds - elapsed
                if remaining > 0:
                    await asyncio.sleep(remaining)
            self._last_request_time = datetime.now(UTC)

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """
        Make an HTTP request with throttling and retry.

        Client errors other than 429 are raised immediately.
        """
        client = await self._get_client()

        last_error: Exception | None = None
        for attempt in range(self.config.retry_count):
            await self._wait_for_slot()
            try:
                self._request_count += 1
                response = await client.request(method, url, **kwargs)
                response.raise_for_status()

                logger.debug(
                    "source_request",
                    source=self.name,
                    url=url,
                    status=response.status_code,
                )
                return response

            except httpx.HTTPStatusError as e:
                last_error = e
                status = e.response.status_code
                if status == 429:
                    wait_time = self.config.retry_delay_seconds * (attempt + 1) * 2
                    logger.warning("source_rate_limited", source=self.name, wait=wait_time)
                    await asyncio.sleep(wait_time)
                elif status >= 500:
                    await asyncio.sleep(self.config.retry_delay_seconds * (attempt + 1))
                else:
                    raise

            except (httpx.ConnectError, httpx.TimeoutException) as e:
                last_error = e
                logger.warning(
                    "source_request_failed",
                    source=self.name,
                    attempt=attempt + 1,
                    error=str(e),
                )
                await asyncio.sleep(self.config.retry_delay_seconds * (attempt + 1))

        raise last_error or RuntimeError(
            f"Request failed after {self.config.retry_count} attempts"
        )

    async def _get_json(self, url: str, **kwargs: Any) -> Any:
        response = await self._request("GET", url, **kwargs)
        return response.json()


@dataclass
class RawRule:
    """A search hit before it is structured into a ComplianceRule."""

    title: str
    description: str
    authority: str
    source_name: str
    source_url: str = ""
    content: str = ""
    level: RuleLevel = RuleLevel.FEDERAL
    jurisdiction: str = "US"
    external_id: str | None = None
    published_at: datetime | None = None
    retrieved_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def body(self) -> str:
        return self.content or self.description


DEFAULT_REVIEW_STEP = {
    "step_number": 1,
    "step_description": "Review requirement and take appropriate action",
    "deadline": "As required",
    "estimated_cost": 0,
    "estimated_time": "1-2 hours",
}


def _slug(value: str) -> str:
    return "-".join(value.lower().split())


def search_keywords(title: str, body: str, limit: int = 15) -> list[str]:
    """Distinct keywords of a rule's text, in order of appearance."""
    return list(dict.fromkeys(extract_keywords(f"{title} {body}")))[:limit]


def structure_rule(
    raw: RawRule,
    source_type: SourceType,
    reliability_score: float,
    verification_status: VerificationStatus = VerificationStatus.VERIFIED,
) -> ComplianceRule:
    """
    Structure a raw hit with permissive applicability.

    Federal hits apply nationwide; state hits are scoped to their
    jurisdiction. Any business type and industry qualifies.
    """
    states = [] if raw.level == RuleLevel.FEDERAL else [raw.jurisdiction]
    criteria = ApplicabilityCriteria(
        business_types=[ALL_SENTINEL.upper()],
        states=states,
        industries=[ALL_SENTINEL.upper()],
    )
    source = ComplianceSource(
        source_id=f"{source_type.value}_{raw.external_id or raw.retrieved_at.strftime('%Y%m%d%H%M%S')}",
        source_type=source_type,
        source_name=raw.source_name,
        source_url=raw.source_url,
        external_id=raw.external_id,
        reliability_score=reliability_score,
        last_updated=raw.published_at or raw.retrieved_at,
        verification_status=verification_status,
        content_hash=content_fingerprint(raw.title, raw.body),
    )
    return ComplianceRule(
        title=raw.title,
        description=raw.description or raw.content,
        authority=raw.authority,
        level=raw.level,
        jurisdiction=raw.jurisdiction,
        applicability_criteria=criteria,
        compliance_steps=[ComplianceStep(**DEFAULT_REVIEW_STEP)],
        sources=[source],
        tags=["real-time-search", raw.source_name, raw.level.value, _slug(raw.authority)],
        search_keywords=search_keywords(raw.title, raw.body),
    )
