"""
Regulations.gov Source
======================

Final rules from the Regulations.gov v4 documents API.

API Documentation: https://open.gsa.gov/api/regulationsgov/

Version: 0.1.0
"""

from datetime import datetime
from typing import Any

import httpx

from shared.config import settings
from shared.logging import get_logger
from shared.models import BusinessProfile, ComplianceRule, RuleLevel, SourceType
from services.compliance_engine.planner import build_targeted_query, extract_keywords
from services.compliance_engine.sources.base import (
    HttpRuleSource,
    HttpSourceConfig,
    RawRule,
    SourceKind,
    structure_rule,
)

logger = get_logger(__name__)

RELIABILITY_SCORE = 10.0
DOCUMENT_URL = "https://www.regulations.gov/document/{document_id}"


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 date or timestamp, returning None if unreadable."""
    if not value or not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


class RegulationsGovSource(HttpRuleSource):
    """
    Searches Regulations.gov for final rules.

    Without an API key the source is inert: every search returns no rules.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        page_size: int | None = None,
        config: HttpSourceConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(config=config, client=client)
        self._api_key = (
            api_key
            if api_key is not None
            else settings.regulations_gov.api_key.get_secret_value()
        )
        self._base_url = (base_url or settings.regulations_gov.base_url).rstrip("/")
        self._page_size = page_size or settings.regulations_gov.page_size

        if not self._api_key:
            logger.warning("regulations_gov_api_key_missing")

    @property
    def kind(self) -> SourceKind:
        return SourceKind.REGULATIONS_GOV

    @property
    def has_credentials(self) -> bool:
        return bool(self._api_key)

    async def search(
        self,
        query: str,
        industry: str,
        profile: BusinessProfile,
    ) -> list[ComplianceRule]:
        if not self._api_key:
            return []

        search_term = build_targeted_query(extract_keywords(query))
        params = {
            "filter[searchTerm]": search_term,
            "filter[documentType]": "Rule",
            "page[size]": self._page_size,
            "sort": "-postedDate",
        }

        logger.debug("regulations_gov_search", query=query, search_term=search_term)

        data = await self._get_json(
            f"{self._base_url}/documents",
            params=params,
            headers={"X-Api-Key": self._api_key},
        )

        rules = [self._to_rule(doc) for doc in (data or {}).get("data", []) or []]
        rules = [rule for rule in rules if rule is not None]

        logger.info("regulations_gov_results", query=query, count=len(rules))
        return rules[: settings.sources.max_results_per_source]

    def _to_rule(self, doc: dict[str, Any]) -> ComplianceRule | None:
        attributes = doc.get("attributes") or {}
        document_id = doc.get("id")
        title = (attributes.get("title") or "").strip()
        if not title or not document_id:
            return None

        summary = (attributes.get("summary") or "").strip()
        raw = RawRule(
            title=title,
            description=summary or title,
            content=summary,
            authority=attributes.get("agencyId") or "Federal Agency",
            source_name="regulations.gov",
            source_url=DOCUMENT_URL.format(document_id=document_id),
            level=RuleLevel.FEDERAL,
            external_id=document_id,
            published_at=parse_timestamp(attributes.get("postedDate")),
        )
        return structure_rule(raw, SourceType.API, RELIABILITY_SCORE)
