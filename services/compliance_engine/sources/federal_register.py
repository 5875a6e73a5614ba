"""
Federal Register Source
=======================

Final rules from the Federal Register documents API. Proposed rules are
not requested; a proposed rule that still comes back is marked as such
and never reaches a report.

API Documentation: https://www.federalregister.gov/developers/documentation/api/v1

Version: 0.1.0
"""

from datetime import UTC, datetime
from typing import Any

import httpx

from shared.config import settings
from shared.logging import get_logger
from shared.models import BusinessProfile, ComplianceRule, RuleLevel, RuleStatus, SourceType
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

# Federal Register document types requested
FR_DOCUMENT_TYPES = ("RULE",)
_RESULT_TYPE_STATUS = {
    "rule": RuleStatus.ACTIVE,
    "proposed rule": RuleStatus.PROPOSED,
}


def _publication_datetime(value: Any) -> datetime | None:
    if not value or not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value).replace(tzinfo=UTC)
    except ValueError:
        return None


class FederalRegisterSource(HttpRuleSource):
    """Searches the Federal Register. No credentials required."""

    def __init__(
        self,
        base_url: str | None = None,
        page_size: int | None = None,
        config: HttpSourceConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(config=config, client=client)
        self._base_url = (base_url or settings.federal_register.base_url).rstrip("/")
        self._page_size = page_size or settings.federal_register.page_size

    @property
    def kind(self) -> SourceKind:
        return SourceKind.FEDERAL_REGISTER

    async def search(
        self,
        query: str,
        industry: str,
        profile: BusinessProfile,
    ) -> list[ComplianceRule]:
        term = build_targeted_query(extract_keywords(query))
        params: dict[str, Any] = {
            "conditions[term]": term,
            "conditions[type][]": list(FR_DOCUMENT_TYPES),
            "per_page": self._page_size,
            "order": "relevance",
        }

        data = await self._get_json(f"{self._base_url}/documents.json", params=params)

        rules: list[ComplianceRule] = []
        for item in (data or {}).get("results", []) or []:
            rule = self._to_rule(item)
            if rule is not None:
                rules.append(rule)

        logger.info("federal_register_results", query=query, term=term, count=len(rules))
        return rules[: settings.sources.max_results_per_source]

    def _to_rule(self, item: dict[str, Any]) -> ComplianceRule | None:
        title = (item.get("title") or "").strip()
        document_number = item.get("document_number")
        if not title or not document_number:
            return None

        abstract = (item.get("abstract") or "").strip()
        agencies = [a.get("name", "") for a in item.get("agencies") or [] if a.get("name")]
        raw = RawRule(
            title=title,
            description=abstract or title,
            content=abstract,
            authority=agencies[0] if agencies else "Federal Agency",
            source_name="federalregister.gov",
            source_url=item.get("html_url") or "",
            level=RuleLevel.FEDERAL,
            external_id=document_number,
            published_at=_publication_datetime(item.get("publication_date")),
        )
        rule = structure_rule(raw, SourceType.API, RELIABILITY_SCORE)

        status = _RESULT_TYPE_STATUS.get(str(item.get("type", "")).lower(), RuleStatus.ACTIVE)
        if status != rule.status:
            rule = rule.model_copy(update={"status": status})
        return rule
