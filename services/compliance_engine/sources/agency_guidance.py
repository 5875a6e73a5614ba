"""
Agency Guidance Source
======================

Curated small-business guidance from the SBA and IRS websites, selected
by the topics a query mentions. Neither agency offers a search API for
this material, so the guidance is maintained here and no network call
is made.

Version: 0.1.0
"""

from dataclasses import dataclass

from shared.logging import get_logger
from shared.models import BusinessProfile, ComplianceRule, RuleLevel, SourceType
from services.compliance_engine.sources.base import RawRule, RuleSource, SourceKind, structure_rule

logger = get_logger(__name__)

RELIABILITY_SCORE = 8.0


@dataclass(frozen=True)
class GuidanceEntry:
    """A curated guidance page and the query topics that select it."""

    title: str
    description: str
    content: str
    authority: str
    source_name: str
    url: str
    triggers: tuple[str, ...]

    def matches(self, query: str) -> bool:
        lowered = query.lower()
        return any(trigger in lowered for trigger in self.triggers)


SBA = "Small Business Administration"
IRS = "Internal Revenue Service"

GUIDANCE: tuple[GuidanceEntry, ...] = (
    GuidanceEntry(
        title="Business License Requirements",
        description="Most businesses need licenses and permits to operate legally.",
        content=(
            "Check with your state and local government for specific licensing "
            "requirements for your business type."
        ),
        authority=SBA,
        source_name="sba.gov",
        url="https://www.sba.gov/business-guide/launch-your-business/apply-licenses-permits",
        triggers=("license", "permit"),
    ),
    GuidanceEntry(
        title="Federal Tax ID (EIN) Requirement",
        description="Most businesses need an Employer Identification Number (EIN) from the IRS.",
        content=(
            "Apply for an EIN if you have employees, operate as a partnership or "
            "corporation, or file certain tax returns."
        ),
        authority=SBA,
        source_name="sba.gov",
        url="https://www.sba.gov/business-guide/launch-your-business/get-federal-tax-id-ein",
        triggers=("tax", "ein"),
    ),
    GuidanceEntry(
        title="Employee Rights and Responsibilities",
        description="Understand your obligations when hiring employees.",
        content=(
            "Learn about wage and hour laws, workplace safety, and anti-discrimination "
            "requirements."
        ),
        authority=SBA,
        source_name="sba.gov",
        url="https://www.sba.gov/business-guide/manage-your-business/hire-retain-employees",
        triggers=("employee", "employment", "hiring"),
    ),
    GuidanceEntry(
        title="Business Tax Filing Requirements",
        description="All businesses must file annual tax returns and pay applicable taxes.",
        content=(
            "File Form 1120 for corporations, Form 1065 for partnerships, or "
            "Schedule C for sole proprietorships."
        ),
        authority=IRS,
        source_name="irs.gov",
        url="https://www.irs.gov/businesses/small-businesses-self-employed/business-taxes",
        triggers=("tax", "filing"),
    ),
    GuidanceEntry(
        title="Payroll Tax Obligations",
        description="Employers must withhold and pay payroll taxes for employees.",
        content=(
            "Withhold federal income tax, Social Security, and Medicare taxes. "
            "File Form 941 quarterly."
        ),
        authority=IRS,
        source_name="irs.gov",
        url="https://www.irs.gov/businesses/small-businesses-self-employed/employment-taxes",
        triggers=("payroll", "employee"),
    ),
)


class AgencyGuidanceSource(RuleSource):
    """Curated SBA and IRS guidance matched on query topics."""

    def __init__(self, entries: tuple[GuidanceEntry, ...] = GUIDANCE) -> None:
        self._entries = entries

    @property
    def kind(self) -> SourceKind:
        return SourceKind.AGENCY_GUIDANCE

    async def search(
        self,
        query: str,
        industry: str,
        profile: BusinessProfile,
    ) -> list[ComplianceRule]:
        rules = [self._to_rule(entry) for entry in self._entries if entry.matches(query)]
        logger.debug("agency_guidance_results", query=query, count=len(rules))
        return rules

    def catalog(self) -> list[ComplianceRule]:
        """Every curated entry as a rule, regardless of query."""
        return [self._to_rule(entry) for entry in self._entries]

    @staticmethod
    def _to_rule(entry: GuidanceEntry) -> ComplianceRule:
        raw = RawRule(
            title=entry.title,
            description=entry.description,
            content=entry.content,
            authority=entry.authority,
            source_name=entry.source_name,
            source_url=entry.url,
            level=RuleLevel.FEDERAL,
        )
        return structure_rule(raw, SourceType.WEBSITE, RELIABILITY_SCORE)
