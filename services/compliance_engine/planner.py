"""
Query Planner
=============

Turns a business profile into the search queries sent to every rule source.

One information-dense primary query covers the general obligations
(registration, employment, payroll tax). Industries that carry their own
licensing regimes get a second, industry-specific query, since those
topics are under-represented in results for the primary query.

Version: 0.1.0
"""

import re
from dataclasses import dataclass

from shared.config import settings
from shared.models import BusinessProfile


PRIMARY_TOPICS = "employment law payroll tax business requirements"

STOP_WORDS = frozenset(
    {"the", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with", "by", "a", "an"}
)

BUSINESS_TERMS = (
    "business",
    "company",
    "startup",
    "llc",
    "corporation",
    "compliance",
    "licensing",
    "registration",
)
TECH_TERMS = ("software", "website", "digital", "online", "technology", "app", "development")

_NON_WORD = re.compile(r"[^\w]")


@dataclass(frozen=True)
class IndustryCoverage:
    """A regulated industry: how to recognize it and what to search for."""

    name: str
    markers: tuple[str, ...]
    topics: str

    def matches(self, industry: str) -> bool:
        lowered = industry.casefold()
        return any(marker in lowered for marker in self.markers)


REGULATED_INDUSTRIES: tuple[IndustryCoverage, ...] = (
    IndustryCoverage(
        "food service",
        ("restaurant", "food", "cafe", "catering", "bakery", "coffee"),
        "food safety health permit food handler certification",
    ),
    IndustryCoverage(
        "healthcare",
        ("health", "medical", "dental", "clinic", "pharmac", "hospital"),
        "HIPAA patient privacy professional licensing",
    ),
    IndustryCoverage(
        "construction",
        ("construction", "contractor", "roofing", "plumbing", "electrical"),
        "contractor license OSHA workplace safety",
    ),
    IndustryCoverage(
        "transportation",
        ("transport", "trucking", "logistics", "freight", "delivery"),
        "DOT FMCSA commercial vehicle operating authority",
    ),
    IndustryCoverage(
        "financial services",
        ("financ", "bank", "lending", "mortgage", "insurance", "investment"),
        "consumer financial protection licensing anti-money laundering",
    ),
    IndustryCoverage(
        "childcare",
        ("childcare", "child care", "daycare", "day care", "preschool"),
        "child care licensing background check staffing ratio",
    ),
    IndustryCoverage(
        "cannabis",
        ("cannabis", "marijuana", "dispensary", "hemp"),
        "cannabis license seed to sale tracking",
    ),
    IndustryCoverage(
        "alcohol",
        ("brewery", "winery", "distillery", "liquor", "tavern"),
        "alcohol beverage license TTB permit",
    ),
    IndustryCoverage(
        "manufacturing",
        ("manufactur", "factory", "fabrication"),
        "EPA environmental permit OSHA workplace safety",
    ),
)


def _clean(query: str) -> str:
    return " ".join(query.split())


def industry_coverage(industry: str) -> IndustryCoverage | None:
    """Coverage entry for the industry, or None if it is not specially regulated."""
    if not industry:
        return None
    for coverage in REGULATED_INDUSTRIES:
        if coverage.matches(industry):
            return coverage
    return None


def plan(profile: BusinessProfile, split_industry: bool | None = None) -> list[str]:
    """
    Build the search queries for a profile.

    Args:
        profile: Business profile
        split_industry: Add an industry-specific query for regulated
            industries (defaults to settings.planner.split_industry_queries)

    Returns:
        Whitespace-normalized, unique queries, primary first
    """
    if split_industry is None:
        split_industry = settings.planner.split_industry_queries

    queries = [
        _clean(
            f"{profile.business_type} {profile.primary_industry} "
            f"{profile.headquarters_state} {PRIMARY_TOPICS}"
        )
    ]

    if split_industry:
        coverage = industry_coverage(profile.primary_industry)
        if coverage is not None:
            queries.append(
                _clean(f"{profile.primary_industry} {profile.headquarters_state} {coverage.topics}")
            )

    return list(dict.fromkeys(q for q in queries if q))


def extract_keywords(query: str) -> list[str]:
    """Meaningful lowercase words of a query, without stop words or short words."""
    keywords = []
    for word in query.lower().split():
        word = _NON_WORD.sub("", word)
        if len(word) > 2 and word not in STOP_WORDS:
            keywords.append(word)
    return keywords


def build_targeted_query(keywords: list[str], max_terms: int = 5) -> str:
    """
    Compact query for keyword search APIs.

    Business and technology terms come first, then the leading keywords.
    """
    business = [k for k in keywords if k in BUSINESS_TERMS]
    tech = [k for k in keywords if k in TECH_TERMS]
    ordered = dict.fromkeys([*business, *tech, *keywords[:3]])
    return " ".join(list(ordered)[:max_terms])
