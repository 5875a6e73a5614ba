"""
Relevance Screening
===================

Official search APIs return every document that mentions the query terms,
so a payroll query for a restaurant also brings back dialysis payment
rules and premerger notification rules. Search hits are screened before
they are matched against the profile.

Keyword scoring (always available):

- +0.5 per profile industry named in the rule
- +0.3 per business description keyword
- +0.2 per planned query keyword
- -0.9 per term of an unrelated industry category (hospitals, aircraft,
  vessels, ...) unless the business belongs to that category
- -1.0 per term that is never relevant to small business compliance
  (premerger notification, derivatives, ...)

The score is clamped to [0, 1] and hits below `min_score` are dropped.

An LLM classifier can be enabled on top. Hits are sent in batches; the
model returns the relevant ones with a priority, a description and
applicability criteria, which replace the permissive defaults search hits
are structured with. A batch the model cannot classify falls back to
keyword scoring.

Version: 0.1.0
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from shared.config import settings
from shared.errors import GenerationFailure
from shared.llm import LLMProvider, get_llm_provider
from shared.logging import get_logger
from shared.models import BusinessProfile, ComplianceRule, SourceType
from services.compliance_engine.planner import extract_keywords
from services.compliance_engine.terms import mentions, word_tokens

logger = get_logger(__name__)

INDUSTRY_WEIGHT = 0.5
DESCRIPTION_WEIGHT = 0.3
QUERY_WEIGHT = 0.2
CATEGORY_PENALTY = 0.9
HIGH_PENALTY = 1.0

UNRELATED_CATEGORY_TERMS: dict[str, tuple[str, ...]] = {
    "healthcare": (
        "hospital", "medicare", "medicaid", "medical", "patient",
        "clinical", "health care", "nursing", "dialysis", "renal",
    ),
    "manufacturing": (
        "manufacturing", "factory", "production line", "assembly",
        "furnace", "washer", "appliance",
    ),
    "aviation": ("aircraft", "airplane", "helicopter", "aviation", "airworthiness", "flight"),
    "marine": ("marine", "ocean", "offshore", "maritime", "vessel", "ship"),
    "agriculture": ("farming", "agricultural", "crop", "livestock", "pesticide"),
    "energy": ("nuclear", "power plant", "energy production", "utility", "electricity generation"),
    "environmental": (
        "endangered species", "wildlife", "environmental protection",
        "toxic substances", "hazardous waste",
    ),
    "consumer_products": ("toy", "children", "infant", "baby", "consumer product safety"),
}

# Words in a profile's industry or description that put the business in a category
CATEGORY_MEMBERS: dict[str, tuple[str, ...]] = {
    "healthcare": ("healthcare", "health care", "medical", "hospital", "clinic", "nursing"),
    "manufacturing": ("manufacturing", "manufacturer", "factory"),
    "aviation": ("aviation", "airline", "air transport", "transportation"),
    "marine": ("marine", "maritime", "shipping", "transportation"),
    "agriculture": ("agriculture", "agricultural", "farming", "farm"),
    "energy": ("energy", "utility", "power generation"),
    "environmental": (),
    "consumer_products": ("manufacturing", "retail"),
}

HIGH_PENALTY_TERMS = (
    "premerger notification",
    "merger",
    "acquisition",
    "cybersecurity labeling",
    "copyright circumvention",
    "supplemental nutrition",
    "food assistance",
    "clearing agency",
    "derivatives",
    "patent fees",
    "trademark fees",
)

CRITERIA_FIELDS = (
    "business_types",
    "states",
    "industries",
    "employee_count",
    "annual_revenue",
    "special_conditions",
)


def is_search_hit(rule: ComplianceRule) -> bool:
    """Rules that came only from search APIs are the ones screened."""
    return bool(rule.sources) and all(s.source_type == SourceType.API for s in rule.sources)


@dataclass(frozen=True)
class RelevanceContext:
    """What a rule is scored against."""

    industry_terms: tuple[str, ...]
    description_keywords: tuple[str, ...]
    query_keywords: tuple[str, ...]
    categories: frozenset[str]

    @classmethod
    def build(cls, profile: BusinessProfile, queries: list[str]) -> "RelevanceContext":
        description_keywords = extract_keywords(profile.business_description)
        query_keywords = [kw for query in queries for kw in extract_keywords(query)]

        profile_words = word_tokens(
            " ".join([*profile.industry_terms, profile.business_description])
        )
        categories = frozenset(
            category
            for category, members in CATEGORY_MEMBERS.items()
            if any(mentions(profile_words, member) for member in members)
        )
        return cls(
            industry_terms=tuple(dict.fromkeys(profile.industry_terms)),
            description_keywords=tuple(dict.fromkeys(description_keywords)),
            query_keywords=tuple(dict.fromkeys(query_keywords)),
            categories=categories,
        )


def relevance_score(rule: ComplianceRule, context: RelevanceContext) -> float:
    words = word_tokens(f"{rule.title} {rule.description}")

    score = 0.0
    score += INDUSTRY_WEIGHT * sum(mentions(words, t) for t in context.industry_terms)
    score += DESCRIPTION_WEIGHT * sum(mentions(words, k) for k in context.description_keywords)
    score += QUERY_WEIGHT * sum(mentions(words, k) for k in context.query_keywords)

    for category, terms in UNRELATED_CATEGORY_TERMS.items():
        if category in context.categories:
            continue
        score -= CATEGORY_PENALTY * sum(mentions(words, term) for term in terms)

    score -= HIGH_PENALTY * sum(mentions(words, term) for term in HIGH_PENALTY_TERMS)

    return round(max(0.0, min(1.0, score)), 4)


@dataclass
class ScreenResult:
    rules: list[ComplianceRule]
    screened_out: int = 0
    classifier_fallbacks: int = 0
    scores: dict[str, float] = field(default_factory=dict)


CLASSIFIER_SYSTEM_PROMPT = (
    "You are a compliance expert specializing in US business regulations. "
    "You decide which government documents bind a specific small business."
)

EXCLUDED_TOPICS = """Exclude rules about:
- Healthcare: hospitals, Medicare/Medicaid, nursing, dialysis, patient care
- Manufacturing: factories, appliances, furnaces, production equipment
- Aviation: aircraft, airworthiness, flight operations
- Marine: offshore wind, marine mammals, maritime, vessels
- Environmental: endangered species, wildlife, toxic substances, hazardous waste
- Consumer products: toys, children's products, infant safety
- Financial markets: mergers, acquisitions, derivatives, clearing agencies
- Intellectual property fees, cybersecurity labeling, copyright circumvention
- Food programs: supplemental nutrition, food assistance
- Energy: nuclear, power plants, utility regulation
unless the business itself operates in that field."""

CLASSIFIER_RESULT_EXAMPLE = """[
  {
    "index": 1,
    "relevance_score": 0.9,
    "priority": "critical|high|medium|low",
    "description": "What the business must do",
    "industries": ["ALL"],
    "business_types": ["LLC", "Corporation"],
    "states": ["ALL"],
    "employee_count": {"min": 1, "max": null},
    "annual_revenue": {"min": 0, "max": null},
    "special_conditions": ["has_employees"]
  }
]"""


class LLMRelevanceClassifier:
    """Classifies a batch of search hits with the configured LLM provider."""

    def __init__(
        self,
        provider: LLMProvider | None = None,
        min_score: float | None = None,
    ) -> None:
        self._provider = provider
        self.min_score = settings.relevance.llm_min_score if min_score is None else min_score

    @property
    def provider(self) -> LLMProvider:
        if self._provider is None:
            self._provider = get_llm_provider()
        return self._provider

    def build_prompt(
        self,
        rules: list[ComplianceRule],
        profile: BusinessProfile,
        queries: list[str],
    ) -> str:
        listed = "\n".join(
            f"{i}. Title: {rule.title}\n"
            f"   Authority: {rule.authority}\n"
            f"   Content: {rule.description}\n"
            f"   Source: {rule.sources[0].source_name if rule.sources else 'unknown'}"
            for i, rule in enumerate(rules, start=1)
        )
        return (
            f"Analyze these {len(rules)} rules for this business:\n\n"
            f"Business type: {profile.business_type}\n"
            f"Industry: {profile.primary_industry or 'Not specified'}\n"
            f"State: {profile.headquarters_state}\n"
            f"Employees: {profile.employee_count}\n"
            f"Description: {profile.business_description or 'Not provided'}\n"
            f"Searches: {'; '.join(queries)}\n\n"
            f"{EXCLUDED_TOPICS}\n\n"
            f"Rules:\n{listed}\n\n"
            f"Return a JSON array with one object per RELEVANT rule only, "
            f"identified by its number, with relevance_score above {self.min_score}:\n"
            f"{CLASSIFIER_RESULT_EXAMPLE}"
        )

    async def classify(
        self,
        rules: list[ComplianceRule],
        profile: BusinessProfile,
        queries: list[str],
    ) -> list[ComplianceRule]:
        """
        Relevant rules of the batch, categorized.

        Raises:
            GenerationFailure: the model output is not a JSON array
            json.JSONDecodeError: the model did not return JSON
        """
        data = await self.provider.generate_json(
            self.build_prompt(rules, profile, queries),
            system_prompt=CLASSIFIER_SYSTEM_PROMPT,
        )
        if isinstance(data, dict) and isinstance(data.get("rules"), list):
            data = data["rules"]
        if not isinstance(data, list):
            raise GenerationFailure(f"classifier returned {type(data).__name__}, expected a list")

        kept: dict[int, ComplianceRule] = {}
        for item in data:
            if not isinstance(item, dict):
                continue
            index, score = item.get("index"), item.get("relevance_score")
            if not isinstance(index, int) or not 1 <= index <= len(rules):
                continue
            if not isinstance(score, int | float) or score < self.min_score:
                continue
            kept.setdefault(index, categorize(rules[index - 1], item))

        return [kept[i] for i in sorted(kept)]


def categorize(rule: ComplianceRule, result: dict[str, Any]) -> ComplianceRule:
    """Apply a classifier result to a rule; invalid categorization leaves it as is."""
    data = rule.model_dump()
    if isinstance(result.get("description"), str) and result["description"].strip():
        data["description"] = result["description"].strip()
    if isinstance(result.get("priority"), str):
        data["priority"] = result["priority"]

    criteria = data.get("applicability_criteria") or {}
    for name in CRITERIA_FIELDS:
        if name in result:
            criteria[name] = result[name]
    data["applicability_criteria"] = criteria

    try:
        return ComplianceRule.model_validate(data)
    except ValidationError as e:
        logger.warning("relevance_categorization_invalid", rule_id=rule.id, errors=e.error_count())
        return rule


class RelevanceScreen:
    """Drops search hits unrelated to the business before matching."""

    def __init__(
        self,
        min_score: float | None = None,
        classifier: LLMRelevanceClassifier | None = None,
        batch_size: int | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        self.min_score = settings.relevance.min_score if min_score is None else min_score
        self.classifier = classifier
        self.batch_size = batch_size or settings.relevance.batch_size
        self.timeout_seconds = timeout_seconds or settings.relevance.timeout_seconds

    def keyword_screen(
        self,
        rules: list[ComplianceRule],
        context: RelevanceContext,
        scores: dict[str, float],
    ) -> list[ComplianceRule]:
        kept = []
        for rule in rules:
            scores[rule.id] = relevance_score(rule, context)
            if scores[rule.id] >= self.min_score:
                kept.append(rule)
        return kept

    async def _classify(
        self,
        batch: list[ComplianceRule],
        profile: BusinessProfile,
        queries: list[str],
    ) -> list[ComplianceRule]:
        try:
            return await asyncio.wait_for(
                self.classifier.classify(batch, profile, queries),
                timeout=self.timeout_seconds,
            )
        except TimeoutError as e:
            raise GenerationFailure(
                f"relevance classification timed out after {self.timeout_seconds}s"
            ) from e
        except GenerationFailure:
            raise
        except Exception as e:
            raise GenerationFailure(f"{type(e).__name__}: {e}") from e

    async def screen(
        self,
        rules: list[ComplianceRule],
        profile: BusinessProfile,
        queries: list[str],
    ) -> ScreenResult:
        """
        Screen search hits; every other rule passes through untouched.

        Never raises for classifier problems; the affected batch is
        keyword scored instead.
        """
        hits = [rule for rule in rules if is_search_hit(rule)]
        if not hits:
            return ScreenResult(rules=list(rules))

        context = RelevanceContext.build(profile, queries)
        result = ScreenResult(rules=[])

        if self.classifier is None:
            relevant = self.keyword_screen(hits, context, result.scores)
        else:
            relevant = []
            for start in range(0, len(hits), self.batch_size):
                batch = hits[start : start + self.batch_size]
                try:
                    relevant += await self._classify(batch, profile, queries)
                except GenerationFailure as e:
                    result.classifier_fallbacks += 1
                    logger.warning("relevance_classifier_failed", batch=len(batch), error=str(e))
                    relevant += self.keyword_screen(batch, context, result.scores)

        by_id = {rule.id: rule for rule in relevant}
        for rule in rules:
            if not is_search_hit(rule):
                result.rules.append(rule)
            elif rule.id in by_id:
                result.rules.append(by_id[rule.id])
            else:
                result.screened_out += 1

        logger.info(
            "relevance_screened",
            hits=len(hits),
            kept=len(hits) - result.screened_out,
            screened_out=result.screened_out,
            classifier=self.classifier is not None,
            classifier_fallbacks=result.classifier_fallbacks,
        )
        return result
