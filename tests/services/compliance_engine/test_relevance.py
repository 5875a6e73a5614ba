"""
Tests for Relevance Screening
=============================

Tests for:
- Keyword relevance scoring and category penalties
- Screening of search hits ahead of applicability matching
- LLM classification with keyword fallback

Version: 0.1.0
"""

import asyncio
import json

import pytest

from shared.models import BusinessProfile, RulePriority, SourceType
from services.compliance_engine.relevance import (
    LLMRelevanceClassifier,
    RelevanceContext,
    RelevanceScreen,
    relevance_score,
)
from tests.helpers import StaticLLMProvider, make_rule, make_source


PRIMARY_QUERY = "LLC Restaurant California employment law payroll tax business requirements"


@pytest.fixture
def context(sample_profile) -> RelevanceContext:
    return RelevanceContext.build(sample_profile, [PRIMARY_QUERY])


@pytest.fixture
def dialysis_rule():
    return make_rule(
        "ESRD Dialysis Facility Payment Requirements",
        "Medicare payment updates for outpatient dialysis facilities.",
        authority="Centers for Medicare & Medicaid Services",
    )


@pytest.fixture
def tip_credit_rule():
    return make_rule(
        "Restaurant Tip Credit Rules",
        "Employers of tipped restaurant staff must track payroll tip credits.",
        authority="Wage and Hour Division",
    )


# ============================================================================
# Scoring Tests
# ============================================================================


class TestRelevanceScore:
    """Tests for relevance_score()."""

    def test_related_hit_scores_industry_and_query_terms(self, context, tip_credit_rule) -> None:
        # restaurant as industry (+0.5) and query keyword (+0.2), payroll (+0.2)
        assert relevance_score(tip_credit_rule, context) == pytest.approx(0.9)

    def test_unrelated_category_is_penalized(self, context, dialysis_rule) -> None:
        assert relevance_score(dialysis_rule, context) == 0.0

    def test_no_penalty_inside_own_category(self, dialysis_rule) -> None:
        clinic = BusinessProfile.from_payload(
            {
                "businessName": "Mission Family Clinic",
                "businessType": "LLC",
                "industry": "Healthcare",
                "state": "California",
            }
        )
        context = RelevanceContext.build(clinic, [PRIMARY_QUERY.replace("Restaurant", "Healthcare")])

        assert "healthcare" in context.categories
        assert relevance_score(dialysis_rule, context) == pytest.approx(0.2)

    def test_high_penalty_terms(self, context) -> None:
        rule = make_rule(
            "Premerger Notification Filing Requirements",
            "Reporting thresholds for business mergers.",
        )

        assert relevance_score(rule, context) == 0.0

    def test_terms_match_whole_words(self, context) -> None:
        rule = make_rule("Relationship Disclosure Requirements", "Disclose business relationships.")

        # "ship" is a marine term but only a fragment of "relationship"
        assert relevance_score(rule, context) == pytest.approx(0.4)


# ============================================================================
# Keyword Screen Tests
# ============================================================================


class TestRelevanceScreen:
    """Tests for RelevanceScreen.screen() without a classifier."""

    @pytest.mark.asyncio
    async def test_drops_unrelated_search_hits(self, sample_profile, dialysis_rule, tip_credit_rule) -> None:
        result = await RelevanceScreen(min_score=0.2).screen(
            [dialysis_rule, tip_credit_rule], sample_profile, [PRIMARY_QUERY]
        )

        assert result.rules == [tip_credit_rule]
        assert result.screened_out == 1
        assert result.scores[dialysis_rule.id] == 0.0

    @pytest.mark.asyncio
    async def test_other_sources_pass_through(self, sample_profile, tip_credit_rule) -> None:
        guidance = make_rule(
            "Dialysis Staffing Guidance",
            "Guidance for medical facilities.",
            sources=[make_source(source_type=SourceType.WEBSITE)],
        )

        result = await RelevanceScreen(min_score=0.2).screen(
            [guidance, tip_credit_rule], sample_profile, [PRIMARY_QUERY]
        )

        assert result.rules == [guidance, tip_credit_rule]
        assert result.screened_out == 0

    @pytest.mark.asyncio
    async def test_min_score_threshold(self, sample_profile, tip_credit_rule) -> None:
        result = await RelevanceScreen(min_score=0.95).screen(
            [tip_credit_rule], sample_profile, [PRIMARY_QUERY]
        )

        assert result.rules == []


# ============================================================================
# LLM Classifier Tests
# ============================================================================


class SlowClassifier(LLMRelevanceClassifier):
    async def classify(self, rules, profile, queries):
        await asyncio.sleep(1)
        return rules


class TestLLMRelevanceClassifier:
    """Tests for RelevanceScreen with an LLMRelevanceClassifier."""

    @pytest.mark.asyncio
    async def test_categorizes_relevant_hits(self, sample_profile, dialysis_rule, tip_credit_rule) -> None:
        classified = [
            {"index": 1, "relevance_score": 0.1},
            {
                "index": 2,
                "relevance_score": 0.95,
                "priority": "high",
                "description": "Track tip credits for tipped employees.",
                "industries": ["Restaurant"],
                "states": ["CA"],
                "business_types": ["LLC"],
            },
        ]
        provider = StaticLLMProvider(content=f"```json\n{json.dumps(classified)}\n```")
        screen = RelevanceScreen(classifier=LLMRelevanceClassifier(provider=provider, min_score=0.8))

        result = await screen.screen([dialysis_rule, tip_credit_rule], sample_profile, [PRIMARY_QUERY])

        assert [r.id for r in result.rules] == [tip_credit_rule.id]
        rule = result.rules[0]
        assert rule.priority == RulePriority.HIGH
        assert rule.description == "Track tip credits for tipped employees."
        assert rule.applicability_criteria.industries == ["Restaurant"]
        assert rule.applicability_criteria.states == ["CA"]
        assert result.screened_out == 1
        assert result.classifier_fallbacks == 0

        user_prompt = provider.prompts[0][-1].content
        assert "1. Title: ESRD Dialysis Facility Payment Requirements" in user_prompt
        assert "Industry: Restaurant" in user_prompt

    @pytest.mark.asyncio
    async def test_hits_sent_in_batches(self, sample_profile, dialysis_rule, tip_credit_rule) -> None:
        provider = StaticLLMProvider(content=json.dumps([{"index": 1, "relevance_score": 0.9}]))
        screen = RelevanceScreen(
            classifier=LLMRelevanceClassifier(provider=provider, min_score=0.8),
            batch_size=1,
        )

        result = await screen.screen([dialysis_rule, tip_credit_rule], sample_profile, [PRIMARY_QUERY])

        assert len(provider.prompts) == 2
        assert [r.id for r in result.rules] == [dialysis_rule.id, tip_credit_rule.id]

    @pytest.mark.asyncio
    async def test_unparseable_output_falls_back_to_keywords(
        self, sample_profile, dialysis_rule, tip_credit_rule
    ) -> None:
        provider = StaticLLMProvider(content="These all look relevant to me.")
        screen = RelevanceScreen(min_score=0.2, classifier=LLMRelevanceClassifier(provider=provider))

        result = await screen.screen([dialysis_rule, tip_credit_rule], sample_profile, [PRIMARY_QUERY])

        assert result.rules == [tip_credit_rule]
        assert result.classifier_fallbacks == 1

    @pytest.mark.asyncio
    async def test_non_list_output_falls_back(self, sample_profile, tip_credit_rule) -> None:
        provider = StaticLLMProvider(content='{"relevant": true}')
        screen = RelevanceScreen(min_score=0.2, classifier=LLMRelevanceClassifier(provider=provider))

        result = await screen.screen([tip_credit_rule], sample_profile, [PRIMARY_QUERY])

        assert result.rules == [tip_credit_rule]
        assert result.classifier_fallbacks == 1

    @pytest.mark.asyncio
    async def test_timeout_falls_back(self, sample_profile, dialysis_rule, tip_credit_rule) -> None:
        screen = RelevanceScreen(
            min_score=0.2,
            classifier=SlowClassifier(provider=StaticLLMProvider()),
            timeout_seconds=0.01,
        )

        result = await screen.screen([dialysis_rule, tip_credit_rule], sample_profile, [PRIMARY_QUERY])

        assert result.rules == [tip_credit_rule]
        assert result.classifier_fallbacks == 1
