"""
Applicability Filter
====================

Decides which rules bind a business profile and ranks them.

A rule applies when it is in force (status active) and every dimension of
its applicability criteria accepts the profile:
- location: federal rule, jurisdiction is the HQ state, or the states list
  is empty, contains the HQ state or contains ALL
- business type: empty, ALL, or the profile's type (alias aware)
- employee count and annual revenue: within the inclusive range
- industries: absent, empty, ALL, or an entry and a profile industry where
  either occurs in the other on word boundaries
- special conditions: at least one listed condition is not known to be
  false for the profile

Missing or malformed criteria never exclude a rule. They are reported as
ValidationDefect records instead, as are unrecognized priority labels.
The filter does not raise.

Ranking: priority descending (unknown last), estimated cost descending,
title ascending.

Version: 0.1.0
"""

from dataclasses import dataclass, field

from shared.errors import ValidationDefect
from shared.logging import get_logger
from shared.models import (
    ALL_SENTINEL,
    ApplicabilityCriteria,
    BusinessProfile,
    ComplianceRule,
    CountRange,
    RuleLevel,
    RulePriority,
    RuleStatus,
    normalize_text,
)
from services.compliance_engine.jurisdictions import same_state
from services.compliance_engine.terms import phrases_overlap

logger = get_logger(__name__)


BUSINESS_TYPE_ALIASES = {
    "corp": "corporation",
    "inc": "corporation",
    "incorporated": "corporation",
    "c corp": "corporation",
    "c-corp": "corporation",
    "c corporation": "corporation",
    "s corp": "s-corp",
    "s corporation": "s-corp",
    "limited liability company": "llc",
    "sole prop": "sole proprietorship",
    "sole proprietor": "sole proprietorship",
    "nonprofit": "non-profit",
    "non profit": "non-profit",
    "general partnership": "partnership",
}


def canonical_business_type(value: str) -> str:
    """Normalized business type with common abbreviations expanded."""
    key = normalize_text(value).replace(".", "")
    return BUSINESS_TYPE_ALIASES.get(key, key)


def _condition_key(value: str) -> str:
    return normalize_text(value).replace("-", "_").replace(" ", "_")


def _is_all(value: str) -> bool:
    return normalize_text(value) == ALL_SENTINEL


@dataclass
class ApplicabilityDecision:
    """Outcome of evaluating one rule against one profile."""

    rule_id: str
    applicable: bool
    failed_dimensions: list[str] = field(default_factory=list)
    defects: list[ValidationDefect] = field(default_factory=list)


@dataclass
class FilterOutcome:
    """Applicable rules in rank order, with every decision and defect."""

    rules: list[ComplianceRule]
    decisions: list[ApplicabilityDecision]

    @property
    def defects(self) -> list[ValidationDefect]:
        return [defect for decision in self.decisions for defect in decision.defects]


def rank_key(rule: ComplianceRule) -> tuple[int, float, str, str]:
    return (-rule.priority_rank, -rule.estimated_cost, rule.title.casefold(), rule.id)


def rank(rules: list[ComplianceRule]) -> list[ComplianceRule]:
    """Order rules by priority desc, estimated cost desc, title asc."""
    return sorted(rules, key=rank_key)


class ApplicabilityFilter:
    """Matches rules against a business profile."""

    def evaluate(self, rule: ComplianceRule, profile: BusinessProfile) -> ApplicabilityDecision:
        decision = ApplicabilityDecision(rule_id=rule.id, applicable=True)

        criteria = rule.applicability_criteria
        if criteria is None:
            self._defect(decision, rule, "applicability_criteria", "no applicability criteria")
            criteria = ApplicabilityCriteria()

        if rule.priority == RulePriority.UNKNOWN:
            self._defect(decision, rule, "priority", "unrecognized priority label; ranked last")

        checks = (
            ("status", rule.status == RuleStatus.ACTIVE),
            ("location", self._location_matches(rule, criteria, profile, decision)),
            ("business_types", self._business_type_matches(criteria, profile)),
            (
                "employee_count",
                self._range_matches(
                    rule, criteria.employee_count, profile.employee_count, "employee_count", decision
                ),
            ),
            ("industries", self._industry_matches(criteria, profile)),
            (
                "annual_revenue",
                self._range_matches(
                    rule, criteria.annual_revenue, profile.annual_revenue, "annual_revenue", decision
                ),
            ),
            ("special_conditions", self._conditions_match(criteria, profile)),
        )
        decision.failed_dimensions = [name for name, matched in checks if not matched]
        decision.applicable = not decision.failed_dimensions
        return decision

    def evaluate_all(
        self,
        rules: list[ComplianceRule],
        profile: BusinessProfile,
    ) -> FilterOutcome:
        """
        Evaluate every rule and rank the applicable ones.

        Args:
            rules: Deduplicated candidate rules
            profile: Business profile

        Returns:
            FilterOutcome with ranked applicable rules
        """
        decisions = [self.evaluate(rule, profile) for rule in rules]
        applicable = [rule for rule, d in zip(rules, decisions, strict=True) if d.applicable]
        outcome = FilterOutcome(rules=rank(applicable), decisions=decisions)

        logger.info(
            "applicability_evaluated",
            session_id=profile.session_id,
            candidates=len(rules),
            applicable=len(outcome.rules),
            defects=len(outcome.defects),
        )
        return outcome

    def filter(self, rules: list[ComplianceRule], profile: BusinessProfile) -> list[ComplianceRule]:
        return self.evaluate_all(rules, profile).rules

    # =========================================================================
    # Dimensions
    # =========================================================================

    @staticmethod
    def _defect(
        decision: ApplicabilityDecision,
        rule: ComplianceRule,
        field_name: str,
        message: str,
    ) -> None:
        defect = ValidationDefect(rule_id=rule.id, field=field_name, message=message)
        decision.defects.append(defect)
        logger.warning(
            "rule_data_quality_defect",
            rule_id=rule.id,
            title=rule.title,
            field=field_name,
            message=message,
        )

    def _location_matches(
        self,
        rule: ComplianceRule,
        criteria: ApplicabilityCriteria,
        profile: BusinessProfile,
        decision: ApplicabilityDecision,
    ) -> bool:
        states = criteria.states
        if not states and rule.level != RuleLevel.FEDERAL:
            self._defect(
                decision,
                rule,
                "applicability_criteria.states",
                f"{rule.level.value} rule lists no states",
            )

        if rule.level == RuleLevel.FEDERAL:
            return True
        if same_state(rule.jurisdiction, profile.headquarters_state):
            return True
        if not states:
            return True
        return any(_is_all(s) or same_state(s, profile.headquarters_state) for s in states)

    @staticmethod
    def _business_type_matches(criteria: ApplicabilityCriteria, profile: BusinessProfile) -> bool:
        types = criteria.business_types
        if not types or any(_is_all(t) for t in types):
            return True
        wanted = canonical_business_type(profile.business_type)
        return any(canonical_business_type(t) == wanted for t in types)

    def _range_matches(
        self,
        rule: ComplianceRule,
        bounds: CountRange | None,
        value: float,
        field_name: str,
        decision: ApplicabilityDecision,
    ) -> bool:
        if bounds is None:
            return True
        path = f"applicability_criteria.{field_name}"
        if bounds.malformed:
            self._defect(decision, rule, path, "unreadable range bounds")
        if bounds.is_inverted:
            self._defect(decision, rule, path, f"min {bounds.min} exceeds max {bounds.max}")
            return True
        return bounds.contains(value)

    @staticmethod
    def _industry_matches(criteria: ApplicabilityCriteria, profile: BusinessProfile) -> bool:
        industries = [normalize_text(i) for i in criteria.industries or [] if normalize_text(i)]
        if not industries or any(i == ALL_SENTINEL for i in industries):
            return True
        terms = [normalize_text(t) for t in profile.industry_terms if normalize_text(t)]
        if not terms:
            # Industry unknown: cannot rule out
            return True
        return any(phrases_overlap(term, entry) for term in terms for entry in industries)

    @staticmethod
    def _conditions_match(criteria: ApplicabilityCriteria, profile: BusinessProfile) -> bool:
        known = profile.characteristics
        listed = [_condition_key(c) for c in criteria.special_conditions]
        recognized = [known[c] for c in listed if c in known]
        if not recognized:
            return True
        return any(value is not False for value in recognized)


def evaluate_all(rules: list[ComplianceRule], profile: BusinessProfile) -> FilterOutcome:
    return ApplicabilityFilter().evaluate_all(rules, profile)


def filter_rules(rules: list[ComplianceRule], profile: BusinessProfile) -> list[ComplianceRule]:
    """Applicable rules for the profile, ranked."""
    return ApplicabilityFilter().filter(rules, profile)
