"""
Rule Deduplicator
=================

Collapses candidate rules that describe the same obligation and keeps
the best-scored representative of each group.

Two rules are duplicates when:
- their normalized content hashes are equal, or
- (near-duplicate heuristic, configurable) they share the same
  normalized authority and their normalized titles have a
  SequenceMatcher ratio at or above the title similarity threshold.

Groups are the connected components of both relations, so no two
surviving rules are related by either one and dedupe(dedupe(x)) ==
dedupe(x).

Winner per group: highest reliability score, then most recent
last_updated, then smallest id. Output keeps the position of each
group's first occurrence.

Version: 0.1.0
"""

from dataclasses import dataclass
from difflib import SequenceMatcher

from shared.config import settings
from shared.logging import get_logger
from shared.models import ComplianceRule, normalize_text

logger = get_logger(__name__)


@dataclass(frozen=True)
class DedupStats:
    """Counts for one deduplication pass."""

    input_count: int
    output_count: int
    exact_matches: int = 0
    near_matches: int = 0

    @property
    def collapsed(self) -> int:
        return self.input_count - self.output_count


class _DisjointSet:
    def __init__(self, size: int) -> None:
        self.parent = list(range(size))

    def find(self, item: int) -> int:
        root = item
        while self.parent[root] != root:
            root = self.parent[root]
        while self.parent[item] != root:
            self.parent[item], item = root, self.parent[item]
        return root

    def union(self, left: int, right: int) -> bool:
        left_root, right_root = self.find(left), self.find(right)
        if left_root == right_root:
            return False
        # Lower index as root keeps the first occurrence as representative
        if right_root < left_root:
            left_root, right_root = right_root, left_root
        self.parent[right_root] = left_root
        return True


def _winner_key(rule: ComplianceRule) -> tuple[float, float, str]:
    return (-rule.reliability_score, -rule.last_updated.timestamp(), rule.id)


class Deduplicator:
    """Content-hash and near-duplicate rule collapsing."""

    def __init__(
        self,
        enable_near_duplicates: bool | None = None,
        title_similarity_threshold: float | None = None,
    ) -> None:
        self.enable_near_duplicates = (
            settings.dedup.enable_near_duplicates
            if enable_near_duplicates is None
            else enable_near_duplicates
        )
        self.title_similarity_threshold = (
            settings.dedup.title_similarity_threshold
            if title_similarity_threshold is None
            else title_similarity_threshold
        )

    def _is_near_duplicate(self, left: str, right: str) -> bool:
        if left == right:
            return True
        matcher = SequenceMatcher(None, left, right)
        # Cheap upper bounds first
        if matcher.real_quick_ratio() < self.title_similarity_threshold:
            return False
        if matcher.quick_ratio() < self.title_similarity_threshold:
            return False
        return matcher.ratio() >= self.title_similarity_threshold

    def dedupe_with_stats(
        self,
        rules: list[ComplianceRule],
    ) -> tuple[list[ComplianceRule], DedupStats]:
        """
        Deduplicate rules.

        Args:
            rules: Candidate rules in aggregation order

        Returns:
            (unique rules, statistics)
        """
        groups = _DisjointSet(len(rules))
        exact = near = 0

        first_by_hash: dict[str, int] = {}
        for index, rule in enumerate(rules):
            key = rule.content_hash
            if key in first_by_hash:
                exact += groups.union(first_by_hash[key], index)
            else:
                first_by_hash[key] = index

        if self.enable_near_duplicates:
            by_authority: dict[str, list[tuple[int, str]]] = {}
            for index, rule in enumerate(rules):
                authority = normalize_text(rule.authority)
                if authority:
                    by_authority.setdefault(authority, []).append(
                        (index, normalize_text(rule.title))
                    )
            for members in by_authority.values():
                for position, (left_index, left_title) in enumerate(members):
                    for right_index, right_title in members[position + 1 :]:
                        if groups.find(left_index) == groups.find(right_index):
                            continue
                        if self._is_near_duplicate(left_title, right_title):
                            near += groups.union(left_index, right_index)

        members_by_root: dict[int, list[int]] = {}
        for index in range(len(rules)):
            members_by_root.setdefault(groups.find(index), []).append(index)

        # Roots are the lowest index of each group, so sorting roots gives first-occurrence order
        unique = [
            min((rules[i] for i in members_by_root[root]), key=_winner_key)
            for root in sorted(members_by_root)
        ]

        stats = DedupStats(
            input_count=len(rules),
            output_count=len(unique),
            exact_matches=exact,
            near_matches=near,
        )
        logger.info(
            "rules_deduplicated",
            input_count=stats.input_count,
            output_count=stats.output_count,
            exact_matches=exact,
            near_matches=near,
        )
        return unique, stats

    def dedupe(self, rules: list[ComplianceRule]) -> list[ComplianceRule]:
        unique, _ = self.dedupe_with_stats(rules)
        return unique


def dedupe(rules: list[ComplianceRule]) -> list[ComplianceRule]:
    """Deduplicate with configured heuristics."""
    return Deduplicator().dedupe(rules)


def dedupe_with_stats(rules: list[ComplianceRule]) -> tuple[list[ComplianceRule], DedupStats]:
    return Deduplicator().dedupe_with_stats(rules)
