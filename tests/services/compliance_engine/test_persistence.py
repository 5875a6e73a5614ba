"""
Tests for the Rule Repository
=============================

Tests for:
- Real-time only mode (persistence disabled)
- Reading stored rules
- Upserts keyed by canonical id

Version: 0.1.0
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from pymongo import ReplaceOne
from pymongo.errors import PyMongoError

from services.compliance_engine.persistence import RuleRepository, StoreResult
from tests.helpers import make_rule


def _cursor(documents):
    cursor = MagicMock()
    cursor.to_list = AsyncMock(return_value=documents)
    cursor.sort.return_value = cursor
    return cursor


@pytest.fixture
def collections():
    rules = MagicMock()
    rules.find.return_value = _cursor([])
    rules.bulk_write = AsyncMock()
    dedup = MagicMock()
    dedup.find.return_value = _cursor([])
    dedup.bulk_write = AsyncMock()
    return {"compliance_rules": rules, "rule_deduplication": dedup}


@pytest.fixture
def repository(collections) -> RuleRepository:
    database = MagicMock()
    database.__getitem__.side_effect = collections.__getitem__
    return RuleRepository(
        enabled=True,
        database=database,
        rules_collection="compliance_rules",
        dedup_collection="rule_deduplication",
        batch_size=2,
    )


# ============================================================================
# Disabled Mode Tests
# ============================================================================


class TestRealTimeOnlyMode:
    """Tests for RuleRepository with persistence disabled."""

    @pytest.mark.asyncio
    async def test_reads_return_nothing(self, sample_profile) -> None:
        repository = RuleRepository(enabled=False)

        assert repository.is_active is False
        assert await repository.get_matching_rules(sample_profile) == []
        assert await repository.get_all_rules() == []

    @pytest.mark.asyncio
    async def test_store_is_noop(self) -> None:
        database = MagicMock()
        repository = RuleRepository(enabled=False, database=database)

        assert await repository.store_rules([make_rule()]) is None
        database.__getitem__.assert_not_called()


# ============================================================================
# Read Tests
# ============================================================================


class TestReads:
    """Tests for loading stored rules."""

    @pytest.mark.asyncio
    async def test_matching_rules_round_trip(self, repository, collections, sample_profile, california_rule) -> None:
        document = RuleRepository._to_document(california_rule)
        collections["compliance_rules"].find.return_value = _cursor([document, {"_id": "broken"}])

        rules = await repository.get_matching_rules(sample_profile)

        assert [r.id for r in rules] == [california_rule.id]
        assert rules[0].applicability_criteria.employee_count.max == 50

        query = collections["compliance_rules"].find.call_args.args[0]
        assert query["status"] == "active"
        spellings = query["$or"][1]["jurisdiction"]["$in"]
        assert {"CA", "California", "ALL"} <= set(spellings)

    @pytest.mark.asyncio
    async def test_query_failure_returns_empty(self, repository, collections, sample_profile) -> None:
        collections["compliance_rules"].find.side_effect = PyMongoError("connection refused")

        assert await repository.get_matching_rules(sample_profile) == []

    @pytest.mark.asyncio
    async def test_all_rules_sorted_by_title(self, repository, collections, federal_rule) -> None:
        collections["compliance_rules"].find.return_value = _cursor([RuleRepository._to_document(federal_rule)])

        rules = await repository.get_all_rules(limit=10)

        assert [r.title for r in rules] == [federal_rule.title]
        collections["compliance_rules"].find.return_value.sort.assert_called_once_with("title", 1)


# ============================================================================
# Write Tests
# ============================================================================


class TestStoreRules:
    """Tests for RuleRepository.store_rules()."""

    @pytest.mark.asyncio
    async def test_duplicates_by_canonical_id_stored_once(self, repository, collections) -> None:
        first = make_rule("EIN Registration", authority="IRS")
        again = make_rule("EIN Registration", authority="IRS")

        result = await repository.store_rules([first, again])

        assert result == StoreResult(stored=1, errors=0)
        ops = collections["compliance_rules"].bulk_write.call_args.args[0]
        assert len(ops) == 1

    @pytest.mark.asyncio
    async def test_known_rule_replaces_stored_copy(self, repository, collections) -> None:
        rule = make_rule("EIN Registration", authority="IRS")
        collections["rule_deduplication"].find.return_value = _cursor(
            [{"_id": rule.canonical_id, "rule_id": "stored-id"}]
        )

        await repository.store_rules([rule])

        document = RuleRepository._to_document(rule)
        document["_id"] = "stored-id"
        ops = collections["compliance_rules"].bulk_write.call_args.args[0]
        assert ops == [ReplaceOne({"_id": "stored-id"}, document, upsert=True)]

    @pytest.mark.asyncio
    async def test_failed_batch_counted(self, repository, collections) -> None:
        rules = [make_rule(f"Rule {i}", authority="IRS") for i in range(3)]
        collections["compliance_rules"].bulk_write.side_effect = [None, PyMongoError("write failed")]

        result = await repository.store_rules(rules)

        assert result == StoreResult(stored=2, errors=1)
        assert collections["compliance_rules"].bulk_write.await_count == 2
