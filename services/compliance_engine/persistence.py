"""
Rule Repository
===============

Optional MongoDB persistence of compliance rules.

With persistence disabled the engine runs in real-time only mode: every
call is a logged no-op. Storage errors are logged and never fail an
analysis.

Collections:
- compliance_rules: one document per rule, _id = rule id
- rule_deduplication: canonical_id -> rule id, so the same rule found
  again later replaces the stored copy instead of adding another one

Version: 0.1.0
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError
from pymongo import ReplaceOne, UpdateOne
from pymongo.errors import PyMongoError

from shared.config import settings
from shared.database import MongoDBClient
from shared.logging import get_logger
from shared.models import BusinessProfile, ComplianceRule, RuleStatus
from services.compliance_engine.jurisdictions import state_code, state_name

logger = get_logger(__name__)


@dataclass(frozen=True)
class StoreResult:
    stored: int
    errors: int


class RuleRepository:
    """Reads and writes rules in the document store."""

    def __init__(
        self,
        enabled: bool | None = None,
        database: Any | None = None,
        rules_collection: str | None = None,
        dedup_collection: str | None = None,
        batch_size: int | None = None,
    ) -> None:
        self.enabled = settings.persistence.enabled if enabled is None else enabled
        self._database = database
        self.rules_collection = rules_collection or settings.persistence.rules_collection
        self.dedup_collection = dedup_collection or settings.persistence.dedup_collection
        self.batch_size = batch_size or settings.persistence.batch_size

        if not self.enabled:
            logger.info("rule_persistence_disabled", mode="real_time_only")

    @property
    def is_active(self) -> bool:
        return self.enabled

    @property
    def database(self) -> Any:
        if self._database is None:
            self._database = MongoDBClient.get_database()
        return self._database

    @staticmethod
    def _to_document(rule: ComplianceRule) -> dict[str, Any]:
        document = rule.model_dump(mode="json")
        document["_id"] = document.pop("id")
        return document

    @staticmethod
    def _from_document(document: dict[str, Any]) -> ComplianceRule | None:
        data = dict(document)
        data["id"] = str(data.pop("_id", data.get("id", "")))
        try:
            return ComplianceRule.model_validate(data)
        except ValidationError as e:
            logger.warning("stored_rule_invalid", rule_id=data["id"], errors=e.error_count())
            return None

    def _location_query(self, profile: BusinessProfile) -> dict[str, Any]:
        spellings = {
            profile.headquarters_state,
            state_code(profile.headquarters_state),
            state_name(profile.headquarters_state),
            "ALL",
        } - {None}
        return {
            "status": RuleStatus.ACTIVE.value,
            "$or": [
                {"level": "federal"},
                {"jurisdiction": {"$in": sorted(spellings)}},
                {"applicability_criteria.states": {"$in": sorted(spellings)}},
                {"applicability_criteria.states": {"$size": 0}},
            ],
        }

    async def get_matching_rules(self, profile: BusinessProfile, limit: int = 500) -> list[ComplianceRule]:
        """
        Stored active rules whose location can apply to the profile.

        The applicability filter makes the final decision.
        """
        if not self.is_active:
            logger.debug("rule_persistence_skipped", operation="get_matching_rules")
            return []

        try:
            cursor = self.database[self.rules_collection].find(self._location_query(profile))
            documents = await cursor.to_list(length=limit)
        except PyMongoError as e:
            logger.error("stored_rules_query_failed", error=str(e))
            return []

        rules = [rule for rule in map(self._from_document, documents) if rule is not None]
        logger.info("stored_rules_loaded", session_id=profile.session_id, count=len(rules))
        return rules

    async def get_all_rules(self, limit: int = 500) -> list[ComplianceRule]:
        if not self.is_active:
            logger.debug("rule_persistence_skipped", operation="get_all_rules")
            return []

        try:
            cursor = self.database[self.rules_collection].find({}).sort("title", 1)
            documents = await cursor.to_list(length=limit)
        except PyMongoError as e:
            logger.error("stored_rules_query_failed", error=str(e))
            return []

        return [rule for rule in map(self._from_document, documents) if rule is not None]

    async def _existing_ids(self, canonical_ids: list[str]) -> dict[str, str]:
        cursor = self.database[self.dedup_collection].find({"_id": {"$in": canonical_ids}})
        entries = await cursor.to_list(length=len(canonical_ids))
        return {entry["_id"]: entry["rule_id"] for entry in entries}

    async def store_rules(self, rules: list[ComplianceRule]) -> StoreResult | None:
        """
        Upsert rules in batches.

        A rule whose canonical id is already indexed replaces the stored
        copy. Returns None in real-time only mode.
        """
        if not self.is_active:
            logger.debug("rule_persistence_skipped", operation="store_rules", count=len(rules))
            return None

        unique: dict[str, ComplianceRule] = {}
        for rule in rules:
            unique.setdefault(rule.canonical_id, rule)
        pending = list(unique.values())

        stored = errors = 0
        for start in range(0, len(pending), self.batch_size):
            batch = pending[start : start + self.batch_size]
            try:
                await self._store_batch(batch)
                stored += len(batch)
            except PyMongoError as e:
                errors += len(batch)
                logger.error(
                    "rule_batch_store_failed",
                    batch=start // self.batch_size + 1,
                    size=len(batch),
                    error=str(e),
                )

        logger.info("rules_stored", stored=stored, errors=errors)
        return StoreResult(stored=stored, errors=errors)

    async def _store_batch(self, batch: list[ComplianceRule]) -> None:
        now = datetime.now(UTC)
        existing = await self._existing_ids([rule.canonical_id for rule in batch])

        rule_ops = []
        index_ops = []
        for rule in batch:
            document = self._to_document(rule)
            document["_id"] = existing.get(rule.canonical_id, document["_id"])
            rule_ops.append(ReplaceOne({"_id": document["_id"]}, document, upsert=True))
            index_ops.append(
                UpdateOne(
                    {"_id": rule.canonical_id},
                    {
                        "$set": {
                            "rule_id": document["_id"],
                            "content_hash": rule.content_hash,
                            "last_seen": now,
                        },
                        "$setOnInsert": {"first_seen": now},
                    },
                    upsert=True,
                )
            )

        await self.database[self.rules_collection].bulk_write(rule_ops, ordered=False)
        await self.database[self.dedup_collection].bulk_write(index_ops, ordered=False)
