"""
MongoDB Client
==============

Process-wide Motor client for the compliance rule store.

Collections:
- compliance_rules: one document per canonical rule id
- rule_deduplication: content hash to canonical id, with last_seen

Version: 0.1.0
"""

import time
from typing import Any

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, TEXT, IndexModel
from pymongo.errors import PyMongoError

from shared.config import settings
from shared.logging import get_logger

logger = get_logger(__name__)

RULE_INDEXES = [
    IndexModel([("canonical_id", ASCENDING)], unique=True),
    IndexModel([("level", ASCENDING), ("jurisdiction", ASCENDING)]),
    IndexModel([("applicability_criteria.states", ASCENDING)]),
    IndexModel([("status", ASCENDING)]),
    IndexModel([("title", TEXT), ("description", TEXT)]),
]

DEDUP_INDEXES = [
    IndexModel([("content_hash", ASCENDING)]),
    IndexModel([("last_seen", ASCENDING)]),
]


class MongoDBClient:
    """Lazily created Motor client shared by the repository and scripts."""

    _client: AsyncIOMotorClient | None = None  # type: ignore[type-arg]

    @classmethod
    def get_client(cls) -> AsyncIOMotorClient:  # type: ignore[type-arg]
        if cls._client is None:
            config = settings.mongodb
            cls._client = AsyncIOMotorClient(
                config.uri,
                maxPoolSize=config.max_pool_size,
                serverSelectionTimeoutMS=config.timeout_ms,
                connectTimeoutMS=config.timeout_ms,
                tz_aware=True,
            )
            logger.info("mongodb_client_created", host=config.host, database=config.db)
        return cls._client

    @classmethod
    def get_database(cls, name: str | None = None) -> AsyncIOMotorDatabase:  # type: ignore[type-arg]
        return cls.get_client()[name or settings.mongodb.db]

    @classmethod
    async def close(cls) -> None:
        """Close the client. Safe to call when no client was created."""
        if cls._client is None:
            return
        cls._client.close()
        cls._client = None
        logger.info("mongodb_client_closed")

    @classmethod
    async def health_check(cls) -> dict[str, Any]:
        """Ping the server; report `unhealthy` with the error instead of raising."""
        started = time.perf_counter()
        try:
            reply = await cls.get_client().admin.command("ping")
        except PyMongoError as e:
            logger.error("mongodb_health_check_failed", error=str(e))
            return {"status": "unhealthy", "error": str(e)}
        return {
            "status": "healthy" if reply.get("ok") == 1 else "unhealthy",
            "latency_ms": round((time.perf_counter() - started) * 1000, 2),
        }

    @classmethod
    async def create_indexes(cls) -> None:
        """Create the rule store indexes (idempotent)."""
        db = cls.get_database()
        rules = db[settings.persistence.rules_collection]
        dedup = db[settings.persistence.dedup_collection]

        await rules.create_indexes(RULE_INDEXES)
        await dedup.create_indexes(DEDUP_INDEXES)

        logger.info("mongodb_indexes_created", rules_collection=rules.name, dedup_collection=dedup.name)
