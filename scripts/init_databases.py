#!/usr/bin/env python3
"""
Rule Store Initialization
=========================

Verify the MongoDB connection, create the rule store indexes and
optionally seed the curated SBA / IRS guidance as baseline federal rules.

Usage:
    python scripts/init_databases.py
    python scripts/init_databases.py --seed

Version: 0.1.0
"""

import argparse
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from pymongo.errors import PyMongoError  # noqa: E402

from shared.logging import get_logger, setup_logging  # noqa: E402

setup_logging(log_level="INFO", json_logs=False, service_name="init-db")
logger = get_logger(__name__)


async def create_rule_store() -> bool:
    from shared.database import MongoDBClient

    try:
        info = await MongoDBClient.get_client().server_info()
        await MongoDBClient.create_indexes()
    except PyMongoError as e:
        logger.error("rule_store_init_failed", error=str(e))
        return False

    logger.info("rule_store_ready", mongodb_version=info.get("version"))
    return True


async def seed_guidance() -> bool:
    from services.compliance_engine.persistence import RuleRepository
    from services.compliance_engine.sources import AgencyGuidanceSource

    rules = AgencyGuidanceSource().catalog()
    result = await RuleRepository(enabled=True).store_rules(rules)
    if result is None or result.errors:
        logger.error("guidance_seed_failed", errors=result.errors if result else None)
        return False

    logger.info("guidance_seeded", stored=result.stored)
    return True


async def main(seed: bool) -> int:
    from shared.database import MongoDBClient

    steps = {"rule_store": await create_rule_store()}
    if seed and steps["rule_store"]:
        steps["seed_guidance"] = await seed_guidance()
    await MongoDBClient.close()

    failed = sorted(name for name, ok in steps.items() if not ok)
    if failed:
        logger.error("init_failed", failed=failed)
        return 1
    logger.info("init_complete", steps=sorted(steps))
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Initialize the Clawse rule store")
    parser.add_argument("--seed", action="store_true", help="Store curated agency guidance rules")
    sys.exit(asyncio.run(main(parser.parse_args().seed)))
