#!/usr/bin/env python3
"""
Rule Collection Script
======================

Generate federal and state compliance rules with the configured LLM
provider, deduplicate them and store them in the rule store.

Requires PERSISTENCE_ENABLED=true and LLM credentials.

Usage:
    python scripts/collect_rules.py --federal
    python scripts/collect_rules.py --states CA TX NY --count 15
    python scripts/collect_rules.py --all-states
    python scripts/collect_rules.py --industries Restaurant Construction

Version: 0.1.0
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from shared.logging import get_logger, setup_logging

setup_logging(log_level="INFO", json_logs=False, service_name="collect-rules")
logger = get_logger(__name__)


async def collect(args: argparse.Namespace) -> int:
    from shared.config import settings
    from shared.database.mongodb import MongoDBClient
    from shared.llm import get_llm_provider
    from services.compliance_engine.dedup import Deduplicator
    from services.compliance_engine.jurisdictions import US_STATES, state_name
    from services.compliance_engine.persistence import RuleRepository
    from services.compliance_engine.sources import AIGeneratedSource

    if not settings.persistence.enabled:
        logger.error("persistence_disabled", hint="set PERSISTENCE_ENABLED=true")
        return 1

    source = AIGeneratedSource(provider=get_llm_provider())
    rules = []

    if args.federal:
        federal = await source.generate_federal_rules(args.count)
        logger.info("federal_rules_generated", count=len(federal))
        rules.extend(federal)

    states = list(US_STATES) if args.all_states else args.states
    for state in states:
        name = state_name(state) or state
        try:
            generated = await source.generate_state_rules(name, args.count)
        except Exception as e:
            logger.error("state_rules_failed", state=name, error=str(e))
            continue
        logger.info("state_rules_generated", state=name, count=len(generated))
        rules.extend(generated)
        # Stay well under provider rate limits
        await asyncio.sleep(args.delay)

    for industry in args.industries:
        generated = await source.generate_industry_rules(industry, count=args.count)
        logger.info("industry_rules_generated", industry=industry, count=len(generated))
        rules.extend(generated)
        await asyncio.sleep(args.delay)

    unique = Deduplicator().dedupe(rules)
    await MongoDBClient.create_indexes()
    result = await RuleRepository(enabled=True).store_rules(unique)
    await MongoDBClient.close()

    logger.info(
        "collection_complete",
        generated=len(rules),
        unique=len(unique),
        stored=result.stored if result else 0,
        errors=result.errors if result else 0,
    )
    return 0 if result and not result.errors else 1


def parse_args() -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Collect compliance rules into the rule store")
    parser.add_argument("--federal", action="store_true", help="Generate federal rules")
    parser.add_argument("--states", nargs="*", default=[], help="State codes or names")
    parser.add_argument("--all-states", action="store_true", help="Generate rules for every state")
    parser.add_argument("--industries", nargs="*", default=[], help="Industries for industry-specific rules")
    parser.add_argument("--count", type=int, default=10, help="Rules per request")
    parser.add_argument("--delay", type=float, default=1.0, help="Seconds between state requests")

    args = parser.parse_args()
    if not (args.federal or args.states or args.all_states or args.industries):
        parser.error("nothing to collect: pass --federal, --states, --all-states or --industries")
    return args


if __name__ == "__main__":
    args = parse_args()
    sys.exit(asyncio.run(collect(args)))
