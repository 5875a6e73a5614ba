"""
Database Module
===============

Motor client for the persisted rule store. Only used when
`settings.persistence.enabled` is true; the engine otherwise runs in
real-time-only mode.

Usage:
    from shared.database import MongoDBClient

    db = MongoDBClient.get_database()
    rule = await db.compliance_rules.find_one({"canonical_id": canonical_id})
"""

from shared.database.mongodb import MongoDBClient

__all__ = ["MongoDBClient"]
