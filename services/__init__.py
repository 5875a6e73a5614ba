"""
Clawse Services
===============

compliance_engine: plans source queries, aggregates and deduplicates
rules, filters them against a business profile and writes the report.
"""
