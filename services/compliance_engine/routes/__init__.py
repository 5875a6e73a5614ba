"""
Compliance Engine Routes
========================

API route handlers for the Compliance Engine Service.

Routes:
- analysis: compliance analysis and query planning
- rules: persisted rule access
"""

from services.compliance_engine.routes import analysis, rules


__all__ = ["analysis", "rules"]
