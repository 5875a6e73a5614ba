"""
Compliance Engine Service
=========================

Discovers which government rules apply to a business and produces a
consolidated, ranked compliance report.

Pipeline:
- Query planning from the business profile
- Concurrent search across rule sources (LLM, Regulations.gov,
  Federal Register, agency guidance)
- Deduplication and reliability scoring
- Applicability filtering and ranking
- Narrative report synthesis with a deterministic fallback

Port: 8010
"""

__version__ = "0.1.0"
