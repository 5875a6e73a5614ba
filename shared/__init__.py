"""
Clawse Shared Library
=====================

Infrastructure used by the compliance engine service and its scripts:
settings, structured logging, the error taxonomy, the MongoDB rule
store client, LLM providers and the domain models (business profile,
compliance rule, aggregation results).

Version: 0.1.0
"""

__version__ = "0.1.0"

from shared.config import settings
from shared.logging import get_logger, setup_logging

__all__ = ["__version__", "get_logger", "settings", "setup_logging"]
