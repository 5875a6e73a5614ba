"""
Logging Module
==============

Structured logging using structlog with JSON output for production
and colored console output for development.

Usage:
    from shared.logging import get_logger, setup_logging

    # Setup at application start
    setup_logging()

    # Get logger for a module
    logger = get_logger(__name__)

    # Log with context
    logger.info("source_search", source="federal_register", results=12)
    logger.warning("source_failed", source="regulations_gov", error=str(e))
"""

from shared.logging.logger import (
    analysis_context,
    bind_context,
    clear_context,
    get_logger,
    setup_logging,
)


__all__ = [
    "analysis_context",
    "bind_context",
    "clear_context",
    "get_logger",
    "setup_logging",
]
