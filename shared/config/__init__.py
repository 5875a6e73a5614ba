"""
Configuration Module
====================

Environment-driven settings for the compliance engine, grouped by concern
(LLM, rule sources, planner, dedup, relevance, report, persistence, CORS).

Usage:
    from shared.config import settings

    if settings.persistence.enabled:
        ...
    timeout = settings.sources.call_timeout_seconds

Tests change values by patching attributes of the shared `settings`
object, or by setting environment variables before it is first imported.
"""

from shared.config.settings import (
    Environment,
    LLMProvider,
    LogLevel,
    Settings,
    get_settings,
)


settings = get_settings()

__all__ = [
    "Environment",
    "LLMProvider",
    "LogLevel",
    "Settings",
    "get_settings",
    "settings",
]
