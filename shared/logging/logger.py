"""
Logger Implementation
=====================

structlog configuration for the compliance engine:
- JSON lines in production, rich console output in development
- API keys and credentials redacted before rendering
- Long free text (LLM prompts, generated reports) truncated
- Per-analysis context (session id) carried through async calls

Version: 0.1.0
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import structlog
from structlog.types import EventDict, Processor


if TYPE_CHECKING:
    from structlog.stdlib import BoundLogger


REDACTED = "***REDACTED***"
MAX_VALUE_LENGTH = 500

_SENSITIVE_FRAGMENTS = (
    "password",
    "api_key",
    "apikey",
    "secret",
    "token",
    "authorization",
    "x-api-key",
)

# Libraries whose INFO output drowns the engine's own events
_QUIET_LOGGERS = ("httpx", "httpcore", "hpack", "anthropic", "openai", "pymongo", "motor")

_service = {"service": "clawse", "version": "0.1.0"}


def _is_sensitive(key: str) -> bool:
    lowered = key.lower()
    return any(fragment in lowered for fragment in _SENSITIVE_FRAGMENTS)


def _scrub(key: str, value: Any) -> Any:
    if _is_sensitive(key):
        return REDACTED
    if isinstance(value, dict):
        return {k: _scrub(str(k), v) for k, v in value.items()}
    if isinstance(value, str) and len(value) > MAX_VALUE_LENGTH:
        return f"{value[:MAX_VALUE_LENGTH]}... [{len(value)} chars]"
    return value


def _stamp(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
    """Add UTC timestamp and service identity."""
    event_dict["timestamp"] = datetime.now(UTC).isoformat()
    for key, value in _service.items():
        event_dict.setdefault(key, value)
    return event_dict


def _scrub_event(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
    """Redact credentials and truncate long text values."""
    return {key: _scrub(key, value) for key, value in event_dict.items()}


def _renderer(json_logs: bool) -> tuple[Processor, Processor]:
    """(exception processor, final renderer) for the output mode."""
    if json_logs:
        return structlog.processors.format_exc_info, structlog.processors.JSONRenderer()
    return structlog.dev.set_exc_info, structlog.dev.ConsoleRenderer(
        colors=sys.stdout.isatty(),
        exception_formatter=structlog.dev.RichTracebackFormatter(show_locals=False, max_frames=8),
    )


def setup_logging(
    log_level: str = "INFO",
    json_logs: bool = False,
    service_name: str = "clawse",
) -> None:
    """
    Configure structlog and route stdlib logging through it.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: Emit JSON lines (production)
        service_name: Value of the `service` field on every event
    """
    _service["service"] = service_name
    level = getattr(logging, log_level.upper(), logging.INFO)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    exc_processor, renderer = _renderer(json_logs)
    pre_chain: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        _stamp,
        _scrub_event,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        exc_processor,
    ]

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level)


def get_logger(name: str | None = None) -> "BoundLogger":
    """
    Structured logger for a module.

    Example:
        logger = get_logger(__name__)
        logger.info("analysis_started", session_id="session_1718000000", queries=2)
    """
    return structlog.stdlib.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind values to every event logged later in this async context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


@contextmanager
def analysis_context(session_id: str, **kwargs: Any) -> Iterator[None]:
    """
    Bind the session id of one analysis request for the duration of a block.

    Example:
        with analysis_context(profile.session_id):
            result = await analyzer.analyze(profile)
    """
    bind_context(session_id=session_id, **kwargs)
    try:
        yield
    finally:
        clear_context()
