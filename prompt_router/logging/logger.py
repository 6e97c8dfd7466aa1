"""Structured logging configuration using structlog."""

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor

from prompt_router.config.settings import Settings, get_settings

# Event keys whose values must never reach a log sink.
_SECRET_KEYS = frozenset(
    {
        "api_key",
        "authorization",
        "openrouter_api_key",
        "hf_api_key",
        "puter_api_key",
        "anthropic_api_key",
    }
)


def add_app_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Add application context to log entries."""
    event_dict["environment"] = get_settings().environment
    event_dict["app"] = "prompt-router"
    return event_dict


def redact_secrets(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Mask provider credentials that were passed as log fields."""
    for key in _SECRET_KEYS.intersection(event_dict):
        if event_dict[key]:
            event_dict[key] = "***"
    return event_dict


def configure_logging(settings: Settings | None = None) -> None:
    """
    Configure structured logging for the router.

    Args:
        settings: Settings to read level and format from (defaults to global)
    """
    settings = settings or get_settings()

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level),
    )

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        add_app_context,
        redact_secrets,
    ]

    if settings.log_format == "json":
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=settings.is_development)

    structlog.configure(
        processors=shared_processors + [structlog.processors.format_exc_info, renderer],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    return structlog.get_logger(name)


def bind_request(request_id: str, **fields: Any) -> Any:
    """
    Bind a request identifier into the logging context.

    Every log line emitted inside the returned context manager carries the
    request id, which ties provider retries back to a single prompt.

    Example:
        with bind_request(request_id, tier="high"):
            logger.info("route_started")
    """
    return structlog.contextvars.bound_contextvars(request_id=request_id, **fields)
