"""
Structured logging for doc-spine.

Manifesto:
    Every graph mutation and phase transition is an audit event. Events are
    snake_case names with keyword fields; the identifiers an operator needs to
    find the affected documents (``document_id``, ``edge``, ``card_id``,
    ``session_id``) travel as fields, never inside the message text.

Architecture:
    ::

        configure_logging(level, json_format, service)
            │
            ▼
        structlog processor chain
          TimeStamper(iso)
          merge_contextvars          session_id / phase bound by LogContext
          add_log_level, add_logger_name
          _add_service_metadata      service.name
          _flatten_error             error=DocSpineError.to_dict() → error.* keys (JSON)
          _elasticsearch_compatible  @timestamp, log.level (JSON)
          JSONRenderer | ConsoleRenderer

Examples:
    >>> configure_from_settings(EngineSettings(json_logs=False))
    >>> logger = get_logger(__name__)
    >>> with LogContext(session_id="01HQ...", phase="plan"):
    ...     logger.info("plan_presented", cards=2)

Tags:
    logging, structlog, ecs, contextvars, doc-spine
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

if TYPE_CHECKING:
    from docspine.core.settings import EngineSettings

_SERVICE_NAME = "doc-spine"


def _add_service_metadata(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    event_dict.setdefault("service.name", _SERVICE_NAME)
    return event_dict


def _flatten_error(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Spread a ``DocSpineError.to_dict()`` payload over ECS ``error.*`` fields."""
    error = event_dict.get("error")
    if isinstance(error, dict) and "error_type" in error:
        event_dict.pop("error")
        event_dict["error.type"] = error["error_type"]
        event_dict["error.message"] = error["message"]
        event_dict["error.category"] = error["category"]
        for key, value in error.get("context", {}).items():
            event_dict.setdefault(key, value)
    return event_dict


def _elasticsearch_compatible(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Rename structlog's default keys to their ECS names."""
    if "timestamp" in event_dict:
        event_dict["@timestamp"] = event_dict.pop("timestamp")
    if "level" in event_dict:
        event_dict["log.level"] = event_dict.pop("level")
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "doc-spine",
) -> None:
    """Configure structlog for the whole process.

    Args:
        level: Minimum level name (DEBUG, INFO, WARNING, ERROR)
        json_format: JSON lines when True, colored console when False,
            JSON unless stdout is a terminal when None
        service: Value of the ``service.name`` field
    """
    global _SERVICE_NAME
    _SERVICE_NAME = service
    numeric_level = getattr(logging, level.upper())

    if json_format is None:
        json_format = not sys.stdout.isatty()

    processors: list[Processor] = [
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        _add_service_metadata,
    ]
    if json_format:
        processors += [
            _flatten_error,
            _elasticsearch_compatible,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=numeric_level)


def configure_from_settings(settings: EngineSettings) -> None:
    """Configure logging from ``log_level``, ``json_logs`` and ``service_name``."""
    configure_logging(
        level=settings.log_level,
        json_format=settings.json_logs,
        service=settings.service_name,
    )


def get_logger(name: str | None = None) -> Any:
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


class LogContext:
    """Bind fields for the duration of a block.

    Blocks nest: on exit each key returns to the value it had on entry, so an
    inner ``LogContext(phase="plan")`` inside an outer ``phase="understand"``
    leaves the outer phase bound afterwards.
    """

    def __init__(self, **kwargs: Any):
        self._context = kwargs
        self._previous: dict[str, Any] = {}

    def __enter__(self) -> LogContext:
        bound = structlog.contextvars.get_contextvars()
        self._previous = {k: bound[k] for k in self._context if k in bound}
        bind_context(**self._context)
        return self

    def __exit__(self, *exc_info: Any) -> None:
        structlog.contextvars.unbind_contextvars(
            *(k for k in self._context if k not in self._previous)
        )
        if self._previous:
            bind_context(**self._previous)


__all__ = [
    "configure_logging",
    "configure_from_settings",
    "get_logger",
    "bind_context",
    "clear_context",
    "LogContext",
]
