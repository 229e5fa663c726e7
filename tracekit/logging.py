"""Structured logging primitives built on structlog.

Events are processed by structlog and handed to the standard library
logging module, where every sink is a handler with its own renderer. This
keeps JSON and console output side by side and lets stdlib-only libraries
flow through the same sinks.
"""

import logging
from typing import Any, cast

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from tracekit.filter import TRACE

# Level names as they appear in rendered output
LEVEL_NAMES: dict[str, str] = {
    "trace": "TRACE",
    "debug": "DEBUG",
    "info": "INFO",
    "warn": "WARN",
    "warning": "WARN",
    "error": "ERROR",
    "exception": "ERROR",
    "critical": "CRITICAL",
}

# Holds a user field named "event", which would clash with the event text
USER_EVENT_KEY = "_event"

# Keys owned by structlog's stdlib bridge
_META_KEYS = frozenset({"_record", "_from_structlog", "_logger", "_name"})


class BoundLogger(structlog.stdlib.BoundLogger):
    """stdlib-backed bound logger with a ``trace`` level below DEBUG."""

    def trace(self, event: str | None = None, *args: Any, **kw: Any) -> None:
        if not self._logger.isEnabledFor(TRACE):
            return
        if args:
            kw["positional_args"] = args
        try:
            event_args, event_kw = self._process_event("trace", event, kw)
        except structlog.DropEvent:
            return
        self._logger.log(TRACE, *event_args, **event_kw)


def add_level(_logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Add an upper-case ``level`` key (TRACE, DEBUG, INFO, WARN, ERROR)."""
    event_dict["level"] = LEVEL_NAMES.get(method_name, method_name.upper())
    return event_dict


def add_target(logger: WrappedLogger, _method_name: str, event_dict: EventDict) -> EventDict:
    """Add the logger name as ``target``."""
    record = event_dict.get("_record")
    if record is not None:
        event_dict.setdefault("target", record.name)
    else:
        name = getattr(logger, "name", None)
        if name:
            event_dict.setdefault("target", name)
    return event_dict


def shared_processors() -> list[Processor]:
    """Processors applied to structlog events and foreign stdlib records alike."""
    return [
        structlog.contextvars.merge_contextvars,
        add_level,
        add_target,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]


def renderer_chain(json_format: bool, colors: bool) -> list[Processor]:
    """Final processors of a sink's formatter.

    JSON output names the event ``message``; console output keeps
    structlog's layout.
    """
    processors: list[Processor] = [structlog.stdlib.ProcessorFormatter.remove_processors_meta]
    if json_format:
        processors.extend([
            structlog.processors.format_exc_info,
            structlog.processors.EventRenamer("message", replace_by=USER_EVENT_KEY),
            structlog.processors.JSONRenderer(),
        ])
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(colors=colors, level_styles=_level_styles(colors))
        )
    return processors


def _level_styles(colors: bool) -> dict[str, str]:
    styles = structlog.dev.ConsoleRenderer.get_default_level_styles(colors)
    result = {LEVEL_NAMES.get(name, name.upper()): style for name, style in styles.items()}
    result["TRACE"] = styles.get("debug", "")
    return result


def event_fields(event_dict: EventDict) -> dict[str, Any]:
    """User fields of an event, without structlog bookkeeping keys."""
    return {key: value for key, value in event_dict.items() if key not in _META_KEYS}


def user_fields(event_dict: EventDict) -> dict[str, Any]:
    """Fields of an event other than its text, with a user ``event`` field restored."""
    fields = event_fields(event_dict)
    fields.pop("event", None)
    if USER_EVENT_KEY in fields:
        fields["event"] = fields.pop(USER_EVENT_KEY)
    return fields


def get_logger(name: str) -> BoundLogger:
    """Get a logger instance bound to the given name.

    Args:
        name: Logger name (typically __name__ of the module)

    Returns:
        A bound structlog logger
    """
    return cast(BoundLogger, structlog.get_logger(name))
