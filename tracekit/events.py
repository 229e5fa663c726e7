"""Event and span entry points.

    tracekit.info("Creating new order", order_id=order_id)

    with tracekit.info_span("order.process", order_id=order_id):
        tracekit.warn("Order total must be positive", reason="invalid_total")

Events go through the installed subscriber and are dropped before
initialization. The target defaults to the calling module's name.
"""

import sys
from contextlib import ExitStack
from types import TracebackType
from typing import Any

from opentelemetry.trace import Span
from structlog.contextvars import bound_contextvars

from tracekit import subscriber
from tracekit.filter import METHOD_LEVELS
from tracekit.layers import span_attributes
from tracekit.logging import USER_EVENT_KEY, get_logger

# Level name to BoundLogger method
_METHODS = {
    "trace": "trace",
    "debug": "debug",
    "info": "info",
    "warn": "warning",
    "warning": "warning",
    "error": "error",
}


def _caller_module(depth: int = 2) -> str:
    return str(sys._getframe(depth).f_globals.get("__name__", "root"))


def _method(level: str) -> str:
    try:
        return _METHODS[level.lower()]
    except KeyError:
        raise ValueError(f"Unknown level: {level!r}") from None


def _safe_fields(fields: dict[str, Any]) -> dict[str, Any]:
    """Move a field named ``event`` out of the way of the event text."""
    if "event" not in fields:
        return fields
    fields = dict(fields)
    fields[USER_EVENT_KEY] = fields.pop("event")
    return fields


def _emit(level: str, message: str, target: str, fields: dict[str, Any]) -> None:
    if not subscriber.is_installed():
        return
    getattr(get_logger(target), _method(level))(message, **_safe_fields(fields))


def event(level: str, message: str, *, target: str | None = None, **fields: Any) -> None:
    """Emit an event at ``level`` (trace, debug, info, warn or error)."""
    _method(level)
    _emit(level, message, target or _caller_module(), fields)


def trace(message: str, *, target: str | None = None, **fields: Any) -> None:
    _emit("trace", message, target or _caller_module(), fields)


def debug(message: str, *, target: str | None = None, **fields: Any) -> None:
    _emit("debug", message, target or _caller_module(), fields)


def info(message: str, *, target: str | None = None, **fields: Any) -> None:
    _emit("info", message, target or _caller_module(), fields)


def warn(message: str, *, target: str | None = None, **fields: Any) -> None:
    _emit("warn", message, target or _caller_module(), fields)


def error(message: str, *, target: str | None = None, **fields: Any) -> None:
    _emit("error", message, target or _caller_module(), fields)


class EventSpan:
    """A leveled span over a block of code.

    While entered, the span's fields are bound to the logging context, and
    when the trace bridge is installed an OpenTelemetry span is current.
    A span the filter disables does nothing.
    """

    def __init__(self, level: str, name: str, target: str, fields: dict[str, Any]) -> None:
        self.level = level
        self.name = name
        self.target = target
        self.fields = dict(fields)
        self.otel_span: Span | None = None
        self._stack: ExitStack | None = None

    @property
    def enabled(self) -> bool:
        sub = subscriber.current()
        if sub is None:
            return False
        return sub.filter.enabled(self.target, METHOD_LEVELS[_method(self.level)])

    def record(self, **fields: Any) -> None:
        """Add fields to an entered span."""
        self.fields.update(fields)
        if self._stack is None:
            return
        self._stack.enter_context(bound_contextvars(**_safe_fields(fields)))
        if self.otel_span is not None:
            self.otel_span.set_attributes(span_attributes(fields))

    def __enter__(self) -> "EventSpan":
        sub = subscriber.current()
        if sub is None or not self.enabled:
            return self

        stack = ExitStack()
        stack.enter_context(bound_contextvars(**_safe_fields(self.fields)))
        if sub.tracer is not None:
            self.otel_span = stack.enter_context(
                sub.tracer.start_as_current_span(self.name, attributes=span_attributes(self.fields))
            )
        self._stack = stack
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        stack, self._stack = self._stack, None
        if stack is not None:
            stack.__exit__(exc_type, exc, tb)
        self.otel_span = None


def trace_span(name: str, *, target: str | None = None, **fields: Any) -> EventSpan:
    return EventSpan("trace", name, target or _caller_module(), fields)


def debug_span(name: str, *, target: str | None = None, **fields: Any) -> EventSpan:
    return EventSpan("debug", name, target or _caller_module(), fields)


def info_span(name: str, *, target: str | None = None, **fields: Any) -> EventSpan:
    return EventSpan("info", name, target or _caller_module(), fields)


def warn_span(name: str, *, target: str | None = None, **fields: Any) -> EventSpan:
    return EventSpan("warn", name, target or _caller_module(), fields)


def error_span(name: str, *, target: str | None = None, **fields: Any) -> EventSpan:
    return EventSpan("error", name, target or _caller_module(), fields)
