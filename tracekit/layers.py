"""Subscriber layers.

A layer is one destination for events: a stdlib handler (file, stdout, the
OpenTelemetry log bridge) or a structlog processor (the OpenTelemetry trace
bridge). Layers are assembled by the builder and installed together by the
subscriber.
"""

import logging
import sys
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

import structlog
from opentelemetry import trace
from opentelemetry.sdk._logs import LoggerProvider, LoggingHandler
from opentelemetry.trace import Status, StatusCode, Tracer
from structlog.types import EventDict, Processor, WrappedLogger

from tracekit.errors import FileSinkError
from tracekit.logging import renderer_chain, shared_processors, user_fields

# Fields the log bridge never turns into record attributes
_BRIDGE_SKIP = frozenset({"message", "level", "timestamp", "target"})


@dataclass(frozen=True)
class Layer:
    """One installed event destination."""

    name: str
    handler: logging.Handler | None = None
    processor: Processor | None = None
    tracer: Tracer | None = None


def _formatter(json_format: bool, colors: bool) -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        processors=renderer_chain(json_format, colors),
        foreign_pre_chain=shared_processors(),
    )


def file_layer(path: str, json_format: bool) -> Layer:
    """Layer writing to ``path``, truncated now and appended afterwards.

    Raises:
        FileSinkError: If the file cannot be created
    """
    try:
        handler = logging.FileHandler(path, mode="w", encoding="utf-8")
    except OSError as e:
        raise FileSinkError(path, cause=e) from e
    handler.setFormatter(_formatter(json_format, colors=False))
    return Layer(name="file", handler=handler)


def stdout_layer(json_format: bool) -> Layer:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_formatter(json_format, colors=not json_format))
    return Layer(name="stdout", handler=handler)


def null_layer() -> Layer:
    """Layer accepting and discarding events when no sink is configured."""
    return Layer(name="null", handler=logging.NullHandler())


def _attribute_value(value: Any) -> Any:
    if isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, Sequence) and not isinstance(value, (bytes, bytearray)):
        if all(isinstance(item, (str, bool, int, float)) for item in value):
            return list(value)
    return str(value)


def span_attributes(fields: Mapping[str, Any]) -> dict[str, Any]:
    """Convert event fields to OpenTelemetry attribute values."""
    return {
        key: _attribute_value(value)
        for key, value in fields.items()
        if value is not None and not key.startswith("_")
    }


class LogBridgeHandler(LoggingHandler):
    """Re-emits every event as an OpenTelemetry log record.

    structlog events arrive with the event dict as the record message; the
    copy handed to the SDK carries the event text as body and the remaining
    fields as record attributes.
    """

    def emit(self, record: logging.LogRecord) -> None:
        # Exporter failures would otherwise feed back into the exporter
        if record.name.startswith("opentelemetry"):
            return
        if isinstance(record.msg, dict):
            record = self._flatten(record)
        super().emit(record)

    @staticmethod
    def _flatten(record: logging.LogRecord) -> logging.LogRecord:
        event_dict = record.msg  # type: ignore[assignment]
        attrs = {
            key: value
            for key, value in record.__dict__.items()
            if key not in ("_logger", "_name", "_from_structlog")
        }
        attrs["msg"] = str(event_dict.get("event", ""))
        attrs["args"] = ()
        copy = logging.makeLogRecord(attrs)
        for key, value in span_attributes(user_fields(event_dict)).items():
            if key not in _BRIDGE_SKIP:
                setattr(copy, key, value)
        return copy


def otel_log_layer(provider: LoggerProvider) -> Layer:
    return Layer(name="otel_logs", handler=LogBridgeHandler(logger_provider=provider))


class TraceBridge:
    """structlog processor recording events on the current OpenTelemetry span.

    Adds ``trace_id`` and ``span_id`` to events emitted inside a span, and
    marks the span as failed when an ERROR event is recorded on it.
    """

    def __init__(self, tracer: Tracer) -> None:
        self.tracer = tracer

    def __call__(
        self, _logger: WrappedLogger, _method_name: str, event_dict: EventDict
    ) -> EventDict:
        span = trace.get_current_span()
        ctx = span.get_span_context()
        if not ctx.is_valid:
            return event_dict

        event_dict["trace_id"] = format(ctx.trace_id, "032x")
        event_dict["span_id"] = format(ctx.span_id, "016x")

        if span.is_recording():
            name = str(event_dict.get("event", ""))
            fields = user_fields(event_dict)
            span.add_event(name, attributes=span_attributes(fields))
            if fields.get("level") in ("ERROR", "CRITICAL"):
                span.set_status(Status(StatusCode.ERROR, name))
        return event_dict


def otel_trace_layer(tracer: Tracer) -> Layer:
    return Layer(name="otel_traces", processor=TraceBridge(tracer), tracer=tracer)
