"""tracekit: structured logging and OpenTelemetry export behind one builder.

Usage:
    import tracekit
    from tracekit import OtelParams, TracingBuilder

    with TracingBuilder().with_log_filter("info").with_otel(params).build():
        tracekit.info("Order service started")

The database pool helper lives in ``tracekit.db`` (``db`` extra).
"""

from opentelemetry import metrics as otel_metrics
from opentelemetry import trace as otel_trace
from opentelemetry.trace import SpanKind, Status, StatusCode

from tracekit.builder import TracingBuilder, init_tracing
from tracekit.config import DEFAULT_ENDPOINTS, OtelParams, TracingConfig
from tracekit.decorators import record_exception, traced, with_span
from tracekit.errors import (
    AlreadyInstalledError,
    ExporterBuildError,
    FileSinkError,
    InitError,
)
from tracekit.events import (
    EventSpan,
    debug,
    debug_span,
    error,
    error_span,
    event,
    info,
    info_span,
    trace,
    trace_span,
    warn,
    warn_span,
)
from tracekit.filter import EnvFilter
from tracekit.guard import SHUTDOWN_TIMEOUT, TracingGuards
from tracekit.logging import get_logger
from tracekit.metrics import (
    DbQueryMetrics,
    HttpRequestMetrics,
    IntoOtelAttributes,
    KeyValue,
    MetricsHelper,
    ServiceMetrics,
    TimedHistogram,
    attributes_of,
    otel_meter,
)
from tracekit.otel import extract_context, get_tracer, inject_context

__all__ = [
    # Builder
    "TracingBuilder",
    "TracingConfig",
    "OtelParams",
    "DEFAULT_ENDPOINTS",
    "init_tracing",
    "TracingGuards",
    "SHUTDOWN_TIMEOUT",
    "EnvFilter",
    # Errors
    "InitError",
    "FileSinkError",
    "ExporterBuildError",
    "AlreadyInstalledError",
    # Events
    "event",
    "trace",
    "debug",
    "info",
    "warn",
    "error",
    "trace_span",
    "debug_span",
    "info_span",
    "warn_span",
    "error_span",
    "EventSpan",
    "get_logger",
    # Metrics
    "MetricsHelper",
    "IntoOtelAttributes",
    "KeyValue",
    "HttpRequestMetrics",
    "DbQueryMetrics",
    "ServiceMetrics",
    "TimedHistogram",
    "attributes_of",
    "otel_meter",
    # Tracing
    "traced",
    "with_span",
    "record_exception",
    "get_tracer",
    "inject_context",
    "extract_context",
    # OpenTelemetry
    "otel_trace",
    "otel_metrics",
    "SpanKind",
    "Status",
    "StatusCode",
]
