"""OpenTelemetry provider assembly over OTLP/HTTP.

Exporters are built first, then providers; every provider shares the one
resource built from the service identity. Also provides W3C Trace Context
propagation helpers for cross-service correlation.
"""

from dataclasses import dataclass

from opentelemetry import metrics, propagate, trace
from opentelemetry._logs import set_logger_provider
from opentelemetry.context import Context
from opentelemetry.exporter.otlp.proto.http._log_exporter import OTLPLogExporter
from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk._logs import LoggerProvider
from opentelemetry.sdk._logs.export import BatchLogRecordProcessor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator

from tracekit.config import OtelParams
from tracekit.errors import ExporterBuildError


@dataclass
class Exporters:
    """OTLP exporters, one per configured endpoint."""

    traces: OTLPSpanExporter | None = None
    metrics: OTLPMetricExporter | None = None
    logs: OTLPLogExporter | None = None


def install_propagator() -> None:
    """Install W3C Trace Context as the global text-map propagator."""
    propagate.set_global_textmap(TraceContextTextMapPropagator())


def build_resource(params: OtelParams) -> Resource:
    return Resource.create({
        SERVICE_NAME: params.service_name,
        SERVICE_VERSION: params.service_version,
    })


def build_exporters(params: OtelParams) -> Exporters:
    """Build an exporter for every endpoint that is set.

    Construction does not connect to the collector.

    Raises:
        ExporterBuildError: If an exporter cannot be constructed
    """
    exporters = Exporters()
    if params.endpoint_traces:
        try:
            exporters.traces = OTLPSpanExporter(endpoint=params.endpoint_traces)
        except Exception as e:
            raise ExporterBuildError("traces", cause=e) from e
    if params.endpoint_metrics:
        try:
            exporters.metrics = OTLPMetricExporter(endpoint=params.endpoint_metrics)
        except Exception as e:
            raise ExporterBuildError("metrics", cause=e) from e
    if params.endpoint_logs:
        try:
            exporters.logs = OTLPLogExporter(endpoint=params.endpoint_logs)
        except Exception as e:
            raise ExporterBuildError("logs", cause=e) from e
    return exporters


def build_tracer_provider(exporter: OTLPSpanExporter, resource: Resource) -> TracerProvider:
    provider = TracerProvider(resource=resource)
    provider.add_span_processor(BatchSpanProcessor(exporter))
    return provider


def build_meter_provider(
    exporter: OTLPMetricExporter,
    resource: Resource,
    export_interval_ms: int | None = None,
) -> MeterProvider:
    """Meter provider exporting periodically.

    Without an explicit interval the reader falls back to
    OTEL_METRIC_EXPORT_INTERVAL, then to the SDK default.
    """
    reader = PeriodicExportingMetricReader(exporter, export_interval_millis=export_interval_ms)
    return MeterProvider(resource=resource, metric_readers=[reader])


def build_logger_provider(exporter: OTLPLogExporter, resource: Resource) -> LoggerProvider:
    provider = LoggerProvider(resource=resource)
    provider.add_log_record_processor(BatchLogRecordProcessor(exporter))
    return provider


def set_global_providers(
    tracer_provider: TracerProvider | None = None,
    meter_provider: MeterProvider | None = None,
    logger_provider: LoggerProvider | None = None,
) -> None:
    if tracer_provider is not None:
        trace.set_tracer_provider(tracer_provider)
    if meter_provider is not None:
        metrics.set_meter_provider(meter_provider)
    if logger_provider is not None:
        set_logger_provider(logger_provider)


def get_tracer(name: str) -> trace.Tracer:
    """Tracer from the global tracer provider (no-op before initialization)."""
    return trace.get_tracer(name)


def extract_context(headers: dict[str, str]) -> Context:
    """Extract trace context from HTTP headers.

    Args:
        headers: HTTP headers dict

    Returns:
        OpenTelemetry Context with extracted trace info
    """
    return propagate.extract(carrier=headers)


def inject_context(headers: dict[str, str], context: Context | None = None) -> None:
    """Inject trace context into HTTP headers.

    Adds W3C Trace Context headers (traceparent/tracestate).

    Args:
        headers: HTTP headers dict to inject into
        context: Context to inject (current if not specified)
    """
    propagate.inject(carrier=headers, context=context)
