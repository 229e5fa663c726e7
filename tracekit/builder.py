"""Tracing pipeline builder.

Usage:
    guards = (
        TracingBuilder()
        .with_log_filter("info")
        .with_json(False)
        .with_otel(OtelParams.local("order-service", "1.0.0"))
        .build()
    )
"""

import os
from typing import Any

from opentelemetry import trace

from tracekit import otel
from tracekit.config import (
    DEFAULT_LOG_FILE,
    LOG_FILTER_ENV,
    METRIC_EXPORT_INTERVAL_ENV,
    OtelParams,
    TracingConfig,
)
from tracekit.errors import AlreadyInstalledError
from tracekit.filter import EnvFilter
from tracekit.guard import TracingGuards
from tracekit.layers import Layer, file_layer, otel_log_layer, otel_trace_layer, stdout_layer
from tracekit.logging import get_logger
from tracekit.subscriber import INSTALL_LOCK, Subscriber, is_installed

logger = get_logger(__name__)


class TracingBuilder:
    """Fluent assembly of a TracingConfig.

    Every setter changes only its own field and returns the builder.
    """

    def __init__(self) -> None:
        self._fields: dict[str, Any] = {}

    @classmethod
    def from_config(cls, config: TracingConfig) -> "TracingBuilder":
        builder = cls()
        builder._fields = {name: getattr(config, name) for name in config.model_fields_set}
        return builder

    def with_stdout(self, value: bool) -> "TracingBuilder":
        self._fields["stdout_enabled"] = value
        return self

    def with_json(self, value: bool | None) -> "TracingBuilder":
        """Select JSON (True) or console (False) rendering; None restores the default."""
        if value is None:
            self._fields.pop("json_format", None)
        else:
            self._fields["json_format"] = value
        return self

    def with_file(self, path: str | None) -> "TracingBuilder":
        self._fields["file_path"] = path
        return self

    def with_predefined_file(self) -> "TracingBuilder":
        return self.with_file(DEFAULT_LOG_FILE)

    def with_log_filter(self, value: str) -> "TracingBuilder":
        """Set the filter expression.

        Also exported as TRACEKIT_LOG for components that read it at
        initialization.
        """
        os.environ[LOG_FILTER_ENV] = value
        self._fields["log_filter"] = value
        return self

    def with_otel(self, params: OtelParams) -> "TracingBuilder":
        self._fields["otel"] = params
        return self

    def with_otel_metric_export_interval(self, value: int) -> "TracingBuilder":
        """Set the metric export interval in milliseconds.

        Also exported as OTEL_METRIC_EXPORT_INTERVAL.
        """
        os.environ[METRIC_EXPORT_INTERVAL_ENV] = str(value)
        self._fields["metric_export_interval_ms"] = value
        return self

    def config(self) -> TracingConfig:
        """Resolve the configuration, reading TRACEKIT_* variables for unset fields."""
        return TracingConfig(**self._fields)

    def build(self) -> TracingGuards:
        """Install the pipeline.

        Raises:
            FileSinkError: If the log file cannot be created
            ExporterBuildError: If an OTLP exporter cannot be constructed
            AlreadyInstalledError: If a subscriber is already installed
        """
        return init_tracing(self.config())

    try_init = build


def init_tracing(config: TracingConfig) -> TracingGuards:
    """Build and install the subscriber and OpenTelemetry providers.

    Args:
        config: Pipeline configuration

    Returns:
        Guards owning the installed providers
    """
    with INSTALL_LOCK:
        # Refuse before touching files or globals
        if is_installed():
            raise AlreadyInstalledError()

        layers: list[Layer] = []
        if config.file_path:
            layers.append(file_layer(config.file_path, config.json_format))
        if config.stdout_enabled:
            layers.append(stdout_layer(config.json_format))

        env_filter = EnvFilter.parse(config.resolved_log_filter())
        try:
            guards = _init_otel(config, layers)
            Subscriber(filter=env_filter, layers=layers).install()
        except Exception:
            _close_layers(layers)
            raise

    logger.debug(
        "tracing_initialized",
        layers=[layer.name for layer in layers],
        json_format=config.json_format,
    )
    return guards


def _close_layers(layers: list[Layer]) -> None:
    for layer in layers:
        if layer.handler is not None:
            layer.handler.close()


def _init_otel(config: TracingConfig, layers: list[Layer]) -> TracingGuards:
    params = config.otel
    if params is None:
        return TracingGuards()

    otel.install_propagator()
    resource = otel.build_resource(params)
    exporters = otel.build_exporters(params)

    guards = TracingGuards()
    if exporters.traces is not None:
        guards.tracer_provider = otel.build_tracer_provider(exporters.traces, resource)
        otel.set_global_providers(tracer_provider=guards.tracer_provider)
        tracer = trace.get_tracer(params.service_name, tracer_provider=guards.tracer_provider)
        layers.append(otel_trace_layer(tracer))

    if exporters.metrics is not None:
        guards.meter_provider = otel.build_meter_provider(
            exporters.metrics, resource, config.metric_export_interval_ms
        )
        otel.set_global_providers(meter_provider=guards.meter_provider)

    if exporters.logs is not None:
        guards.logger_provider = otel.build_logger_provider(exporters.logs, resource)
        otel.set_global_providers(logger_provider=guards.logger_provider)
        layers.append(otel_log_layer(guards.logger_provider))

    return guards
