"""Tracing configuration models.

Configuration can be built in code, through TracingBuilder, or from
TRACEKIT_* environment variables:

    TRACEKIT_STDOUT_ENABLED=false
    TRACEKIT_FILE_PATH=./log.txt
    TRACEKIT_OTEL__SERVICE_NAME=order-service
"""

import os

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Filter expression read at build time when none is configured
LOG_FILTER_ENV = "TRACEKIT_LOG"

# Read by the SDK's periodic metric reader, in milliseconds
METRIC_EXPORT_INTERVAL_ENV = "OTEL_METRIC_EXPORT_INTERVAL"

DEFAULT_LOG_FILE = "./log.txt"

DEFAULT_ENDPOINTS = {
    "traces": "http://localhost:4318/v1/traces",
    "metrics": "http://localhost:4318/v1/metrics",
    "logs": "http://localhost:4318/v1/logs",
}


class OtelParams(BaseModel):
    """OpenTelemetry export parameters.

    Every endpoint that is set gets its own OTLP/HTTP exporter and provider.
    """

    endpoint_traces: str | None = Field(default=None, description="OTLP/HTTP traces URL")
    endpoint_metrics: str | None = Field(default=None, description="OTLP/HTTP metrics URL")
    endpoint_logs: str | None = Field(default=None, description="OTLP/HTTP logs URL")
    service_name: str = Field(default="tracekit", description="service.name resource attribute")
    service_version: str = Field(default="0.0.0", description="service.version resource attribute")

    @classmethod
    def local(cls, service_name: str, service_version: str) -> "OtelParams":
        """Params for a collector listening on localhost:4318."""
        return cls(
            endpoint_traces=DEFAULT_ENDPOINTS["traces"],
            endpoint_metrics=DEFAULT_ENDPOINTS["metrics"],
            endpoint_logs=DEFAULT_ENDPOINTS["logs"],
            service_name=service_name,
            service_version=service_version,
        )

    @property
    def has_endpoints(self) -> bool:
        return any((self.endpoint_traces, self.endpoint_metrics, self.endpoint_logs))


class TracingConfig(BaseSettings):
    """Declarative tracing pipeline configuration."""

    model_config = SettingsConfigDict(
        env_prefix="TRACEKIT_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    stdout_enabled: bool = Field(default=True, description="Write events to standard output")
    json_format: bool = Field(default=True, description="Render JSON instead of console text")
    file_path: str | None = Field(default=None, description="Log file, truncated on init")
    log_filter: str | None = Field(
        default=None,
        description=f"Filter expression; falls back to ${LOG_FILTER_ENV}",
    )
    otel: OtelParams | None = Field(default=None, description="OpenTelemetry export parameters")
    metric_export_interval_ms: int | None = Field(
        default=None,
        gt=0,
        description=f"Metric export interval; falls back to ${METRIC_EXPORT_INTERVAL_ENV}",
    )

    def resolved_log_filter(self) -> str:
        """Filter expression to install, empty when nothing is configured."""
        if self.log_filter is not None:
            return self.log_filter
        return os.environ.get(LOG_FILTER_ENV, "")
