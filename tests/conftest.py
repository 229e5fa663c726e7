"""Shared test fixtures for the tracekit test suite."""

import logging
from collections.abc import Callable, Generator

import pytest
import structlog
from opentelemetry import propagate
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.test.globals_test import (
    reset_logging_globals,
    reset_metrics_globals,
    reset_trace_globals,
)

from tracekit import subscriber
from tracekit.filter import EnvFilter
from tracekit.layers import Layer

ENV_VARS = (
    "TRACEKIT_LOG",
    "OTEL_METRIC_EXPORT_INTERVAL",
    "TRACEKIT_STDOUT_ENABLED",
    "TRACEKIT_JSON_FORMAT",
    "TRACEKIT_FILE_PATH",
    "TRACEKIT_LOG_FILTER",
    "TRACEKIT_METRIC_EXPORT_INTERVAL_MS",
)


@pytest.fixture(autouse=True)
def reset_tracing(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Give every test a process with nothing installed.

    Removes sink handlers from the root logger, forgets the installed
    subscriber and resets structlog and the OpenTelemetry globals.
    """
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)

    root = logging.getLogger()
    original_level = root.level
    original_propagator = propagate.get_global_textmap()

    yield

    for handler in list(root.handlers):
        # Sink handlers carry the installed filter
        if any(isinstance(f, EnvFilter) for f in handler.filters):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(original_level)
    subscriber._installed = None
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()
    propagate.set_global_textmap(original_propagator)
    reset_trace_globals()
    reset_metrics_globals()
    reset_logging_globals()


@pytest.fixture
def span_exporter() -> InMemorySpanExporter:
    return InMemorySpanExporter()


@pytest.fixture
def tracer_provider(span_exporter: InMemorySpanExporter) -> TracerProvider:
    """Tracer provider recording finished spans in memory."""
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(span_exporter))
    return provider


@pytest.fixture
def install() -> Callable[..., subscriber.Subscriber]:
    """Install a subscriber built from explicit layers.

    Usage:
        def test_something(install, tmp_path):
            install("info", file_layer(str(tmp_path / "log.txt"), True))
    """

    def _install(expression: str, *layers: Layer) -> subscriber.Subscriber:
        sub = subscriber.Subscriber(filter=EnvFilter.parse(expression), layers=list(layers))
        sub.install()
        return sub

    return _install
