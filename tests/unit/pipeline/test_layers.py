"""Tests for subscriber layers."""

import logging
from collections.abc import Callable
from pathlib import Path

import pytest
from opentelemetry._logs import SeverityNumber
from opentelemetry.sdk._logs import LoggerProvider
from opentelemetry.sdk._logs.export import InMemoryLogExporter, SimpleLogRecordProcessor

import tracekit
from tracekit.errors import FileSinkError
from tracekit.layers import (
    file_layer,
    null_layer,
    otel_log_layer,
    otel_trace_layer,
    span_attributes,
    stdout_layer,
)
from tracekit.subscriber import Subscriber


@pytest.fixture
def log_exporter() -> InMemoryLogExporter:
    return InMemoryLogExporter()


@pytest.fixture
def logger_provider(log_exporter: InMemoryLogExporter) -> LoggerProvider:
    provider = LoggerProvider()
    provider.add_log_record_processor(SimpleLogRecordProcessor(log_exporter))
    return provider


class TestSinkLayers:
    """Tests for the file and stdout layers."""

    def test_file_layer_missing_directory(self, tmp_path: Path) -> None:
        """Should wrap the OS error in FileSinkError."""
        path = str(tmp_path / "nope" / "log.txt")
        with pytest.raises(FileSinkError) as exc_info:
            file_layer(path, json_format=True)
        assert exc_info.value.path == path
        assert path in str(exc_info.value)

    def test_file_layer_creates_file(self, tmp_path: Path) -> None:
        """Should create the file immediately."""
        path = tmp_path / "log.txt"
        layer = file_layer(str(path), json_format=False)
        assert path.exists()
        assert layer.name == "file"
        assert isinstance(layer.handler, logging.FileHandler)
        layer.handler.close()

    def test_stdout_layer(self) -> None:
        """Should write to stdout through a structlog formatter."""
        layer = stdout_layer(json_format=True)
        assert isinstance(layer.handler, logging.StreamHandler)
        assert layer.processor is None
        assert layer.tracer is None

    def test_null_layer(self) -> None:
        """Should discard events."""
        assert isinstance(null_layer().handler, logging.NullHandler)


class TestSpanAttributes:
    """Tests for field to attribute conversion."""

    def test_primitives_kept(self) -> None:
        """Should keep strings, booleans and numbers."""
        attrs = span_attributes({"a": "x", "b": True, "c": 3, "d": 1.5})
        assert attrs == {"a": "x", "b": True, "c": 3, "d": 1.5}

    def test_homogeneous_sequences_kept(self) -> None:
        """Should keep sequences of primitives as lists."""
        assert span_attributes({"ids": ("a", "b")}) == {"ids": ["a", "b"]}

    def test_other_values_stringified(self) -> None:
        """Should stringify values OpenTelemetry cannot carry."""
        attrs = span_attributes({"payload": {"k": 1}, "path": Path("/tmp")})
        assert attrs == {"payload": "{'k': 1}", "path": "/tmp"}

    def test_none_and_private_dropped(self) -> None:
        """Should drop None values and underscore keys."""
        assert span_attributes({"missing": None, "_record": object(), "kept": 1}) == {"kept": 1}


class TestLogBridge:
    """Tests for the OpenTelemetry log bridge."""

    def test_structlog_event_exported(
        self,
        install: Callable[..., Subscriber],
        logger_provider: LoggerProvider,
        log_exporter: InMemoryLogExporter,
    ) -> None:
        """Should export the event text as body and fields as attributes."""
        install("info", otel_log_layer(logger_provider))

        tracekit.warn("disk low", free_mb=12, mount="/var")

        logs = log_exporter.get_finished_logs()
        assert len(logs) == 1
        record = logs[0].log_record
        assert record.body == "disk low"
        assert record.severity_number == SeverityNumber.WARN
        assert record.attributes["free_mb"] == 12
        assert record.attributes["mount"] == "/var"
        assert "event" not in record.attributes

    def test_field_named_event_exported(
        self,
        install: Callable[..., Subscriber],
        logger_provider: LoggerProvider,
        log_exporter: InMemoryLogExporter,
    ) -> None:
        """Should export a field named event as an attribute."""
        install("info", otel_log_layer(logger_provider))

        tracekit.info("user action", event="signup")

        record = log_exporter.get_finished_logs()[0].log_record
        assert record.body == "user action"
        assert record.attributes["event"] == "signup"
        assert "_event" not in record.attributes

    def test_filtered_event_not_exported(
        self,
        install: Callable[..., Subscriber],
        logger_provider: LoggerProvider,
        log_exporter: InMemoryLogExporter,
    ) -> None:
        """Should export only events the filter enables."""
        install("warn", otel_log_layer(logger_provider))

        tracekit.info("quiet")

        assert log_exporter.get_finished_logs() == ()

    def test_stdlib_record_exported(
        self,
        install: Callable[..., Subscriber],
        logger_provider: LoggerProvider,
        log_exporter: InMemoryLogExporter,
    ) -> None:
        """Should export plain stdlib records unchanged."""
        install("info", otel_log_layer(logger_provider))

        logging.getLogger("legacy").error("plain %s", "record")

        record = log_exporter.get_finished_logs()[0].log_record
        assert record.body == "plain record"
        assert record.severity_number == SeverityNumber.ERROR

    def test_log_correlated_with_span(
        self,
        install: Callable[..., Subscriber],
        logger_provider: LoggerProvider,
        log_exporter: InMemoryLogExporter,
        tracer_provider,
    ) -> None:
        """Should carry the trace context of the current span."""
        install(
            "info",
            otel_trace_layer(tracer_provider.get_tracer("test")),
            otel_log_layer(logger_provider),
        )

        with tracekit.info_span("job") as span:
            tracekit.info("step")
            span_context = span.otel_span.get_span_context()

        record = log_exporter.get_finished_logs()[0].log_record
        assert record.trace_id == span_context.trace_id
        assert record.span_id == span_context.span_id
