"""OpenTelemetry metric helpers.

Provides preset HTTP and database instruments following the semantic
conventions, descriptor models that convert to attribute sets, and a
service-level recorder tying them together.
"""

import time
from collections.abc import Callable, Generator, Iterable
from contextlib import contextmanager
from typing import Any, NamedTuple, Protocol, runtime_checkable

from opentelemetry import metrics
from opentelemetry.metrics import CallbackOptions, Counter, Histogram, Meter, Observation, UpDownCounter
from opentelemetry.util.types import AttributeValue
from pydantic import BaseModel, Field

# Bucket boundaries (ms) shared by the duration histograms
DURATION_BUCKETS_MS: tuple[float, ...] = (
    5.0, 10.0, 25.0, 50.0, 100.0, 250.0, 500.0, 1000.0, 2500.0, 5000.0, 10000.0,
)


class KeyValue(NamedTuple):
    """A single metric attribute."""

    key: str
    value: AttributeValue


@runtime_checkable
class IntoOtelAttributes(Protocol):
    """Anything that can describe itself as an ordered attribute sequence."""

    def to_attributes(self) -> list[KeyValue]: ...


def attributes_of(descriptor: IntoOtelAttributes) -> dict[str, AttributeValue]:
    """Attribute mapping in the shape the OpenTelemetry API accepts."""
    return dict(descriptor.to_attributes())


class MetricsHelper:
    """Factories for the preset instruments."""

    @staticmethod
    def http_request_counter(meter: Meter) -> Counter:
        return meter.create_counter(
            "http.server.request.total",
            unit="1",
            description="Total number of HTTP requests",
        )

    @staticmethod
    def http_request_duration(meter: Meter) -> Histogram:
        return meter.create_histogram(
            "http.server.request.duration",
            unit="ms",
            description="HTTP request duration",
            explicit_bucket_boundaries_advisory=list(DURATION_BUCKETS_MS),
        )

    @staticmethod
    def db_operation_counter(meter: Meter) -> Counter:
        return meter.create_counter(
            "db.client.operation.total",
            unit="1",
            description="Total number of database operations",
        )

    @staticmethod
    def db_operation_duration(meter: Meter) -> Histogram:
        return meter.create_histogram(
            "db.client.operation.duration",
            unit="ms",
            description="Database operation duration",
            explicit_bucket_boundaries_advisory=list(DURATION_BUCKETS_MS),
        )


class HttpRequestMetrics(BaseModel):
    """One HTTP request, for counter and histogram recording.

    Setters return a new descriptor:

        HttpRequestMetrics().post().with_route("/orders").internal_server_error()
    """

    method: str = Field(default="GET", description="HTTP request method")
    route: str = Field(default="", description="Matched route template")
    status_code: int = Field(default=200, description="HTTP response status code")
    error: str | None = Field(default=None, description="error.type attribute")
    extra: list[tuple[str, str]] = Field(default_factory=list, description="Extra attributes")
    duration_ms: int | None = Field(default=None, ge=0, description="Request duration (ms)")

    def _with(self, **update: Any) -> "HttpRequestMetrics":
        return self.model_copy(update=update)

    def get(self) -> "HttpRequestMetrics":
        return self._with(method="GET")

    def post(self) -> "HttpRequestMetrics":
        return self._with(method="POST")

    def put(self) -> "HttpRequestMetrics":
        return self._with(method="PUT")

    def delete(self) -> "HttpRequestMetrics":
        return self._with(method="DELETE")

    def patch(self) -> "HttpRequestMetrics":
        return self._with(method="PATCH")

    def ok(self) -> "HttpRequestMetrics":
        return self._with(status_code=200)

    def bad_request(self) -> "HttpRequestMetrics":
        return self._with(status_code=400)

    def conflict(self) -> "HttpRequestMetrics":
        return self._with(status_code=409)

    def internal_server_error(self) -> "HttpRequestMetrics":
        return self._with(status_code=500)

    def with_route(self, route: str) -> "HttpRequestMetrics":
        return self._with(route=route)

    def with_status_code(self, status_code: int) -> "HttpRequestMetrics":
        return self._with(status_code=status_code)

    def with_error(self, error: str) -> "HttpRequestMetrics":
        return self._with(error=error)

    def with_extra(self, key: str, value: str) -> "HttpRequestMetrics":
        return self._with(extra=[*self.extra, (key, value)])

    def with_duration(self, duration_ms: int) -> "HttpRequestMetrics":
        if duration_ms < 0:
            raise ValueError("duration_ms must be non-negative")
        return self._with(duration_ms=duration_ms)

    def to_attributes(self) -> list[KeyValue]:
        attrs = [
            KeyValue("http.request.method", self.method),
            KeyValue("http.route", self.route),
            KeyValue("http.response.status_code", int(self.status_code)),
        ]
        if self.error is not None:
            attrs.append(KeyValue("error.type", self.error))
        attrs.extend(KeyValue(key, value) for key, value in self.extra)
        return attrs


class DbQueryMetrics(BaseModel):
    """One database operation."""

    system: str = Field(description="db.system, e.g. postgresql")
    operation: str = Field(description="db.operation.name, e.g. INSERT")
    duration_ms: int = Field(ge=0, description="Operation duration (ms)")
    success: bool = Field(default=True)

    def to_attributes(self) -> list[KeyValue]:
        attrs = [
            KeyValue("db.system", self.system),
            KeyValue("db.operation.name", self.operation),
        ]
        if not self.success:
            attrs.append(KeyValue("error.type", "db_error"))
        return attrs


class TimedHistogram:
    """Histogram with a timing context manager recording milliseconds."""

    def __init__(self, histogram: Histogram) -> None:
        self.histogram = histogram

    def record(self, value: float, attributes: dict[str, AttributeValue] | None = None) -> None:
        self.histogram.record(value, attributes=attributes)

    @contextmanager
    def time(self, attributes: dict[str, AttributeValue] | None = None) -> Generator[None, None, None]:
        """Record the elapsed time of the block, also when it raises."""
        start = time.perf_counter()
        try:
            yield
        finally:
            self.histogram.record((time.perf_counter() - start) * 1000, attributes=attributes)


class ServiceMetrics:
    """Preset instruments for one service, with recording helpers.

    Usage:
        metrics = ServiceMetrics("order-service")
        metrics.record_http_request(
            HttpRequestMetrics().post().with_route("/orders").with_duration(12)
        )
    """

    def __init__(self, service_name: str, meter: Meter | None = None) -> None:
        self.meter = meter or metrics.get_meter(service_name)
        self.http_request_counter = MetricsHelper.http_request_counter(self.meter)
        self.http_request_duration = MetricsHelper.http_request_duration(self.meter)
        self.db_operation_counter = MetricsHelper.db_operation_counter(self.meter)
        self.db_operation_duration = MetricsHelper.db_operation_duration(self.meter)

    @staticmethod
    def record(
        counter: Counter,
        histogram: Histogram,
        descriptor: IntoOtelAttributes,
        duration_ms: int | None,
    ) -> None:
        """Count ``descriptor`` and record its duration when known."""
        attributes = attributes_of(descriptor)
        counter.add(1, attributes=attributes)
        if duration_ms is not None:
            histogram.record(duration_ms, attributes=attributes)

    def record_http_request(self, request: HttpRequestMetrics) -> None:
        self.record(
            self.http_request_counter,
            self.http_request_duration,
            request,
            request.duration_ms,
        )

    def record_db_query(self, query: DbQueryMetrics) -> None:
        self.record(
            self.db_operation_counter,
            self.db_operation_duration,
            query,
            query.duration_ms,
        )

    def counter(self, name: str, unit: str = "", description: str = "") -> Counter:
        return self.meter.create_counter(name, unit=unit, description=description)

    def histogram(self, name: str, unit: str = "ms", description: str = "") -> TimedHistogram:
        return TimedHistogram(self.meter.create_histogram(name, unit=unit, description=description))

    def up_down_counter(self, name: str, unit: str = "", description: str = "") -> UpDownCounter:
        return self.meter.create_up_down_counter(name, unit=unit, description=description)

    def gauge(
        self,
        name: str,
        callback: Callable[[], float],
        attributes: dict[str, AttributeValue] | None = None,
        unit: str = "",
        description: str = "",
    ) -> None:
        """Observable gauge reporting ``callback()`` at every collection."""

        def observe(_options: CallbackOptions) -> Iterable[Observation]:
            return [Observation(callback(), attributes)]

        self.meter.create_observable_gauge(
            name, callbacks=[observe], unit=unit, description=description
        )


def otel_meter(name: str) -> Meter:
    """Meter from the global meter provider (no-op before initialization)."""
    return metrics.get_meter(name)
