"""Span helpers for functions and blocks.

    @traced("order.process", kind=SpanKind.INTERNAL)
    async def process_order(order_id: str) -> None: ...

    with with_span("cache.lookup", {"cache.key": key}) as span:
        ...
"""

import functools
import inspect
import json
from collections.abc import Callable, Generator
from contextlib import contextmanager
from typing import Any, TypeVar

from opentelemetry import trace
from opentelemetry.trace import Span, SpanKind, Status, StatusCode
from opentelemetry.util.types import AttributeValue

F = TypeVar("F", bound=Callable[..., Any])

TRACER_NAME = "tracekit.traced"


def record_exception(span: Span, exception: BaseException) -> None:
    """Record an exception on a span and mark it failed."""
    span.record_exception(exception)
    span.set_status(Status(StatusCode.ERROR, str(exception)))


def _dumps(value: Any) -> str:
    return json.dumps(value, default=repr)


@contextmanager
def with_span(
    name: str,
    attributes: dict[str, AttributeValue] | None = None,
    kind: SpanKind = SpanKind.INTERNAL,
) -> Generator[Span, None, None]:
    """Run a block inside a new current span.

    The span ends with status OK, or ERROR with the exception recorded if
    the block raises; the exception propagates.
    """
    tracer = trace.get_tracer(TRACER_NAME)
    with tracer.start_as_current_span(
        name,
        kind=kind,
        attributes=attributes or {},
        record_exception=False,
        set_status_on_exception=False,
    ) as span:
        try:
            yield span
        except BaseException as e:
            record_exception(span, e)
            raise
        span.set_status(Status(StatusCode.OK))


def traced(
    name: str | None = None,
    *,
    kind: SpanKind = SpanKind.INTERNAL,
    attributes: dict[str, AttributeValue] | None = None,
    record_args: bool = False,
    record_result: bool = False,
) -> Callable[[F], F]:
    """Wrap a sync or async function in a span named after it.

    Args:
        name: Span name (the function's qualified name if not specified)
        kind: Span kind
        attributes: Initial span attributes
        record_args: Record the call arguments as ``function.args``
        record_result: Record the return value as ``function.result``
    """

    def decorator(func: F) -> F:
        span_name = name or func.__qualname__

        def start(args: tuple[Any, ...], kwargs: dict[str, Any]) -> Any:
            initial = dict(attributes or {})
            if record_args:
                initial["function.args"] = _dumps({"args": args, "kwargs": kwargs})
            return with_span(span_name, initial, kind)

        def finish(span: Span, result: Any) -> None:
            if record_result and result is not None:
                span.set_attribute("function.result", _dumps(result))

        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                with start(args, kwargs) as span:
                    result = await func(*args, **kwargs)
                    finish(span, result)
                    return result

            return async_wrapper  # type: ignore[return-value]

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            with start(args, kwargs) as span:
                result = func(*args, **kwargs)
                finish(span, result)
                return result

        return wrapper  # type: ignore[return-value]

    return decorator
