"""Lifecycle guard for the OpenTelemetry providers.

Releasing the guard flushes and shuts down every provider it holds, in the
order tracer, meter, logger. Each provider gets at most SHUTDOWN_TIMEOUT
seconds; a provider that is still busy is left to finish on its daemon
worker so a slow collector cannot block process exit.
"""

import logging
import threading
import time
from types import TracebackType
from typing import Any

from opentelemetry.sdk._logs import LoggerProvider
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.trace import TracerProvider

SHUTDOWN_TIMEOUT = 0.1

# stdlib logger: the guard may run after the subscriber is gone
logger = logging.getLogger(__name__)


def _flush_and_shutdown(name: str, provider: Any, timeout_millis: int) -> None:
    try:
        provider.force_flush(timeout_millis=timeout_millis)
    except Exception as e:
        logger.debug("%s provider flush failed: %s", name, e)
    try:
        provider.shutdown()
    except Exception as e:
        logger.debug("%s provider shutdown failed: %s", name, e)


def release(name: str, provider: Any, timeout: float = SHUTDOWN_TIMEOUT) -> bool:
    """Flush then shut down ``provider`` within ``timeout`` seconds.

    Returns:
        True if the provider finished within the timeout
    """
    worker = threading.Thread(
        target=_flush_and_shutdown,
        args=(name, provider, int(timeout * 1000)),
        name=f"tracekit-shutdown-{name}",
        daemon=True,
    )
    worker.start()
    worker.join(timeout)
    if worker.is_alive():
        logger.debug("%s provider shutdown exceeded %.0f ms", name, timeout * 1000)
        return False
    return True


class TracingGuards:
    """Owns the providers created by one initialization.

    Keep it alive for the lifetime of the application and close it (or let
    the ``with`` block end) before exit. The guard cannot be copied: every
    provider is shut down exactly once.

    Usage:
        with TracingBuilder().with_otel(params).build():
            run()
    """

    def __init__(
        self,
        tracer_provider: TracerProvider | None = None,
        meter_provider: MeterProvider | None = None,
        logger_provider: LoggerProvider | None = None,
    ) -> None:
        self.tracer_provider = tracer_provider
        self.meter_provider = meter_provider
        self.logger_provider = logger_provider
        self._lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def providers(self) -> list[tuple[str, Any]]:
        """Held providers in release order."""
        held = [
            ("tracer", self.tracer_provider),
            ("meter", self.meter_provider),
            ("logger", self.logger_provider),
        ]
        return [(name, provider) for name, provider in held if provider is not None]

    def close(self) -> None:
        """Flush and shut down every provider. Never raises; idempotent."""
        with self._lock:
            if self._closed:
                return
            self._closed = True

        started = time.monotonic()
        for name, provider in self.providers():
            try:
                release(name, provider)
            except Exception as e:
                logger.debug("%s provider release failed: %s", name, e)
        logger.debug("tracing guards released in %.1f ms", (time.monotonic() - started) * 1000)

    def __enter__(self) -> "TracingGuards":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def __del__(self) -> None:
        # Attributes may be missing if __init__ failed
        if getattr(self, "_lock", None) is not None:
            self.close()

    def __copy__(self) -> "TracingGuards":
        raise TypeError("TracingGuards cannot be copied")

    def __deepcopy__(self, memo: dict[int, Any]) -> "TracingGuards":
        raise TypeError("TracingGuards cannot be copied")

    def __repr__(self) -> str:
        names = ", ".join(name for name, _ in self.providers()) or "none"
        return f"<TracingGuards providers=[{names}] closed={self._closed}>"
