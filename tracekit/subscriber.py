"""Process-wide subscriber installation.

The subscriber is the env filter plus an ordered list of layers. Installing
it configures structlog and attaches the layer handlers to the root logger;
this happens at most once per process.
"""

import logging
import threading
from dataclasses import dataclass, field

import structlog
from opentelemetry.trace import Tracer
from structlog.types import Processor

from tracekit.errors import AlreadyInstalledError
from tracekit.filter import EnvFilter
from tracekit.layers import Layer, null_layer
from tracekit.logging import BoundLogger, shared_processors

# Held for the whole of a build so concurrent builds serialize
INSTALL_LOCK = threading.RLock()

_installed: "Subscriber | None" = None


@dataclass
class Subscriber:
    """Env filter combined with an ordered list of layers."""

    filter: EnvFilter
    layers: list[Layer] = field(default_factory=list)

    @property
    def tracer(self) -> Tracer | None:
        """Tracer of the trace bridge layer, if one is installed."""
        for layer in self.layers:
            if layer.tracer is not None:
                return layer.tracer
        return None

    def handlers(self) -> list[logging.Handler]:
        handlers = [layer.handler for layer in self.layers if layer.handler is not None]
        if not handlers:
            # Keeps stdlib's last-resort handler from printing to stderr
            handlers = [null_layer().handler]  # type: ignore[list-item]
        return handlers

    def processors(self) -> list[Processor]:
        bridges = [layer.processor for layer in self.layers if layer.processor is not None]
        return [
            self.filter.drop_disabled,
            *shared_processors(),
            *bridges,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ]

    def install(self) -> None:
        """Install as the process-wide subscriber.

        Raises:
            AlreadyInstalledError: If a subscriber is already installed
        """
        global _installed

        with INSTALL_LOCK:
            if _installed is not None:
                raise AlreadyInstalledError()

            root = logging.getLogger()
            for handler in self.handlers():
                handler.addFilter(self.filter)
                root.addHandler(handler)
            root.setLevel(self.filter.min_level)

            structlog.configure(
                processors=self.processors(),
                wrapper_class=BoundLogger,
                logger_factory=structlog.stdlib.LoggerFactory(),
                context_class=dict,
                cache_logger_on_first_use=False,
            )
            _installed = self


def current() -> Subscriber | None:
    """Return the installed subscriber, or None before initialization."""
    return _installed


def is_installed() -> bool:
    return _installed is not None
