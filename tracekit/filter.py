"""Filter expressions for log events.

A filter expression is a comma separated list of directives, each either a
bare level (``info``) or a ``target=level`` pair (``app.db=debug``). Targets
are logger names; a directive matches its target exactly or any dotted
descendant of it, and the most specific matching directive wins.

    EnvFilter.parse("warn,app=info,app.db=trace")
"""

import logging

import structlog
from structlog.types import EventDict, WrappedLogger

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

# Sentinel above every real level
OFF = logging.CRITICAL + 10

LEVELS: dict[str, int] = {
    "trace": TRACE,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "off": OFF,
}


# structlog method names to levels
METHOD_LEVELS: dict[str, int] = {
    **LEVELS,
    "exception": logging.ERROR,
    "critical": logging.CRITICAL,
    "fatal": logging.CRITICAL,
}


def parse_level(value: str) -> int | None:
    """Parse a level name, returning None if it is not one."""
    return LEVELS.get(value.strip().lower())


def _normalize_target(target: str) -> str:
    return target.strip().replace("::", ".")


class EnvFilter(logging.Filter):
    """Level filter keyed by logger name.

    Attached to every sink handler, so it applies uniformly to structlog
    events and to records from plain stdlib loggers.
    """

    def __init__(self, default: int = OFF, directives: dict[str, int] | None = None) -> None:
        super().__init__()
        self.default = default
        self.directives = dict(directives or {})
        # Longest target first so the first prefix match is the most specific
        self._ordered = sorted(self.directives.items(), key=lambda item: len(item[0]), reverse=True)

    @classmethod
    def parse(cls, expression: str | None) -> "EnvFilter":
        """Build a filter from an expression.

        Invalid directives are skipped. An empty or missing expression
        yields a filter that passes nothing.
        """
        default = OFF
        directives: dict[str, int] = {}
        for raw in (expression or "").split(","):
            directive = raw.strip()
            if not directive:
                continue
            if "=" in directive:
                target, _, level_name = directive.partition("=")
                level = parse_level(level_name)
                target = _normalize_target(target)
                if level is None or not target:
                    continue
                directives[target] = level
            else:
                level = parse_level(directive)
                if level is None:
                    # A bare word that is not a level enables that target fully
                    directives[_normalize_target(directive)] = TRACE
                    continue
                default = level
        return cls(default=default, directives=directives)

    def level_for(self, target: str) -> int:
        """Return the minimum level enabled for ``target``."""
        target = _normalize_target(target)
        for prefix, level in self._ordered:
            if target == prefix or target.startswith(prefix + "."):
                return level
        return self.default

    def enabled(self, target: str, level: int) -> bool:
        return level >= self.level_for(target)

    @property
    def min_level(self) -> int:
        """Lowest level any directive enables."""
        return min([self.default, *self.directives.values()])

    def filter(self, record: logging.LogRecord) -> bool:
        return self.enabled(record.name, record.levelno)

    def drop_disabled(
        self, logger: WrappedLogger, method_name: str, event_dict: EventDict
    ) -> EventDict:
        """structlog processor dropping events the filter disables."""
        level = METHOD_LEVELS.get(method_name, logging.INFO)
        if not self.enabled(getattr(logger, "name", "") or "", level):
            raise structlog.DropEvent
        return event_dict
