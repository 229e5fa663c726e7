"""Initialization error hierarchy.

Every failure of pipeline initialization is raised as one of the InitError
subclasses, with the underlying exception kept in ``cause``.
"""


class InitError(Exception):
    """Base exception for tracing initialization errors."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class FileSinkError(InitError):
    """Raised when the configured log file cannot be created.

    Examples:
        - Parent directory does not exist
        - Permission denied
    """

    def __init__(self, path: str, cause: Exception | None = None) -> None:
        super().__init__(f"Failed to create log file {path!r}: {cause}", cause=cause)
        self.path = path


class ExporterBuildError(InitError):
    """Raised when an OTLP exporter cannot be constructed.

    ``signal`` is one of ``traces``, ``metrics`` or ``logs``.
    """

    def __init__(self, signal: str, cause: Exception | None = None) -> None:
        super().__init__(f"Failed to build OTLP {signal} exporter: {cause}", cause=cause)
        self.signal = signal


class AlreadyInstalledError(InitError):
    """Raised when a subscriber is already installed in this process."""

    def __init__(self) -> None:
        super().__init__("A tracing subscriber is already installed in this process")
