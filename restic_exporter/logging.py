"""Logging helpers wrapping femtologging for the exporter.

Every module obtains its logger through :func:`get_logger` and emits
pre-formatted messages through the ``log_*`` helpers so that collection and
control-plane events share one percent-style formatting path. Third-party
libraries that log through the standard library (uvicorn) are routed into
femtologging with :func:`route_stdlib_logger`.

Example:
>>> from restic_exporter.logging import get_logger, log_info
>>> logger = get_logger(__name__)
>>> log_info(logger, "Collecting %d repositories", 3)

"""

from __future__ import annotations

import enum
import logging as stdlib_logging
import typing as typ

from femtologging import basicConfig, get_logger


class LogLevel(enum.StrEnum):
    """Log levels accepted on the command line."""

    TRACE = "TRACE"
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


def normalize_log_level(level: str | None) -> tuple[str, bool]:
    """Normalize a log level string and report invalid inputs.

    Parameters
    ----------
    level : str | None
        Raw log level string, typically from ``--log-level``.

    Returns
    -------
    tuple[str, bool]
        The normalized log level and a flag indicating invalid input.

    """
    if not level:
        return ("INFO", True)

    normalized = level.strip().upper()
    if normalized in LogLevel.__members__:
        return (normalized, False)

    return ("INFO", True)


def configure_logging(level: str, *, force: bool = False) -> tuple[str, bool]:
    """Configure femtologging and return the normalized level."""
    normalized, invalid = normalize_log_level(level)
    basicConfig(level=normalized, force=force)
    return (normalized, invalid)


class _SupportsLog(typ.Protocol):
    """Protocol for femtologging-compatible loggers."""

    def log(
        self,
        level: str,
        message: str,
        /,
        *,
        exc_info: object | None = None,
        stack_info: bool = False,
    ) -> str | None: ...


def _log_at_level(
    logger: _SupportsLog,
    level: str,
    template: str,
    args: tuple[object, ...],
    exc_info: object | None,
) -> None:
    message = template % args if args else template
    logger.log(level, message, exc_info=exc_info, stack_info=False)


def log_debug(
    logger: _SupportsLog,
    template: str,
    *args: object,
    exc_info: object | None = None,
) -> None:
    """Log a DEBUG message with percent-style formatting."""
    _log_at_level(logger, "DEBUG", template, args, exc_info)


def log_info(
    logger: _SupportsLog,
    template: str,
    *args: object,
    exc_info: object | None = None,
) -> None:
    """Log an INFO message with percent-style formatting.

    Parameters
    ----------
    logger : _SupportsLog
        Logger that receives the formatted message.
    template : str
        Message template using percent-style placeholders.
    *args : object
        Values to interpolate into the template.
    exc_info : object | None, optional
        Exception information to attach to the log record.

    """
    _log_at_level(logger, "INFO", template, args, exc_info)


def log_warning(
    logger: _SupportsLog,
    template: str,
    *args: object,
    exc_info: object | None = None,
) -> None:
    """Log a WARNING message with percent-style formatting."""
    _log_at_level(logger, "WARNING", template, args, exc_info)


def log_error(
    logger: _SupportsLog,
    template: str,
    *args: object,
    exc_info: object | None = None,
) -> None:
    """Log an ERROR message with percent-style formatting.

    Parameters
    ----------
    logger : _SupportsLog
        Logger that receives the formatted message.
    template : str
        Message template using percent-style placeholders.
    *args : object
        Values to interpolate into the template.
    exc_info : object | None, optional
        Exception information to attach to the log record.

    """
    _log_at_level(logger, "ERROR", template, args, exc_info)


_STDLIB_LEVELS: tuple[tuple[int, str], ...] = (
    (stdlib_logging.CRITICAL, "CRITICAL"),
    (stdlib_logging.ERROR, "ERROR"),
    (stdlib_logging.WARNING, "WARNING"),
    (stdlib_logging.INFO, "INFO"),
)


def _femto_level(levelno: int) -> str:
    for threshold, name in _STDLIB_LEVELS:
        if levelno >= threshold:
            return name
    return "DEBUG"


class FemtologgingHandler(stdlib_logging.Handler):
    """Forward standard library records to the femtologging logger of the same name."""

    def emit(self, record: stdlib_logging.LogRecord) -> None:
        """Format ``record`` and re-emit it through femtologging."""
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            self.handleError(record)
            return
        exc_info = record.exc_info[1] if record.exc_info else None
        _log_at_level(
            get_logger(record.name),
            _femto_level(record.levelno),
            message,
            (),
            exc_info,
        )


def route_stdlib_logger(
    name: str,
    *,
    level: int = stdlib_logging.INFO,
) -> stdlib_logging.Logger:
    """Send the standard library logger ``name`` to femtologging only.

    Parameters
    ----------
    name : str
        Standard library logger name, e.g. ``"uvicorn.error"``.
    level : int, optional
        Minimum level forwarded.

    Returns
    -------
    logging.Logger
        The configured standard library logger.

    """
    target = stdlib_logging.getLogger(name)
    if not any(isinstance(h, FemtologgingHandler) for h in target.handlers):
        target.addHandler(FemtologgingHandler())
    target.setLevel(level)
    target.propagate = False
    return target


__all__ = [
    "FemtologgingHandler",
    "LogLevel",
    "configure_logging",
    "get_logger",
    "log_debug",
    "log_error",
    "log_info",
    "log_warning",
    "normalize_log_level",
    "route_stdlib_logger",
]
