"""Structured logging for astrophi.

Builds on Python's standard logging module with:
- Structured data support (key-value pairs in logs)
- JSON formatting option for log aggregation
- Context management for per-request tagging
- Optional log file, served back to clients by ``GET /logs``

Security Note:
    When logging request data (config values, command payloads), pass it
    as keyword arguments rather than formatting it into the message:

    # SAFE - structured data is kept apart from the message
    logger.info("Config set", object=name, value=value)

    # UNSAFE - a value containing CRLF could forge log lines
    logger.info(f"Config set {name}:{value}")

Example:
    logger = get_logger(__name__)

    logger.info("Server started")
    logger.info("Captured image", folder="/store_00010001", name="IMG_0001.JPG")

    with LogContext(command="Solve"):
        logger.info("Running astrometry")  # includes command=Solve

    configure_logging(json_format=True, log_file=Path("logs/astrophi.log"))
"""

from __future__ import annotations

import contextvars
import json
import logging
import sys
import threading
from collections.abc import MutableMapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, cast

ROOT_LOGGER_NAME = "astrophi"

# Context variable for structured logging context
_log_context: contextvars.ContextVar[dict[str, Any]] = contextvars.ContextVar(
    "log_context", default={}
)


# =============================================================================
# Structured Logger
# =============================================================================


class StructuredLogger(logging.Logger):
    """Logger with structured data support.

    Accepts arbitrary keyword arguments on every level method; they are
    merged with the active LogContext and attached to the record as
    ``structured_data``.

    Usage:
        logger = StructuredLogger("astrophi.devices.camera")
        logger.info("Config set", object="imageformat", value="RAW")
    """

    def debug(self, msg: object, *args: Any, **kwargs: Any) -> None:
        """Log debug message with optional structured data kwargs."""
        if self.isEnabledFor(logging.DEBUG):
            self._log_structured(logging.DEBUG, msg, args, **kwargs)

    def info(self, msg: object, *args: Any, **kwargs: Any) -> None:
        """Log info message with optional structured data kwargs."""
        if self.isEnabledFor(logging.INFO):
            self._log_structured(logging.INFO, msg, args, **kwargs)

    def warning(self, msg: object, *args: Any, **kwargs: Any) -> None:
        """Log warning message with optional structured data kwargs."""
        if self.isEnabledFor(logging.WARNING):
            self._log_structured(logging.WARNING, msg, args, **kwargs)

    def error(self, msg: object, *args: Any, **kwargs: Any) -> None:
        """Log error message with optional structured data kwargs."""
        if self.isEnabledFor(logging.ERROR):
            self._log_structured(logging.ERROR, msg, args, **kwargs)

    def critical(self, msg: object, *args: Any, **kwargs: Any) -> None:
        """Log critical message with optional structured data kwargs."""
        if self.isEnabledFor(logging.CRITICAL):
            self._log_structured(logging.CRITICAL, msg, args, **kwargs)

    def exception(self, msg: object, *args: Any, **kwargs: Any) -> None:
        """Log error message with exception info and structured data."""
        kwargs.setdefault("exc_info", True)
        self.error(msg, *args, **kwargs)

    def _log_structured(
        self,
        level: int,
        msg: object,
        args: tuple[Any, ...] | MutableMapping[str, Any],
        exc_info: Any = None,
        extra: dict[str, Any] | None = None,
        stack_info: bool = False,
        stacklevel: int = 1,
        **kwargs: Any,
    ) -> None:
        """Emit a record carrying structured data.

        The merge order is LogContext values < explicit kwargs, so
        operation-specific data overrides ambient request context.

        Args:
            level: Numeric log level.
            msg: Log message, may contain % placeholders.
            args: Arguments for % formatting.
            exc_info: Exception info, True to capture the current one.
            extra: Additional LogRecord attributes. ``structured_data``
                is added/overwritten.
            stack_info: If True, include stack trace.
            stacklevel: Frames to skip for caller attribution.
            **kwargs: Structured key-value pairs.
        """
        context = _log_context.get()
        structured_data = {**context, **kwargs}

        if extra is None:
            extra = {}
        extra["structured_data"] = structured_data

        # +2 skips this helper and the public level method
        super()._log(
            level,
            msg,
            args,
            exc_info=exc_info,
            extra=extra,
            stack_info=stack_info,
            stacklevel=stacklevel + 2,
        )


# =============================================================================
# Formatters
# =============================================================================


class StructuredFormatter(logging.Formatter):
    """Human-readable formatter with structured data.

    Format: timestamp - name - level - message | key=value key=value
    """

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        include_structured: bool = True,
    ) -> None:
        """Initialize the structured formatter.

        Args:
            fmt: Format string. Defaults to
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'.
            datefmt: Date format for %(asctime)s.
            include_structured: Append ' | key=value ...' when True.
        """
        if fmt is None:
            fmt = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        super().__init__(fmt, datefmt)
        self.include_structured = include_structured

    def format(self, record: logging.LogRecord) -> str:
        """Format a record, appending its structured data as key=value pairs."""
        base = super().format(record)

        if not self.include_structured:
            return base

        structured = getattr(record, "structured_data", {})
        if not structured:
            return base

        pairs = " ".join(f"{k}={_format_value(v)}" for k, v in structured.items())
        return f"{base} | {pairs}"


class JSONFormatter(logging.Formatter):
    """JSON formatter emitting one object per line (NDJSON).

    Keys: timestamp (ISO 8601, UTC), level, logger, message, exception
    (when present), plus every structured data key at top level.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format a record as a single-line JSON object."""
        log_dict: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        log_dict.update(getattr(record, "structured_data", {}))

        if record.exc_info:
            log_dict["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_dict, default=str)


def _format_value(value: Any) -> str:
    """Format a value for key=value output.

    None becomes 'null', strings with spaces are quoted, dicts and lists
    are JSON encoded, everything else goes through str().

    Example:
        >>> _format_value("Internal RAM")
        '"Internal RAM"'
        >>> _format_value(None)
        'null'
    """
    if value is None:
        return "null"
    if isinstance(value, str):
        if " " in value:
            return f'"{value}"'
        return value
    if isinstance(value, dict | list):
        return json.dumps(value, default=str)
    return str(value)


# =============================================================================
# Context Management
# =============================================================================


@dataclass
class LogContext:
    """Context manager adding key-value pairs to every log line in scope.

    Backed by contextvars, so each asyncio task (one per HTTP request)
    sees only its own context. Supports nesting.

    Usage:
        with LogContext(command="Exposure"):
            logger.info("Switching config")  # includes command=Exposure
    """

    _kwargs: dict[str, Any] = field(default_factory=dict, init=False, repr=True)
    _token: contextvars.Token[dict[str, Any]] | None = field(
        default=None, init=False, repr=False
    )

    def __init__(self, **kwargs: Any) -> None:
        """Store the key-value pairs to activate on enter."""
        self._kwargs = kwargs

    def __enter__(self) -> LogContext:
        """Merge this context's values over the current ones."""
        current = _log_context.get()
        self._token = _log_context.set({**current, **self._kwargs})
        return self

    def __exit__(self, *args: Any) -> None:
        """Restore the previous context. Exceptions are not suppressed."""
        if self._token is not None:
            _log_context.reset(self._token)


# =============================================================================
# Configuration
# =============================================================================

# Track if logging has been configured
_configured = False
_config_lock = threading.Lock()


def configure_logging(
    level: int | str = logging.INFO,
    json_format: bool = False,
    stream: Any = None,
    log_file: Path | str | None = None,
    include_structured: bool = True,
    force: bool = False,
) -> None:
    """Configure the astrophi structured logging system.

    Attaches a stream handler and, if requested, a file handler to the
    'astrophi' logger. Idempotent unless ``force`` is set.

    Args:
        level: Minimum level, int or name ('DEBUG', 'INFO', ...).
        json_format: Use JSONFormatter instead of StructuredFormatter.
        stream: Output stream. Default: sys.stderr.
        log_file: Optional file that receives the same records. Parent
            directories are created. This is the file ``GET /logs`` serves.
        include_structured: Append structured data in text mode.
        force: Drop existing handlers and reconfigure.

    Raises:
        OSError: If the log file cannot be opened.

    Example:
        >>> configure_logging(level="DEBUG", log_file="logs/astrophi.log")
    """
    with _config_lock:
        if force:
            _reset_logging_impl()
        _configure_logging_impl(level, json_format, stream, log_file, include_structured)


def _configure_logging_impl(
    level: int | str = logging.INFO,
    json_format: bool = False,
    stream: Any = None,
    log_file: Path | str | None = None,
    include_structured: bool = True,
) -> None:
    """Internal implementation of configure_logging (assumes lock is held)."""
    global _configured

    if _configured:
        return

    logging.setLoggerClass(StructuredLogger)

    formatter: logging.Formatter
    if json_format:
        formatter = JSONFormatter()
    else:
        formatter = StructuredFormatter(include_structured=include_structured)

    handlers: list[logging.Handler] = [logging.StreamHandler(stream or sys.stderr)]
    if log_file is not None:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path, encoding="utf-8"))

    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(level)
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)

    # Prevent propagation to root logger (avoid duplicate logs)
    root.propagate = False

    _configured = True


def _reset_logging_impl() -> None:
    """Internal implementation of reset_logging (assumes lock is held)."""
    global _configured

    root = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()

    _configured = False


def reset_logging() -> None:
    """Reset logging to the unconfigured state (for tests)."""
    with _config_lock:
        _reset_logging_impl()


def get_logger(name: str) -> StructuredLogger:
    """Get a structured logger, configuring defaults on first use.

    Args:
        name: Logger name, normally ``__name__``.

    Returns:
        StructuredLogger accepting ``logger.info("msg", key=value)``.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("Exposure taken", size=123456)
    """
    # Double-checked locking for thread-safe lazy initialization
    if not _configured:
        with _config_lock:
            if not _configured:  # pragma: no branch
                _configure_logging_impl()

    logger = logging.getLogger(name)
    if not isinstance(logger, StructuredLogger):
        # Created before setLoggerClass ran (e.g. by a third-party import)
        logger.__class__ = StructuredLogger
    return cast(StructuredLogger, logger)
