"""
Structured logging configuration for Homeport.

Provides a formatter with JSON and text output that attaches the current
discovery context (request, operation, provider) to every record.
"""

from __future__ import annotations

import functools
import json
import logging
import sys
from collections.abc import Callable
from contextvars import ContextVar
from typing import Any, Literal, TypeVar

F = TypeVar("F", bound=Callable[..., Any])

request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)
operation_var: ContextVar[str | None] = ContextVar("operation", default=None)
provider_var: ContextVar[str | None] = ContextVar("provider", default=None)

_CONTEXT_FIELDS = ("request_id", "operation", "provider")

# LogRecord attributes that are never copied into the JSON payload
_RESERVED_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "msecs",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "processName",
        "process",
        "threadName",
        "thread",
        "taskName",
        "message",
        "asctime",
        "relativeCreated",
        *_CONTEXT_FIELDS,
    }
)


def _current_context() -> dict[str, str | None]:
    return {
        "request_id": request_id_var.get(),
        "operation": operation_var.get(),
        "provider": provider_var.get(),
    }


class StructuredFormatter(logging.Formatter):
    """
    Formatter that outputs structured log records.

    Supports both JSON and human-readable text formats.
    """

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        style: Literal["%", "{", "$"] = "%",
        json_format: bool = False,
    ):
        """
        Initialise structured formatter.

        Args:
            fmt: Log format string (ignored if json_format=True).
            datefmt: Date format string.
            style: Format style ('%', '{', or '$').
            json_format: Whether to output JSON format.

        """
        super().__init__(fmt, datefmt, style)
        self.json_format = json_format

    def format(self, record: logging.LogRecord) -> str:
        """
        Format log record as structured output.

        Args:
            record: Log record to format.

        Returns:
            Formatted log string (JSON or text).

        """
        for key, value in _current_context().items():
            setattr(record, key, value)

        if self.json_format:
            return self._format_json(record)
        return self._format_text(record)

    def _format_json(self, record: logging.LogRecord) -> str:
        """Format record as JSON."""
        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for key in _CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value:
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                log_data[key] = value

        return json.dumps(log_data, default=str)

    def _format_text(self, record: logging.LogRecord) -> str:
        """Format record as human-readable text."""
        base_msg = super().format(record)

        context_parts = [
            f"{key}={getattr(record, key)}"
            for key in _CONTEXT_FIELDS
            if getattr(record, key, None)
        ]
        if context_parts:
            return base_msg + " [" + ", ".join(context_parts) + "]"
        return base_msg


def configure_logging(
    level: str = "INFO",
    json_format: bool = False,
    log_file: str | None = None,
) -> None:
    """
    Configure structured logging for Homeport.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_format: Whether to output JSON format.
        log_file: Optional file path for log output.

    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    if json_format:
        formatter = StructuredFormatter(json_format=True)
    else:
        formatter = StructuredFormatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    logging.getLogger("homeport").setLevel(numeric_level)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for the given name.

    Args:
        name: Logger name (typically __name__).

    Returns:
        Configured logger instance.

    """
    return logging.getLogger(name)


def set_context(
    request_id: str | None = None,
    operation: str | None = None,
    provider: str | None = None,
) -> None:
    """
    Set context variables for structured logging.

    Args:
        request_id: Unique request/operation ID.
        operation: Current operation name.
        provider: Cloud provider being discovered.

    """
    if request_id is not None:
        request_id_var.set(request_id)
    if operation is not None:
        operation_var.set(operation)
    if provider is not None:
        provider_var.set(provider)


def clear_context() -> None:
    """Clear all context variables."""
    request_id_var.set(None)
    operation_var.set(None)
    provider_var.set(None)


class LogContext:
    """
    Context manager for temporary logging context.

    Example:
        with LogContext(operation="parse", provider="gcp"):
            logger.info("Scanning project")

    """

    def __init__(
        self,
        request_id: str | None = None,
        operation: str | None = None,
        provider: str | None = None,
    ):
        """
        Initialise log context.

        Args:
            request_id: Unique request/operation ID.
            operation: Current operation name.
            provider: Cloud provider being discovered.

        """
        self.request_id = request_id
        self.operation = operation
        self.provider = provider
        self.previous_context: dict[str, str | None] = {}

    def __enter__(self) -> LogContext:
        """Enter context and save previous values."""
        self.previous_context = _current_context()
        set_context(
            request_id=self.request_id,
            operation=self.operation,
            provider=self.provider,
        )
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit context and restore previous values."""
        request_id_var.set(self.previous_context["request_id"])
        operation_var.set(self.previous_context["operation"])
        provider_var.set(self.previous_context["provider"])


def log_operation(operation_name: str) -> Callable[[F], F]:
    """
    Decorate functions to log operations with structured context.

    Args:
        operation_name: Name of the operation being logged.

    Example:
        @log_operation("select_parser")
        def select_best(self, path: str) -> FormatParser:
            ...

    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            logger = get_logger(func.__module__)

            with LogContext(operation=operation_name):
                logger.debug(
                    "Starting %s", operation_name, extra={"function": func.__name__}
                )
                try:
                    result = func(*args, **kwargs)
                except Exception as e:
                    logger.error(
                        "Failed %s: %s",
                        operation_name,
                        e,
                        extra={"function": func.__name__},
                    )
                    raise
                logger.debug(
                    "Completed %s", operation_name, extra={"function": func.__name__}
                )
                return result

        return wrapper  # type: ignore[return-value]

    return decorator
