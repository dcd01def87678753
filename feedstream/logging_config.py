"""Structured logging configuration for feedstream."""

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

LOGGER_NAMESPACE = "feedstream"

_CONTEXT_FIELDS = (
    "parse_id",
    "component",
    "feed_format",
    "entry_count",
    "field",
    "value",
)


class StructuredFormatter(logging.Formatter):
    """Custom formatter for structured JSON logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as structured JSON."""
        log_entry = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for name in _CONTEXT_FIELDS:
            if hasattr(record, name):
                log_entry[name] = getattr(record, name)

        if hasattr(record, "context"):
            log_entry["context"] = record.context

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, ensure_ascii=False, default=str)


class ParseLogger:
    """Logger carrying the context of a single parse call."""

    def __init__(self, parse_id: str, component: str = "parser"):
        """Initialize parse logger.

        Args:
            parse_id: Unique identifier for this parse call
            component: Component name (e.g., 'rss', 'opml', 'detector')
        """
        self.parse_id = parse_id
        self.component = component
        self.feed_format: str | None = None
        self.logger = logging.getLogger(f"{LOGGER_NAMESPACE}.{component}")
        self.start_time: datetime | None = None
        self.end_time: datetime | None = None

    def _log_with_context(self, level: int, message: str, **kwargs) -> None:
        """Log message with parse context."""
        if not self.logger.isEnabledFor(level):
            return

        extra: dict[str, Any] = {
            "parse_id": self.parse_id,
            "component": self.component,
        }
        if self.feed_format:
            extra["feed_format"] = self.feed_format

        context = {}
        for key, value in kwargs.items():
            if key in _CONTEXT_FIELDS:
                extra[key] = value
            else:
                context[key] = value
        if context:
            extra["context"] = context

        self.logger.log(level, message, extra=extra)

    def info(self, message: str, **kwargs) -> None:
        """Log info message with context."""
        self._log_with_context(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs) -> None:
        """Log warning message with context."""
        self._log_with_context(logging.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs) -> None:
        """Log error message with context."""
        self._log_with_context(logging.ERROR, message, **kwargs)

    def debug(self, message: str, **kwargs) -> None:
        """Log debug message with context."""
        self._log_with_context(logging.DEBUG, message, **kwargs)

    def log_parse_start(self, **kwargs) -> None:
        """Log parse start with timestamp."""
        self.start_time = datetime.now(UTC)
        self.info(
            f"Starting {self.component} parse",
            parse_start=self.start_time.isoformat(),
            **kwargs,
        )

    def log_parse_end(self, success: bool = True, **kwargs) -> None:
        """Log parse end with timestamp and duration."""
        self.end_time = datetime.now(UTC)

        duration_seconds = None
        if self.start_time:
            duration_seconds = (self.end_time - self.start_time).total_seconds()

        level = logging.INFO if success else logging.ERROR
        self._log_with_context(
            level,
            f"Completed {self.component} parse",
            parse_end=self.end_time.isoformat(),
            parse_duration_seconds=duration_seconds,
            parse_success=success,
            **kwargs,
        )

    def log_entry_emitted(self, index: int, guid: str | None) -> None:
        """Log a single entry handed to the consumer."""
        self.debug(f"Entry {index} emitted", entry_index=index, guid=guid)

    def log_field_anomaly(self, field: str, value: Any, reason: str) -> None:
        """Log a field dropped because its value could not be used."""
        self.debug(f"Ignoring {field}: {reason}", field=field, value=value)


def setup_structured_logging(log_level: str = "INFO") -> None:
    """Setup structured logging for an application embedding feedstream.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(StructuredFormatter())
    root_logger.addHandler(console_handler)

    loggers = [
        LOGGER_NAMESPACE,
        f"{LOGGER_NAMESPACE}.parser",
        f"{LOGGER_NAMESPACE}.detector",
        f"{LOGGER_NAMESPACE}.rss",
        f"{LOGGER_NAMESPACE}.atom",
        f"{LOGGER_NAMESPACE}.json",
        f"{LOGGER_NAMESPACE}.opml",
        f"{LOGGER_NAMESPACE}.streaming",
    ]

    for logger_name in loggers:
        logger = logging.getLogger(logger_name)
        logger.setLevel(getattr(logging, log_level.upper()))
        logger.propagate = True


def create_parse_logger(component: str, parse_id: str | None = None) -> ParseLogger:
    """Create a parse logger for a component.

    Args:
        component: Component name
        parse_id: Optional parse ID (will generate one if not provided)

    Returns:
        ParseLogger instance
    """
    if not parse_id:
        parse_id = f"parse_{datetime.now(UTC).strftime('%Y%m%d_%H%M%S_%f')}"

    return ParseLogger(parse_id, component)
