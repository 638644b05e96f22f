"""Brigade Observer logging with JSON output and pod context."""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import MutableMapping
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from brigade_observer.types import PodRef

ROOT_LOGGER = "brigade_observer"

# Extra record attributes carried into structured output
CONTEXT_FIELDS = ("kind", "event_id", "job", "pod")


class JsonFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON.

        Args:
            record: Log record to format

        Returns:
            JSON-formatted log string
        """
        log_data: dict[str, Any] = {
            "ts": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key in CONTEXT_FIELDS:
            if hasattr(record, key):
                log_data[key] = getattr(record, key)

        return json.dumps(log_data)


class ConsoleFormatter(logging.Formatter):
    """Colored console formatter for human-readable output."""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        timestamp = datetime.now().strftime("%H:%M:%S")

        context_parts = [str(getattr(record, key)) for key in ("kind", "pod") if hasattr(record, key)]
        context = f"[{':'.join(context_parts)}]" if context_parts else ""

        line = f"{color}{timestamp} {record.levelname:8s}{self.RESET} {context} {record.getMessage()}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the observer namespace.

    Args:
        name: Logger name (typically the component name)

    Returns:
        Logger instance
    """
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def setup_logging(level: str = "info", json_output: bool = False) -> None:
    """Set up logging configuration.

    Args:
        level: Log level (debug, info, warn, error)
        json_output: Emit one JSON document per line instead of colored text
    """
    if level.lower() == "warn":
        level = "warning"
    log_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger(ROOT_LOGGER)
    root_logger.setLevel(log_level)
    root_logger.handlers = []

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(log_level)
    handler.setFormatter(JsonFormatter() if json_output else ConsoleFormatter())
    root_logger.addHandler(handler)

    root_logger.propagate = False


class PodLoggerAdapter(logging.LoggerAdapter[logging.Logger]):
    """Logger adapter that adds pod context to log messages."""

    def process(self, msg: str, kwargs: MutableMapping[str, Any]) -> tuple[str, MutableMapping[str, Any]]:
        extra = kwargs.get("extra", {})
        extra.update(self.extra or {})
        kwargs["extra"] = extra
        return msg, kwargs


def pod_logger(logger: logging.Logger, kind: str, ref: PodRef) -> PodLoggerAdapter:
    """Wrap *logger* so every record carries the pod's identity.

    Args:
        logger: Underlying logger
        kind: Resource kind name ("worker" or "job")
        ref: Pod reference

    Returns:
        PodLoggerAdapter with pod context
    """
    extra: dict[str, Any] = {"kind": kind, "event_id": ref.event_id, "pod": str(ref.key)}
    if ref.job is not None:
        extra["job"] = ref.job
    return PodLoggerAdapter(logger, extra)
