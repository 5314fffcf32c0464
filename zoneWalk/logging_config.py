"""
Centralized logging configuration for zoneWalk.

Provides structured JSONL logging with rotation, context injection,
and component-specific loggers. Enabled by default with environment
variable configuration.

Request ID Propagation:
    Use `set_request_id()` to set the current request ID in async contexts.
    The request ID will be automatically included in all log records.

    Example:
        from zoneWalk.logging_config import set_request_id, get_logger

        # In middleware or request handler:
        set_request_id(str(uuid.uuid4()))

        # Later in any async code path (zone walk, record fetch, RDAP):
        logger.info("Walking labels", extra={"domain": "example.com"})
        # Log will include: "request_id": "<uuid>"
"""
import contextvars
import logging
import logging.handlers
import json
import os
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import traceback


# Context variable for request ID propagation across async boundaries
_request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "request_id", default=""
)


def set_request_id(request_id: str) -> contextvars.Token:
    """
    Set the current request ID for this async context.

    Args:
        request_id: The request ID to set

    Returns:
        Token that can be used to reset the context variable
    """
    return _request_id_var.set(request_id)


def get_request_id() -> str:
    """Return the current request ID, or empty string if not set."""
    return _request_id_var.get()


def reset_request_id(token: contextvars.Token) -> None:
    """Reset the request ID context variable to its previous state."""
    _request_id_var.reset(token)


class JSONLFormatter(logging.Formatter):
    """
    Formatter that outputs logs in JSON Lines format.
    Each log entry is a single-line JSON object with standardized fields.
    Automatically includes request_id from contextvars if set.
    """

    # Extra attributes lifted from `extra={...}` into the JSON object
    EXTRA_ATTRS = (
        "request_id", "domain", "record_type", "endpoint", "zone", "tld",
        "server", "url", "status_code", "duration", "outcome", "state",
        "error_type", "reset_delay_ms", "candidate", "depth", "ttl",
        "copies", "failures", "action", "component",
    )

    def __init__(self, component: str = "zonewalk"):
        super().__init__()
        self.component = component
        self.hostname = os.getenv("HOSTNAME", os.getenv("COMPUTERNAME", "unknown"))

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc)
            .isoformat()
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "component": self.component,
            "logger": record.name,
            "message": record.getMessage(),
            "hostname": self.hostname,
            "process_id": record.process,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        request_id = get_request_id()
        if request_id:
            log_data["request_id"] = request_id

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": traceback.format_exception(*record.exc_info)
            }

        # Set by ContextAdapter
        if hasattr(record, "extra_fields"):
            log_data.update(record.extra_fields)

        for attr in self.EXTRA_ATTRS:
            if hasattr(record, attr):
                log_data[attr] = getattr(record, attr)

        return json.dumps(log_data, default=str)


class ContextAdapter(logging.LoggerAdapter):
    """
    Logger adapter that automatically injects context into log records.
    Used to stamp every log line of one zone walk with its queried domain.
    """

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        extra = dict(kwargs.get("extra") or {})
        for key, value in self.extra.items():
            extra.setdefault(key, value)
        extra["extra_fields"] = dict(self.extra)
        kwargs["extra"] = extra
        return msg, kwargs


def setup_logging(
    component: str = "zonewalk",
    log_level: Optional[str] = None,
    log_file: Optional[str] = None,
    max_bytes: Optional[int] = None,
    backup_count: int = 10,
    enable_console: bool = True
) -> logging.Logger:
    """
    Set up logging configuration for a zoneWalk component.

    Args:
        component: Component name (transport, hierarchy, records, rdap, api, cli)
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file (default: logs/zonewalk.jsonl, "" disables)
        max_bytes: Max bytes per log file before rotation (default: 100MB)
        backup_count: Number of backup files to keep (default: 10)
        enable_console: Whether to enable console logging (default: True)

    Returns:
        Configured logger instance
    """
    log_level = (log_level or os.getenv("ZONEWALK_LOG_LEVEL", "INFO")).upper()
    if log_file is None:
        log_file = os.getenv("ZONEWALK_LOG_FILE", "logs/zonewalk.jsonl")
    max_bytes = max_bytes or int(os.getenv("ZONEWALK_LOG_MAX_BYTES", str(100 * 1024 * 1024)))  # 100MB

    numeric_level = getattr(logging, log_level, logging.INFO)

    logger = logging.getLogger(f"zonewalk.{component}")
    logger.setLevel(numeric_level)
    logger.propagate = False

    # Remove existing handlers to avoid duplicates
    logger.handlers.clear()

    formatter = JSONLFormatter(component=component)

    if log_file:
        log_dir = os.path.dirname(log_file)
        try:
            if log_dir and not os.path.exists(log_dir):
                os.makedirs(log_dir, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding="utf-8"
            )
            file_handler.setLevel(numeric_level)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)
        except (IOError, OSError) as e:
            # If we can't write to file, log to stderr
            sys.stderr.write(f"Failed to set up file logging to {log_file}: {e}\n")

    if enable_console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(numeric_level)
        console_formatter = logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )
        console_handler.setFormatter(console_formatter)
        logger.addHandler(console_handler)

    if not logger.handlers:
        logger.addHandler(logging.NullHandler())

    logger.debug(
        "Logging configured",
        extra={
            "log_level": log_level,
            "log_file": log_file,
            "max_bytes": max_bytes,
            "backup_count": backup_count,
            "console_enabled": enable_console
        }
    )

    return logger


def get_logger(component: str, context: Optional[Dict[str, Any]] = None) -> logging.Logger:
    """
    Get or create a logger for a component with optional context.

    Args:
        component: Component name (transport, hierarchy, records, rdap, api, cli)
        context: Optional context dictionary to inject into all logs

    Returns:
        Logger or ContextAdapter if context is provided
    """
    logger = logging.getLogger(f"zonewalk.{component}")

    if not logger.handlers:
        logger = setup_logging(component)

    if context:
        return ContextAdapter(logger, context)

    return logger
