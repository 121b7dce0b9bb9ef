"""
Logging helpers for Upload Guard.

Validation outcomes are meant to be machine-readable: each accepted or
rejected upload becomes one JSON line carrying the failure kind, the stage
that decided it and the client-declared filename (as data only).

Contents:
- JSONFormatter / LogJSONEncoder: one JSON object per record, extras nested
- StandardFormatter: plain text for local development
- setup_logging: install a single stdout handler on the root logger
- add_log_context: wrap a logger so every call carries per-upload fields
- configure_logging: apply setup_logging from Settings (LOG_LEVEL, JSON_LOGS)

Usage:
    from upload_guard.utils.logger import add_log_context, configure_logging, get_logger

    configure_logging()  # once, at host application startup

    log = add_log_context(get_logger(__name__), client_filename="cv.pdf")
    log.warning("Upload rejected", extra={"stage": "check_mime"})
"""

import json
import logging
import sys
import traceback

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from upload_guard.config import Settings, get_settings


# =============================================================================
# Constants
# =============================================================================

# Accepted level names, case-insensitive at the call sites
LOG_LEVEL_MAP: Dict[str, int] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

# Libraries that are chatty at DEBUG (Pillow plugin discovery, libmagic binding)
THIRD_PARTY_LOGGERS: tuple = ("PIL", "PIL.Image", "PIL.PngImagePlugin", "magic")

# Attributes every LogRecord has; anything else arrived through ``extra``
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None)).keys()
) | {"message", "asctime", "taskName"}


# =============================================================================
# JSON Output
# =============================================================================


class LogJSONEncoder(json.JSONEncoder):
    """Fallback serialization so an odd ``extra`` value never breaks a log call."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, (bytes, bytearray)):
            return bytes(obj).decode("utf-8", errors="replace")
        if isinstance(obj, (set, frozenset)):
            return sorted(obj, key=str)
        return str(obj)


class JSONFormatter(logging.Formatter):
    """
    Render a record as a compact JSON object.

    Example output:
        {"timestamp": "2026-01-15T10:30:45.123456+00:00", "level": "WARNING",
         "logger": "upload_guard.services.upload_validator",
         "message": "Upload rejected: Exceeded filesize limit",
         "extra": {"failure_kind": "file_too_large", "stage": "check_file_size"}}
    """

    def __init__(
        self,
        include_extra_fields: bool = True,
        include_source_location: bool = False,
    ) -> None:
        """
        Args:
            include_extra_fields: Nest non-standard record attributes under "extra"
            include_source_location: Add file, line and function under "source"
        """
        super().__init__()
        self.include_extra_fields = include_extra_fields
        self.include_source_location = include_source_location

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        payload: Dict[str, Any] = {
            "timestamp": created.isoformat(timespec="microseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if self.include_source_location:
            payload["source"] = {
                "file": record.filename,
                "lineno": record.lineno,
                "function": record.funcName,
            }
        if record.exc_info:
            payload["exception"] = self._exception_details(record.exc_info)
        if record.stack_info:
            payload["stack_info"] = record.stack_info
        if self.include_extra_fields:
            extra = {
                key: value
                for key, value in vars(record).items()
                if key not in _RECORD_ATTRS and not key.startswith("_")
            }
            if extra:
                payload["extra"] = extra

        return json.dumps(payload, cls=LogJSONEncoder, ensure_ascii=False, separators=(",", ":"))

    @staticmethod
    def _exception_details(exc_info: Any) -> Dict[str, Any]:
        exc_type, exc_value, _ = exc_info
        return {
            "type": exc_type.__name__ if exc_type else "Unknown",
            "message": "" if exc_value is None else str(exc_value),
            "traceback": "".join(traceback.format_exception(*exc_info)),
        }


class StandardFormatter(logging.Formatter):
    """Human-readable ``[time] LEVEL logger: message`` lines."""

    DEFAULT_FORMAT = "[%(asctime)s] %(levelname)-8s %(name)s: %(message)s"
    DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

    def __init__(self, fmt: Optional[str] = None, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt or self.DEFAULT_FORMAT, datefmt or self.DEFAULT_DATE_FORMAT)


# =============================================================================
# Configuration
# =============================================================================


def _resolve_level(name: str, default: int = logging.INFO) -> int:
    return LOG_LEVEL_MAP.get(name.upper(), default)


def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """
    Return the named logger, optionally pinning its level.

    No handler is attached; records reach whatever ``setup_logging`` (or the
    host application) installed on the root logger.
    """
    logger = logging.getLogger(name)
    if level is not None:
        logger.setLevel(_resolve_level(level))
    return logger


def setup_logging(
    log_level: str = "INFO",
    json_logs: bool = True,
    third_party_level: str = "WARNING",
) -> None:
    """
    Point the root logger at stdout with a JSON or text formatter.

    Meant to be called once by the hosting application. Previously installed
    root handlers are replaced.

    Args:
        log_level: Root level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: JSON lines when True, plain text otherwise
        third_party_level: Level applied to Pillow and libmagic loggers

    ``configure_logging`` calls this with values from ``Settings``.
    """
    level = _resolve_level(log_level)

    if json_logs:
        formatter: logging.Formatter = JSONFormatter(
            include_source_location=level <= logging.DEBUG
        )
    else:
        formatter = StandardFormatter()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    quiet = _resolve_level(third_party_level, logging.WARNING)
    for name in THIRD_PARTY_LOGGERS:
        logging.getLogger(name).setLevel(quiet)

    logging.getLogger(__name__).info(
        "Logging configured: level=%s, json=%s", logging.getLevelName(level), json_logs
    )



def configure_logging(settings: Optional[Settings] = None) -> None:
    """
    Configure logging from application settings.

    The entry point for host applications: reads ``log_level`` and
    ``json_logs`` from ``settings`` (default ``get_settings()``) and announces
    the app name and environment once logging is live.
    """
    settings = settings or get_settings()
    setup_logging(log_level=settings.log_level, json_logs=settings.json_logs)
    logging.getLogger(__name__).info(
        "%s logging ready", settings.app_name, extra={"app_env": settings.app_env}
    )

# =============================================================================
# Context Enrichment
# =============================================================================


class ContextLoggerAdapter(logging.LoggerAdapter):
    """
    Adapter adding fixed context fields to every record.

    Fields passed with ``extra=`` at the call site are kept and win over the
    adapter's own context.
    """

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        merged = {**self.extra, **(kwargs.get("extra") or {})}
        kwargs["extra"] = merged
        return msg, kwargs


def add_log_context(logger: logging.Logger, **context: Any) -> ContextLoggerAdapter:
    """
    Wrap ``logger`` so each record carries ``context``.

    Example:
        log = add_log_context(logger, client_filename="cv.pdf")
        log.warning("Upload rejected", extra={"stage": "check_mime"})
    """
    return ContextLoggerAdapter(logger, context)


__all__ = [
    "LOG_LEVEL_MAP",
    "ContextLoggerAdapter",
    "JSONFormatter",
    "LogJSONEncoder",
    "StandardFormatter",
    "add_log_context",
    "configure_logging",
    "get_logger",
    "setup_logging",
]
