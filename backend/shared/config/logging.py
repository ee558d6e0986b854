"""
Structured logging for the floor backend.

Loggers accept keyword context (`logger.info("Wave fired", order_id=..., wave=2)`).
Floor identifiers (location, table, session, order) are promoted to top-level
keys in JSON output so a table's history can be followed across services;
everything else lands under "data". The request id from the correlation
middleware is attached to every record.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from shared.config.settings import settings

# Context keys lifted out of "data" in JSON records
FLOOR_KEYS = ("location_id", "table_number", "session_id", "order_id")


def _context(record: logging.LogRecord) -> dict[str, Any]:
    return getattr(record, "context", None) or {}


class StructuredFormatter(logging.Formatter):
    """One JSON object per line, for log shipping."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }

        request_id = getattr(record, "request_id", "-")
        if request_id != "-":
            entry["request_id"] = request_id

        data = dict(_context(record))
        for key in FLOOR_KEYS:
            if key in data:
                entry[key] = data.pop(key)
        if data:
            entry["data"] = data

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        if settings.debug:
            entry["at"] = f"{record.module}:{record.funcName}:{record.lineno}"

        return json.dumps(entry, default=str)


class DevelopmentFormatter(logging.Formatter):
    """Colored single-line output for a terminal."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"
    DIM = "\033[2m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        clock = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        request_id = getattr(record, "request_id", "-")
        prefix = f"{self.DIM}{request_id[:8]}{self.RESET} " if request_id != "-" else ""

        line = f"{color}{clock} {record.levelname:<8}{self.RESET} {prefix}{record.name}: {record.getMessage()}"
        context = _context(record)
        if context:
            line += "  " + " ".join(f"{self.DIM}{k}={self.RESET}{v}" for k, v in context.items())
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class StructuredLogger(logging.Logger):
    """Logger whose level methods take keyword context instead of `extra`."""

    def _emit(self, level: int, msg: str, args: tuple, kwargs: dict[str, Any]) -> None:
        if not self.isEnabledFor(level):
            return
        exc_info = kwargs.pop("exc_info", None)
        stacklevel = kwargs.pop("stacklevel", 1) + 2
        self._log(level, msg, args, exc_info=exc_info, extra={"context": kwargs}, stacklevel=stacklevel)

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._emit(logging.DEBUG, msg, args, kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._emit(logging.INFO, msg, args, kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._emit(logging.WARNING, msg, args, kwargs)

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._emit(logging.ERROR, msg, args, kwargs)

    def critical(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._emit(logging.CRITICAL, msg, args, kwargs)


logging.setLoggerClass(StructuredLogger)


def _resolve_level() -> int:
    if settings.log_level:
        return getattr(logging, settings.log_level.upper(), logging.INFO)
    return logging.DEBUG if settings.debug else logging.INFO


def setup_logging() -> None:
    """
    Install the stdout handler on the root logger. Safe to call more than
    once (the API lifespan and the CLI both call it).
    """
    # Deferred: importing shared.infrastructure builds the database engine
    from shared.infrastructure.correlation import CorrelationIdFilter

    use_json = settings.log_format == "json" or (
        settings.log_format == "auto" and settings.environment == "production"
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(CorrelationIdFilter())
    handler.setFormatter(StructuredFormatter() if use_json else DevelopmentFormatter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(_resolve_level())

    for noisy in ("uvicorn.access", "sqlalchemy.engine", "httpx"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> StructuredLogger:
    """
    Logger for a module or area.

    Usage:
        logger = get_logger(__name__)
        logger.info("Seat added", session_id=str(session_id), seat_number=3)
        logger.warning("Session event not recorded", session_id=sid, exc_info=True)
    """
    return logging.getLogger(name)  # type: ignore[return-value]


# Area loggers shared by routers and services
rest_api_logger = get_logger("rest_api")
orders_logger = get_logger("rest_api.orders")
billing_logger = get_logger("rest_api.billing")
kitchen_logger = get_logger("rest_api.kitchen")
