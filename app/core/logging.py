"""
Structured logging for the price import pipeline.

Components never reach for a module-level logger on their own; they receive an
``ImportLogger`` at construction time. The composition roots (API dependencies,
CLI) call ``configure_logging`` once and build loggers with ``get_import_logger``.
"""
import json
import logging
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Optional

EVENT_LEVELS = {
    "pricing_import": logging.INFO,
    "pricing_validation": logging.DEBUG,
    "pricing_error": logging.ERROR,
    "pricing_performance": logging.INFO,
}

TEXT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class JsonLineFormatter(logging.Formatter):
    """One JSON object per record, including the structured event context if present."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        event_type = getattr(record, "event_type", None)
        if event_type:
            entry["event_type"] = event_type
            entry["context"] = getattr(record, "context", {})
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str, ensure_ascii=False)


def configure_logging(level: str = "INFO", fmt: str = "text") -> None:
    handler = logging.StreamHandler()
    if fmt == "json":
        handler.setFormatter(JsonLineFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level.upper())


class ImportLogger(logging.LoggerAdapter):
    """
    LoggerAdapter carrying a fixed component context plus helpers for
    structured pricing events and timed operations.
    """

    def __init__(self, logger: logging.Logger, extra: Optional[Dict[str, Any]] = None):
        super().__init__(logger, extra or {})

    def process(self, msg, kwargs):
        extra = dict(self.extra)
        extra.update(kwargs.get("extra") or {})
        kwargs["extra"] = extra
        return msg, kwargs

    def bind(self, **context: Any) -> "ImportLogger":
        merged = dict(self.extra)
        merged.update(context)
        return ImportLogger(self.logger, merged)

    def event(self, event_type: str, message: str, **context: Any) -> None:
        level = EVENT_LEVELS.get(event_type, logging.INFO)
        if not self.isEnabledFor(level):
            return
        payload = dict(self.extra)
        payload.update(context)
        self.log(
            level,
            "%s %s | %s",
            event_type.upper(),
            message,
            json.dumps(payload, default=str, ensure_ascii=False),
            extra={"event_type": event_type, "context": payload},
        )

    @contextmanager
    def timed(self, operation: str, **context: Any) -> Iterator[None]:
        start = time.perf_counter()
        self.event("pricing_performance", f"Started {operation}", **context)
        try:
            yield
        except Exception as exc:
            duration = round((time.perf_counter() - start) * 1000, 2)
            self.event(
                "pricing_error",
                f"Failed {operation}: {exc}",
                duration_ms=duration,
                error=type(exc).__name__,
                **context,
            )
            raise
        duration = round((time.perf_counter() - start) * 1000, 2)
        self.event(
            "pricing_performance",
            f"Completed {operation}",
            duration_ms=duration,
            success=True,
            **context,
        )


def get_import_logger(name: str, **context: Any) -> ImportLogger:
    return ImportLogger(logging.getLogger(name), context)
