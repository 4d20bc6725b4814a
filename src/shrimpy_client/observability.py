"""Structured diagnostic events emitted by the request pipeline."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from pathlib import Path
from typing import Any, TextIO
import json
import logging
import sys

LOGGER_NAME = "shrimpy_client"


def now_utc() -> datetime:
    """Return timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


class EventLevel(StrEnum):
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


_STDLIB_LEVELS = {
    EventLevel.DEBUG: logging.DEBUG,
    EventLevel.INFO: logging.INFO,
    EventLevel.WARNING: logging.WARNING,
    EventLevel.ERROR: logging.ERROR,
}


@dataclass(slots=True)
class ClientEvent:
    """One leveled diagnostic message with structured fields."""

    level: EventLevel
    message: str
    fields: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=now_utc)

    def to_dict(self) -> dict[str, Any]:
        return {
            "level": str(self.level),
            "message": self.message,
            "fields": self.fields,
            "timestamp": self.timestamp.isoformat(),
        }


class EventSink(ABC):
    """Capability to record leveled messages with structured fields."""

    @abstractmethod
    def record(self, event: ClientEvent) -> None:
        """Deliver one event."""

    def debug(self, message: str, **fields: Any) -> None:
        self.record(ClientEvent(level=EventLevel.DEBUG, message=message, fields=fields))

    def info(self, message: str, **fields: Any) -> None:
        self.record(ClientEvent(level=EventLevel.INFO, message=message, fields=fields))

    def warning(self, message: str, **fields: Any) -> None:
        self.record(ClientEvent(level=EventLevel.WARNING, message=message, fields=fields))

    def error(self, message: str, **fields: Any) -> None:
        self.record(ClientEvent(level=EventLevel.ERROR, message=message, fields=fields))


class NullEventSink(EventSink):
    def record(self, event: ClientEvent) -> None:
        return None


class MemoryEventSink(EventSink):
    """Keeps every event in memory; handy for inspection in tests and notebooks."""

    def __init__(self) -> None:
        self.events: list[ClientEvent] = []

    def record(self, event: ClientEvent) -> None:
        self.events.append(event)

    def messages(self, level: EventLevel | None = None) -> list[str]:
        return [e.message for e in self.events if level is None or e.level == level]


class LoggingEventSink(EventSink):
    """Forward events to a stdlib logger, fields rendered as compact JSON."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or logging.getLogger(LOGGER_NAME)

    def record(self, event: ClientEvent) -> None:
        level = _STDLIB_LEVELS[event.level]
        if not self.logger.isEnabledFor(level):
            return
        rendered = json.dumps(event.fields, default=str, sort_keys=True, separators=(",", ":"))
        self.logger.log(
            level,
            "%s %s",
            event.message,
            rendered,
            extra={"event_message": event.message, "fields": event.fields},
        )


class JsonlEventSink(EventSink):
    """Append events as JSONL for audit and incident review."""

    def __init__(self, output_path: str | Path) -> None:
        self.output_path = Path(output_path)
        self.output_path.parent.mkdir(parents=True, exist_ok=True)

    def record(self, event: ClientEvent) -> None:
        with self.output_path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(event.to_dict(), default=str) + "\n")


class JsonLineFormatter(logging.Formatter):
    """Render log records as one JSON object per line with an ISO8601 ``ts`` key."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "caller": f"{record.module}:{record.lineno}",
            "msg": getattr(record, "event_message", None) or record.getMessage(),
        }
        fields = getattr(record, "fields", None)
        if isinstance(fields, dict):
            payload.update(fields)
        if record.exc_info:
            payload["error"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class _BelowError(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < logging.ERROR


def configure_logging(
    level: int = logging.INFO,
    stdout: TextIO | None = None,
    stderr: TextIO | None = None,
    logger_name: str = LOGGER_NAME,
) -> logging.Logger:
    """
    Install JSON-line handlers on ``logger_name``.

    Records below ERROR go to stdout, ERROR and above go to stderr.
    """
    logger = logging.getLogger(logger_name)
    logger.setLevel(level)
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    formatter = JsonLineFormatter()
    out_handler = logging.StreamHandler(stdout or sys.stdout)
    out_handler.setLevel(level)
    out_handler.addFilter(_BelowError())
    out_handler.setFormatter(formatter)
    err_handler = logging.StreamHandler(stderr or sys.stderr)
    err_handler.setLevel(max(level, logging.ERROR))
    err_handler.setFormatter(formatter)
    logger.addHandler(out_handler)
    logger.addHandler(err_handler)
    return logger
