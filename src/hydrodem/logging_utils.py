"""Logging setup for the hydrodem command line."""

from __future__ import annotations

import json
import logging
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, MutableMapping

# Attributes every LogRecord carries; anything else arrived through ``extra``.
_RECORD_ATTRS = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}

# Context keys shown as a console prefix, outermost first.
CONTEXT_FIELDS = ("domain", "tile")

# Third-party loggers that narrate each request or dataset open at INFO.
NOISY_LOGGERS = ("httpx", "httpcore", "rasterio")


@dataclass(frozen=True)
class LogOptions:
    """Console and file logging choices."""

    verbose: int = 0
    quiet: bool = False
    log_file: Path | None = None
    json_console: bool = False


class ContextAdapter(logging.LoggerAdapter):
    """Attach domain/tile context to every record, keeping per-call extras."""

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        """Merge the adapter context under any ``extra`` given at the call site."""
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def context_logger(logger: logging.Logger, **context: str) -> ContextAdapter:
    """Return ``logger`` wrapped so its records carry ``context`` (e.g. ``tile="SU10"``)."""
    return ContextAdapter(logger, context)


def _timestamp() -> str:
    """Return the current UTC timestamp in ISO8601 format."""
    return datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    """Return the fields a record received through ``extra``."""
    return {key: value for key, value in record.__dict__.items() if key not in _RECORD_ATTRS}


def _context_prefix(record: logging.LogRecord) -> str:
    """Return ``[domain:tile]`` for whichever context fields the record carries."""
    values = [str(getattr(record, name)) for name in CONTEXT_FIELDS if getattr(record, name, None)]
    return f"[{':'.join(values)}] " if values else ""


class JsonFormatter(logging.Formatter):
    """One JSON object per record, with ``extra`` fields such as the tile."""

    def format(self, record: logging.LogRecord) -> str:
        """Format a record as a single JSON line; paths and enums become strings."""
        payload: dict[str, Any] = {
            "timestamp": _timestamp(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        extra = _extra_fields(record)
        if extra:
            payload["extra"] = extra
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class HumanFormatter(logging.Formatter):
    """Plain console lines, prefixed with the domain and tile they concern."""

    def format(self, record: logging.LogRecord) -> str:
        """Format a record with its ``[domain:tile]`` prefix, if any."""
        return _context_prefix(record) + super().format(record)


def _resolve_level(options: LogOptions) -> int:
    """Resolve the console log level from the quiet and verbose flags."""
    if options.quiet:
        return logging.WARNING
    if options.verbose > 0:
        return logging.DEBUG
    return logging.INFO


def configure_logging(options: LogOptions) -> logging.Logger:
    """Install console (and optional JSONL file) handlers on the root logger."""
    level = _resolve_level(options)
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(logging.DEBUG)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_formatter: logging.Formatter
    if options.json_console:
        console_formatter = JsonFormatter()
    else:
        console_formatter = HumanFormatter("%(levelname)s: %(message)s")
    console_handler.setFormatter(console_formatter)
    root.addHandler(console_handler)

    if options.log_file:
        options.log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(options.log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(JsonFormatter())
        root.addHandler(file_handler)

    library_level = logging.DEBUG if options.verbose > 1 else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)

    return root
