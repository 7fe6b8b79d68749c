"""
Log formatting for the planner: JSON lines for hosts that collect logs,
a compact human format for a terminal.

Both formatters tag records with the active progress check (see
context.SessionContext). A field passed explicitly through `extra=` wins
over the context.
"""

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any, TextIO

from .context import current_context

# Everything a bare LogRecord carries; anything else came in through extra=
_STANDARD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "asctime",
}

_TRUTHY = ("1", "true", "yes", "on")


def record_fields(record: logging.LogRecord) -> dict[str, Any]:
    """Context tags merged with the record's extra fields."""
    fields: dict[str, Any] = current_context().as_fields()
    for key, value in vars(record).items():
        if key not in _STANDARD_ATTRS:
            fields[key] = value
    return fields


class JSONFormatter(logging.Formatter):
    """
    One JSON object per line:

        {"timestamp": "2026-10-18T09:30:00.000Z", "level": "INFO",
         "logger": "dayblocks.progress.session",
         "message": "Progress check resolved: timeout",
         "session_id": "ps-1a2b3c4d5e6f", "block_id": "30m-0900"}
    """

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, UTC)
        entry: dict[str, Any] = {
            "timestamp": created.strftime("%Y-%m-%dT%H:%M:%S.") + f"{int(record.msecs):03d}Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(record_fields(record))
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class HumanFormatter(logging.Formatter):
    """`time [LEVEL] logger: [check block] message`"""

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        fields = record_fields(record)
        tags = " ".join(str(fields[k]) for k in ("session_id", "block_id") if fields.get(k))
        prefix = f"[{tags}] " if tags else ""
        line = f"{stamp} [{record.levelname}] {record.name}: {prefix}{record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    stream: TextIO | None = None,
) -> logging.Handler:
    """
    Install a single handler on the `dayblocks` logger.

    json_format=None picks JSON when the stream is not a terminal. The host
    application's own root handlers are left alone. Returns the handler.
    """
    stream = stream or sys.stderr
    if json_format is None:
        json_format = not (hasattr(stream, "isatty") and stream.isatty())

    package_logger = logging.getLogger("dayblocks")
    package_logger.setLevel(getattr(logging, level.upper()))
    for handler in package_logger.handlers[:]:
        package_logger.removeHandler(handler)

    handler = logging.StreamHandler(stream)
    handler.setFormatter(JSONFormatter() if json_format else HumanFormatter())
    package_logger.addHandler(handler)
    package_logger.propagate = False
    return handler


def configure_from_env(stream: TextIO | None = None) -> logging.Handler:
    """Configure from DAYBLOCKS_LOG_LEVEL / DAYBLOCKS_LOG_JSON (read at import of config)."""
    from dayblocks import config

    json_format = None
    if config.LOG_JSON is not None:
        json_format = config.LOG_JSON.strip().lower() in _TRUTHY
    return configure_logging(level=config.LOG_LEVEL, json_format=json_format, stream=stream)
