"""
Logging setup for DustyDB.

Model and store code log through `get_logger(__name__)` and attach their
context (table, key, operation, attempt) as ``extra=`` fields rather than
formatting it into the message. Both formatters carry those fields: the
console formatter appends them as ``key=value`` pairs, the JSON formatter
promotes them to top-level keys.

    from dustydb.utils.logging import configure_logging, get_logger

    configure_logging(level="DEBUG", json_logs=True)
    get_logger("dustydb.model").debug("[CREATE]", extra={"table": "Author"})
    # {"level": "DEBUG", "logger": "dustydb.model", "message": "[CREATE]", "table": "Author"}
"""

from __future__ import annotations

import json
import logging
import logging.config
from typing import Any, Dict, Optional

# Attributes every LogRecord carries; anything else arrived through `extra=`.
_STANDARD_ATTRS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", (), None).__dict__
) | {"message", "asctime", "taskName"}

# Third-party loggers that are only interesting when something goes wrong.
_QUIET_LOGGERS = ("psycopg", "psycopg.pool")


def extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
    """Context attached to ``record`` via ``extra=``, flattened one level."""
    fields: Dict[str, Any] = {}
    for key, value in record.__dict__.items():
        if key in _STANDARD_ATTRS:
            continue
        if key == "extra" and isinstance(value, dict):
            fields.update(value)
        else:
            fields[key] = value
    return fields


class JsonFormatter(logging.Formatter):
    """One JSON object per line, with ``extra=`` fields at the top level."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload: Dict[str, Any] = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(extra_fields(record))
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack_info"] = record.stack_info
        return json.dumps(payload, default=str)


class ConsoleFormatter(logging.Formatter):
    """Human-readable line followed by ``key=value`` pairs for the context."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        line = super().format(record)
        fields = extra_fields(record)
        if not fields:
            return line
        context = " ".join(f"{key}={value}" for key, value in fields.items())
        head, sep, tail = line.partition("\n")
        return f"{head} | {context}{sep}{tail}"


def configure_logging(level: str = "INFO", json_logs: bool = False) -> None:
    """
    Install a single stderr handler on the root logger.

    psycopg's own loggers are held at WARNING unless ``level`` is stricter.
    """
    quiet_level = max(logging.WARNING, logging.getLevelName(level.upper()))
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "console": {
                    "()": ConsoleFormatter,
                    "fmt": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
                    "datefmt": "%Y-%m-%d %H:%M:%S",
                },
                "json": {"()": JsonFormatter},
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "formatter": "json" if json_logs else "console",
                    "level": level.upper(),
                }
            },
            "loggers": {name: {"level": quiet_level} for name in _QUIET_LOGGERS},
            "root": {"handlers": ["default"], "level": level.upper()},
        }
    )


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name)


__all__ = ["ConsoleFormatter", "JsonFormatter", "configure_logging", "extra_fields", "get_logger"]
