from __future__ import annotations

import json
import logging
import os
import sys
from logging.config import dictConfig
from traceback import format_exception
from typing import Optional

_PROD_NAMES = {"prod", "production"}

# Connection context that client code attaches via ``extra=``.
_CONTEXT_FIELDS = ("url", "attempt", "close_code")


class JsonFormatter(logging.Formatter):
    """Structured JSON formatter for prod and CI logs."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload: dict[str, object] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "pid": record.process,
            "message": record.getMessage(),
        }

        connection = {
            k: getattr(record, k) for k in _CONTEXT_FIELDS if getattr(record, k, None) is not None
        }
        if connection:
            payload["connection"] = connection

        if record.exc_info:
            exc_type = record.exc_info[0].__name__ if record.exc_info[0] else None
            stack = "".join(format_exception(*record.exc_info))
            max_stack = int(os.getenv("LOG_STACK_LIMIT", "4000"))
            payload["error"] = {
                "type": exc_type,
                "message": str(record.exc_info[1]),
                "stack": stack[:max_stack] + ("...(truncated)" if len(stack) > max_stack else ""),
            }

        return json.dumps(payload, ensure_ascii=False, default=str)


def _is_prod() -> bool:
    return (os.getenv("APP_ENV") or "").strip().lower() in _PROD_NAMES


def _read_level() -> str:
    explicit = os.getenv("LOG_LEVEL")
    if explicit:
        return explicit.upper()
    return "INFO" if _is_prod() else "DEBUG"


def _read_format() -> str:
    fmt = os.getenv("LOG_FORMAT")
    if fmt:
        return fmt.lower()
    return "json" if _is_prod() else "plain"


def setup_logging(level: Optional[str] = None, fmt: Optional[str] = None) -> None:
    """Configure root logging; arguments win over LOG_LEVEL / LOG_FORMAT."""
    level = (level or _read_level()).upper()
    fmt = (fmt or _read_format()).lower()

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "plain": {
                    "format": "%(asctime)s %(levelname)-5s [pid:%(process)d] %(name)s: %(message)s",
                    "datefmt": "%Y-%m-%dT%H:%M:%S",
                },
                "json": {
                    "()": JsonFormatter,
                    "datefmt": "%Y-%m-%dT%H:%M:%S",
                },
            },
            "handlers": {
                "stream": {
                    "class": "logging.StreamHandler",
                    "level": level,
                    "formatter": "json" if fmt == "json" else "plain",
                    "stream": "ext://sys.stderr",
                }
            },
            "root": {
                "level": level,
                "handlers": ["stream"],
            },
            # websockets logs every frame at DEBUG; keep it quieter.
            "loggers": {
                "websockets": {"level": "INFO", "handlers": [], "propagate": True},
            },
        }
    )


def flush() -> None:
    sys.stdout.flush()
    sys.stderr.flush()
