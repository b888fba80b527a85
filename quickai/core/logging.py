"""
Structured logging for the QuickAI backend.

One ``quickai`` logger, two renderings:
- development: a single human-readable line with ``key=value`` fields
- production: one JSON object per line

The active request id lives in a ContextVar bound by RequestIdMiddleware,
so every record emitted while serving a request is correlated without
threading the id through call signatures.
"""

import json
import logging
import os
import sys
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from typing import Any, Dict, Optional

LOGGER_NAME = "quickai"

request_id_ctx_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

# Attributes every LogRecord carries; anything else was passed via `extra`
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}

_LATENCY_BUCKETS = ((10, "<10ms"), (100, "10-100ms"), (500, "100-500ms"), (1000, "500-1000ms"))

MAX_FIELD_CHARS = 500


def bind_request_id(request_id: str) -> Token:
    return request_id_ctx_var.set(request_id)


def unbind_request_id(token: Token) -> None:
    request_id_ctx_var.reset(token)


def get_request_id(default: Optional[str] = None) -> Optional[str]:
    rid = request_id_ctx_var.get()
    return rid if rid is not None else default


def latency_bucket_ms(latency_ms: Optional[float]) -> str:
    """Coarse latency label; exact timings are too noisy to aggregate on."""
    if latency_ms is None:
        return "unknown"
    for upper, label in _LATENCY_BUCKETS:
        if latency_ms < upper:
            return label
    return ">=1000ms"


class RequestIdFilter(logging.Filter):
    """Stamp records with the request id bound to the current context."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            record.request_id = get_request_id()
        return True


class StructuredFormatter(logging.Formatter):
    def __init__(self, json_lines: bool = False):
        super().__init__()
        self.json_lines = json_lines

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created, timezone.utc).isoformat().replace("+00:00", "Z")
        fields = {
            key: value
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and key != "request_id" and value is not None
        }
        rid = getattr(record, "request_id", None)

        if self.json_lines:
            entry: Dict[str, Any] = {
                "timestamp": timestamp,
                "level": record.levelname,
                "logger": record.name,
                "message": record.getMessage(),
                "request_id": rid,
                **fields,
            }
            if record.exc_info:
                entry["exc_info"] = self.formatException(record.exc_info)
            return json.dumps(entry, default=str)

        parts = [timestamp, record.levelname, f"[{record.name}]"]
        if rid:
            parts.append(f"[rid={rid}]")
        parts.append(record.getMessage())
        parts.extend(f"{key}={value}" for key, value in fields.items())
        line = " ".join(parts)
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def configure_logging(env: str = "development", level: int = logging.INFO) -> logging.Logger:
    """Install the single stdout handler on the ``quickai`` logger (idempotent)."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter(json_lines=env.lower() == "production"))
    handler.addFilter(RequestIdFilter())

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    logger.handlers = [handler]

    # uvicorn keeps its own access log; don't duplicate it through the root logger
    logging.getLogger("uvicorn").propagate = False
    logging.getLogger("uvicorn.error").propagate = False
    return logger


def _truncate(value: Any, limit: int = MAX_FIELD_CHARS) -> str:
    try:
        text = value if isinstance(value, str) else json.dumps(value, default=str)
    except (TypeError, ValueError):
        text = repr(value)
    if len(text) <= limit:
        return text
    return text[:limit] + "...<truncated>"


def log_event(
    level: str,
    msg: str,
    *,
    request_id: Optional[str],
    user_id: Optional[str] = None,
    creation_id: Optional[int] = None,
    event_type: Optional[str] = None,
    error_code: Optional[str] = None,
    extra: Optional[Dict[str, object]] = None,
) -> None:
    """Emit one correlated domain event; free-form ``extra`` values are truncated."""
    logger = logging.getLogger(LOGGER_NAME)
    if not logger.handlers:
        configure_logging(os.getenv("ENV", "development"))

    fields: Dict[str, Any] = {
        "request_id": request_id or get_request_id(),
        "user_id": user_id,
        "creation_id": creation_id,
        "event_type": event_type,
        "error_code": error_code,
    }
    for key, value in (extra or {}).items():
        fields[key] = None if value is None else _truncate(value)

    logger.log(logging.getLevelName(level.upper()), msg, extra=fields)
