"""
Structured logging for StreamScout.

Uses the stdlib `logging` module. Every record is stamped with the current
request id (held in a ContextVar) so log lines can be correlated with the
`requestId` returned to clients. Output is JSON in production (`LOG_FORMAT=json`)
and a readable single line otherwise.
"""
from __future__ import annotations

import json
import logging
import sys
import time
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar, Token
from datetime import UTC, datetime
from typing import Any
from urllib.parse import urlsplit, urlunsplit

SERVICE_NAME = "streamscout"

_request_id: ContextVar[str | None] = ContextVar("streamscout_request_id", default=None)

# LogRecord attributes that are not user-supplied context.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None)).keys()
) | {"message", "asctime", "request_id", "service"}

logger = logging.getLogger(__name__)


def new_request_id() -> str:
    return f"req_{int(time.time() * 1000):x}_{uuid.uuid4().hex[:8]}"


def get_request_id() -> str | None:
    return _request_id.get()


def bind_request_id(request_id: str) -> Token:
    return _request_id.set(request_id)


def reset_request_id(token: Token) -> None:
    _request_id.reset(token)


def redact_url(url: str) -> str:
    """Drop the query string (where OMDb keeps its api key) before a URL is logged."""
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = _request_id.get()
        record.service = SERVICE_NAME
        return True


def _extra_context(record: logging.LogRecord) -> dict[str, Any]:
    return {k: v for k, v in vars(record).items() if k not in _RESERVED_ATTRS and not k.startswith("_")}


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": getattr(record, "service", SERVICE_NAME),
        }
        request_id = getattr(record, "request_id", None)
        if request_id:
            entry["requestId"] = request_id
        context = _extra_context(record)
        if context:
            entry["context"] = context
        if record.exc_info:
            exc_type, exc_value, _ = record.exc_info
            entry["error"] = {
                "name": exc_type.__name__ if exc_type else "Exception",
                "message": str(exc_value),
                "stack": self.formatException(record.exc_info),
            }
        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)-7s [%(name)s] %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        request_id = getattr(record, "request_id", None)
        if request_id:
            line = f"{line} requestId={request_id}"
        context = _extra_context(record)
        if context:
            line = f"{line} {json.dumps(context, default=str)}"
        return line


def configure_logging(level: str = "INFO", fmt: str = "text") -> None:
    """Install a single stream handler on the root logger."""
    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestIdFilter())
    handler.setFormatter(JsonFormatter() if fmt == "json" else TextFormatter())

    root = logging.getLogger()
    for existing in list(root.handlers):
        if getattr(existing, "_streamscout", False):
            root.removeHandler(existing)
    handler._streamscout = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    root.setLevel(level)


def log_request(method: str, path: str, status_code: int, duration_ms: float, **context: Any) -> None:
    level = logging.ERROR if status_code >= 500 else logging.WARNING if status_code >= 400 else logging.INFO
    logger.log(
        level,
        f"{method} {path} {status_code} {duration_ms:.0f}ms",
        extra={"method": method, "path": path, "statusCode": status_code, "duration": round(duration_ms, 1), **context},
    )


@contextmanager
def log_timer(name: str, log: logging.Logger | None = None, **context: Any) -> Iterator[None]:
    """Log how long the wrapped block took, in milliseconds."""
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - start) * 1000
        (log or logger).debug(f"{name} took {elapsed_ms:.0f}ms", extra={"duration": round(elapsed_ms, 1), **context})
