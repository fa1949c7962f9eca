from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from flask import Flask, g, has_request_context, request


CORRELATION_HEADER = "X-Correlation-ID"

# Structured fields copied from ``extra=`` into the JSON line.
LOG_FIELDS = (
    "event",
    "correlation_id",
    "http_method",
    "http_path",
    "paste_id",
    "removed_count",
    "attempt",
    "error_type",
)

# Correlation id for work running outside a request (the reaper thread).
_background_correlation_id: ContextVar[str | None] = ContextVar(
    "background_correlation_id", default=None
)


@contextmanager
def correlation_scope(correlation_id: str) -> Iterator[None]:
    """Tag every log record emitted inside the block with ``correlation_id``."""
    token = _background_correlation_id.set(correlation_id)
    try:
        yield
    finally:
        _background_correlation_id.reset(token)


def get_correlation_id() -> str | None:
    """
    Return the correlation id for the current unit of work.

    Inside a request this is the request's id; otherwise whatever
    ``correlation_scope`` bound, if anything.
    """
    if has_request_context():
        cid = getattr(g, "correlation_id", None)
        if cid:
            return cid
    return _background_correlation_id.get()


class _CorrelationFilter(logging.Filter):
    """Fills in correlation and request fields the call site did not pass."""

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        if getattr(record, "correlation_id", None) is None:
            record.correlation_id = get_correlation_id()
        if has_request_context():
            record.http_method = request.method
            record.http_path = request.path
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per log line."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        log: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log.update(
            (key, value)
            for key in LOG_FIELDS
            if (value := getattr(record, key, None)) is not None
        )
        if record.exc_info:
            log["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False)


def _configure_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    root.setLevel(level)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    # On the handler so records propagated from module loggers are enriched too.
    handler.addFilter(_CorrelationFilter())

    # Replace existing handlers to avoid duplicate logs.
    root.handlers = [handler]


def init_observability(app: Flask) -> None:
    """
    Initialize observability for the Flask app.

    - Configures JSON logging at ``LOG_LEVEL``.
    - Assigns each request a correlation id (taken from ``X-Correlation-ID``
      when the client sends one) and echoes it back in the response.
    """

    _configure_logging(app.config.get("LOG_LEVEL", "INFO"))

    @app.before_request
    def _set_correlation_id() -> None:  # type: ignore[unused-variable]
        g.correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid4())

    @app.after_request
    def _propagate_correlation_id(response):  # type: ignore[unused-variable]
        cid = get_correlation_id()
        if cid:
            response.headers[CORRELATION_HEADER] = cid
        return response
