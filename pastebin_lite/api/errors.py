from __future__ import annotations

import logging
from http import HTTPStatus

from flask import Flask, request
from werkzeug.exceptions import HTTPException

from pastebin_lite.domain.errors import ExhaustedRetries, InvalidArgument, StoreUnavailable
from pastebin_lite.observability import get_correlation_id


logger = logging.getLogger(__name__)


def register_error_handlers(app: Flask) -> None:
    """
    Map paste errors to JSON responses.

    Store failures are reported as retryable (503 with ``Retry-After``).
    Unknown ``/api`` routes get a JSON 404 instead of Flask's HTML page.
    """

    retry_after = str(app.config.get("RETRY_AFTER_SECONDS", 5))

    @app.errorhandler(InvalidArgument)
    def _invalid_argument(exc: InvalidArgument):  # type: ignore[unused-variable]
        return {"error": str(exc)}, HTTPStatus.BAD_REQUEST

    @app.errorhandler(StoreUnavailable)
    @app.errorhandler(ExhaustedRetries)
    def _retryable(exc: Exception):  # type: ignore[unused-variable]
        return (
            {"error": "Service temporarily unavailable, please retry"},
            HTTPStatus.SERVICE_UNAVAILABLE,
            {"Retry-After": retry_after},
        )

    @app.errorhandler(404)
    def _not_found(exc: HTTPException):  # type: ignore[unused-variable]
        if request.path.startswith("/api/"):
            return {"error": "Not found"}, HTTPStatus.NOT_FOUND
        return exc

    @app.errorhandler(500)
    def _internal_error(exc: Exception):  # type: ignore[unused-variable]
        logger.error(
            "Unhandled error",
            extra={
                "event": "unhandled_error",
                "error_type": type(getattr(exc, "original_exception", exc)).__name__,
                "correlation_id": get_correlation_id(),
            },
        )
        return {"error": "Internal server error"}, HTTPStatus.INTERNAL_SERVER_ERROR
