from __future__ import annotations

from datetime import datetime

from flask import current_app, request

from pastebin_lite.domain.errors import InvalidArgument
from pastebin_lite.services.helpers import from_epoch_millis, utc_now


TEST_NOW_HEADER = "X-Test-Now-Ms"


def request_now() -> datetime:
    """
    Return the instant a read request should be evaluated at.

    With ``TEST_MODE`` enabled, the ``X-Test-Now-Ms`` header (milliseconds
    since the epoch) overrides the wall clock.
    """
    raw = request.headers.get(TEST_NOW_HEADER)
    if raw is None or not current_app.config.get("TEST_MODE", False):
        return utc_now()
    try:
        return from_epoch_millis(int(raw))
    except (ValueError, OverflowError, OSError) as exc:
        raise InvalidArgument(f"{TEST_NOW_HEADER} must be an integer number of milliseconds.") from exc
