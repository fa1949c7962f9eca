from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Optional

from .errors import InvalidArgument


# Upper bound of the INTEGER columns holding ttl_seconds and max_views.
MAX_COLUMN_INT = 2**31 - 1


def validate_positive_int(name: str, value: Any) -> Optional[int]:
    """
    Return ``value`` unchanged if it is absent or a positive integer.

    ``bool`` is rejected even though it subclasses ``int``, and so is
    anything above ``MAX_COLUMN_INT``.
    """
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise InvalidArgument(f"{name} must be an integer >= 1.")
    if value > MAX_COLUMN_INT:
        raise InvalidArgument(f"{name} must be at most {MAX_COLUMN_INT}.")
    return value


def compute_expiry(ttl_seconds: Optional[int], created_at: datetime) -> Optional[datetime]:
    """Return ``created_at + ttl_seconds``, or ``None`` when no ttl is set."""
    ttl = validate_positive_int("ttl_seconds", ttl_seconds)
    if ttl is None:
        return None
    try:
        return created_at + timedelta(seconds=ttl)
    except OverflowError as exc:
        raise InvalidArgument("ttl_seconds puts the expiry past the supported date range.") from exc


def is_time_expired(expires_at: Optional[datetime], now: datetime) -> bool:
    # Inclusive: a paste is gone at exactly its expiry instant.
    return expires_at is not None and now >= expires_at


def is_view_expired(views: int, max_views: Optional[int]) -> bool:
    return max_views is not None and views >= max_views


def is_live(
    expires_at: Optional[datetime],
    views: int,
    max_views: Optional[int],
    now: datetime,
) -> bool:
    """Combined time and view-count liveness test."""
    return not is_time_expired(expires_at, now) and not is_view_expired(views, max_views)


def remaining_views(views: int, max_views: Optional[int]) -> Optional[int]:
    """Views left before the paste expires, or ``None`` when unlimited."""
    if max_views is None:
        return None
    return max(max_views - views, 0)
