from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from flask import Flask
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from pastebin_lite.db import get_database
from pastebin_lite.domain.errors import (
    ExhaustedRetries,
    InvalidArgument,
    StoreUnavailable,
)
from pastebin_lite.domain.expiry import (
    compute_expiry,
    remaining_views,
    validate_positive_int,
)
from pastebin_lite.domain.ids import generate_paste_id
from pastebin_lite.observability import get_correlation_id
from pastebin_lite.repositories.paste_repository import PasteRepository
from pastebin_lite.services.helpers import as_utc, utc_now


logger = logging.getLogger(__name__)

DEFAULT_MAX_ID_ATTEMPTS = 5


def _paste_to_dto(row: Any) -> dict[str, Any]:
    """Convert a Paste entity or returned row mapping to a plain dict DTO."""
    get = row.get if isinstance(row, dict) else lambda key: getattr(row, key)
    views = get("views")
    max_views = get("max_views")
    return {
        "id": get("id"),
        "content": get("content"),
        "ttl_seconds": get("ttl_seconds"),
        "max_views": max_views,
        "views": views,
        "remaining_views": remaining_views(views, max_views),
        "created_at": as_utc(get("created_at")),
        "expires_at": as_utc(get("expires_at")),
    }


@dataclass
class PasteStore:
    """
    Core paste lifecycle operations.

    Owns session lifecycle: creates a session per operation, commits on
    success, rolls back on exception, and closes the session in a finally
    block. Returns plain dict DTOs; no ORM entities escape this layer.

    ``clock`` is only consulted when a caller does not pass ``now``; ``read``
    always takes ``now`` from its caller.
    """

    session_factory: Callable[[], Session]
    id_generator: Callable[[], str] = generate_paste_id
    max_id_attempts: int = DEFAULT_MAX_ID_ATTEMPTS
    clock: Callable[[], datetime] = utc_now

    # -------------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------------
    def create(
        self,
        content: str,
        ttl_seconds: Optional[int] = None,
        max_views: Optional[int] = None,
        *,
        now: Optional[datetime] = None,
    ) -> dict[str, Any]:
        """
        Create a new paste.

        - ``content`` must be a string that is non-empty after trimming; the
          trimmed text is what gets stored
        - ``ttl_seconds`` and ``max_views`` must each be absent or an int
          between 1 and ``MAX_COLUMN_INT``
        - the id is regenerated on a primary-key conflict, at most
          ``max_id_attempts`` times, before ``ExhaustedRetries`` is raised
        """
        if not isinstance(content, str) or not content.strip():
            self._log_invalid("content")
            raise InvalidArgument("content is required and must be a non-empty string.")
        created_at = as_utc(now) if now is not None else self.clock()
        try:
            validate_positive_int("max_views", max_views)
            expires_at = compute_expiry(ttl_seconds, created_at)
        except InvalidArgument:
            self._log_invalid("ttl_seconds/max_views")
            raise
        body = content.strip()

        for attempt in range(1, self.max_id_attempts + 1):
            paste_id = self.id_generator()
            session = self.session_factory()
            try:
                paste = PasteRepository(session=session).create_paste(
                    paste_id=paste_id,
                    content=body,
                    created_at=created_at,
                    ttl_seconds=ttl_seconds,
                    max_views=max_views,
                    expires_at=expires_at,
                )
                dto = _paste_to_dto(paste)
                session.commit()
            except IntegrityError:
                session.rollback()
                logger.warning(
                    "Paste id collision; regenerating",
                    extra={
                        "event": "paste_id_collision",
                        "paste_id": paste_id,
                        "attempt": attempt,
                        "correlation_id": get_correlation_id(),
                    },
                )
                continue
            except SQLAlchemyError as exc:
                session.rollback()
                raise self._unavailable("create", exc) from exc
            finally:
                session.close()

            logger.info(
                "Paste created",
                extra={
                    "event": "paste_created",
                    "paste_id": paste_id,
                    "correlation_id": get_correlation_id(),
                },
            )
            return dto

        logger.error(
            "Could not allocate a paste id",
            extra={
                "event": "paste_id_exhausted",
                "attempt": self.max_id_attempts,
                "correlation_id": get_correlation_id(),
            },
        )
        raise ExhaustedRetries(
            f"Could not generate a unique paste id after {self.max_id_attempts} attempts."
        )

    # -------------------------------------------------------------------------
    # Retrieval / viewing
    # -------------------------------------------------------------------------
    def read(self, paste_id: str, now: datetime) -> Optional[dict[str, Any]]:
        """
        Consume one view of a paste.

        Returns the paste with its post-increment view count, or ``None`` when
        the paste does not exist or is no longer live at ``now``. A paste that
        is found expired is left in place for the reaper.
        """
        session = self.session_factory()
        try:
            row = PasteRepository(session=session).consume_view(paste_id, as_utc(now))
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            raise self._unavailable("read", exc) from exc
        finally:
            session.close()

        if row is None:
            logger.info(
                "Paste not found or expired",
                extra={
                    "event": "paste_access_miss",
                    "paste_id": paste_id,
                    "correlation_id": get_correlation_id(),
                },
            )
            return None

        logger.info(
            "Paste access successful",
            extra={
                "event": "paste_access_success",
                "paste_id": paste_id,
                "correlation_id": get_correlation_id(),
            },
        )
        return _paste_to_dto(row)

    # -------------------------------------------------------------------------
    # Cleanup and reporting
    # -------------------------------------------------------------------------
    def delete_expired(self, *, now: Optional[datetime] = None) -> int:
        """Delete all pastes that are not live at ``now`` (sweep start)."""
        sweep_at = as_utc(now) if now is not None else self.clock()
        session = self.session_factory()
        try:
            removed = PasteRepository(session=session).delete_expired(sweep_at)
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            raise self._unavailable("delete_expired", exc) from exc
        finally:
            session.close()
        return removed

    def stats(self, *, now: Optional[datetime] = None) -> dict[str, int]:
        at = as_utc(now) if now is not None else self.clock()
        session = self.session_factory()
        try:
            repo = PasteRepository(session=session)
            return {"total": repo.count_all(), "active": repo.count_live(at)}
        except SQLAlchemyError as exc:
            session.rollback()
            raise self._unavailable("stats", exc) from exc
        finally:
            session.close()

    def ping(self) -> None:
        """Round-trip a trivial query to check the database is reachable."""
        session = self.session_factory()
        try:
            session.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            raise self._unavailable("ping", exc) from exc
        finally:
            session.close()

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------
    @staticmethod
    def _log_invalid(field_name: str) -> None:
        logger.warning(
            f"Invalid {field_name} when creating paste",
            extra={
                "event": "paste_create_invalid_parameters",
                "correlation_id": get_correlation_id(),
            },
        )

    @staticmethod
    def _unavailable(operation: str, exc: SQLAlchemyError) -> StoreUnavailable:
        logger.error(
            f"Paste store {operation} failed",
            extra={
                "event": "paste_store_unavailable",
                "error_type": type(exc).__name__,
                "correlation_id": get_correlation_id(),
            },
        )
        return StoreUnavailable(f"Paste store unavailable during {operation}.")


def paste_store_for(app: Flask) -> PasteStore:
    """Build a store bound to the database handle registered on ``app``."""
    return PasteStore(
        session_factory=get_database(app).session_factory,
        max_id_attempts=app.config.get("PASTE_ID_MAX_ATTEMPTS", DEFAULT_MAX_ID_ATTEMPTS),
    )
