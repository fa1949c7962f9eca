from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import (
    ColumnElement,
    Delete,
    Update,
    and_,
    delete,
    func,
    not_,
    or_,
    select,
    update,
)
from sqlalchemy.orm import Session

from pastebin_lite.domain.models import Paste


_RETURNED_COLUMNS = (
    Paste.id,
    Paste.content,
    Paste.ttl_seconds,
    Paste.max_views,
    Paste.views,
    Paste.created_at,
    Paste.expires_at,
)


def live_clause(now: datetime) -> ColumnElement[bool]:
    """
    SQL form of the liveness predicate.

    Mirrors ``pastebin_lite.domain.expiry.is_live``: the expiry instant itself
    is already dead, and a paste with ``views == max_views`` is used up.
    """
    return and_(
        or_(Paste.expires_at.is_(None), Paste.expires_at > now),
        or_(Paste.max_views.is_(None), Paste.views < Paste.max_views),
    )


def expired_clause(now: datetime) -> ColumnElement[bool]:
    return not_(live_clause(now))


class PasteRepository:
    """
    Repository for Paste records.

    All database interaction for Paste should go through this class. The
    caller owns the session and is responsible for committing.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def create_paste(
        self,
        *,
        paste_id: str,
        content: str,
        created_at: datetime,
        ttl_seconds: Optional[int] = None,
        max_views: Optional[int] = None,
        expires_at: Optional[datetime] = None,
    ) -> Paste:
        """
        Insert a new Paste with ``views = 0``.

        Flushes immediately so a primary-key conflict surfaces here as
        ``IntegrityError`` instead of at commit time.
        """

        paste = Paste(
            id=paste_id,
            content=content,
            ttl_seconds=ttl_seconds,
            max_views=max_views,
            views=0,
            created_at=created_at,
            expires_at=expires_at,
        )
        self._session.add(paste)
        self._session.flush()
        return paste

    def consume_view(self, paste_id: str, now: datetime) -> Optional[dict[str, Any]]:
        """
        Increment ``views`` by one if the paste is live at ``now``.

        The liveness check and the increment are a single conditional UPDATE,
        so concurrent callers can never push ``views`` past ``max_views``.
        Returns the post-increment row as a mapping, or ``None`` when no live
        paste matched.
        """

        stmt: Update = (
            update(Paste)
            .where(Paste.id == paste_id, live_clause(now))
            .values(views=Paste.views + 1)
            .returning(*_RETURNED_COLUMNS)
            .execution_options(synchronize_session=False)
        )
        row = self._session.execute(stmt).one_or_none()
        if row is None:
            return None
        return dict(row._mapping)

    def delete_expired(self, now: datetime) -> int:
        """Delete every paste that is not live at ``now``; return the count."""

        stmt: Delete = (
            delete(Paste)
            .where(expired_clause(now))
            .execution_options(synchronize_session=False)
        )
        result = self._session.execute(stmt)
        return int(result.rowcount or 0)

    def count_all(self) -> int:
        stmt = select(func.count()).select_from(Paste)
        return int(self._session.execute(stmt).scalar_one())

    def count_live(self, now: datetime) -> int:
        stmt = select(func.count()).select_from(Paste).where(live_clause(now))
        return int(self._session.execute(stmt).scalar_one())
