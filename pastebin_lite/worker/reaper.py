from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Optional

from flask import Flask

from pastebin_lite.domain.errors import StoreUnavailable
from pastebin_lite.observability import correlation_scope
from pastebin_lite.services.paste_store import PasteStore, paste_store_for


logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 3600.0
EXTENSION_KEY = "pastebin_lite.reaper"
CORRELATION_ID = "reaper"


class Reaper:
    """
    Periodically deletes pastes that are no longer live.

    A sweep runs as soon as the thread starts and then every
    ``interval_seconds``. Only one sweep runs at a time; an overlapping
    ``run_once`` call is skipped.
    """

    def __init__(
        self,
        store: PasteStore,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
    ) -> None:
        self.store = store
        self.interval_seconds = interval_seconds
        self._sweep_lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_once(self, now: Optional[datetime] = None) -> Optional[int]:
        """
        Run a single sweep and return the number of pastes removed.

        Returns ``None`` if another sweep was in progress or the store was
        unavailable; neither case raises.
        """
        with correlation_scope(CORRELATION_ID):
            if not self._sweep_lock.acquire(blocking=False):
                logger.info(
                    "Reaper: sweep already in progress; skipping",
                    extra={"event": "reaper_sweep_skipped"},
                )
                return None
            try:
                removed = self.store.delete_expired(now=now)
            except StoreUnavailable:
                logger.warning(
                    "Reaper: store unavailable; will retry next cycle",
                    extra={"event": "reaper_store_unavailable"},
                )
                return None
            finally:
                self._sweep_lock.release()

            logger.info(
                "Reaper: removed expired pastes",
                extra={"event": "reaper_sweep", "removed_count": removed},
            )
            return removed

    def _loop(self) -> None:
        """Background loop that periodically sweeps expired pastes."""

        with correlation_scope(CORRELATION_ID):
            while not self._stop.is_set():
                try:
                    self.run_once()
                except Exception:  # pragma: no cover - keep the thread alive
                    logger.exception("Error in reaper loop", extra={"event": "reaper_error"})
                self._stop.wait(self.interval_seconds)

    def start(self) -> None:
        """Start the background thread. Calling this twice is a no-op."""

        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._loop,
            name="paste-reaper",
            daemon=True,
        )
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None


def start_reaper(app: Flask) -> Reaper:
    """
    Start the reaper for ``app`` in a background thread.

    This function is idempotent and will only start a single reaper per app.
    """

    reaper = app.extensions.get(EXTENSION_KEY)
    if reaper is None:
        reaper = Reaper(
            paste_store_for(app),
            interval_seconds=app.config.get(
                "REAPER_INTERVAL_SECONDS", DEFAULT_INTERVAL_SECONDS
            ),
        )
        app.extensions[EXTENSION_KEY] = reaper
    reaper.start()
    return reaper


def stop_reaper(app: Flask, timeout: Optional[float] = 5.0) -> None:
    reaper = app.extensions.get(EXTENSION_KEY)
    if reaper is not None:
        reaper.stop(timeout)
