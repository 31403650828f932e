"""
Session reaper: periodically deletes sessions whose expires_at has passed.

A missed sweep only leaves dead rows around; refresh re-checks expiry on
its own. The delete is a single idempotent statement, so stopping between
sweeps never leaves partial state.
"""
from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Callable, Optional

from services.stores import SessionStore
from utils.clock import utcnow

logger = logging.getLogger(__name__)


class SessionReaper:
    def __init__(
        self,
        sessions: SessionStore,
        *,
        interval: float = 3600.0,
        clock: Callable[[], datetime] = utcnow,
        on_sweep_done: Optional[Callable[[], None]] = None,
    ):
        self.sessions = sessions
        self.interval = interval
        self.clock = clock
        # e.g. DBStorage.close, so the worker thread does not pin a connection
        self._on_sweep_done = on_sweep_done
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def sweep(self, now: Optional[datetime] = None) -> int:
        """Delete every session with expires_at < now; returns the number removed."""
        now = now or self.clock()
        deleted = self.sessions.delete_expired_before(now)
        logger.info("Session sweep finished", extra={"deleted": deleted})
        return deleted

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            # Any failure ends this sweep only; the thread keeps its schedule
            try:
                self.sweep()
            except Exception:
                logger.exception("Session sweep failed")
            if self._on_sweep_done is not None:
                try:
                    self._on_sweep_done()
                except Exception:
                    logger.exception("Session sweep cleanup failed")

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="session-reaper", daemon=True)
        self._thread.start()
        logger.info("Session reaper started", extra={"interval": self.interval})

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
