from __future__ import annotations

import logging
import threading
import time
from datetime import datetime
from typing import Callable, Optional

from ..core.exceptions import UnavailableError

logger = logging.getLogger(__name__)


class StoreHealth:
    """Tracks whether the backing store is reachable.

    The app consults ``require_ready()`` before handling a request. While the
    store is down, probes are rate limited by ``retry_seconds`` and requests in
    between fail fast with ``UnavailableError``.
    """

    def __init__(
        self,
        probe: Callable[[], None],
        *,
        backend: str,
        retry_seconds: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._probe = probe
        self._backend = backend
        self._retry_seconds = float(retry_seconds)
        self._clock = clock
        self._lock = threading.Lock()
        self._ready = False
        self._last_probe: Optional[float] = None
        self._last_error: Optional[str] = None
        self._ready_since: Optional[datetime] = None

    @property
    def is_ready(self) -> bool:
        return self._ready

    def check(self) -> bool:
        """Probe the store now and record the outcome."""

        with self._lock:
            return self._check_locked()

    def _check_locked(self) -> bool:
        self._last_probe = self._clock()
        try:
            self._probe()
        except Exception as e:
            if self._ready or self._last_error is None:
                logger.error("%s store not ready: %s", self._backend, e)
            self._ready = False
            self._last_error = str(e) or e.__class__.__name__
            return False

        if not self._ready:
            logger.info("%s store ready", self._backend)
            self._ready_since = datetime.now()
        self._ready = True
        self._last_error = None
        return True

    def require_ready(self) -> None:
        if self._ready:
            return
        with self._lock:
            if self._ready:
                return
            due = self._last_probe is None or self._clock() - self._last_probe >= self._retry_seconds
            if due and self._check_locked():
                return
        raise UnavailableError("Database is not ready, try again later")

    def mark_unavailable(self, reason: str) -> None:
        with self._lock:
            if not self._ready:
                # already down; keep the retry schedule running
                return
            logger.error("%s store lost: %s", self._backend, reason)
            self._ready = False
            self._last_error = reason
            self._last_probe = self._clock()

    def status(self) -> dict:
        return {
            "ok": self._ready,
            "backend": self._backend,
            "database": "Connected" if self._ready else "Disconnected",
            "ready_since": self._ready_since.isoformat() if self._ready_since and self._ready else None,
            "error": self._last_error,
        }
