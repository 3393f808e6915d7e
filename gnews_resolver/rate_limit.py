"""Minimum-interval rate limiting for outbound resolution requests."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class RateLimiter:
    """Space outbound attempts at least ``min_interval_ms`` apart.

    Each caller reserves its slot under the lock and sleeps outside it, so a
    waiting caller never blocks the bookkeeping of other callers sharing the
    same limiter.
    """

    def __init__(
        self,
        min_interval_ms: int = 1000,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.min_interval = max(0, int(min_interval_ms)) / 1000.0
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._last_request: Optional[float] = None

    def reserve(self) -> float:
        """Claim the next slot and return how long to wait before using it."""

        with self._lock:
            now = self._clock()
            if self._last_request is None:
                slot = now
            else:
                slot = max(now, self._last_request + self.min_interval)
            self._last_request = slot
            return slot - now

    def wait(self) -> float:
        """Block until the next slot is due; returns the seconds waited."""

        delay = self.reserve()
        if delay > 0:
            logger.debug("Rate limiting: waiting %.0fms", delay * 1000)
            self._sleep(delay)
        return delay


__all__ = ["RateLimiter"]
