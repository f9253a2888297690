"""Sliding-window request throttle, one instance per upstream source."""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from typing import Callable

logger = logging.getLogger(__name__)


class SlidingWindowRateLimiter:
    """Allow at most `max_requests` calls in any trailing `time_window` seconds.

    State is process-local and resets on restart. The limits are safety
    margins below each provider's published quota, not contractual SLAs.
    """

    def __init__(
        self,
        max_requests: int,
        time_window: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if time_window <= 0:
            raise ValueError("time_window must be > 0")
        self.max_requests = max_requests
        self.time_window = time_window
        self._clock = clock
        self._requests: deque[float] = deque()

    @property
    def pending(self) -> int:
        """Number of requests still inside the current window."""
        self._evict(self._clock())
        return len(self._requests)

    async def wait_if_needed(self) -> float:
        """Suspend until a request slot is free, then claim it.

        Returns:
            Seconds spent waiting (0.0 when no wait was needed).
        """
        now = self._clock()
        self._evict(now)

        waited = 0.0
        if len(self._requests) >= self.max_requests:
            oldest = self._requests[0]
            wait_time = self.time_window - (now - oldest)
            if wait_time > 0:
                logger.info(
                    "Rate limit reached (%d/%.0fs), waiting %.2fs",
                    self.max_requests, self.time_window, wait_time,
                )
                await asyncio.sleep(wait_time)
                waited = wait_time
            now = self._clock()
            self._evict(now)

        self._requests.append(now)
        return waited

    def _evict(self, now: float) -> None:
        while self._requests and now - self._requests[0] >= self.time_window:
            self._requests.popleft()
