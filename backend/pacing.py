"""Minimum-spacing limiter for outbound GitHub calls.

GitHub's secondary rate limits punish bursts, so work that fans out over
years, repositories or search variants waits on a Pacer between dispatches.
"""

import asyncio
import time


class Pacer:
    """Enforce at least `interval` seconds between consecutive dispatches."""

    def __init__(self, interval: float):
        self.interval = max(interval, 0.0)
        self._last: float | None = None
        self._lock = asyncio.Lock()

    async def wait(self):
        async with self._lock:
            now = time.monotonic()
            if self._last is not None:
                remaining = self._last + self.interval - now
                if remaining > 0:
                    await asyncio.sleep(remaining)
            self._last = time.monotonic()
