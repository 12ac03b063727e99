"""Pacing for tracker API calls, shared by every client of one server."""

from __future__ import annotations

import asyncio
import time
from collections import deque
from dataclasses import dataclass, field

from reedgrass.tracker_profile import resolve_tracker_profile

GAZELLE_MIN_INTERVAL_SECONDS = 2.0
GAZELLE_WAIT_LOG_THRESHOLD_SECONDS = 1.75
GAZELLE_RATE_LIMIT_WINDOW_SECONDS = 10.0


@dataclass
class _ServerPacing:
    """Start times of recent requests to one server."""
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    last_start: float = 0.0
    starts: deque[float] = field(default_factory=deque)

    def _expire(self, now: float, window: float) -> None:
        if window <= 0:
            self.starts.clear()
            return
        while self.starts and self.starts[0] <= now - window:
            self.starts.popleft()

    def delay(self, now: float, min_interval: float, limit: int | None, window: float) -> float:
        self._expire(now, window)
        wait = min_interval - (now - self.last_start)
        if limit and len(self.starts) >= limit:
            wait = max(wait, self.starts[0] + window - now)
        return max(wait, 0.0)

    def record(self, now: float, limit: int | None, window: float) -> None:
        self._expire(now, window)
        self.last_start = now
        if limit:
            self.starts.append(now)


_servers: dict[str, _ServerPacing] = {}


def _server_key(base_url: str) -> str:
    return base_url.rstrip("/").lower()


def _request_limit(tracker_name: str | None) -> int | None:
    if not tracker_name:
        return None
    try:
        return resolve_tracker_profile(tracker_name).request_limit
    except ValueError:
        return None


async def enforce_gazelle_min_interval(
    base_url: str,
    min_interval_seconds: float = GAZELLE_MIN_INTERVAL_SECONDS,
    tracker_name: str | None = None,
) -> float:
    """
    Sleep until the next request to ``base_url`` is allowed.

    Two rules apply: a minimum gap between request starts, and (for a
    known tracker) at most ``request_limit`` starts per sliding window.
    Returns the seconds waited.
    """
    limit = _request_limit(tracker_name)
    window = GAZELLE_RATE_LIMIT_WINDOW_SECONDS if limit else 0.0
    pacing = _servers.setdefault(_server_key(base_url), _ServerPacing())
    async with pacing.lock:
        wait = pacing.delay(time.monotonic(), max(0.0, float(min_interval_seconds)), limit, window)
        if wait > 0:
            await asyncio.sleep(wait)
        pacing.record(time.monotonic(), limit, window)
        return wait


def _reset_rate_limits_for_tests() -> None:
    _servers.clear()
