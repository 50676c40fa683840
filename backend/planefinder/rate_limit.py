"""
rate_limit.py
~~~~~~~~~~~~~
Per-client sliding-window request limits.

The window itself lives in a :mod:`limits` ``MemoryStorage`` driven by the
moving-window strategy: every admitted request records a timestamp, events
older than the window no longer count, and the storage expires stale keys on
its own timer.  :meth:`RateLimiter.is_limited` is a single
check-and-record call, so two concurrent handlers can never both squeeze
past the last free slot.

Reference policy (see :mod:`constants`):

    flight queries   20 / 60 s
    geocoding        30 / 60 s   (photo lookups share it)
    track history    10 / 60 s
"""

from __future__ import annotations

import logging
import math
import time

from limits import RateLimitItemPerSecond
from limits.storage import MemoryStorage
from limits.strategies import MovingWindowRateLimiter
from starlette.requests import Request

from .errors import RateLimitExceeded

LOG = logging.getLogger("rate_limit")


class RateLimiter:
    """Allow ``max_requests`` per ``window_seconds`` for each client id."""

    def __init__(
        self,
        name: str,
        max_requests: int,
        window_seconds: int,
        storage: MemoryStorage | None = None,
    ) -> None:
        self.name = name
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._item = RateLimitItemPerSecond(max_requests, window_seconds)
        self._storage = storage or MemoryStorage()
        self._strategy = MovingWindowRateLimiter(self._storage)

    def is_limited(self, client_id: str) -> bool:
        """True when *client_id* is over quota; otherwise records this request."""
        return not self._strategy.hit(self._item, self.name, client_id)

    def remaining(self, client_id: str) -> int:
        stats = self._strategy.get_window_stats(self._item, self.name, client_id)
        return max(0, int(stats[1]))

    def retry_after(self, client_id: str) -> int:
        """Whole seconds until the oldest counted request leaves the window."""
        reset_time = self._strategy.get_window_stats(self._item, self.name, client_id)[0]
        return max(1, math.ceil(reset_time - time.time()))

    def check(self, client_id: str) -> int:
        """
        Admit one request for *client_id* and return the quota left.

        Raises:
            RateLimitExceeded: the window is full; nothing was recorded.
        """
        if self.is_limited(client_id):
            retry = self.retry_after(client_id)
            LOG.info("[%s] %s limited, retry in %ss", self.name, client_id, retry)
            raise RateLimitExceeded(
                limit=self.max_requests, remaining=0, retry_after=retry
            )
        return self.remaining(client_id)

    def reset(self) -> None:
        self._storage.reset()


def client_identifier(request: Request) -> str:
    """
    Best guess at the caller's address.

    First hop of ``X-Forwarded-For``, then ``X-Real-IP``, then the socket
    peer, finally the literal ``"unknown"``.
    """
    forwarded = request.headers.get("x-forwarded-for", "")
    first = forwarded.split(",")[0].strip()
    if first:
        return first
    real_ip = request.headers.get("x-real-ip", "").strip()
    if real_ip:
        return real_ip
    if request.client and request.client.host:
        return request.client.host
    return "unknown"
