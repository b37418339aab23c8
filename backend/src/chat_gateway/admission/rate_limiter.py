"""Per-client fixed-window rate limiter.

Each key holds a request count and the start of its current window. The
window restarts on the first request made after it has expired, so bursts
straddling a window boundary can reach twice the nominal rate.
"""

import math
import threading
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass

from chat_gateway.core.logging import get_logger

logger = get_logger(__name__)


def client_identifier(
    user_id: str | None,
    guest_id: str | None,
    remote_addr: str | None,
) -> str:
    """Build the rate-limit key: user id, then guest id, then address."""
    if user_id:
        return f"user:{user_id}"
    if guest_id:
        return f"guest:{guest_id}"
    if remote_addr:
        return f"ip:{remote_addr}"
    return "anonymous"


@dataclass
class RateLimitEntry:
    """Request count for one key within its current window."""

    count: int
    window_start: float


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of recording one request against a key."""

    allowed: bool
    count: int
    retry_after: int = 0


class BaseRateLimiter(ABC):
    """Interface for rate limiters injected into the admission controller."""

    @abstractmethod
    def hit(self, key: str) -> RateLimitDecision:
        """Record one request for ``key`` and decide whether it is allowed."""


class InMemoryRateLimiter(BaseRateLimiter):
    """Process-local limiter with a bounded key table.

    All reads and writes of the table happen under one lock so concurrent
    bursts from the same key cannot undercount. When the table is full,
    expired windows are dropped first, then the least recently used keys.
    """

    def __init__(
        self,
        max_requests: int = 20,
        window_seconds: float = 60,
        max_keys: int = 10_000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_keys < 1:
            raise ValueError("max_keys must be at least 1")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.max_keys = max_keys
        self._clock = clock
        self._entries: OrderedDict[str, RateLimitEntry] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def hit(self, key: str) -> RateLimitDecision:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or now - entry.window_start > self.window_seconds:
                if entry is None:
                    self._make_room(now)
                self._entries[key] = RateLimitEntry(count=1, window_start=now)
                self._entries.move_to_end(key)
                return RateLimitDecision(allowed=True, count=1)

            entry.count += 1
            self._entries.move_to_end(key)
            if entry.count > self.max_requests:
                remaining = entry.window_start + self.window_seconds - now
                return RateLimitDecision(
                    allowed=False,
                    count=entry.count,
                    retry_after=max(1, math.ceil(remaining)),
                )
            return RateLimitDecision(allowed=True, count=entry.count)

    def _make_room(self, now: float) -> None:
        """Ensure one free slot. Caller must hold the lock."""
        if len(self._entries) < self.max_keys:
            return

        expired = [
            key
            for key, entry in self._entries.items()
            if now - entry.window_start > self.window_seconds
        ]
        for key in expired:
            del self._entries[key]

        while len(self._entries) >= self.max_keys:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("rate_limit_key_evicted", key=evicted)
