import time
from dataclasses import dataclass
from threading import Lock
from typing import Callable, NamedTuple, Optional

from flask import request


class RateLimitConfig(NamedTuple):
    window_ms: int
    max_requests: int


@dataclass
class RateLimitEntry:
    key: str
    count: int
    window_start: float  # seconds, from the limiter's clock


def client_ip() -> str:
    forwarded = request.headers.get("X-Forwarded-For", "")
    first_hop = forwarded.split(",")[0].strip()
    return first_hop or request.headers.get("X-Real-IP") or request.remote_addr or "unknown"


class RateLimiter:
    """
    Fixed-window request counter keyed by client identifier.

    Windows do not slide: a caller can burst up to 2x max_requests across a
    window boundary. Good enough for throttling public forms.
    """

    def __init__(self, clock: Callable[[], float] = time.time, prune_interval: float = 300.0):
        self._clock = clock
        self._entries: dict[str, RateLimitEntry] = {}
        self._lock = Lock()
        self._prune_interval = prune_interval
        self._last_prune = clock()
        self._longest_window = 0.0

    def is_allowed(self, identifier: str, config: Optional[RateLimitConfig]) -> bool:
        if config is None:
            return True

        window = config.window_ms / 1000.0
        now = self._clock()

        with self._lock:
            self._longest_window = max(self._longest_window, window)
            if now - self._last_prune >= self._prune_interval:
                self._prune(now)

            entry = self._entries.get(identifier)
            if entry is None or now - entry.window_start >= window:
                self._entries[identifier] = RateLimitEntry(key=identifier, count=1, window_start=now)
                return True

            if entry.count < config.max_requests:
                entry.count += 1
                return True

            return False

    def reset(self, identifier: str) -> None:
        with self._lock:
            self._entries.pop(identifier, None)

    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    def _prune(self, now: float) -> None:
        # Caller holds self._lock. An entry older than every window seen so far
        # would be reset on its next hit anyway.
        stale = [
            key for key, entry in self._entries.items()
            if now - entry.window_start >= self._longest_window
        ]
        for key in stale:
            del self._entries[key]
        self._last_prune = now


def rate_config(value) -> Optional[RateLimitConfig]:
    """Build a RateLimitConfig from a (window_ms, max_requests) config value."""
    if value is None:
        return None
    if isinstance(value, RateLimitConfig):
        return value
    window_ms, max_requests = value
    return RateLimitConfig(window_ms=int(window_ms), max_requests=int(max_requests))
