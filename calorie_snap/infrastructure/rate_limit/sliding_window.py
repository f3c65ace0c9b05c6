"""
In-memory per-client rate limiter.

Keeps, per client identity, the timestamps of admitted requests inside a
trailing window. Entries are pruned lazily on every check and in bulk by
prune(), which the scheduler calls periodically so that idle clients do
not accumulate.

Single-process only: state is not shared between workers.
"""

from __future__ import annotations

import time
from threading import Lock
from typing import Callable, Dict, List

import structlog

logger = structlog.get_logger(__name__)

DEFAULT_MAX_REQUESTS = 10
DEFAULT_WINDOW_SECONDS = 60.0


class SlidingWindowRateLimiter:
    """
    Per-identity request cap over a trailing time window.

    Timestamp log with lazy pruning: a rejected request is not recorded, so
    a client hammering the endpoint regains access as soon as its oldest
    admitted request leaves the window.

    Example:
        >>> limiter = SlidingWindowRateLimiter()
        >>> limiter.check_rate_limit("203.0.113.7")
        True
    """

    def __init__(
        self,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize rate limiter.

        Args:
            max_requests: Default cap per window
            window_seconds: Default window length
            clock: Time source in seconds (injectable for tests)
        """
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        # Storage: identity -> admitted request timestamps, oldest first
        self._windows: Dict[str, List[float]] = {}
        # identity -> window length of its most recent check
        self._window_lengths: Dict[str, float] = {}
        # Guards both maps against the reaper job (runs in a worker thread)
        self._lock = Lock()

    def check_rate_limit(
        self,
        identity: str,
        max_requests: int | None = None,
        window_seconds: float | None = None,
    ) -> bool:
        """
        Admit or reject one request for identity.

        Args:
            identity: Client identity (rate-limit key)
            max_requests: Override of the default cap
            window_seconds: Override of the default window

        Returns:
            True if admitted (and recorded), False if over the cap
        """
        limit = self.max_requests if max_requests is None else max_requests
        window = self.window_seconds if window_seconds is None else window_seconds

        with self._lock:
            now = self._clock()
            window_start = now - window
            recent = [t for t in self._windows.get(identity, []) if t > window_start]
            self._windows[identity] = recent
            self._window_lengths[identity] = window

            if len(recent) >= limit:
                logger.info("rate_limit.rejected", identity=identity, count=len(recent))
                return False

            recent.append(now)
            return True

    def prune(self) -> int:
        """
        Drop expired timestamps; evict identities left with none.

        Each identity expires against the window of its own last check.

        Returns:
            Number of identities evicted
        """
        with self._lock:
            now = self._clock()
            evicted = 0
            for identity in list(self._windows):
                window = self._window_lengths.get(identity, self.window_seconds)
                recent = [t for t in self._windows[identity] if t > now - window]
                if recent:
                    self._windows[identity] = recent
                else:
                    del self._windows[identity]
                    self._window_lengths.pop(identity, None)
                    evicted += 1

        if evicted:
            logger.debug("rate_limit.pruned", evicted=evicted, active=len(self))
        return evicted

    def clear(self) -> None:
        """Forget every client (for testing)."""
        with self._lock:
            self._windows.clear()
            self._window_lengths.clear()

    def __len__(self) -> int:
        """Number of tracked identities."""
        with self._lock:
            return len(self._windows)

    def __contains__(self, identity: object) -> bool:
        with self._lock:
            return identity in self._windows
