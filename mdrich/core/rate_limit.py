# mdrich/core/rate_limit.py
"""
Token-bucket rate limiter for outbound provider requests.

The bucket holds at most `requests_per_minute` tokens and starts full. A
background thread adds one token every 60 / requests_per_minute seconds
unless the bucket is already full; extra ticks are dropped, never banked.

acquire() blocks on a condition variable until a token is available. It
does not poll. Any number of threads may share one limiter.

Usage:
    with RateLimiter(requests_per_minute=10) as limiter:
        limiter.acquire()
        client.post(...)
"""

from __future__ import annotations

import threading
from typing import Optional

from mdrich.logging.logger import get_logger
from mdrich.logging.tags import RATE_LIMIT

logger = get_logger(__name__)

DEFAULT_REQUESTS_PER_MINUTE = 10


class RateLimiter:
    """
    Non-bursting token bucket with a fixed refill cadence.

    The refill thread is started on construction and stopped by close().
    It is a daemon thread, so a short-lived process that never calls close()
    still exits cleanly.
    """

    def __init__(self, requests_per_minute: int = DEFAULT_REQUESTS_PER_MINUTE) -> None:
        if requests_per_minute <= 0:
            raise ValueError(f"requests_per_minute must be positive, got {requests_per_minute}")

        self.capacity = requests_per_minute
        self.interval = 60.0 / requests_per_minute

        self._tokens = requests_per_minute
        self._cond = threading.Condition()
        self._stop = threading.Event()
        self._closed = False

        self._thread = threading.Thread(
            target=self._refill_loop,
            name="rate_limiter_refill",
            daemon=True,
        )
        self._thread.start()

        logger.debug(
            f"{RATE_LIMIT} Started: capacity={self.capacity}, interval={self.interval:.3f}s"
        )

    @property
    def available(self) -> int:
        """Tokens currently in the bucket."""
        with self._cond:
            return self._tokens

    @property
    def closed(self) -> bool:
        return self._closed

    def acquire(self, timeout: Optional[float] = None) -> bool:
        """
        Take one token, blocking until one is produced.

        Args:
            timeout: Maximum seconds to wait; None waits indefinitely

        Returns:
            True if a token was taken, False if the timeout expired

        Raises:
            RuntimeError: If the limiter is (or becomes) closed
        """
        with self._cond:
            if self._tokens == 0:
                logger.debug(f"{RATE_LIMIT} Bucket empty, waiting for refill")
            got = self._cond.wait_for(lambda: self._tokens > 0 or self._closed, timeout=timeout)
            if self._closed:
                raise RuntimeError("RateLimiter is closed")
            if not got:
                return False
            self._tokens -= 1
            return True

    def close(self) -> None:
        """Stop the refill thread and wake any waiters."""
        if self._closed:
            return
        self._stop.set()
        with self._cond:
            self._closed = True
            self._cond.notify_all()
        if threading.current_thread() is not self._thread:
            self._thread.join(timeout=self.interval + 1.0)
        logger.debug(f"{RATE_LIMIT} Stopped")

    def _refill_loop(self) -> None:
        # Event.wait doubles as the ticker and the shutdown signal
        while not self._stop.wait(self.interval):
            with self._cond:
                if self._tokens < self.capacity:
                    self._tokens += 1
                    self._cond.notify()

    def __enter__(self) -> "RateLimiter":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"RateLimiter(capacity={self.capacity}, interval={self.interval:.3f}s, "
            f"closed={self._closed})"
        )


__all__ = ["DEFAULT_REQUESTS_PER_MINUTE", "RateLimiter"]
