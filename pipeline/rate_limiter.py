"""
Token-bucket rate limiter shared by concurrent worker threads.

Permits refill continuously at `rate` per second up to `burst`. acquire()
reserves a permit under the lock, then sleeps outside it for exactly the
deficit, so waiters queue in arrival order and nobody spins.

Two independent buckets run in the pipeline: one gates market-processing
units in the ingestor, the other gates raw HTTP requests in HttpClient.
A market unit costs two book requests, so the two rates are not reconciled.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable

logger = logging.getLogger(__name__)


class AcquireInterrupted(Exception):
    """Raised when a blocked acquire() is cancelled. Only the waiting task aborts."""
    pass


class TokenBucket:
    """
    Thread-safe token bucket.

    Example (10 permits/sec, burst 20):
      - 20 acquires return immediately
      - the 21st sleeps 0.1s, the 22nd 0.2s, and so on
    """

    def __init__(
        self,
        rate: float,
        burst: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        if rate <= 0:
            raise ValueError(f"rate must be positive, got {rate}")
        if burst < 1:
            raise ValueError(f"burst must be >= 1, got {burst}")
        self.rate = rate
        self.burst = burst
        self._clock = clock
        self._tokens = burst  # start full
        self._last = clock()
        self._lock = threading.Lock()

    def _refill_unlocked(self) -> None:
        """Add rate * elapsed tokens, capped at burst. Caller must hold lock."""
        now = self._clock()
        elapsed = max(0.0, now - self._last)
        self._tokens = min(self.burst, self._tokens + elapsed * self.rate)
        self._last = now

    def acquire(self, cancel_event: threading.Event | None = None) -> float:
        """
        Take one permit, blocking the calling thread until it is available.
        Returns the seconds waited.

        Raises:
            AcquireInterrupted: cancel_event was set while waiting. The
                reserved permit is handed back.
        """
        with self._lock:
            self._refill_unlocked()
            self._tokens -= 1.0
            deficit = -self._tokens
        if deficit <= 0:
            return 0.0

        wait = deficit / self.rate
        if cancel_event is None:
            time.sleep(wait)
            return wait

        if cancel_event.wait(wait):
            with self._lock:
                self._refill_unlocked()
                self._tokens = min(self.burst, self._tokens + 1.0)
            raise AcquireInterrupted("rate limiter wait cancelled")
        return wait

    def try_acquire(self) -> bool:
        """Take one permit if immediately available. Never blocks."""
        with self._lock:
            self._refill_unlocked()
            if self._tokens >= 1.0:
                self._tokens -= 1.0
                return True
            return False

    def available(self) -> float:
        """Current permit count (negative while waiters hold reservations)."""
        with self._lock:
            self._refill_unlocked()
            return self._tokens
