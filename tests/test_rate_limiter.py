"""
Unit tests for pipeline/rate_limiter.py -- token bucket.
"""

import threading
from unittest.mock import patch

import pytest

from pipeline.rate_limiter import AcquireInterrupted, TokenBucket


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now


class TestTokenBucket:
    def test_starts_full_and_grants_burst_immediately(self):
        bucket = TokenBucket(rate=10, burst=3, clock=FakeClock())
        with patch("pipeline.rate_limiter.time.sleep") as sleep:
            waits = [bucket.acquire() for _ in range(3)]
        assert waits == [0.0, 0.0, 0.0]
        sleep.assert_not_called()

    def test_waits_exactly_the_deficit(self):
        bucket = TokenBucket(rate=10, burst=2, clock=FakeClock())
        with patch("pipeline.rate_limiter.time.sleep") as sleep:
            bucket.acquire()
            bucket.acquire()
            w3 = bucket.acquire()
            w4 = bucket.acquire()
        assert w3 == pytest.approx(0.1)
        assert w4 == pytest.approx(0.2)
        assert sleep.call_count == 2

    def test_refill_is_capped_at_burst(self):
        clock = FakeClock()
        bucket = TokenBucket(rate=10, burst=2, clock=clock)
        bucket.acquire()
        clock.now = 1000.0
        assert bucket.available() == 2

    def test_refill_proportional_to_elapsed(self):
        clock = FakeClock()
        bucket = TokenBucket(rate=4, burst=4, clock=clock)
        for _ in range(4):
            assert bucket.try_acquire()
        assert not bucket.try_acquire()
        clock.now = 0.5
        assert bucket.available() == pytest.approx(2.0)

    def test_cancelled_wait_refunds_permit(self):
        bucket = TokenBucket(rate=1, burst=1, clock=FakeClock())
        bucket.acquire()
        assert bucket.available() == 0
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(AcquireInterrupted):
            bucket.acquire(cancel)
        assert bucket.available() == 0

    def test_wait_uses_cancel_event_when_given(self):
        bucket = TokenBucket(rate=5, burst=1, clock=FakeClock())
        bucket.acquire()
        cancel = threading.Event()
        with patch.object(cancel, "wait", return_value=False) as wait:
            waited = bucket.acquire(cancel)
        wait.assert_called_once()
        assert waited == pytest.approx(0.2)

    def test_invalid_parameters(self):
        with pytest.raises(ValueError):
            TokenBucket(rate=0, burst=1)
        with pytest.raises(ValueError):
            TokenBucket(rate=1, burst=0.5)
