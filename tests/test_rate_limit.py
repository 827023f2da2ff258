"""Tests for the shared minimum-interval rate limiter."""

import threading
import time

from osmduck.rate_limit import RateLimiter, get_rate_limiter


def test_first_acquire_does_not_wait(fake_clock):
    limiter = RateLimiter(2.0, clock=fake_clock.time, sleep=fake_clock.sleep)

    limiter.acquire()

    assert fake_clock.sleeps == []


def test_back_to_back_acquires_are_spaced(fake_clock):
    limiter = RateLimiter(2.0, clock=fake_clock.time, sleep=fake_clock.sleep)

    first = limiter.acquire()
    fake_clock.now += 0.5
    second = limiter.acquire()

    assert fake_clock.sleeps == [1.5]
    assert second - first == 2.0


def test_no_wait_once_interval_has_passed(fake_clock):
    limiter = RateLimiter(2.0, clock=fake_clock.time, sleep=fake_clock.sleep)

    limiter.acquire()
    fake_clock.now += 5.0
    limiter.acquire()

    assert fake_clock.sleeps == []


def test_concurrent_callers_are_serialized():
    limiter = RateLimiter(0.05)
    grants = []
    grants_lock = threading.Lock()

    def worker():
        granted = limiter.acquire()
        with grants_lock:
            grants.append(granted)

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    grants.sort()
    gaps = [b - a for a, b in zip(grants, grants[1:])]
    assert len(gaps) == 3
    assert all(gap >= 0.05 - 1e-3 for gap in gaps)


def test_get_rate_limiter_returns_one_instance_per_name():
    limiter = get_rate_limiter("test-service", 1.0)

    assert get_rate_limiter("test-service", 5.0) is limiter
    assert get_rate_limiter("other-test-service", 1.0) is not limiter
    assert limiter.min_interval == 1.0


def test_default_clock_is_monotonic():
    limiter = RateLimiter(0.0)

    assert limiter.acquire() <= time.monotonic()
