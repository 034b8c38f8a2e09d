"""Tests for the minimum-interval rate limiter."""

from mediagrab.jobs.rate_limit import RateLimiter


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_first_request_is_accepted() -> None:
    limiter = RateLimiter(30, clock=FakeClock())
    assert limiter.check_and_record("1.2.3.4")


def test_second_request_within_interval_is_rejected() -> None:
    clock = FakeClock()
    limiter = RateLimiter(30, clock=clock)
    assert limiter.check_and_record("client")
    clock.now += 29.9
    assert not limiter.check_and_record("client")


def test_request_after_interval_is_accepted() -> None:
    clock = FakeClock()
    limiter = RateLimiter(30, clock=clock)
    assert limiter.check_and_record("client")
    clock.now += 30
    assert limiter.check_and_record("client")


def test_rejection_does_not_refresh_timestamp() -> None:
    clock = FakeClock()
    limiter = RateLimiter(30, clock=clock)
    limiter.check_and_record("client")
    clock.now += 20
    assert not limiter.check_and_record("client")
    clock.now += 10
    # 30s after the accepted request, even though a rejection happened at 20s
    assert limiter.check_and_record("client")


def test_keys_are_independent() -> None:
    limiter = RateLimiter(30, clock=FakeClock())
    assert limiter.check_and_record("a")
    assert limiter.check_and_record("b")
    assert not limiter.check_and_record("a")


def test_retry_after() -> None:
    clock = FakeClock()
    limiter = RateLimiter(30, clock=clock)
    assert limiter.retry_after("client") == 0.0
    limiter.check_and_record("client")
    clock.now += 12
    assert limiter.retry_after("client") == 18
