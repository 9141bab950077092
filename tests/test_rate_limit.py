"""
Tests for the in-memory per-IP rate limiter.
"""

from taskvault.core.rate_limit import InMemoryRateLimiter


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class TestInMemoryRateLimiter:
    def test_allows_up_to_limit_then_blocks(self):
        limiter = InMemoryRateLimiter(max_requests=3, window_seconds=60, clock=FakeClock())

        decisions = [limiter.hit("10.0.0.1") for _ in range(4)]

        assert [d.allowed for d in decisions] == [True, True, True, False]
        assert [d.remaining for d in decisions] == [2, 1, 0, 0]

    def test_keys_are_independent(self):
        limiter = InMemoryRateLimiter(max_requests=1, window_seconds=60, clock=FakeClock())

        assert limiter.hit("10.0.0.1").allowed
        assert limiter.hit("10.0.0.2").allowed
        assert not limiter.hit("10.0.0.1").allowed

    def test_window_resets(self):
        clock = FakeClock()
        limiter = InMemoryRateLimiter(max_requests=1, window_seconds=60, clock=clock)

        limiter.hit("10.0.0.1")
        clock.now += 30
        blocked = limiter.hit("10.0.0.1")
        assert not blocked.allowed
        assert blocked.retry_after == 30

        clock.now += 30
        assert limiter.hit("10.0.0.1").allowed

    def test_expired_windows_are_pruned(self):
        clock = FakeClock()
        limiter = InMemoryRateLimiter(max_requests=1, window_seconds=60, clock=clock)
        limiter.PRUNE_THRESHOLD = 2

        limiter.hit("a")
        limiter.hit("b")
        clock.now += 61
        limiter.hit("c")

        assert set(limiter._entries) == {"c"}
