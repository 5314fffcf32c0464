from zoneWalk.resolver import RateLimiter


class FakeClock:
    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms / 1000.0


def test_admits_until_budget_spent():
    clock = FakeClock()
    limiter = RateLimiter(max_queries=3, window_ms=1000, clock=clock)
    for _ in range(3):
        assert limiter.admit()
        limiter.record()
    assert not limiter.admit()
    assert limiter.remaining() == 0


def test_window_slides_past_oldest_timestamp():
    clock = FakeClock()
    limiter = RateLimiter(max_queries=2, window_ms=1000, clock=clock)
    limiter.record()
    clock.advance(400)
    limiter.record()
    assert not limiter.admit()
    assert limiter.reset_delay_ms() == 600

    clock.advance(600)
    assert limiter.admit()
    assert limiter.remaining() == 1


def test_reset_delay_is_zero_when_empty():
    limiter = RateLimiter(max_queries=1, window_ms=1000, clock=FakeClock())
    assert limiter.reset_delay_ms() == 0


def test_reset_forgets_queries():
    limiter = RateLimiter(max_queries=1, window_ms=60_000, clock=FakeClock())
    limiter.record()
    assert not limiter.admit()
    limiter.reset()
    assert limiter.admit()


def test_stats():
    clock = FakeClock()
    limiter = RateLimiter(max_queries=5, window_ms=1000, clock=clock)
    limiter.record()
    stats = limiter.get_stats()
    assert stats["max_queries"] == 5
    assert stats["remaining"] == 4
    assert stats["reset_delay_ms"] == 1000
