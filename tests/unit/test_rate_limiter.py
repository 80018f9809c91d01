import threading

from security.rate_limit import RateLimitConfig, RateLimiter, rate_config

MINUTE = RateLimitConfig(window_ms=60_000, max_requests=5)


def test_allows_budget_then_rejects(clock) -> None:
    limiter = RateLimiter(clock=clock)

    results = [limiter.is_allowed("1.2.3.4", MINUTE) for _ in range(5)]
    assert results == [True] * 5
    assert limiter.is_allowed("1.2.3.4", MINUTE) is False


def test_window_reset_after_window_elapses(clock) -> None:
    limiter = RateLimiter(clock=clock)

    for _ in range(5):
        limiter.is_allowed("ip", MINUTE)
    for _ in range(20):
        assert limiter.is_allowed("ip", MINUTE) is False

    clock.advance(60)
    assert limiter.is_allowed("ip", MINUTE) is True


def test_window_still_closed_just_before_boundary(clock) -> None:
    limiter = RateLimiter(clock=clock)
    for _ in range(5):
        limiter.is_allowed("ip", MINUTE)

    clock.advance(59.999)
    assert limiter.is_allowed("ip", MINUTE) is False


def test_identifiers_are_independent(clock) -> None:
    limiter = RateLimiter(clock=clock)
    for _ in range(5):
        limiter.is_allowed("a", MINUTE)

    assert limiter.is_allowed("a", MINUTE) is False
    assert limiter.is_allowed("b", MINUTE) is True


def test_no_config_means_no_throttling(clock) -> None:
    limiter = RateLimiter(clock=clock)
    assert all(limiter.is_allowed("ip", None) for _ in range(100))


def test_reset_clears_entry(clock) -> None:
    limiter = RateLimiter(clock=clock)
    for _ in range(5):
        limiter.is_allowed("ip", MINUTE)

    limiter.reset("ip")
    assert limiter.is_allowed("ip", MINUTE) is True


def test_stale_entries_are_pruned(clock) -> None:
    limiter = RateLimiter(clock=clock, prune_interval=300)
    limiter.is_allowed("old", MINUTE)
    assert limiter.size() == 1

    clock.advance(301)
    limiter.is_allowed("new", MINUTE)
    assert limiter.size() == 1


def test_rate_config_from_tuple() -> None:
    assert rate_config((600_000, 5)) == RateLimitConfig(window_ms=600_000, max_requests=5)
    assert rate_config(None) is None


def test_concurrent_hits_never_exceed_budget(clock) -> None:
    limiter = RateLimiter(clock=clock)
    start = threading.Barrier(50)
    results = []
    results_lock = threading.Lock()

    def hit() -> None:
        start.wait()
        allowed = limiter.is_allowed("shared", MINUTE)
        with results_lock:
            results.append(allowed)

    threads = [threading.Thread(target=hit) for _ in range(50)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(results) == 50
    assert results.count(True) == 5


def test_limiter_is_truthy_when_empty(clock) -> None:
    limiter = RateLimiter(clock=clock)
    assert limiter.size() == 0
    assert bool(limiter) is True
