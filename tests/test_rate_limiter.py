import threading
import time

from tuning_lab.modules.throttle.rate_limiter import InMemoryRateLimitStore, RateLimiter


class FakeClock:
    def __init__(self, now: int = 1_000_000):
        self.now = now

    def __call__(self) -> int:
        return self.now


def test_second_call_inside_cooldown_is_limited():
    limiter = RateLimiter(cooldown_ms=50, retention_ms=60000, prune_threshold=100)
    assert limiter.allow("10.0.0.1")
    assert not limiter.allow("10.0.0.1")
    time.sleep(0.06)
    assert limiter.allow("10.0.0.1")


def test_keys_are_independent():
    clock = FakeClock()
    limiter = RateLimiter(cooldown_ms=1000, clock=clock)
    assert limiter.allow("a")
    assert limiter.allow("b")
    assert not limiter.allow("a")


def test_limited_call_does_not_extend_cooldown():
    clock = FakeClock()
    limiter = RateLimiter(cooldown_ms=1000, clock=clock)
    assert limiter.allow("a")
    clock.now += 900
    assert not limiter.allow("a")
    clock.now += 100
    assert limiter.allow("a")


def test_stale_entries_are_pruned_past_threshold():
    clock = FakeClock()
    store = InMemoryRateLimitStore()
    limiter = RateLimiter(cooldown_ms=1000, retention_ms=60000, prune_threshold=3, store=store, clock=clock)

    for key in ("a", "b", "c"):
        assert limiter.allow(key)
    assert len(store) == 3

    clock.now += 61000
    assert limiter.allow("d")
    # a/b/c 已过期被清掉，只剩新写入的 d
    assert len(store) == 1
    assert store.get("d") == clock.now


def test_no_pruning_below_threshold():
    clock = FakeClock()
    limiter = RateLimiter(cooldown_ms=1000, retention_ms=10, prune_threshold=100, clock=clock)
    limiter.allow("a")
    clock.now += 5000
    limiter.allow("b")
    assert len(limiter) == 2


def test_concurrent_calls_admit_exactly_one():
    limiter = RateLimiter(cooldown_ms=10_000, clock=FakeClock())
    results = []
    barrier = threading.Barrier(16)

    def worker():
        barrier.wait()
        results.append(limiter.allow("same-client"))

    threads = [threading.Thread(target=worker) for _ in range(16)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results.count(True) == 1
    assert results.count(False) == 15
