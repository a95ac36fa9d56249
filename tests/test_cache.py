from __future__ import annotations

import asyncio
import threading

import pytest

from src.ops_metrics.errors import DataSourceError
from src.ops_metrics.services.cache import METRICS_CACHE_KEY, TTLCache


def test_get_returns_none_until_set_and_respects_ttl(clock):
    cache = TTLCache(300, clock=clock)
    assert cache.get(METRICS_CACHE_KEY) is None

    cache.set(METRICS_CACHE_KEY, {"v": 1})
    assert cache.get(METRICS_CACHE_KEY) == {"v": 1}

    clock.advance(minutes=4, seconds=59)
    assert cache.get(METRICS_CACHE_KEY) == {"v": 1}

    # Fresh only while strictly younger than the TTL.
    clock.advance(seconds=1)
    assert cache.get(METRICS_CACHE_KEY) is None
    # Stale entries are not evicted, only ignored.
    assert cache.entry(METRICS_CACHE_KEY) is not None


def test_set_replaces_entry_and_clear_drops_everything(clock):
    cache = TTLCache(300, clock=clock)
    cache.set("dashboard_metrics", "old")
    clock.advance(minutes=3)
    cache.set("dashboard_metrics", "new")
    cache.set("dashboard_alerts", [])

    clock.advance(minutes=3)
    # Replaced entry carries the newer timestamp.
    assert cache.get("dashboard_metrics") == "new"

    cache.clear()
    assert cache.get("dashboard_metrics") is None
    assert cache.get("dashboard_alerts") is None


@pytest.mark.anyio
async def test_empty_value_counts_as_a_hit(clock):
    cache = TTLCache(300, clock=clock)
    calls = 0

    async def factory():
        nonlocal calls
        calls += 1
        return []

    assert await cache.get_or_compute("dashboard_alerts", factory) == []
    assert await cache.get_or_compute("dashboard_alerts", factory) == []
    assert calls == 1


@pytest.mark.anyio
async def test_concurrent_misses_share_one_computation(clock):
    cache = TTLCache(300, clock=clock)
    calls = 0

    async def slow_factory():
        nonlocal calls
        calls += 1
        await asyncio.sleep(0.05)
        return object()

    results = await asyncio.gather(*(cache.get_or_compute("k", slow_factory) for _ in range(5)))
    assert calls == 1
    assert all(r is results[0] for r in results)


@pytest.mark.anyio
async def test_failed_computation_reaches_all_waiters_and_is_not_cached(clock):
    cache = TTLCache(300, clock=clock)
    boom = DataSourceError("down")

    async def failing():
        await asyncio.sleep(0.01)
        raise boom

    results = await asyncio.gather(
        cache.get_or_compute("k", failing),
        cache.get_or_compute("k", failing),
        return_exceptions=True,
    )
    assert results == [boom, boom]
    assert cache.entry("k") is None

    async def ok():
        return 42

    assert await cache.get_or_compute("k", ok) == 42


@pytest.mark.anyio
async def test_cancelled_waiter_does_not_cancel_shared_computation(clock):
    cache = TTLCache(300, clock=clock)
    release = asyncio.Event()

    async def factory():
        await release.wait()
        return "done"

    first = asyncio.ensure_future(cache.get_or_compute("k", factory))
    second = asyncio.ensure_future(cache.get_or_compute("k", factory))
    await asyncio.sleep(0)

    first.cancel()
    await asyncio.sleep(0)
    release.set()

    assert await second == "done"
    assert first.cancelled()
    assert cache.get("k") == "done"


def test_callers_on_separate_event_loops_do_not_share_in_flight_work():
    cache = TTLCache(300)
    started = threading.Event()
    results, errors = {}, []

    async def slow_value(name: str) -> str:
        started.set()
        await asyncio.sleep(0.2)
        return name

    def worker(name: str) -> None:
        try:
            results[name] = asyncio.run(cache.get_or_compute("k", lambda: slow_value(name)))
        except Exception as exc:  # collected for the assertion below
            errors.append(exc)

    first = threading.Thread(target=worker, args=("first",))
    first.start()
    assert started.wait(timeout=5)
    # The first loop's computation is still in flight while the second loop misses.
    second = threading.Thread(target=worker, args=("second",))
    second.start()
    first.join(timeout=5)
    second.join(timeout=5)

    assert errors == []
    assert results["first"] == "first"
    assert results["second"] in ("first", "second")
    assert cache.get("k") in ("first", "second")
