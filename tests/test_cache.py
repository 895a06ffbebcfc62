"""
Tests for the in-process analytics cache.
"""
import asyncio
import time
from datetime import date

from fastapi.testclient import TestClient

from app.core.config import settings
from app.main import app
from app.models.enums import AnalyticsScope
from app.services.cache import AnalyticsCache, make_key, run_periodic_cleanup


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestMakeKey:
    def test_param_order_does_not_matter(self):
        a = make_key("pulse", "org-1", {"scope": AnalyticsScope.team, "from": date(2025, 3, 1)})
        b = make_key("pulse", "org-1", {"from": date(2025, 3, 1), "scope": AnalyticsScope.team})
        assert a == b
        assert a.startswith("pulse:org-1:")

    def test_any_param_change_is_a_different_key(self):
        a = make_key("pulse", "org-1", {"scope": "team", "id": "t1"})
        b = make_key("pulse", "org-1", {"scope": "team", "id": "t2"})
        c = make_key("overview", "org-1", {"scope": "team", "id": "t1"})
        assert len({a, b, c}) == 3


class TestAnalyticsCache:
    def test_hit_until_expiry(self):
        clock = FakeClock()
        cache = AnalyticsCache(default_ttl=300, clock=clock)
        cache.set("k", [1, 2])
        clock.now += 299
        assert cache.get("k") == [1, 2]
        clock.now += 1
        assert cache.get("k") is None
        assert len(cache) == 0

    def test_explicit_ttl(self):
        clock = FakeClock()
        cache = AnalyticsCache(default_ttl=300, clock=clock)
        cache.set("k", "v", ttl=1800)
        clock.now += 1000
        assert cache.get("k") == "v"

    def test_cleanup_drops_only_expired(self):
        clock = FakeClock()
        cache = AnalyticsCache(default_ttl=10, clock=clock)
        cache.set("old", 1)
        cache.set("new", 2, ttl=100)
        clock.now += 50
        assert cache.cleanup() == 1
        assert cache.get("new") == 2

    def test_invalidate_organization(self):
        cache = AnalyticsCache()
        cache.set(make_key("pulse", "org-1", {}), 1)
        cache.set(make_key("overview", "org-1", {"x": 1}), 2)
        cache.set(make_key("pulse", "org-2", {}), 3)
        assert cache.invalidate_organization("org-1") == 2
        assert len(cache) == 1
        assert cache.get(make_key("pulse", "org-2", {})) == 3

    def test_clear(self):
        cache = AnalyticsCache()
        cache.set("a", 1)
        cache.clear()
        assert len(cache) == 0


class TestPeriodicCleanup:
    def test_expired_entries_evicted_without_reads(self):
        clock = FakeClock()
        cache = AnalyticsCache(default_ttl=10, clock=clock)
        for day in range(1, 6):
            cache.set(make_key("overview", "org-1", {"from": date(2025, 3, day)}), day)
        cache.set("fresh", 0, ttl=1000)
        clock.now += 50

        async def go():
            task = asyncio.ensure_future(run_periodic_cleanup(cache, 0.01))
            await asyncio.sleep(0.05)
            task.cancel()

        asyncio.run(go())
        assert len(cache) == 1
        assert cache.get("fresh") == 0

    def test_app_lifespan_runs_cleanup(self, monkeypatch):
        clock = FakeClock()
        cache = AnalyticsCache(default_ttl=10, clock=clock)
        monkeypatch.setattr(app.state, "analytics_cache", cache)
        monkeypatch.setattr(settings, "ANALYTICS_CACHE_CLEANUP_SECONDS", 0.01)

        with TestClient(app):
            cache.set("a", 1)
            cache.set("b", 2)
            clock.now += 50
            deadline = time.monotonic() + 2
            while len(cache) and time.monotonic() < deadline:
                time.sleep(0.02)
            assert len(cache) == 0
