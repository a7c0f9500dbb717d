"""
Unit Tests - Response Cache
"""
from backoffice.config.settings import DashboardSettings
from backoffice.serving.api.routes.dashboard import get_dashboard_cache
from backoffice.serving.cache import CacheManager


class InMemoryRedis:
    """Subset of the redis client used by CacheManager"""

    def __init__(self):
        self.data = {}
        self.ttls = {}

    async def get(self, key):
        return self.data.get(key)

    async def setex(self, key, ttl, value):
        self.data[key] = value
        self.ttls[key] = ttl


class TestCacheManager:
    """Tests for CacheManager"""

    async def test_get_or_set_computes_once(self):
        redis = InMemoryRedis()
        cache = CacheManager("dashboard", default_ttl=30, client=redis)
        calls = []

        async def factory():
            calls.append(1)
            return {"kpis": {"totalRevenue": 100}}

        first = await cache.get_or_set("month", factory)
        second = await cache.get_or_set("month", factory)

        assert first == second == {"kpis": {"totalRevenue": 100}}
        assert len(calls) == 1
        assert redis.ttls == {"dashboard:month": 30}

    async def test_undecodable_entry_is_a_miss(self):
        redis = InMemoryRedis()
        redis.data["dashboard:week"] = "{not json"
        cache = CacheManager("dashboard", client=redis)

        assert await cache.get("week") is None


class TestDashboardCacheDependency:
    """Caching is off unless a TTL is configured"""

    def test_disabled_by_default(self, test_settings):
        assert test_settings.dashboard.cache_enabled is False
        assert get_dashboard_cache(test_settings) is None

    def test_enabled_without_redis_falls_back(self, test_settings):
        test_settings.dashboard = DashboardSettings(cache_ttl_seconds=60)
        assert get_dashboard_cache(test_settings) is None
