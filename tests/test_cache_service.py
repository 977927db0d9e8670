"""
Tests for ScenarioCache: memory backend, Redis fallback and error swallowing.
"""

import redis

from app.services import cache_service
from app.services.cache_service import ScenarioCache, work_items_key


class _BrokenBackend:
    """Backend whose every call fails like an unreachable Redis."""

    def _fail(self, *args, **kwargs):
        raise redis.ConnectionError("connection refused")

    get = setex = delete = flushdb = ping = close = _fail


class TestMemoryCache:
    def test_roundtrip_and_delete(self):
        cache = ScenarioCache()
        cache.set_json("k", {"items": [1, 2]})
        assert cache.get_json("k") == {"items": [1, 2]}
        cache.delete("k")
        assert cache.get_json("k") is None
        assert cache.backend_name == "memory"

    def test_expired_entry_is_a_miss(self, monkeypatch):
        cache = ScenarioCache(ttl=10)
        now = [1000.0]
        monkeypatch.setattr(cache_service.time, "time", lambda: now[0])
        cache.set_json("k", 1)
        now[0] += 11
        assert cache.get_json("k") is None

    def test_instances_do_not_share_state(self):
        a, b = ScenarioCache("memory://"), ScenarioCache("memory://")
        a.set_json("k", 1)
        assert b.get_json("k") is None

    def test_invalidate_scenario(self):
        cache = ScenarioCache()
        cache.set_json(work_items_key(7), [])
        cache.set_json(work_items_key(8), [])
        cache.invalidate_scenario(7)
        assert cache.get_json("work_items:7") is None
        assert cache.get_json("work_items:8") == []

    def test_non_json_value_is_a_miss(self):
        cache = ScenarioCache()
        cache.connect().setex("raw", 60, "{not json")
        assert cache.get_json("raw") is None

    def test_from_config(self):
        cache = ScenarioCache.from_config({"REDIS_URL": "memory://", "CACHE_TTL_SECONDS": 30})
        assert cache.ttl == 30
        assert cache.health() == {"status": "ok", "backend": "memory"}


class TestRedisFallback:
    def test_unreachable_redis_falls_back_to_memory(self, monkeypatch):
        monkeypatch.setattr(cache_service.redis, "from_url", lambda *a, **kw: _BrokenBackend())
        cache = ScenarioCache("redis://cache.invalid:6379/0")
        assert cache.backend_name == "memory"
        cache.set_json("k", 1)
        assert cache.get_json("k") == 1

    def test_backend_errors_are_swallowed(self):
        cache = ScenarioCache("redis://cache.invalid:6379/0")
        cache._backend = _BrokenBackend()
        cache.set_json("k", 1)
        assert cache.get_json("k") is None
        cache.delete("k")
        cache.clear()
        health = cache.health()
        assert health["status"] == "error"
        assert health["backend"] == "redis"
        assert "connection refused" in health["error"]

    def test_close_resets_backend(self):
        cache = ScenarioCache()
        cache.connect()
        cache.close()
        assert cache._backend is None
