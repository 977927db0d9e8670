"""
Tests — health endpoints and request timing headers.
"""

import redis

from app.services.cache_service import ScenarioCache


class _DownRedis:
    def _fail(self, *args, **kwargs):
        raise redis.ConnectionError("connection refused")

    get = setex = delete = flushdb = ping = close = _fail


def test_ready(client):
    res = client.get("/api/v1/health/ready")
    assert res.status_code == 200
    assert res.get_json() == {"status": "ok"}


def test_live_reports_database_and_cache(client):
    res = client.get("/api/v1/health")
    assert res.status_code == 200
    data = res.get_json()
    assert data["status"] == "healthy"
    assert data["checks"]["database"]["status"] == "ok"
    assert data["checks"]["cache"] == {"status": "ok", "backend": "memory"}
    assert data["checks"]["app"]["testing"] is True


def test_cache_failure_does_not_fail_health(app, client, monkeypatch):
    cache = ScenarioCache("redis://cache.invalid:6379/0")
    cache._backend = _DownRedis()
    monkeypatch.setitem(app.extensions, "cache", cache)

    res = client.get("/api/v1/health")
    assert res.status_code == 200
    checks = res.get_json()["checks"]
    assert checks["cache"]["status"] == "error"
    assert checks["database"]["status"] == "ok"


def test_request_id_is_echoed(client):
    res = client.get("/api/v1/health/ready", headers={"X-Request-ID": "abc123"})
    assert res.headers["X-Request-ID"] == "abc123"
    assert "X-Request-Duration-Ms" in res.headers


def test_request_id_is_generated(client):
    res = client.get("/api/v1/health/ready")
    assert len(res.headers["X-Request-ID"]) == 12
