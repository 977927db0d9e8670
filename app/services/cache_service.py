"""
Scenario cache.

Thin best-effort cache in front of read-heavy scenario lookups:
  - Work item list per scenario (``work_items:{scenario_id}``)
  - Manual invalidation after submit / review / send

Uses Redis when REDIS_URL points at a server, falls back to a per-instance
in-memory dict for development/testing.  The instance is created by the app
factory and lives in ``app.extensions["cache"]``:

    cache = current_app.extensions["cache"]
    data = cache.get_json(work_items_key(scenario_id))

Backend errors never reach the caller: they are logged at WARNING and
read as a miss.
"""

import json
import logging
import time

import redis

logger = logging.getLogger(__name__)

DEFAULT_TTL = 600
_BACKEND_ERRORS = (redis.RedisError, OSError)


# ── In-memory fallback ───────────────────────────────────────────────────


class _MemoryBackend:
    """Dict cache with expiry, for dev/testing."""

    def __init__(self):
        self._store: dict = {}  # key → (value, expire_ts)

    def get(self, key):
        entry = self._store.get(key)
        if entry is None:
            return None
        val, expires = entry
        if expires and time.time() > expires:
            self._store.pop(key, None)
            return None
        return val

    def setex(self, key, ttl_seconds, value):
        self._store[key] = (value, time.time() + ttl_seconds)

    def delete(self, *keys):
        for k in keys:
            self._store.pop(k, None)

    def flushdb(self):
        self._store.clear()

    def ping(self):
        return True

    def close(self):
        self._store.clear()


# ── Key builders ─────────────────────────────────────────────────────────


def work_items_key(scenario_id):
    return f"work_items:{scenario_id}"


# ── Cache client ─────────────────────────────────────────────────────────


class ScenarioCache:
    """Lazily connected cache client.

    Args:
        redis_url: ``redis://...`` for Redis; empty or ``memory://`` for the
            in-memory backend.
        ttl: Default expiry in seconds.
    """

    def __init__(self, redis_url=None, ttl=DEFAULT_TTL):
        self.redis_url = redis_url or ""
        self.ttl = int(ttl or DEFAULT_TTL)
        self._backend = None

    @classmethod
    def from_config(cls, config):
        return cls(config.get("REDIS_URL"), config.get("CACHE_TTL_SECONDS", DEFAULT_TTL))

    @property
    def backend_name(self):
        self.connect()
        return "memory" if isinstance(self._backend, _MemoryBackend) else "redis"

    def connect(self):
        """Pick the backend once; calling again is a no-op."""
        if self._backend is not None:
            return self._backend

        if self.redis_url and not self.redis_url.startswith("memory://"):
            try:
                client = redis.from_url(self.redis_url, decode_responses=True)
                client.ping()
                self._backend = client
                logger.info("Cache: using Redis at %s", self.redis_url.split("@")[-1])
            except _BACKEND_ERRORS as exc:
                logger.warning("Redis unavailable (%s), falling back to memory cache", exc)
                self._backend = _MemoryBackend()
        else:
            self._backend = _MemoryBackend()
        return self._backend

    def close(self):
        if self._backend is None:
            return
        try:
            self._backend.close()
        except _BACKEND_ERRORS as exc:
            logger.warning("Cache close failed: %s", exc)
        self._backend = None

    # ── Public API ───────────────────────────────────────────────────────

    def get_json(self, key):
        """Cached JSON value, or None on miss / backend error."""
        try:
            raw = self.connect().get(key)
        except _BACKEND_ERRORS as exc:
            logger.warning("Cache get failed for %s: %s", key, exc)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            return None

    def set_json(self, key, value, ttl=None):
        try:
            self.connect().setex(key, ttl or self.ttl, json.dumps(value, default=str))
        except _BACKEND_ERRORS as exc:
            logger.warning("Cache set failed for %s: %s", key, exc)

    def delete(self, *keys):
        if not keys:
            return
        try:
            self.connect().delete(*keys)
        except _BACKEND_ERRORS as exc:
            logger.warning("Cache delete failed for %s: %s", keys, exc)

    def invalidate_scenario(self, scenario_id):
        self.delete(work_items_key(scenario_id))
        logger.debug("Cache invalidated for scenario %s", scenario_id)

    def clear(self):
        try:
            self.connect().flushdb()
        except _BACKEND_ERRORS as exc:
            logger.warning("Cache clear failed: %s", exc)

    def health(self):
        """Return cache health info for /health."""
        try:
            ok = bool(self.connect().ping())
        except _BACKEND_ERRORS as exc:
            return {"status": "error", "backend": self.backend_name, "error": str(exc)}
        return {"status": "ok" if ok else "error", "backend": self.backend_name}
