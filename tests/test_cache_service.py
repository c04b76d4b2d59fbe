import fnmatch

import pytest
import redis

from footballzone.services.cache_service import CacheService


class FakeRedis:
    def __init__(self):
        self.store = {}
        self.ttls = {}

    def get(self, key):
        return self.store.get(key)

    def setex(self, key, ttl, value):
        self.store[key] = value
        self.ttls[key] = ttl

    def delete(self, *keys):
        for key in keys:
            self.store.pop(key, None)

    def scan_iter(self, match="*", count=None):
        return [k for k in list(self.store) if fnmatch.fnmatch(k, match)]

    def ping(self):
        return True


class BrokenRedis:
    def __getattr__(self, name):
        def _fail(*args, **kwargs):
            raise redis.ConnectionError("connection refused")
        return _fail


@pytest.fixture()
def cache():
    service = CacheService("redis://unused:6379/0", enabled=True)
    service._client = FakeRedis()
    return service


def test_json_round_trip_keeps_cyrillic(cache):
    cache.set_json("article:taktika", {"title": "Тактика"}, ttl_seconds=60)
    assert cache.get_json("article:taktika") == {"title": "Тактика"}
    assert "Тактика" in cache.client.store["article:taktika"]
    assert cache.client.ttls["article:taktika"] == 60


def test_invalidate_pattern_only_drops_matching_keys(cache):
    cache.set("articles:a", "1")
    cache.set("articles:b", "2")
    cache.set("search:a", "3")
    cache.invalidate_pattern("articles:*")
    assert cache.get("articles:a") is None
    assert cache.get("articles:b") is None
    assert cache.get("search:a") == "3"


def test_failures_are_misses():
    service = CacheService("redis://unused:6379/0", enabled=True)
    service._client = BrokenRedis()
    assert service.get_json("articles:x") is None
    service.set_json("articles:x", {"a": 1})
    service.invalidate_pattern("articles:*")
    service.delete("articles:x")
    assert service.health_check() is False


def test_disabled_cache_is_a_no_op():
    service = CacheService("redis://unused:6379/0", enabled=False)
    service._client = FakeRedis()
    service.set_json("articles:x", {"a": 1})
    assert service.client.store == {}
    assert service.get_json("articles:x") is None
    assert service.health_check() is False
