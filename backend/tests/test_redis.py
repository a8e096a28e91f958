"""
Redis缓存辅助函数测试（以内存假客户端替换连接）
"""

from redis.exceptions import ConnectionError as RedisConnectionError

from app.core import redis as cache


class FakeRedis:
    def __init__(self, fail=False):
        self.store = {}
        self.fail = fail

    async def delete(self, key):
        if self.fail:
            raise RedisConnectionError("connection reset")
        return 1 if self.store.pop(key, None) is not None else 0


def _use(monkeypatch, client):
    async def fake_get_redis():
        return client

    monkeypatch.setattr(cache, "get_redis", fake_get_redis)


def test_cache_key_sorts_keyword_parts():
    assert cache.cache_key("tbo", "search", city="RUH", adults=2) == "trippat:tbo:search:adults:2:city:RUH"


async def test_delete_cache_disabled_is_noop():
    assert await cache.delete_cache("trippat:tbo:countries") is False


async def test_delete_cache_removes_key(monkeypatch):
    client = FakeRedis()
    client.store["trippat:tbo:countries"] = "[]"
    _use(monkeypatch, client)

    assert await cache.delete_cache("trippat:tbo:countries") is True
    assert await cache.delete_cache("trippat:tbo:countries") is False


async def test_delete_cache_returns_false_on_connection_error(monkeypatch):
    _use(monkeypatch, FakeRedis(fail=True))
    assert await cache.delete_cache("trippat:tbo:countries") is False
