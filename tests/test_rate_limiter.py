import asyncio
from types import SimpleNamespace

import pytest
import redis
from fastapi import HTTPException

from lastminute import rate_limiter


class FakePipeline:
    def __init__(self, server):
        self.server = server
        self.key = None

    def incr(self, key):
        self.key = key

    def ttl(self, key):
        pass

    def execute(self):
        store = self.server.store
        store[self.key] = store.get(self.key, 0) + 1
        return [store[self.key], self.server.ttls.get(self.key, -1)]


class FakeRedis:
    """Plain EXPIRE only, like a Redis 6 server"""

    def __init__(self):
        self.store = {}
        self.ttls = {}
        self.expire_calls = []

    def pipeline(self):
        return FakePipeline(self)

    def expire(self, key, seconds):
        self.expire_calls.append((key, seconds))
        self.ttls[key] = seconds


class DownRedis:
    def pipeline(self):
        raise redis.ConnectionError("connection refused")


def make_request(ip="203.0.113.7"):
    return SimpleNamespace(
        headers={"X-Forwarded-For": f"{ip}, 10.0.0.1"},
        client=SimpleNamespace(host="10.0.0.1"),
        state=SimpleNamespace(),
    )


@pytest.fixture
def enabled(monkeypatch):
    monkeypatch.setattr(rate_limiter, "RATE_LIMIT_ENABLED", True)


def test_limit_is_enforced_per_ip(monkeypatch, enabled):
    fake = FakeRedis()
    monkeypatch.setattr(rate_limiter, "get_redis_client", lambda: fake)
    limiter = rate_limiter.create_rate_limiter(limit=2, window_seconds=60, key_prefix="test")

    asyncio.run(limiter(make_request()))
    asyncio.run(limiter(make_request()))
    with pytest.raises(HTTPException) as exc:
        asyncio.run(limiter(make_request()))

    assert exc.value.status_code == 429
    assert exc.value.headers["Retry-After"] == "60"
    # Another client is unaffected
    asyncio.run(limiter(make_request("198.51.100.2")))
    assert fake.store == {"test:203.0.113.7": 3, "test:198.51.100.2": 1}


def test_redis_outage_fails_open(monkeypatch, enabled):
    monkeypatch.setattr(rate_limiter, "get_redis_client", lambda: DownRedis())
    limiter = rate_limiter.create_rate_limiter(limit=1, window_seconds=60)

    for _ in range(3):
        asyncio.run(limiter(make_request()))


def test_disabled_limiter_never_touches_redis(monkeypatch):
    monkeypatch.setattr(rate_limiter, "RATE_LIMIT_ENABLED", False)

    def unreachable():
        raise AssertionError("redis should not be used")

    monkeypatch.setattr(rate_limiter, "get_redis_client", unreachable)
    asyncio.run(rate_limiter.create_rate_limiter(limit=1, window_seconds=60)(make_request()))


def test_window_expiry_is_set_once_per_window(monkeypatch, enabled):
    fake = FakeRedis()
    monkeypatch.setattr(rate_limiter, "get_redis_client", lambda: fake)
    limiter = rate_limiter.create_rate_limiter(limit=5, window_seconds=60, key_prefix="test")

    for _ in range(3):
        asyncio.run(limiter(make_request()))

    assert fake.expire_calls == [("test:203.0.113.7", 60)]


def test_key_that_lost_its_ttl_gets_a_new_window():
    fake = FakeRedis()
    fake.store["test:203.0.113.7"] = 4

    allowed, count, ttl = rate_limiter.check_rate_limit("test:203.0.113.7", 10, 60, fake)

    assert (allowed, count, ttl) == (True, 5, 60)
    assert fake.expire_calls == [("test:203.0.113.7", 60)]
