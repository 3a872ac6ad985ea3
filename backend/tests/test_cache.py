"""
Tests for the coach usage cache, using an in-memory stand-in for the Redis client.
"""

import fnmatch

import pytest

from coursebook.services import cache_service
from coursebook.services.admission_service import book_course
from coursebook.services.usage_service import coach_usage


class FakeRedis:
    def __init__(self):
        self.store = {}

    async def get(self, key):
        return self.store.get(key)

    async def setex(self, key, ttl, value):
        self.store[key] = value

    async def delete(self, key):
        self.store.pop(key, None)

    async def scan_iter(self, match="*", count=None):
        for key in list(self.store):
            if fnmatch.fnmatch(key, match):
                yield key

    async def info(self, section=None):
        return {"keyspace_hits": 3, "keyspace_misses": 1}

    async def aclose(self):
        pass


@pytest.fixture
def fake_redis(monkeypatch):
    fake = FakeRedis()
    monkeypatch.setattr(cache_service.settings, "REDIS_ENABLED", True)
    monkeypatch.setattr(cache_service, "_redis_client", fake)
    return fake


def test_usage_key():
    assert cache_service.make_usage_key(7, "2026-03") == "usage:coach:7:month=2026-03"
    assert cache_service.make_usage_key(7, None) == "usage:coach:7:month=all"


@pytest.mark.asyncio
async def test_cache_disabled_is_a_miss():
    assert await cache_service.get_cached_usage(1, None) is None
    assert await cache_service.get_cache_stats() == {"status": "disabled"}


@pytest.mark.asyncio
async def test_usage_report_is_cached(db_session, fake_redis, make_user, make_course, coach):
    course = await make_course()
    user = await make_user(credits=1)
    await book_course(db_session, user.id, course.id)

    first = await coach_usage(db_session, coach.id)
    second = await coach_usage(db_session, coach.id)

    assert first["cached"] is False
    assert second["cached"] is True
    assert second["course_bookings"] == first["course_bookings"] == 1
    assert cache_service.make_usage_key(coach.id, None) in fake_redis.store


@pytest.mark.asyncio
async def test_invalidation_drops_only_usage_keys(fake_redis):
    fake_redis.store["usage:coach:1:month=all"] = "{}"
    fake_redis.store["usage:coach:2:month=2026-01"] = "{}"
    fake_redis.store["unrelated"] = "keep"

    await cache_service.invalidate_usage_cache()

    assert fake_redis.store == {"unrelated": "keep"}


@pytest.mark.asyncio
async def test_booking_endpoint_invalidates_reports(client, fake_redis, auth_headers, test_course):
    fake_redis.store["usage:coach:1:month=all"] = "{}"

    response = await client.post(f"/api/v1/courses/{test_course.id}/bookings", headers=auth_headers)

    assert response.status_code == 201
    assert fake_redis.store == {}


@pytest.mark.asyncio
async def test_cache_stats(fake_redis):
    stats = await cache_service.get_cache_stats()
    assert stats == {"status": "connected", "hits": 3, "misses": 1, "hit_rate": 75.0}
