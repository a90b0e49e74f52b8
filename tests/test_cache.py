from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from redis_caching.link_cache import CachedLinkStore, cache_key
from shortener.schemas import LinkPatch, LinkRecord
from shortener.store import InMemoryLinkStore


@pytest.fixture
def backend():
    return InMemoryLinkStore()


@pytest.fixture
def redis_client():
    client = AsyncMock()
    client.get.return_value = None
    return client


@pytest.fixture
def store(backend, redis_client):
    return CachedLinkStore(backend, redis_client, ttl=60)


async def add(store, code="abc123"):
    return await store.insert(LinkRecord(original_url="https://example.com", short_code=code))


class DictRedis:
    def __init__(self):
        self.data = {}

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value, ex=None, nx=False):
        if nx and key in self.data:
            return None
        self.data[key] = value
        return True

    async def delete(self, key):
        self.data.pop(key, None)


class TestCachedLinkStore:
    async def test_miss_reads_backend_and_fills_cache(self, store, redis_client):
        link = await add(store)

        found = await store.get_by_code("abc123")

        assert found == link
        redis_client.set.assert_awaited_once()
        call_args = redis_client.set.call_args
        assert call_args[0][0] == "short_url:abc123"
        assert LinkRecord.model_validate_json(call_args[0][1]) == link
        assert call_args[1]["ex"] == 60
        assert call_args[1]["nx"] is True

    async def test_hit_skips_backend(self, store, backend, redis_client):
        link = LinkRecord(id=5, original_url="https://cached.example", short_code="abc123")
        redis_client.get.return_value = link.model_dump_json()
        backend.get_by_code = AsyncMock()

        found = await store.get_by_code("abc123")

        assert found == link
        backend.get_by_code.assert_not_called()

    async def test_unknown_code_is_not_cached(self, store, redis_client):
        assert await store.get_by_code("nope12") is None

        redis_client.set.assert_not_called()

    async def test_redis_outage_falls_through_to_backend(self, store, redis_client):
        link = await add(store)
        redis_client.get.side_effect = RedisConnectionError("connection refused")
        redis_client.set.side_effect = RedisConnectionError("connection refused")

        assert await store.get_by_code("abc123") == link

    async def test_update_writes_new_record_through(self, store, redis_client):
        link = await add(store)

        updated = await store.update(link.id, LinkPatch(is_active=False))

        key, value = redis_client.set.call_args[0]
        assert key == cache_key("abc123")
        assert LinkRecord.model_validate_json(value) == updated
        assert "nx" not in redis_client.set.call_args[1]

    async def test_update_drops_entry_when_refresh_fails(self, store, redis_client):
        link = await add(store)
        redis_client.set.side_effect = RedisConnectionError("connection refused")

        await store.update(link.id, LinkPatch(is_active=False))

        redis_client.delete.assert_awaited_once_with(cache_key("abc123"))

    async def test_fill_from_older_read_keeps_updated_record(self, backend):
        store = CachedLinkStore(backend, DictRedis(), ttl=60)
        link = await add(store)
        read = backend.get_by_code

        async def read_then_deactivate(short_code):
            found = await read(short_code)
            await store.update(link.id, LinkPatch(is_active=False))
            return found

        backend.get_by_code = read_then_deactivate
        assert (await store.get_by_code("abc123")).is_active is True
        backend.get_by_code = read

        assert (await store.get_by_code("abc123")).is_active is False

    async def test_delete_invalidates_entry(self, store, backend, redis_client):
        link = await add(store)

        assert await store.delete(link.id) is True

        redis_client.delete.assert_awaited_once_with(cache_key("abc123"))
        assert not await backend.exists("abc123")

    async def test_exists_always_asks_backend(self, store, redis_client):
        await add(store)

        assert await store.exists("abc123")
        redis_client.get.assert_not_called()
