from datetime import datetime
from logging import getLogger
from uuid import UUID

from redis.asyncio import Redis
from redis.exceptions import RedisError

from config import CACHE_TTL_SECONDS
from shortener.schemas import LinkPatch, LinkRecord
from shortener.store import LinkStore

logger = getLogger('redis_caching')


def cache_key(short_code: str) -> str:
    return f"short_url:{short_code}"


class CachedLinkStore(LinkStore):
    """Read-through Redis cache in front of another link store.

    Only ``get_by_code`` is served from the cache. Existence checks and
    inserts always hit the backing store, which owns uniqueness. Updates
    write the new record through; deletes drop the entry.
    """

    def __init__(self, backend: LinkStore, client: Redis, ttl: int = CACHE_TTL_SECONDS):
        self.backend = backend
        self.client = client
        self.ttl = ttl

    async def _forget(self, short_code: str):
        try:
            await self.client.delete(cache_key(short_code))
        except RedisError as e:
            logger.warning(f"Failed to drop cached link {short_code}: {e}")

    async def exists(self, short_code: str) -> bool:
        return await self.backend.exists(short_code)

    async def insert(self, record: LinkRecord) -> LinkRecord:
        return await self.backend.insert(record)

    async def get_by_code(self, short_code: str) -> LinkRecord | None:
        key = cache_key(short_code)
        try:
            cached_data = await self.client.get(key)
        except RedisError as e:
            logger.warning(f"Cache read failed for {short_code}: {e}")
            cached_data = None

        if cached_data:
            logger.debug('using cached')
            return LinkRecord.model_validate_json(cached_data)

        link = await self.backend.get_by_code(short_code)
        if link is not None:
            try:
                # nx: a fill from an older read never overwrites what update() wrote
                await self.client.set(key, link.model_dump_json(), ex=self.ttl, nx=True)
            except RedisError as e:
                logger.warning(f"Cache write failed for {short_code}: {e}")
        return link

    async def get_by_id(self, link_id: int) -> LinkRecord | None:
        return await self.backend.get_by_id(link_id)

    async def _refresh(self, link: LinkRecord):
        try:
            await self.client.set(cache_key(link.short_code), link.model_dump_json(), ex=self.ttl)
        except RedisError as e:
            logger.warning(f"Failed to refresh cached link {link.short_code}: {e}")
            await self._forget(link.short_code)

    async def update(self, link_id: int, patch: LinkPatch) -> LinkRecord | None:
        link = await self.backend.update(link_id, patch)
        if link is not None:
            await self._refresh(link)
        return link

    async def delete(self, link_id: int) -> bool:
        link = await self.backend.get_by_id(link_id)
        deleted = await self.backend.delete(link_id)
        if link is not None:
            await self._forget(link.short_code)
        return deleted

    async def list_by_owner(self, owner_id: UUID, skip: int = 0, limit: int = 20,
                            search: str | None = None) -> list[LinkRecord]:
        return await self.backend.list_by_owner(owner_id, skip=skip, limit=limit, search=search)

    async def delete_expired(self, before: datetime) -> int:
        # expired entries can stay cached up to the TTL; resolution re-checks expiry anyway
        return await self.backend.delete_expired(before)
