import redis.asyncio as redis
from config import REDIS_HOST, REDIS_PORT, REDIS_PASSWORD
from logging import getLogger
from redis_caching.link_cache import CachedLinkStore

logger = getLogger('redis_caching')

r = redis.Redis(
    host=REDIS_HOST,
    port=REDIS_PORT,
    password=REDIS_PASSWORD,
    decode_responses=True
)


async def ping_cache() -> bool:
    try:
        return bool(await r.ping())
    except redis.RedisError as e:
        logger.warning(f"Redis ping failed: {e}")
        return False


__all__ = ['r', 'ping_cache', 'CachedLinkStore']
