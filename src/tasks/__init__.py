import asyncio
from celery import Celery
from datetime import timedelta
from logging import getLogger
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool
from config import REDIS_HOST, REDIS_PORT, REDIS_PASSWORD, DATABASE_URL, EXPIRED_LINK_RETENTION_HOURS
from celery.schedules import crontab
from shortener.store import LinkStore
from shortener.utils import utcnow

logger = getLogger('tasks')

broker_auth = f"default:{REDIS_PASSWORD}@" if REDIS_PASSWORD else ""
app = Celery("tasks", broker=f"redis://{broker_auth}{REDIS_HOST}:{REDIS_PORT}/0")


async def apurge_expired_links(store: LinkStore, retention: timedelta = timedelta(hours=EXPIRED_LINK_RETENTION_HOURS)) -> int:
    cutoff = utcnow() - retention
    deleted = await store.delete_expired(cutoff)
    logger.info(f"Удалены ссылки, истекшие до {cutoff}: {deleted}")
    return deleted


async def _purge_with_own_engine() -> int:
    from shortener.sql_store import SqlAlchemyLinkStore

    # every run gets a fresh event loop, so no connection may outlive it
    engine = create_async_engine(DATABASE_URL, poolclass=NullPool)
    try:
        store = SqlAlchemyLinkStore(async_sessionmaker(engine, expire_on_commit=False))
        return await apurge_expired_links(store)
    finally:
        await engine.dispose()


@app.task
def purge_expired_links():
    return asyncio.run(_purge_with_own_engine())

app.conf.broker_connection_retry_on_startup = True

app.conf.beat_schedule = {
    "purge-expired-links-every-10-minutes": {
        "task": "tasks.purge_expired_links",
        "schedule": crontab(minute="*/10"),  # Каждые 10 минут
    },
}

app.conf.update(imports=['tasks'])
