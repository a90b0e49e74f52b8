import asyncio
from datetime import timedelta

from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

import tasks
from shortener.models import Base
from shortener.schemas import ClickRecord, LinkRecord
from shortener.sql_store import SqlAlchemyLinkStore
from shortener.utils import utcnow
from tasks import apurge_expired_links, app as celery_app


async def test_purge_removes_links_past_retention(link_store, click_store):
    now = utcnow()
    stale = await link_store.insert(LinkRecord(original_url="https://a.example", short_code="stale1",
                                               expires_at=now - timedelta(hours=3)))
    await click_store.insert(ClickRecord(link_id=stale.id))
    await link_store.insert(LinkRecord(original_url="https://b.example", short_code="grace1",
                                       expires_at=now - timedelta(minutes=30)))
    await link_store.insert(LinkRecord(original_url="https://c.example", short_code="live01"))

    deleted = await apurge_expired_links(link_store, retention=timedelta(hours=1))

    assert deleted == 1
    assert not await link_store.exists("stale1")
    assert await link_store.exists("grace1")
    assert await link_store.exists("live01")
    assert await click_store.count(stale.id) == 0


def test_purge_is_scheduled():
    schedule = celery_app.conf.beat_schedule

    assert schedule["purge-expired-links-every-10-minutes"]["task"] == "tasks.purge_expired_links"


async def _seed(url):
    engine = create_async_engine(url)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        store = SqlAlchemyLinkStore(async_sessionmaker(engine, expire_on_commit=False))
        await store.insert(LinkRecord(original_url="https://old.example", short_code="old123",
                                      expires_at=utcnow() - timedelta(days=60)))
    finally:
        await engine.dispose()


def test_worker_runs_do_not_share_connections(tmp_path, monkeypatch):
    url = f"sqlite+aiosqlite:///{tmp_path / 'purge.db'}"
    asyncio.run(_seed(url))
    engines = []

    def tracking_engine(*args, **kwargs):
        engine = create_async_engine(*args, **kwargs)
        engines.append(engine)
        return engine

    monkeypatch.setattr(tasks, "DATABASE_URL", url)
    monkeypatch.setattr(tasks, "create_async_engine", tracking_engine)

    # each call runs in its own event loop, like consecutive beat runs
    assert tasks.purge_expired_links() == 1
    assert tasks.purge_expired_links() == 0

    assert len(engines) == 2
    assert all(isinstance(engine.pool, NullPool) for engine in engines)
