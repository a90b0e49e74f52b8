import uuid
from datetime import timedelta

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from shortener.errors import StorageUnavailable, UniquenessViolation
from shortener.models import Base
from shortener.schemas import ClickRecord, DeviceClass, LinkPatch, LinkRecord
from shortener.sql_store import SqlAlchemyClickStore, SqlAlchemyLinkStore
from shortener.utils import utcnow


@pytest.fixture
async def session_maker(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'links.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def links(session_maker):
    return SqlAlchemyLinkStore(session_maker)


@pytest.fixture
def clicks(session_maker):
    return SqlAlchemyClickStore(session_maker)


def record(code, **fields):
    fields.setdefault("original_url", f"https://example.com/{code}")
    return LinkRecord(short_code=code, **fields)


async def test_insert_and_lookup(links):
    owner_id = uuid.uuid4()
    expires_at = utcnow() + timedelta(days=1)

    link = await links.insert(record("abc123", owner_id=owner_id, title="Docs", expires_at=expires_at))

    assert link.id is not None
    assert await links.exists("abc123")
    assert not await links.exists("zzz999")
    found = await links.get_by_code("abc123")
    assert found.owner_id == owner_id
    assert found.title == "Docs"
    assert found.expires_at.tzinfo is not None
    assert abs(found.expires_at - expires_at) < timedelta(seconds=1)
    assert (await links.get_by_id(link.id)).short_code == "abc123"


async def test_unique_index_rejects_duplicate_codes(links):
    await links.insert(record("abc123"))

    with pytest.raises(UniquenessViolation):
        await links.insert(record("abc123", original_url="https://other.example"))

    assert (await links.get_by_code("abc123")).original_url == "https://example.com/abc123"


async def test_update_patch(links):
    link = await links.insert(record("abc123"))

    updated = await links.update(link.id, LinkPatch(is_active=False, title="Paused"))

    assert updated.is_active is False
    assert updated.title == "Paused"
    assert updated.original_url == link.original_url
    assert await links.update(12345, LinkPatch(title="x")) is None


async def test_delete_cascades_clicks(links, clicks):
    link = await links.insert(record("abc123"))
    await clicks.insert(ClickRecord(link_id=link.id, device_class=DeviceClass.MOBILE))
    await clicks.insert(ClickRecord(link_id=link.id))
    assert await clicks.count(link.id) == 2

    assert await links.delete(link.id) is True

    assert await links.get_by_code("abc123") is None
    assert await clicks.count(link.id) == 0
    assert await links.delete(link.id) is False


async def test_click_round_trip(links, clicks):
    link = await links.insert(record("abc123"))

    click = await clicks.insert(ClickRecord(link_id=link.id, source_ip="198.51.100.1",
                                            device_class=DeviceClass.TABLET))

    assert click.id is not None
    assert click.device_class == DeviceClass.TABLET
    assert await clicks.count(link.id, since=utcnow() - timedelta(minutes=1)) == 1
    assert await clicks.count(link.id, since=utcnow() + timedelta(minutes=1)) == 0


async def test_click_group_counts(links, clicks):
    link = await links.insert(record("abc123"))
    await clicks.insert(ClickRecord(link_id=link.id, device_class=DeviceClass.MOBILE, referrer="https://a.example"))
    await clicks.insert(ClickRecord(link_id=link.id, device_class=DeviceClass.MOBILE))
    await clicks.insert(ClickRecord(link_id=link.id, device_class=DeviceClass.DESKTOP, referrer="https://a.example"))
    await clicks.insert(ClickRecord(link_id=link.id, device_class=DeviceClass.DESKTOP, referrer="https://b.example"))
    await clicks.insert(ClickRecord(link_id=link.id, device_class=DeviceClass.MOBILE))

    assert await clicks.group_counts(link.id, "device_class") == [("mobile", 3), ("desktop", 2)]
    assert await clicks.group_counts(link.id, "referrer", limit=10) == [("https://a.example", 2), ("https://b.example", 1)]


async def test_list_by_owner(links):
    owner_id = uuid.uuid4()
    await links.insert(record("mine01", owner_id=owner_id, title="Holiday"))
    await links.insert(record("mine02", owner_id=owner_id))
    await links.insert(record("theirs", owner_id=uuid.uuid4()))

    assert {l.short_code for l in await links.list_by_owner(owner_id)} == {"mine01", "mine02"}
    assert [l.short_code for l in await links.list_by_owner(owner_id, search="holi")] == ["mine01"]


async def test_delete_expired(links, clicks):
    now = utcnow()
    old = await links.insert(record("old001", expires_at=now - timedelta(days=40)))
    await clicks.insert(ClickRecord(link_id=old.id))
    await links.insert(record("fresh1", expires_at=now + timedelta(days=1)))

    assert await links.delete_expired(now - timedelta(days=30)) == 1

    assert not await links.exists("old001")
    assert await links.exists("fresh1")
    assert await clicks.count(old.id) == 0


async def test_database_errors_become_storage_unavailable(tmp_path):
    # the target directory does not exist, so every connection attempt fails
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'links.db'}")
    store = SqlAlchemyLinkStore(async_sessionmaker(engine))

    with pytest.raises(StorageUnavailable):
        await store.get_by_code("abc123")

    await engine.dispose()
