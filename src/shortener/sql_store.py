from contextlib import asynccontextmanager
from datetime import datetime
from logging import getLogger
from uuid import UUID

from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shortener.errors import StorageUnavailable, UniquenessViolation
from shortener.models import Click, Link
from shortener.schemas import ClickRecord, LinkPatch, LinkRecord
from shortener.store import ClickStore, LinkStore, check_groupable
from shortener.utils import utcnow

logger = getLogger('shortener_sql_store')


class _SessionScope:
    """Opens a fresh session per operation, so background writes never share the request session."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self.session_maker = session_maker

    @asynccontextmanager
    async def _session(self):
        try:
            async with self.session_maker() as session:
                yield session
        except IntegrityError:
            raise
        except (SQLAlchemyError, OSError) as e:
            logger.warning(e)
            raise StorageUnavailable() from e


class SqlAlchemyLinkStore(_SessionScope, LinkStore):

    async def exists(self, short_code: str) -> bool:
        query = select(Link.id).where(Link.short_code == short_code)
        async with self._session() as session:
            result = await session.execute(query)
            return result.first() is not None

    async def insert(self, record: LinkRecord) -> LinkRecord:
        link = Link(**record.model_dump(exclude={'id', 'created_at', 'updated_at'}))
        async with self._session() as session:
            session.add(link)
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                logger.debug(f"Unique constraint rejected short code {record.short_code}")
                raise UniquenessViolation(record.short_code)
            await session.refresh(link)
            return LinkRecord.model_validate(link)

    async def get_by_code(self, short_code: str) -> LinkRecord | None:
        query = select(Link).where(Link.short_code == short_code)
        async with self._session() as session:
            link = (await session.execute(query)).scalar_one_or_none()
            return LinkRecord.model_validate(link) if link is not None else None

    async def get_by_id(self, link_id: int) -> LinkRecord | None:
        async with self._session() as session:
            link = await session.get(Link, link_id)
            return LinkRecord.model_validate(link) if link is not None else None

    async def update(self, link_id: int, patch: LinkPatch) -> LinkRecord | None:
        changes = patch.model_dump(exclude_unset=True)
        changes['updated_at'] = utcnow()
        async with self._session() as session:
            link = await session.get(Link, link_id)
            if link is None:
                return None
            for field, value in changes.items():
                setattr(link, field, value)
            await session.commit()
            return LinkRecord.model_validate(link)

    async def delete(self, link_id: int) -> bool:
        async with self._session() as session:
            link = await session.get(Link, link_id)
            if link is None:
                return False
            await session.execute(delete(Click).where(Click.link_id == link_id))
            await session.delete(link)
            await session.commit()
            return True

    async def list_by_owner(self, owner_id: UUID, skip: int = 0, limit: int = 20,
                            search: str | None = None) -> list[LinkRecord]:
        query = select(Link).where(Link.owner_id == owner_id)
        if search:
            pattern = f'%{search}%'
            query = query.where(or_(Link.original_url.ilike(pattern),
                                    Link.title.ilike(pattern),
                                    Link.short_code.ilike(pattern)))
        query = query.order_by(Link.created_at.desc()).offset(skip).limit(limit)
        async with self._session() as session:
            links = (await session.execute(query)).scalars().all()
            return [LinkRecord.model_validate(l) for l in links]

    async def delete_expired(self, before: datetime) -> int:
        expired_ids = select(Link.id).where(Link.expires_at < before)
        async with self._session() as session:
            await session.execute(delete(Click).where(Click.link_id.in_(expired_ids)))
            result = await session.execute(delete(Link).where(Link.expires_at < before))
            await session.commit()
            return result.rowcount


class SqlAlchemyClickStore(_SessionScope, ClickStore):

    async def insert(self, click: ClickRecord) -> ClickRecord:
        values = click.model_dump(exclude={'id'})
        values['device_class'] = click.device_class.value
        row = Click(**values)
        async with self._session() as session:
            session.add(row)
            await session.commit()
            return ClickRecord.model_validate(row)

    async def count(self, link_id: int, since: datetime | None = None) -> int:
        query = select(func.count(Click.id)).where(Click.link_id == link_id)
        if since is not None:
            query = query.where(Click.occurred_at >= since)
        async with self._session() as session:
            return (await session.execute(query)).scalar_one()

    async def group_counts(self, link_id: int, field: str, limit: int | None = None) -> list[tuple[str, int]]:
        column = getattr(Click, check_groupable(field))
        clicks = func.count(Click.id).label('clicks')
        query = (select(column, clicks)
                 .where(Click.link_id == link_id, column.is_not(None))
                 .group_by(column)
                 .order_by(clicks.desc(), column))
        if limit is not None:
            query = query.limit(limit)
        async with self._session() as session:
            return [(value, total) for value, total in (await session.execute(query)).all()]
