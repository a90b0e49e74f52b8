import asyncio
import itertools
from collections import Counter
from abc import ABC, abstractmethod
from datetime import datetime
from uuid import UUID

from shortener.errors import UniquenessViolation
from shortener.schemas import ClickRecord, LinkPatch, LinkRecord
from shortener.utils import utcnow


class LinkStore(ABC):
    """Durable mapping of short code to link record.

    ``insert`` must reject a duplicate ``short_code`` with
    ``UniquenessViolation``; it is the source of truth for uniqueness.
    """

    @abstractmethod
    async def exists(self, short_code: str) -> bool: ...

    @abstractmethod
    async def insert(self, record: LinkRecord) -> LinkRecord: ...

    @abstractmethod
    async def get_by_code(self, short_code: str) -> LinkRecord | None: ...

    @abstractmethod
    async def get_by_id(self, link_id: int) -> LinkRecord | None: ...

    @abstractmethod
    async def update(self, link_id: int, patch: LinkPatch) -> LinkRecord | None: ...

    @abstractmethod
    async def delete(self, link_id: int) -> bool:
        """Deletes the link and its clicks."""

    @abstractmethod
    async def list_by_owner(self, owner_id: UUID, skip: int = 0, limit: int = 20,
                            search: str | None = None) -> list[LinkRecord]: ...

    @abstractmethod
    async def delete_expired(self, before: datetime) -> int: ...


class ClickStore(ABC):

    @abstractmethod
    async def insert(self, click: ClickRecord) -> ClickRecord: ...

    @abstractmethod
    async def count(self, link_id: int, since: datetime | None = None) -> int: ...

    @abstractmethod
    async def group_counts(self, link_id: int, field: str, limit: int | None = None) -> list[tuple[str, int]]:
        """Click counts per distinct non-null ``field`` value, most clicked first."""


GROUPABLE_CLICK_FIELDS = ("device_class", "referrer")


def check_groupable(field: str) -> str:
    if field not in GROUPABLE_CLICK_FIELDS:
        raise ValueError(f"Clicks cannot be grouped by {field!r}")
    return field


def apply_patch(record: LinkRecord, patch: LinkPatch) -> LinkRecord:
    changes = patch.model_dump(exclude_unset=True)
    changes['updated_at'] = utcnow()
    return record.model_copy(update=changes)


def matches_search(record: LinkRecord, search: str | None) -> bool:
    if not search:
        return True
    needle = search.lower()
    return any(needle in (value or '').lower()
               for value in (record.original_url, record.title, record.short_code))


class InMemoryClickStore(ClickStore):

    def __init__(self):
        self._clicks: list[ClickRecord] = []
        self._ids = itertools.count(1)
        self._lock = asyncio.Lock()

    async def insert(self, click: ClickRecord) -> ClickRecord:
        async with self._lock:
            stored = click.model_copy(update={'id': next(self._ids)})
            self._clicks.append(stored)
            return stored

    async def count(self, link_id: int, since: datetime | None = None) -> int:
        return sum(1 for c in self._clicks
                   if c.link_id == link_id and (since is None or c.occurred_at >= since))

    async def group_counts(self, link_id: int, field: str, limit: int | None = None) -> list[tuple[str, int]]:
        check_groupable(field)
        counter = Counter(c.model_dump(mode="json")[field] for c in self._clicks if c.link_id == link_id)
        counter.pop(None, None)
        ranked = sorted(counter.items(), key=lambda item: (-item[1], item[0]))
        return ranked[:limit] if limit is not None else ranked

    async def delete_for_link(self, link_id: int) -> int:
        async with self._lock:
            before = len(self._clicks)
            self._clicks = [c for c in self._clicks if c.link_id != link_id]
            return before - len(self._clicks)

    def all(self) -> list[ClickRecord]:
        return list(self._clicks)


class InMemoryLinkStore(LinkStore):
    """Dict-backed store for tests and local development."""

    def __init__(self, clicks: InMemoryClickStore | None = None):
        self.clicks = clicks
        self._by_code: dict[str, LinkRecord] = {}
        self._code_by_id: dict[int, str] = {}
        self._ids = itertools.count(1)
        self._lock = asyncio.Lock()

    async def exists(self, short_code: str) -> bool:
        return short_code in self._by_code

    async def insert(self, record: LinkRecord) -> LinkRecord:
        async with self._lock:
            if record.short_code in self._by_code:
                raise UniquenessViolation(record.short_code)
            now = utcnow()
            stored = record.model_copy(update={'id': next(self._ids), 'created_at': now, 'updated_at': now})
            self._by_code[stored.short_code] = stored
            self._code_by_id[stored.id] = stored.short_code
            return stored

    async def get_by_code(self, short_code: str) -> LinkRecord | None:
        return self._by_code.get(short_code)

    async def get_by_id(self, link_id: int) -> LinkRecord | None:
        code = self._code_by_id.get(link_id)
        return self._by_code.get(code) if code is not None else None

    async def update(self, link_id: int, patch: LinkPatch) -> LinkRecord | None:
        async with self._lock:
            code = self._code_by_id.get(link_id)
            if code is None:
                return None
            updated = apply_patch(self._by_code[code], patch)
            self._by_code[code] = updated
            return updated

    async def delete(self, link_id: int) -> bool:
        async with self._lock:
            code = self._code_by_id.pop(link_id, None)
            if code is None:
                return False
            del self._by_code[code]
        if self.clicks is not None:
            await self.clicks.delete_for_link(link_id)
        return True

    async def list_by_owner(self, owner_id: UUID, skip: int = 0, limit: int = 20,
                            search: str | None = None) -> list[LinkRecord]:
        links = [l for l in self._by_code.values() if l.owner_id == owner_id and matches_search(l, search)]
        links.sort(key=lambda l: l.created_at, reverse=True)
        return links[skip:skip + limit]

    async def delete_expired(self, before: datetime) -> int:
        expired = [l.id for l in self._by_code.values() if l.expires_at is not None and l.expires_at < before]
        for link_id in expired:
            await self.delete(link_id)
        return len(expired)
