from datetime import timedelta
from logging import getLogger
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError

from auth.auth import can_manage_link
from config import BULK_MAX_GENERATION_ATTEMPTS, MAX_GENERATION_ATTEMPTS
from shortener.errors import LinkNotFound, PermissionDenied, ShortenerError
from shortener.generators import GenerationContext, get_generator
from shortener.schemas import BulkCreate, LinkCreate, LinkPatch, LinkRecord
from shortener.store import ClickStore, LinkStore
from shortener.uniqueness import UniquenessResolver
from shortener.utils import generate_url_from_short_code, utcnow, validate_and_fix_url

logger = getLogger('shortener_service')


def link_to_dict(link: LinkRecord) -> dict:
    return {
        "id": link.id,
        "original_url": link.original_url,
        "short_code": link.short_code,
        "full_short_url": generate_url_from_short_code(link.short_code),
        "title": link.title,
        "description": link.description,
        "is_active": link.is_active,
        "expires_at": link.expires_at,
        "created_at": link.created_at,
        "updated_at": link.updated_at,
    }


class LinkService:
    def __init__(self, links: LinkStore, clicks: ClickStore,
                 max_attempts: int = MAX_GENERATION_ATTEMPTS,
                 bulk_max_attempts: int = BULK_MAX_GENERATION_ATTEMPTS):
        self.links = links
        self.clicks = clicks
        self.uniqueness = UniquenessResolver(links)
        self.max_attempts = max_attempts
        self.bulk_max_attempts = bulk_max_attempts

    async def create_link(self, payload: LinkCreate, owner_id: UUID | None = None,
                          max_attempts: int | None = None) -> LinkRecord:
        generator = get_generator(payload.algorithm, payload.custom_options)
        context = GenerationContext(original_url=payload.original_url)

        def build(short_code: str) -> LinkRecord:
            return LinkRecord(
                original_url=payload.original_url,
                short_code=short_code,
                owner_id=owner_id,
                title=payload.title,
                description=payload.description,
                expires_at=payload.expires_at,
            )

        link = await self.uniqueness.create(generator, context, build, max_attempts or self.max_attempts)
        logger.info(f"Created link {link.short_code} -> {link.original_url}")
        return link

    async def bulk_create(self, payload: BulkCreate, owner_id: UUID | None = None) -> list[dict]:
        results = []
        for item in payload.urls:
            try:
                original_url = validate_and_fix_url(item.original_url or '')
                link = await self.create_link(
                    LinkCreate(
                        original_url=original_url,
                        title=item.title,
                        description=item.description,
                        expires_at=item.expires_at,
                        algorithm=payload.algorithm,
                        custom_options=payload.custom_options,
                    ),
                    owner_id=owner_id,
                    max_attempts=self.bulk_max_attempts,
                )
            except ShortenerError as e:
                results.append({"original_url": item.original_url, "success": False,
                                "error": {"code": e.category, "message": e.message}})
                continue
            except PydanticValidationError as e:
                results.append({"original_url": item.original_url, "success": False,
                                "error": {"code": "validation_error", "message": str(e)}})
                continue
            except Exception as e:
                logger.warning(e)
                results.append({"original_url": item.original_url, "success": False,
                                "error": {"code": "processing_error", "message": "Error processing this URL"}})
                continue
            results.append({"original_url": item.original_url, "success": True, "data": link_to_dict(link)})
        return results

    async def get_owned(self, link_id: int, user) -> LinkRecord:
        link = await self.links.get_by_id(link_id)
        if link is None:
            raise LinkNotFound()
        if not can_manage_link(user, link.owner_id):
            raise PermissionDenied()
        return link

    async def update_link(self, link_id: int, patch: LinkPatch, user) -> LinkRecord:
        await self.get_owned(link_id, user)
        link = await self.links.update(link_id, patch)
        if link is None:
            raise LinkNotFound()
        logger.info(f"Updated link {link.short_code} by {user.id}")
        return link

    async def delete_link(self, link_id: int, user) -> None:
        link = await self.get_owned(link_id, user)
        if not await self.links.delete(link_id):
            raise LinkNotFound()
        logger.info(f"Deleted link {link.short_code} by {user.id}")

    async def link_info(self, short_code: str, include_analytics: bool = False) -> dict:
        link = await self.links.get_by_code(short_code)
        if link is None:
            raise LinkNotFound()
        info = link_to_dict(link)
        info["analytics"] = await self.click_summary(link.id) if include_analytics else None
        return info

    async def click_summary(self, link_id: int) -> dict:
        now = utcnow()
        return {
            "total_clicks": await self.clicks.count(link_id),
            "clicks_today": await self.clicks.count(link_id, since=now - timedelta(days=1)),
            "clicks_this_week": await self.clicks.count(link_id, since=now - timedelta(days=7)),
            "clicks_this_month": await self.clicks.count(link_id, since=now - timedelta(days=30)),
            "device_stats": dict(await self.clicks.group_counts(link_id, "device_class")),
            "top_referrers": [{"referrer": referrer, "clicks": clicks}
                              for referrer, clicks in await self.clicks.group_counts(link_id, "referrer", limit=10)],
        }
