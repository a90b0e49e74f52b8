from fastapi import APIRouter, Depends, Query

from typing_extensions import Annotated
from logging import getLogger

from shortener.dependencies import get_link_service
from shortener.service import LinkService, link_to_dict

from auth.auth import User, current_active_user


logger = getLogger('account_router')

router = APIRouter(
    prefix="/account",
    tags=["Account"],
)

@router.get("/mylinks")
async def show_my_links(service: Annotated[LinkService, Depends(get_link_service)],
                        user: Annotated[User, Depends(current_active_user)],
                        skip: int = Query(default=0, ge=0),
                        limit: int = Query(default=20, ge=1, le=100),
                        search: str | None = Query(default=None, max_length=200)):
    links = await service.links.list_by_owner(user.id, skip=skip, limit=limit, search=search)

    report = {'links': [],
              'total_clicks': 0,
              'skip': skip,
              'limit': limit}

    for link in links:
        clicks = await service.clicks.count(link.id)
        report['links'].append({**link_to_dict(link), "clicks": clicks})
        report['total_clicks'] += clicks

    logger.debug(f"User {user.id} listed {len(links)} links")
    return report
