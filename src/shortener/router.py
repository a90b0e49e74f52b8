from fastapi import APIRouter, BackgroundTasks, HTTPException, Depends, Request, status, Query, Path
from fastapi.responses import RedirectResponse

from typing_extensions import Annotated
from logging import getLogger

from config import BULK_MAX_URLS, DEBUG
from shortener.clicks import ClickRecorder
from shortener.dependencies import get_click_recorder, get_link_service, get_redirect_resolver
from shortener.errors import ShortenerError, ValidationError
from shortener.generators import describe_algorithms
from shortener.redirect import RedirectResolver
from shortener.schemas import BulkCreate, ClickMetadata, LinkCreate, LinkCreated, LinkOut, LinkPatch, ValidateRequest
from shortener.service import LinkService, link_to_dict
from shortener.utils import check_short_code, extract_domain, get_client_ip, is_valid_url, normalize_url

from auth.auth import User, current_active_user, current_user


logger = getLogger('shortener_router')

router = APIRouter(
    prefix="/links",
    tags=["Links"],
)

redirect_router = APIRouter(tags=["Redirect"])


def internal_error(e: Exception, message: str) -> HTTPException:
    logger.warning(e)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                         detail=str(e) if DEBUG else message)


@router.post("/shorten", status_code=status.HTTP_201_CREATED, response_model=LinkCreated)
async def shorten_link(payload: LinkCreate,
                       service: Annotated[LinkService, Depends(get_link_service)],
                       user: Annotated[User | None, Depends(current_user)]):
    """Создает короткую ссылку."""
    try:
        owner_id = user.id if user is not None else None
        link = await service.create_link(payload, owner_id=owner_id)
        return {**link_to_dict(link), "algorithm_used": payload.algorithm}
    except ShortenerError:
        raise
    except Exception as e:
        raise internal_error(e, "An error occurred while shortening the URL")


@router.post("/shorten/bulk")
async def shorten_bulk(payload: BulkCreate,
                       service: Annotated[LinkService, Depends(get_link_service)],
                       user: Annotated[User | None, Depends(current_user)]):
    if not payload.urls:
        raise ValidationError("Please provide an array of URLs to shorten")
    if len(payload.urls) > BULK_MAX_URLS:
        raise ValidationError(f"Maximum {BULK_MAX_URLS} URLs allowed per batch request")

    results = await service.bulk_create(payload, owner_id=user.id if user is not None else None)
    successful = sum(1 for item in results if item["success"])
    return {
        "results": results,
        "summary": {"total": len(results), "successful": successful, "failed": len(results) - successful},
        "algorithm_used": payload.algorithm,
    }


@router.get("/algorithms")
async def list_algorithms():
    return {"algorithms": describe_algorithms()}


@router.post("/validate")
async def validate_url(payload: ValidateRequest):
    normalized_url = normalize_url(payload.url)
    valid = is_valid_url(normalized_url)
    return {
        "original_url": payload.url,
        "normalized_url": normalized_url,
        "is_valid": valid,
        "domain": extract_domain(normalized_url) if valid else None,
        "has_protocol": payload.url.startswith(("http://", "https://")),
    }


@router.get("/{short_code}")
async def get_link_info(short_code: Annotated[str, Path(max_length=20)],
                        request: Request,
                        service: Annotated[LinkService, Depends(get_link_service)],
                        include_analytics: Annotated[bool, Query()] = False):
    """Информация о ссылке без перехода и без учета клика."""
    check_short_code(short_code, get_client_ip(request))
    return await service.link_info(short_code, include_analytics=include_analytics)


@router.put("/{link_id}", response_model=LinkOut)
async def update_link(link_id: Annotated[int, Path()],
                      patch: LinkPatch,
                      service: Annotated[LinkService, Depends(get_link_service)],
                      user: Annotated[User, Depends(current_active_user)]):
    """Обновляет ссылку: адрес, описание, срок действия, активность."""
    link = await service.update_link(link_id, patch, user)
    return link_to_dict(link)


@router.delete("/{link_id}")
async def delete_link(link_id: Annotated[int, Path()],
                      service: Annotated[LinkService, Depends(get_link_service)],
                      user: Annotated[User, Depends(current_active_user)]):
    """Удаляет ссылку вместе с кликами."""
    await service.delete_link(link_id, user)
    return {"message": "Link deleted successfully"}


@redirect_router.get("/{short_code:path}", include_in_schema=False)
async def redirect_to_original(short_code: str,
                               request: Request,
                               background_tasks: BackgroundTasks,
                               resolver: Annotated[RedirectResolver, Depends(get_redirect_resolver)],
                               recorder: Annotated[ClickRecorder, Depends(get_click_recorder)]):
    """Перенаправляет на оригинальный URL."""
    client_ip = get_client_ip(request)
    try:
        redirect = await resolver.resolve(short_code, client_ip=client_ip)
    except ShortenerError:
        raise
    except Exception as e:
        raise internal_error(e, "An error occurred while processing the redirect")

    # runs after the response is sent; never fails the redirect
    metadata = ClickMetadata(
        source_ip=client_ip,
        user_agent=request.headers.get("user-agent"),
        referrer=request.headers.get("referer"),
    )
    background_tasks.add_task(recorder.record, redirect.link_id, metadata)

    return RedirectResponse(url=redirect.target_url, status_code=status.HTTP_301_MOVED_PERMANENTLY)
