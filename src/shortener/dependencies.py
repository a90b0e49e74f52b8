from functools import lru_cache

from fastapi import Depends
from typing_extensions import Annotated

from database import async_session_maker
from redis_caching import CachedLinkStore, r
from shortener.clicks import ClickRecorder
from shortener.redirect import RedirectResolver
from shortener.service import LinkService
from shortener.sql_store import SqlAlchemyClickStore, SqlAlchemyLinkStore
from shortener.store import ClickStore, LinkStore


@lru_cache
def get_link_store() -> LinkStore:
    return CachedLinkStore(SqlAlchemyLinkStore(async_session_maker), r)


@lru_cache
def get_click_store() -> ClickStore:
    return SqlAlchemyClickStore(async_session_maker)


def get_link_service(links: Annotated[LinkStore, Depends(get_link_store)],
                     clicks: Annotated[ClickStore, Depends(get_click_store)]) -> LinkService:
    return LinkService(links, clicks)


def get_redirect_resolver(links: Annotated[LinkStore, Depends(get_link_store)]) -> RedirectResolver:
    return RedirectResolver(links)


def get_click_recorder(clicks: Annotated[ClickStore, Depends(get_click_store)]) -> ClickRecorder:
    return ClickRecorder(clicks)
