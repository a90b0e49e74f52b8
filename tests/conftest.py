import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("CREATE_TABLES", "0")
os.environ.setdefault("SHORT_URL_BASE", "https://sho.rt")

import uuid
from types import SimpleNamespace

import pytest
from httpx import ASGITransport, AsyncClient

from shortener.store import InMemoryClickStore, InMemoryLinkStore


@pytest.fixture
def click_store():
    return InMemoryClickStore()


@pytest.fixture
def link_store(click_store):
    return InMemoryLinkStore(click_store)


@pytest.fixture
def owner():
    return SimpleNamespace(id=uuid.uuid4(), is_active=True, is_superuser=False)


@pytest.fixture
def app(link_store, click_store):
    from auth.auth import current_user
    from main import app
    from shortener.dependencies import get_click_store, get_link_store

    app.dependency_overrides[get_link_store] = lambda: link_store
    app.dependency_overrides[get_click_store] = lambda: click_store
    app.dependency_overrides[current_user] = lambda: None
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def login(app):
    """Makes ``user`` the authenticated caller for every following request."""
    from auth.auth import current_active_user, current_user

    def _login(user):
        app.dependency_overrides[current_user] = lambda: user
        app.dependency_overrides[current_active_user] = lambda: user

    return _login


@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
