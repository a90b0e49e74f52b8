import uuid
from types import SimpleNamespace

from auth.auth import can_manage_link


def user(is_superuser=False):
    return SimpleNamespace(id=uuid.uuid4(), is_active=True, is_superuser=is_superuser)


def test_owner_manages_own_link():
    owner = user()

    assert can_manage_link(owner, owner.id)
    assert not can_manage_link(owner, uuid.uuid4())


def test_anonymous_links_need_a_superuser():
    assert not can_manage_link(user(), None)
    assert can_manage_link(user(is_superuser=True), None)
    assert can_manage_link(user(is_superuser=True), uuid.uuid4())
