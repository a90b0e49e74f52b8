"""Account wiring for link ownership.

Accounts are managed by fastapi-users with bearer JWT login and
registration only. The link core sees the resolved ``User``: its ``id``
becomes ``owner_id`` and ``can_manage_link`` decides who may change a link.
"""
import logging
import uuid
from typing import Optional

from fastapi import Depends, Request
from fastapi_users import BaseUserManager, FastAPIUsers, UUIDIDMixin
from fastapi_users.authentication import AuthenticationBackend, BearerTransport, JWTStrategy
from fastapi_users.db import SQLAlchemyUserDatabase
from sqlalchemy.ext.asyncio import AsyncSession

from auth.models import User
from config import JWT_LIFETIME_SECONDS, SECRET
from database import get_async_session

logger = logging.getLogger('auth_manager')


async def get_user_db(session: AsyncSession = Depends(get_async_session)):
    yield SQLAlchemyUserDatabase(session, User)


class UserManager(UUIDIDMixin, BaseUserManager[User, uuid.UUID]):
    # password reset and e-mail verification routes are not mounted

    async def on_after_register(self, user: User, request: Optional[Request] = None):
        logger.info(f"User {user.id} has registered.")


async def get_user_manager(user_db=Depends(get_user_db)):
    yield UserManager(user_db)


auth_backend = AuthenticationBackend(
    name="jwt",
    transport=BearerTransport(tokenUrl="auth/jwt/login"),
    get_strategy=lambda: JWTStrategy(secret=SECRET, lifetime_seconds=JWT_LIFETIME_SECONDS),
)

fastapi_users_app = FastAPIUsers[User, uuid.UUID](get_user_manager, [auth_backend])

# link owners and admins
current_active_user = fastapi_users_app.current_user(active=True)
# anonymous shortening is allowed
current_user = fastapi_users_app.current_user(optional=True)


def can_manage_link(user, owner_id: uuid.UUID | None) -> bool:
    """Superusers manage every link, others only their own; anonymous links belong to no one."""
    return user.is_superuser or (owner_id is not None and owner_id == user.id)
