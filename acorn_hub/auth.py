import logging
import secrets
import string
import uuid
from typing import Optional, Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from acorn_hub.models import User

logger = logging.getLogger(__name__)

_BASE36 = string.ascii_lowercase + string.digits


class Authenticator(Protocol):
    async def authenticate(self, session: AsyncSession, token: str) -> Optional[User]:
        ...


class GuestAuthenticator:
    """Guest identities: the bearer token is the raw user id.

    No signing and no expiry. Swap in another ``Authenticator`` for real tokens.
    """

    async def issue(self, session: AsyncSession) -> User:
        handle = "guest_" + "".join(secrets.choice(_BASE36) for _ in range(6))
        user = User(id=str(uuid.uuid4()), handle=handle)
        session.add(user)
        await session.flush()
        logger.info(f"Guest created: id={user.id}, handle={handle}")
        return user

    async def authenticate(self, session: AsyncSession, token: str) -> Optional[User]:
        if not token:
            return None
        result = await session.execute(select(User).where(User.id == token))
        return result.scalars().first()
