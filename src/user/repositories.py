import asyncio
from typing import Any
from uuid import uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from loggers import get_logger
from src.core.database.repositories import BaseRepository
from src.core.utils.security import hash_password, mask_email
from src.user.models import User

logger = get_logger(__name__)


class UserRepository(BaseRepository[User]):
    """Credential store backed by the ``users`` table."""

    model = User

    async def find_by_email(self, session: AsyncSession, email: str) -> User | None:
        return await self.get_single(session, email=email)

    async def create_identity(
        self, session: AsyncSession, email: str, username: str, password: str
    ) -> User:
        # argon2 is CPU bound, keep it off the event loop
        password_hash = await asyncio.to_thread(hash_password, password)
        data: dict[str, Any] = {
            "id": uuid4(),
            "email": email,
            "username": username,
            "password_hash": password_hash,
        }
        user = await self.create(session, data)
        logger.debug("[UserRepository] Identity staged for '%s'", mask_email(email))
        return user
