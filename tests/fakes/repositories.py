from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any
from uuid import uuid4

from src.core.utils.datetime_utils import ensure_aware_utc
from src.core.utils.security import hash_password
from src.user.auth.models import RefreshToken
from src.user.models import User


class InMemoryUserRepository:
    """Dict-backed stand-in for ``UserRepository``."""

    def __init__(self, users: list[User] | None = None) -> None:
        self.users: dict[Any, User] = {user.id: user for user in users or []}

    def add(self, user: User) -> User:
        self.users[user.id] = user
        return user

    def _matches(self, user: User, filters: dict[str, Any]) -> bool:
        return all(getattr(user, key) == value for key, value in filters.items())

    async def exists(self, session: Any, **filters: Any) -> bool:
        return any(self._matches(user, filters) for user in self.users.values())

    async def get_single(
        self, session: Any, for_update: bool = False, **filters: Any
    ) -> User | None:
        return next(
            (user for user in self.users.values() if self._matches(user, filters)),
            None,
        )

    async def find_by_email(self, session: Any, email: str) -> User | None:
        return await self.get_single(session, email=email)

    async def create_identity(
        self, session: Any, email: str, username: str, password: str
    ) -> User:
        user = User(
            id=uuid4(),
            email=email,
            username=username,
            password_hash=hash_password(password),
        )
        return self.add(user)


class InMemoryRefreshTokenRepository:
    """
    Dict-backed stand-in for ``RefreshTokenRepository``.

    Every method yields to the event loop once so concurrent callers interleave;
    the check-and-set in ``mark_used`` itself never yields.
    """

    def __init__(self) -> None:
        self.records: dict[str, RefreshToken] = {}
        self.insert_error: Exception | None = None
        self.mark_used_calls = 0

    async def find_by_token(
        self, session: Any, token: str, reload: bool = False
    ) -> RefreshToken | None:
        await asyncio.sleep(0)
        return self.records.get(token)

    async def insert(self, session: Any, data: dict[str, Any]) -> RefreshToken:
        await asyncio.sleep(0)
        if self.insert_error is not None:
            raise self.insert_error
        record = RefreshToken(id=uuid4(), **data)
        self.records[record.token] = record
        return record

    async def mark_used(self, session: Any, token: str, now: datetime) -> bool:
        await asyncio.sleep(0)
        self.mark_used_calls += 1
        record = self.records.get(token)
        if record is None or record.is_used or record.is_revoked:
            return False
        if ensure_aware_utc(record.expires_at) <= now:
            return False
        record.is_used = True
        return True

    async def revoke(self, session: Any, token: str) -> bool:
        await asyncio.sleep(0)
        record = self.records.get(token)
        if record is None or record.is_revoked:
            return False
        record.is_revoked = True
        return True

    def for_user(self, user_id: Any) -> list[RefreshToken]:
        return [r for r in self.records.values() if r.user_id == user_id]
