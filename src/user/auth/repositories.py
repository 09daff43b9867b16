from datetime import datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from loggers import get_logger
from src.core.database.repositories import BaseRepository
from src.user.auth.models import RefreshToken

logger = get_logger(__name__)


class RefreshTokenRepository(BaseRepository[RefreshToken]):
    """
    Refresh token store. The only component allowed to mutate records; callers
    never delete or bulk-edit.
    """

    model = RefreshToken

    async def find_by_token(
        self, session: AsyncSession, token: str, reload: bool = False
    ) -> RefreshToken | None:
        """
        Exact-match lookup by the opaque token string.

        ``reload`` re-reads the row over a record already loaded in this session.
        """
        return await self.get_single(session, populate_existing=reload, token=token)

    async def insert(self, session: AsyncSession, data: dict[str, Any]) -> RefreshToken:
        return await self.create(session, data)

    async def mark_used(self, session: AsyncSession, token: str, now: datetime) -> bool:
        """
        Flip ``is_used`` from false to true on a record that is still redeemable.

        Returns True only for the caller that performed the transition. A
        concurrent caller blocked on the same row, or one racing a revocation
        or the record's expiry, sees zero matched rows.
        """
        updated = await self.update_where(
            session,
            {"is_used": True},
            self.model.token == token,
            self.model.is_used.is_(False),
            self.model.is_revoked.is_(False),
            self.model.expires_at > now,
        )
        return updated == 1

    async def revoke(self, session: AsyncSession, token: str) -> bool:
        """Set ``is_revoked``; returns False when the record was missing or already revoked."""
        updated = await self.update_where(
            session,
            {"is_revoked": True},
            self.model.token == token,
            self.model.is_revoked.is_(False),
        )
        if updated:
            logger.info("[RefreshTokenRepository] Refresh token revoked")
        return updated == 1
