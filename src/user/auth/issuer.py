from dataclasses import dataclass
from datetime import timedelta
import secrets
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from loggers import get_logger
from src.core.database.uow import ApplicationUnitOfWork
from src.core.utils.datetime_utils import Clock, get_utc_now
from src.main.config import JWTConfig
from src.user.auth.exceptions import StorageException
from src.user.auth.security import AccessTokenCodec
from src.user.models import User

logger = get_logger(__name__)

# 48 random bytes, 64 url-safe characters
REFRESH_TOKEN_BYTES = 48


def generate_refresh_token() -> str:
    return secrets.token_urlsafe(REFRESH_TOKEN_BYTES)


@dataclass(frozen=True, slots=True)
class IssuedTokenPair:
    access_token: str
    refresh_token: str
    jti: str


class TokenIssuer:
    """Mints an access token and persists its bound refresh token record."""

    def __init__(
        self,
        codec: AccessTokenCodec,
        access_token_ttl: timedelta,
        refresh_token_ttl: timedelta,
        clock: Clock | None = None,
    ) -> None:
        self.codec = codec
        self.access_token_ttl = access_token_ttl
        self.refresh_token_ttl = refresh_token_ttl
        self._clock = clock or get_utc_now

    @classmethod
    def from_config(
        cls,
        codec: AccessTokenCodec,
        jwt_config: JWTConfig,
        clock: Clock | None = None,
    ) -> "TokenIssuer":
        return cls(
            codec=codec,
            access_token_ttl=timedelta(seconds=jwt_config.ACCESS_TOKEN_EXPIRE_SECONDS),
            refresh_token_ttl=timedelta(days=jwt_config.REFRESH_TOKEN_EXPIRE_DAYS),
            clock=clock,
        )

    async def issue_pair(
        self,
        uow: ApplicationUnitOfWork,
        user: User,
        commit: bool = False,
    ) -> IssuedTokenPair:
        """
        Issue a new token pair for ``user`` inside the caller's unit of work.

        The refresh record is flushed (and committed when ``commit`` is set)
        before any token leaves this method, so a client never holds an access
        token whose refresh record was not stored.

        Raises:
            StorageException: The refresh record could not be persisted
        """
        access_token, jti = self.codec.issue(user, self.access_token_ttl)
        issued_at = self._clock()
        data: dict[str, Any] = {
            "token": generate_refresh_token(),
            "jwt_id": jti,
            "user_id": user.id,
            "is_used": False,
            "is_revoked": False,
            "issued_at": issued_at,
            "expires_at": issued_at + self.refresh_token_ttl,
        }

        try:
            record = await uow.refresh_tokens.insert(uow.session, data)
            await uow.flush()
            if commit:
                await uow.commit()
        except (SQLAlchemyError, TimeoutError) as exc:
            logger.error(
                "[TokenIssuer] Failed to persist refresh token for user '%s': %s",
                user.id,
                exc.__class__.__name__,
            )
            raise StorageException(
                "Unable to issue tokens",
                additional_info={"user_id": str(user.id)},
            ) from exc

        logger.info("[TokenIssuer] Issued token pair for user '%s'", user.id)
        return IssuedTokenPair(
            access_token=access_token,
            refresh_token=record.token,
            jti=jti,
        )
