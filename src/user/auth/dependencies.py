from uuid import UUID

from fastapi import Depends, Security
from fastapi.security.api_key import APIKeyHeader
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.database.session import get_session
from src.core.errors.exceptions import UnauthorizedException
from src.core.utils.datetime_utils import Clock, get_utc_now
from src.main.config import Config, get_settings
from src.user.auth.issuer import TokenIssuer
from src.user.auth.refresh_protocol import RefreshTokenValidator
from src.user.auth.security import AccessTokenCodec
from src.user.models import User
from src.user.repositories import UserRepository

access_token_header = APIKeyHeader(
    name="Authorization", scheme_name="access-token", auto_error=False
)

BEARER_PREFIX = "bearer "


def get_clock() -> Clock:
    return get_utc_now


def get_access_token_codec(
    settings: Config = Depends(get_settings),
    clock: Clock = Depends(get_clock),
) -> AccessTokenCodec:
    return AccessTokenCodec.from_config(settings.jwt, clock=clock)


def get_token_issuer(
    settings: Config = Depends(get_settings),
    codec: AccessTokenCodec = Depends(get_access_token_codec),
    clock: Clock = Depends(get_clock),
) -> TokenIssuer:
    return TokenIssuer.from_config(codec, settings.jwt, clock=clock)


def get_refresh_token_validator(
    codec: AccessTokenCodec = Depends(get_access_token_codec),
) -> RefreshTokenValidator:
    return RefreshTokenValidator(codec)


def get_user_repository() -> UserRepository:
    return UserRepository()


def strip_bearer_prefix(header_value: str) -> str:
    value = header_value.strip()
    if value.lower().startswith(BEARER_PREFIX):
        return value[len(BEARER_PREFIX) :].strip()
    return value


async def get_current_user(
    token: str | None = Security(access_token_header),
    session: AsyncSession = Depends(get_session),
    codec: AccessTokenCodec = Depends(get_access_token_codec),
    users: UserRepository = Depends(get_user_repository),
) -> User:
    """
    Get the current authenticated user from the access token.

    Args:
        token: The ``Authorization`` header, with or without the ``Bearer`` prefix
        session: Database session
        codec: Access token codec bound to the request clock
        users: Credential store

    Returns:
        User: The authenticated user

    Raises:
        UnauthorizedException: If authentication fails
    """
    if not token:
        raise UnauthorizedException("Not authenticated")

    payload = codec.verify_for_authorization(strip_bearer_prefix(token))

    credentials_exception = UnauthorizedException("Could not validate credentials")
    try:
        user_id = UUID(payload["sub"])
    except ValueError:
        raise credentials_exception

    user = await users.get_single(session, id=user_id)
    if not user:
        raise credentials_exception

    return user
