from fastapi import Depends

from loggers import get_logger
from src.core.database.session import get_unit_of_work
from src.core.database.uow import ApplicationUnitOfWork
from src.core.errors.exceptions import InstanceNotFoundException
from src.core.schemas import SuccessResponse
from src.user.auth.enums import RefreshFailureReason
from src.user.auth.schemas import RevokeTokenModel
from src.user.models import User

logger = get_logger(__name__)


class RevokeRefreshTokenUseCase:
    """Revoke one of the current user's refresh tokens. Revoking twice is a no-op."""

    def __init__(self, uow: ApplicationUnitOfWork) -> None:
        self.uow = uow

    async def execute(self, user: User, data: RevokeTokenModel) -> SuccessResponse:
        async with self.uow as uow:
            record = await uow.refresh_tokens.find_by_token(
                uow.session, data.refresh_token
            )
            if record is None or record.user_id != user.id:
                raise InstanceNotFoundException(
                    RefreshFailureReason.UNKNOWN_REFRESH_TOKEN.client_message
                )

            if not record.is_revoked:
                await uow.refresh_tokens.revoke(uow.session, record.token)
                await uow.commit()
                logger.info("[RevokeRefreshToken] User '%s' revoked a token", user.id)

        return SuccessResponse(success=True)


def get_revoke_refresh_token_use_case(
    uow: ApplicationUnitOfWork = Depends(get_unit_of_work),
) -> RevokeRefreshTokenUseCase:
    return RevokeRefreshTokenUseCase(uow=uow)
