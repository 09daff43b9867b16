from fastapi import Depends
import sentry_sdk

from loggers import get_logger
from src.core.database.session import get_unit_of_work
from src.core.database.uow import ApplicationUnitOfWork
from src.core.utils.datetime_utils import Clock, get_utc_now
from src.user.auth.dependencies import (
    get_clock,
    get_refresh_token_validator,
    get_token_issuer,
)
from src.user.auth.enums import RefreshFailureReason
from src.user.auth.exceptions import RefreshTokenException
from src.user.auth.issuer import IssuedTokenPair, TokenIssuer
from src.user.auth.refresh_protocol import RefreshAttempt, RefreshTokenValidator
from src.user.auth.schemas import AuthResultModel, TokenRequestModel

logger = get_logger(__name__)


class RefreshTokensUseCase:
    """
    Exchange an expired access token and its bound refresh token for a new pair.

    The presented refresh token is consumed with a conditional update, so of
    several concurrent attempts with the same token exactly one gets a new pair.
    Consumption also re-checks revocation and expiry, and is committed together
    with the new record.
    """

    def __init__(
        self,
        uow: ApplicationUnitOfWork,
        validator: RefreshTokenValidator,
        issuer: TokenIssuer,
        clock: Clock | None = None,
    ) -> None:
        self.uow = uow
        self.validator = validator
        self.issuer = issuer
        self._clock = clock or get_utc_now

    async def execute(self, data: TokenRequestModel) -> AuthResultModel:
        attempt = RefreshAttempt(
            access_token=data.token,
            refresh_token=data.refresh_token,
            now=self._clock(),
        )
        try:
            pair = await self._rotate(attempt)
        except RefreshTokenException:
            raise
        except Exception as exc:
            logger.exception("[RefreshTokens] Unexpected failure while refreshing tokens")
            sentry_sdk.capture_exception(exc)
            raise RefreshTokenException(RefreshFailureReason.REFRESH_FAILED) from exc

        return AuthResultModel.from_pair(pair)

    async def _rotate(self, attempt: RefreshAttempt) -> IssuedTokenPair:
        async with self.uow as uow:
            _, record = await self.validator.validate(uow, attempt)

            consumed = await uow.refresh_tokens.mark_used(
                uow.session, record.token, attempt.now
            )
            if not consumed:
                reason = await self.validator.explain_lost_consume(uow, attempt)
                logger.info(
                    "[RefreshTokens] Refresh token for user '%s' changed during refresh: %s",
                    record.user_id,
                    reason,
                )
                raise RefreshTokenException(reason)

            user = await uow.users.get_single(uow.session, id=record.user_id)
            if user is None:
                raise RefreshTokenException(
                    RefreshFailureReason.REFRESH_FAILED,
                    additional_info={"user_id": str(record.user_id)},
                )

            pair = await self.issuer.issue_pair(uow, user, commit=True)

        logger.info("[RefreshTokens] Rotated token pair for user '%s'", user.id)
        return pair


def get_refresh_tokens_use_case(
    uow: ApplicationUnitOfWork = Depends(get_unit_of_work),
    validator: RefreshTokenValidator = Depends(get_refresh_token_validator),
    issuer: TokenIssuer = Depends(get_token_issuer),
    clock: Clock = Depends(get_clock),
) -> RefreshTokensUseCase:
    return RefreshTokensUseCase(
        uow=uow, validator=validator, issuer=issuer, clock=clock
    )
