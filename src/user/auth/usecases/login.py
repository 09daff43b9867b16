from fastapi import Depends

from loggers import get_logger
from src.core.database.session import get_unit_of_work
from src.core.database.uow import ApplicationUnitOfWork
from src.core.utils.security import hash_password, mask_email, verify_password
from src.user.auth.dependencies import get_token_issuer
from src.user.auth.exceptions import CredentialException
from src.user.auth.issuer import TokenIssuer
from src.user.auth.schemas import AuthResultModel, LoginUserModel

INVALID_CREDENTIALS_MESSAGE = "Invalid login request"
INVALID_CREDENTIALS_PASSWORD_HASH = hash_password("dummy-password")
logger = get_logger(__name__)


class LoginUserUseCase:
    """Use case for logging in user."""

    def __init__(self, uow: ApplicationUnitOfWork, issuer: TokenIssuer) -> None:
        self.uow = uow
        self.issuer = issuer

    async def execute(self, data: LoginUserModel) -> AuthResultModel:
        async with self.uow as uow:
            user = await uow.users.find_by_email(uow.session, data.email)
            if not user:
                logger.debug(
                    "[LoginUser] User with email '%s' not found.",
                    mask_email(data.email),
                )
                await verify_password(data.password, INVALID_CREDENTIALS_PASSWORD_HASH)
                raise CredentialException(INVALID_CREDENTIALS_MESSAGE)

            correct_password = await verify_password(data.password, user.password_hash)
            if not correct_password:
                logger.debug(
                    "[LoginUser] Incorrect password for user '%s'",
                    mask_email(data.email),
                )
                raise CredentialException(INVALID_CREDENTIALS_MESSAGE)

            pair = await self.issuer.issue_pair(uow, user, commit=True)

        logger.info("[LoginUser] User '%s' logged in.", user.id)
        return AuthResultModel.from_pair(pair)


def get_login_user_use_case(
    uow: ApplicationUnitOfWork = Depends(get_unit_of_work),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> LoginUserUseCase:
    return LoginUserUseCase(uow=uow, issuer=issuer)
