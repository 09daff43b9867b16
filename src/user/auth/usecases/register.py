from fastapi import Depends
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from loggers import get_logger
from src.core.database.session import get_unit_of_work
from src.core.database.uow import ApplicationUnitOfWork
from src.core.utils.security import mask_email
from src.user.auth.dependencies import get_token_issuer
from src.user.auth.exceptions import CredentialException, StorageException
from src.user.auth.issuer import TokenIssuer
from src.user.auth.schemas import AuthResultModel, CreateUserModel

EMAIL_IN_USE_MESSAGE = "Email already in use"
USERNAME_TAKEN_MESSAGE = "Username '{username}' is already taken"

# Named by the metadata naming convention for the unique username column
USERNAME_UNIQUE_CONSTRAINT = "uq_users_username"

logger = get_logger(__name__)


class RegisterUseCase:
    """Use case for user registration. A new account receives its first token pair."""

    def __init__(self, uow: ApplicationUnitOfWork, issuer: TokenIssuer) -> None:
        self.uow = uow
        self.issuer = issuer

    async def execute(self, data: CreateUserModel) -> AuthResultModel:
        async with self.uow as uow:
            if await uow.users.exists(uow.session, email=data.email):
                logger.debug(
                    "[Register User] Email '%s' already registered.",
                    mask_email(data.email),
                )
                raise CredentialException(EMAIL_IN_USE_MESSAGE)

            if await uow.users.exists(uow.session, username=data.username):
                raise CredentialException(
                    USERNAME_TAKEN_MESSAGE.format(username=data.username)
                )

            try:
                user = await uow.users.create_identity(
                    uow.session,
                    email=data.email,
                    username=data.username,
                    password=data.password,
                )
                await uow.flush()
            except IntegrityError as exc:
                # Lost a race with a concurrent registration for the same identity
                raise CredentialException(
                    self._conflict_message(exc, data.username),
                    additional_info={"username": data.username},
                ) from exc
            except SQLAlchemyError as exc:
                raise StorageException("Unable to create user") from exc

            pair = await self.issuer.issue_pair(uow, user, commit=True)

        logger.info("[Register User] User '%s' registered successfully.", data.username)
        return AuthResultModel.from_pair(pair)

    @staticmethod
    def _conflict_message(exc: IntegrityError, username: str) -> str:
        if USERNAME_UNIQUE_CONSTRAINT in str(exc.orig):
            return USERNAME_TAKEN_MESSAGE.format(username=username)
        return EMAIL_IN_USE_MESSAGE


def get_register_use_case(
    uow: ApplicationUnitOfWork = Depends(get_unit_of_work),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> RegisterUseCase:
    return RegisterUseCase(uow=uow, issuer=issuer)
