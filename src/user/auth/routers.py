from typing import Annotated

from fastapi import APIRouter, Depends

from src.core.schemas import SuccessResponse
from src.user.auth.dependencies import get_current_user
from src.user.auth.schemas import (
    AuthResultModel,
    CreateUserModel,
    LoginUserModel,
    RevokeTokenModel,
    TokenRequestModel,
)
from src.user.auth.usecases.login import LoginUserUseCase, get_login_user_use_case
from src.user.auth.usecases.refresh_tokens import (
    RefreshTokensUseCase,
    get_refresh_tokens_use_case,
)
from src.user.auth.usecases.register import RegisterUseCase, get_register_use_case
from src.user.auth.usecases.revoke_refresh_token import (
    RevokeRefreshTokenUseCase,
    get_revoke_refresh_token_use_case,
)
from src.user.models import User

router = APIRouter()


@router.post(
    "/register",
    status_code=201,
    response_model=AuthResultModel,
    response_model_exclude_none=True,
)
async def signup_user(
    user_form_data: CreateUserModel,
    use_case: Annotated[RegisterUseCase, Depends(get_register_use_case)],
) -> AuthResultModel:
    """
    Create a new user account and issue its first token pair.
    """
    return await use_case.execute(data=user_form_data)


@router.post(
    "/login",
    status_code=200,
    response_model=AuthResultModel,
    response_model_exclude_none=True,
)
async def login_user(
    user_form_data: LoginUserModel,
    use_case: Annotated[LoginUserUseCase, Depends(get_login_user_use_case)],
) -> AuthResultModel:
    """
    Exchange e-mail and password for a token pair.
    """
    return await use_case.execute(data=user_form_data)


@router.post(
    "/login/refresh",
    status_code=200,
    response_model=AuthResultModel,
    response_model_exclude_none=True,
)
async def refresh_tokens(
    data: TokenRequestModel,
    use_case: Annotated[RefreshTokensUseCase, Depends(get_refresh_tokens_use_case)],
) -> AuthResultModel:
    """
    Exchange an expired access token and its refresh token for a new pair.
    The presented refresh token can be used only once.
    """
    return await use_case.execute(data=data)


@router.post(
    "/revoke",
    status_code=200,
    response_model=SuccessResponse,
)
async def revoke_refresh_token(
    data: RevokeTokenModel,
    current_user: Annotated[User, Depends(get_current_user)],
    use_case: Annotated[
        RevokeRefreshTokenUseCase, Depends(get_revoke_refresh_token_use_case)
    ],
) -> SuccessResponse:
    """
    Revoke one of the current user's refresh tokens.
    """
    return await use_case.execute(user=current_user, data=data)
