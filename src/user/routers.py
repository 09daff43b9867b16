from typing import Annotated

from fastapi import APIRouter, Depends

from src.user.auth.dependencies import get_current_user
from src.user.auth.routers import router as auth_router
from src.user.models import User
from src.user.schemas import UserProfileViewModel

router = APIRouter()

router.include_router(auth_router, prefix="/auth")


@router.get(
    "/me",
    response_model=UserProfileViewModel,
)
async def get_user_profile(
    current_user: Annotated[User, Depends(get_current_user)],
) -> UserProfileViewModel:
    """
    Returns the current user's information.
    """
    return UserProfileViewModel.model_validate(current_user)
