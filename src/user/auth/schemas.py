from typing import TYPE_CHECKING

from pydantic import EmailStr, Field, field_validator

from src.core.schemas import Base, EmailNormalizationMixin
from src.core.validations import (
    EMAIL_MAX_LENGTH,
    PASSWORD_MAX_LENGTH,
    USERNAME_MAX_LENGTH,
    USERNAME_VALIDATOR,
)

if TYPE_CHECKING:
    from src.user.auth.issuer import IssuedTokenPair


class CreateUserModel(EmailNormalizationMixin, Base):
    username: str = Field(min_length=1, max_length=USERNAME_MAX_LENGTH)
    email: EmailStr = Field(max_length=EMAIL_MAX_LENGTH)
    password: str = Field(min_length=1, max_length=PASSWORD_MAX_LENGTH)

    @field_validator("username")
    @classmethod
    def validate_username(cls, value: str) -> str:
        if not USERNAME_VALIDATOR.match(value):
            raise ValueError(
                "Username must be from 1 to 60 symbols without whitespace or control characters"
            )
        return value


class LoginUserModel(EmailNormalizationMixin, Base):
    email: EmailStr
    password: str = Field(min_length=1, max_length=PASSWORD_MAX_LENGTH)


class TokenRequestModel(Base):
    token: str = Field(min_length=1)
    refresh_token: str = Field(min_length=1)


class RevokeTokenModel(Base):
    refresh_token: str = Field(min_length=1)


class AuthResultModel(Base):
    """Envelope returned by register, login and refresh."""

    success: bool
    token: str | None = None
    refresh_token: str | None = None
    errors: list[str] = Field(default_factory=list)

    @classmethod
    def from_pair(cls, pair: "IssuedTokenPair") -> "AuthResultModel":
        return cls(
            success=True,
            token=pair.access_token,
            refresh_token=pair.refresh_token,
        )
