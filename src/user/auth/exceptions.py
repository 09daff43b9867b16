from typing import Any

from src.core.errors.exceptions import (
    InfrastructureException,
    InstanceProcessingException,
    UnauthorizedException,
)
from src.user.auth.enums import RefreshFailureReason


class CredentialException(InstanceProcessingException):
    """Unknown account, wrong password or a taken e-mail/username."""


class StorageException(InfrastructureException):
    """A store call failed or timed out while issuing tokens."""


# ----- Codec errors ----- #
class TokenDecodeException(UnauthorizedException):
    pass


class MalformedTokenException(TokenDecodeException):
    pass


class InvalidSignatureException(TokenDecodeException):
    pass


class InvalidAlgorithmException(TokenDecodeException):
    pass


class TokenExpiredException(TokenDecodeException):
    pass


# ----- Refresh protocol errors ----- #
class RefreshTokenException(UnauthorizedException):
    def __init__(
        self,
        reason: RefreshFailureReason,
        additional_info: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(reason.client_message, additional_info)
        self.reason = reason
