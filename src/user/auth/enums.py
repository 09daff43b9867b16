from enum import StrEnum


class RefreshFailureReason(StrEnum):
    """Tagged outcomes of a rejected refresh attempt."""

    INVALID_TOKEN = "invalid_token"
    TOKEN_NOT_YET_EXPIRED = "token_not_yet_expired"
    UNKNOWN_REFRESH_TOKEN = "unknown_refresh_token"
    TOKEN_ALREADY_USED = "token_already_used"
    TOKEN_REVOKED = "token_revoked"
    REFRESH_TOKEN_EXPIRED = "refresh_token_expired"
    TOKEN_MISMATCH = "token_mismatch"
    REFRESH_FAILED = "refresh_failed"

    @property
    def client_message(self) -> str:
        return REFRESH_FAILURE_MESSAGES[self]


REFRESH_FAILURE_MESSAGES: dict[RefreshFailureReason, str] = {
    RefreshFailureReason.INVALID_TOKEN: "Invalid tokens",
    RefreshFailureReason.TOKEN_NOT_YET_EXPIRED: "Token has not yet expired",
    RefreshFailureReason.UNKNOWN_REFRESH_TOKEN: "Token does not exist",
    RefreshFailureReason.TOKEN_ALREADY_USED: "Token has been used",
    RefreshFailureReason.TOKEN_REVOKED: "Token has been revoked",
    RefreshFailureReason.REFRESH_TOKEN_EXPIRED: "Token has expired",
    RefreshFailureReason.TOKEN_MISMATCH: "Token doesn't match",
    RefreshFailureReason.REFRESH_FAILED: "Invalid tokens",
}
