from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime

from loggers import get_logger
from src.core.database.uow import ApplicationUnitOfWork
from src.core.utils.datetime_utils import ensure_aware_utc
from src.user.auth.enums import RefreshFailureReason
from src.user.auth.exceptions import RefreshTokenException, TokenDecodeException
from src.user.auth.jwt_payload_schema import JWTPayload
from src.user.auth.models import RefreshToken
from src.user.auth.security import AccessTokenCodec

logger = get_logger(__name__)


@dataclass(slots=True)
class RefreshAttempt:
    """State accumulated while a presented token pair passes through the gates."""

    access_token: str
    refresh_token: str
    now: datetime
    claims: JWTPayload | None = None
    record: RefreshToken | None = None


Gate = Callable[
    [RefreshAttempt, ApplicationUnitOfWork], Awaitable[RefreshFailureReason | None]
]


class RefreshTokenValidator:
    """
    Runs a refresh attempt through the ordered validation gates.

    Each gate either returns a failure reason, which stops the pipeline, or
    ``None`` to let the attempt through. Only the first failure is reported.
    """

    def __init__(self, codec: AccessTokenCodec) -> None:
        self.codec = codec

    @property
    def gates(self) -> tuple[Gate, ...]:
        return (
            self.check_signature,
            self.check_algorithm,
            self.check_access_token_expired,
            self.check_record_exists,
            *self.record_state_gates,
            self.check_binding,
        )

    @property
    def record_state_gates(self) -> tuple[Gate, ...]:
        """Gates that depend only on the mutable state of the stored record."""
        return (
            self.check_not_used,
            self.check_not_revoked,
            self.check_record_not_expired,
        )

    async def validate(
        self, uow: ApplicationUnitOfWork, attempt: RefreshAttempt
    ) -> tuple[JWTPayload, RefreshToken]:
        for gate in self.gates:
            reason = await gate(attempt, uow)
            if reason is not None:
                logger.info(
                    "[RefreshProtocol] Attempt rejected by %s: %s",
                    gate.__name__,
                    reason,
                )
                raise RefreshTokenException(reason)

        if attempt.claims is None or attempt.record is None:
            raise RefreshTokenException(RefreshFailureReason.REFRESH_FAILED)
        return attempt.claims, attempt.record

    async def explain_lost_consume(
        self, uow: ApplicationUnitOfWork, attempt: RefreshAttempt
    ) -> RefreshFailureReason:
        """
        Re-read the record after a failed ``mark_used`` and name what changed
        since validation: a concurrent redemption, a revocation or expiry.
        """
        attempt.record = await uow.refresh_tokens.find_by_token(
            uow.session, attempt.refresh_token, reload=True
        )
        if attempt.record is None:
            return RefreshFailureReason.UNKNOWN_REFRESH_TOKEN
        for gate in self.record_state_gates:
            reason = await gate(attempt, uow)
            if reason is not None:
                return reason
        return RefreshFailureReason.TOKEN_ALREADY_USED

    async def check_signature(
        self, attempt: RefreshAttempt, uow: ApplicationUnitOfWork
    ) -> RefreshFailureReason | None:
        try:
            attempt.claims = self.codec.verify(attempt.access_token)
        except TokenDecodeException as exc:
            logger.debug("[RefreshProtocol] Access token rejected: %s", exc.message)
            return RefreshFailureReason.INVALID_TOKEN
        return None

    async def check_algorithm(
        self, attempt: RefreshAttempt, uow: ApplicationUnitOfWork
    ) -> RefreshFailureReason | None:
        if not self.codec.has_expected_algorithm(attempt.access_token):
            return RefreshFailureReason.INVALID_TOKEN
        return None

    async def check_access_token_expired(
        self, attempt: RefreshAttempt, uow: ApplicationUnitOfWork
    ) -> RefreshFailureReason | None:
        if attempt.claims is None:
            return RefreshFailureReason.INVALID_TOKEN
        if not self.codec.is_expired(attempt.claims, now=attempt.now):
            return RefreshFailureReason.TOKEN_NOT_YET_EXPIRED
        return None

    async def check_record_exists(
        self, attempt: RefreshAttempt, uow: ApplicationUnitOfWork
    ) -> RefreshFailureReason | None:
        attempt.record = await uow.refresh_tokens.find_by_token(
            uow.session, attempt.refresh_token
        )
        if attempt.record is None:
            return RefreshFailureReason.UNKNOWN_REFRESH_TOKEN
        return None

    async def check_not_used(
        self, attempt: RefreshAttempt, uow: ApplicationUnitOfWork
    ) -> RefreshFailureReason | None:
        if attempt.record is not None and attempt.record.is_used:
            return RefreshFailureReason.TOKEN_ALREADY_USED
        return None

    async def check_not_revoked(
        self, attempt: RefreshAttempt, uow: ApplicationUnitOfWork
    ) -> RefreshFailureReason | None:
        if attempt.record is not None and attempt.record.is_revoked:
            return RefreshFailureReason.TOKEN_REVOKED
        return None

    async def check_record_not_expired(
        self, attempt: RefreshAttempt, uow: ApplicationUnitOfWork
    ) -> RefreshFailureReason | None:
        if attempt.record is None:
            return None
        if ensure_aware_utc(attempt.record.expires_at) <= attempt.now:
            return RefreshFailureReason.REFRESH_TOKEN_EXPIRED
        return None

    async def check_binding(
        self, attempt: RefreshAttempt, uow: ApplicationUnitOfWork
    ) -> RefreshFailureReason | None:
        if attempt.claims is None or attempt.record is None:
            return RefreshFailureReason.REFRESH_FAILED
        if attempt.record.jwt_id != attempt.claims["jti"]:
            return RefreshFailureReason.TOKEN_MISMATCH
        return None
