from datetime import datetime, timedelta
from typing import Any, cast
from uuid import uuid4

import jwt

from loggers import get_logger
from src.core.utils.datetime_utils import Clock, from_timestamp, get_utc_now
from src.main.config import JWTConfig
from src.user.auth.exceptions import (
    InvalidAlgorithmException,
    InvalidSignatureException,
    MalformedTokenException,
    TokenExpiredException,
)
from src.user.auth.jwt_payload_schema import JWTPayload
from src.user.models import User

logger = get_logger(__name__)

ACCESS_TOKEN_MODE = "access_token"
REQUIRED_CLAIMS = ("sub", "jti", "exp")

# Time-based claims are checked against the injected clock, never by PyJWT,
# so an expired token can still prove identity during refresh.
_DECODE_OPTIONS: dict[str, Any] = {
    "verify_signature": True,
    "verify_exp": False,
    "verify_iat": False,
    "verify_nbf": False,
    "require": list(REQUIRED_CLAIMS),
}


class AccessTokenCodec:
    """
    Issues and verifies signed access tokens with a single symmetric key.

    Tokens declaring any algorithm other than the configured one are rejected
    before the signature is checked, which rules out ``alg: none`` and
    algorithm substitution.
    """

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        clock: Clock | None = None,
    ) -> None:
        if not secret_key:
            raise ValueError("secret_key must not be empty")
        self._secret_key = secret_key
        self._algorithm = algorithm
        self._clock = clock or get_utc_now

    @classmethod
    def from_config(
        cls, jwt_config: JWTConfig, clock: Clock | None = None
    ) -> "AccessTokenCodec":
        return cls(
            secret_key=jwt_config.JWT_USER_SECRET_KEY,
            algorithm=jwt_config.ALGORITHM,
            clock=clock,
        )

    @property
    def algorithm(self) -> str:
        return self._algorithm

    def now(self) -> datetime:
        return self._clock()

    def issue(self, user: User, ttl: timedelta) -> tuple[str, str]:
        """
        Create a signed access token for ``user``.

        Args:
            user: The identity the token is issued to
            ttl: Lifetime of the token, must not be negative

        Returns:
            tuple[str, str]: The encoded token and its freshly generated jti
        """
        if ttl < timedelta(0):
            raise ValueError("ttl must not be negative")

        issued_at = self._clock()
        jti = str(uuid4())
        payload: JWTPayload = {
            "sub": str(user.id),
            "email": user.email,
            "jti": jti,
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + ttl).timestamp()),
            "mode": ACCESS_TOKEN_MODE,
        }

        encoded_jwt = jwt.encode(dict(payload), self._secret_key, self._algorithm)
        return str(encoded_jwt), jti

    def has_expected_algorithm(self, token: str) -> bool:
        """Compare the unverified header ``alg`` with the configured algorithm."""
        try:
            header = jwt.get_unverified_header(token)
        except jwt.PyJWTError:
            return False
        return header.get("alg") == self._algorithm

    def verify(self, token: str) -> JWTPayload:
        """
        Verify the signature and structure of ``token`` without looking at its expiry.

        Raises:
            MalformedTokenException: The token cannot be parsed or misses required claims
            InvalidAlgorithmException: The header declares another signing algorithm
            InvalidSignatureException: The MAC does not match
        """
        try:
            header = jwt.get_unverified_header(token)
        except jwt.PyJWTError as exc:
            raise MalformedTokenException("Malformed token") from exc

        if header.get("alg") != self._algorithm:
            logger.warning(
                "[AccessTokenCodec] Rejected token signed with alg=%r", header.get("alg")
            )
            raise InvalidAlgorithmException("Unexpected token signing algorithm")

        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self._algorithm],
                options=_DECODE_OPTIONS,
            )
        except jwt.InvalidSignatureError as exc:
            raise InvalidSignatureException("Invalid token signature") from exc
        except jwt.InvalidAlgorithmError as exc:
            raise InvalidAlgorithmException("Unexpected token signing algorithm") from exc
        except jwt.PyJWTError as exc:
            raise MalformedTokenException("Malformed token") from exc

        if payload.get("mode") != ACCESS_TOKEN_MODE or not isinstance(
            payload.get("exp"), int
        ):
            raise MalformedTokenException("Invalid token structure")

        return cast(JWTPayload, payload)

    def is_expired(self, payload: JWTPayload, now: datetime | None = None) -> bool:
        """An access token is expired once ``now`` has reached its ``exp`` claim."""
        current = now or self._clock()
        return from_timestamp(payload["exp"]) <= current

    def verify_for_authorization(self, token: str) -> JWTPayload:
        """
        Verify ``token`` for authenticating a request: signature, algorithm and expiry.

        Raises:
            TokenExpiredException: The token is otherwise valid but expired
        """
        payload = self.verify(token)
        if self.is_expired(payload):
            raise TokenExpiredException("Token expired")
        return payload
