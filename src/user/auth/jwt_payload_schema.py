from typing import Literal, TypedDict


class JWTPayload(TypedDict):
    """Type definition for the access token claim set"""

    sub: str  # User ID
    email: str
    jti: str  # Binds the access token to its refresh token record
    iat: int  # Issued-at timestamp
    exp: int  # Expiration timestamp
    mode: Literal["access_token"]
