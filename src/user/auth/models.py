from datetime import datetime
from uuid import UUID as PY_UUID

from sqlalchemy import Boolean, DateTime, ForeignKey, String
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.core.database.base import Base
from src.core.database.mixins import TimestampMixin, UUIDIDMixin


class RefreshToken(Base, UUIDIDMixin, TimestampMixin):
    """
    Persisted half of a token pair.

    ``jwt_id`` holds the jti of the access token issued alongside, one record per
    access token. ``is_used`` and ``is_revoked`` only ever move from false to true.
    """

    __tablename__ = "refresh_tokens"

    token: Mapped[str] = mapped_column(String(128), unique=True, index=True)
    jwt_id: Mapped[str] = mapped_column(String(64), unique=True)
    user_id: Mapped[PY_UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
    )
    is_used: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_revoked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    issued_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    def __repr__(self) -> str:
        return (
            f"<RefreshToken(jwt_id={self.jwt_id!r}, user_id={str(self.user_id)}, "
            f"is_used={self.is_used}, is_revoked={self.is_revoked})>"
        )
