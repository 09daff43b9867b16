import logging

import sentry_sdk
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.errors.exceptions import InfrastructureException
from src.system.schemas import HealthCheckResponse


class HealthService:
    """Reports whether the token store answers queries."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.logger = logging.getLogger(__name__)

    async def get_status(self) -> HealthCheckResponse:
        if not await self._check_postgres():
            raise InfrastructureException(
                "System health check failed",
                additional_info={"postgres": False},
            )
        return HealthCheckResponse(status="ok", database="ok")

    async def _check_postgres(self) -> bool:
        try:
            await self.session.execute(text("SELECT 1"))
            return True
        except (SQLAlchemyError, TimeoutError) as exc:
            self.logger.error("Postgres health check failed", exc_info=exc)
            sentry_sdk.capture_exception(exc)
            return False
