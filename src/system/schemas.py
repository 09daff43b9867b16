from typing import Literal

from src.core.schemas import Base


class HealthCheckResponse(Base):
    """Liveness answer; failures are reported through the error envelope instead."""

    status: Literal["ok"] = "ok"
    database: Literal["ok"] = "ok"
