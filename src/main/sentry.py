import logging
from typing import Any

import sentry_sdk
from sentry_sdk.integrations.logging import LoggingIntegration

from loggers import get_logger
from src.main.config import Config, config

logger = get_logger(__name__)

_sentry_initialized = False


def _scrub_event(event: Any, hint: dict[str, Any]) -> Any:
    """Drop request bodies: they carry passwords and token values."""
    request = event.get("request")
    if isinstance(request, dict):
        request.pop("data", None)
        headers = request.get("headers")
        if isinstance(headers, dict):
            for key in list(headers):
                if key.lower() == "authorization":
                    headers[key] = "[Filtered]"
    return event


def init_sentry(settings: Config = config) -> bool:
    """
    Initialize the Sentry client once. Returns whether Sentry is active.
    """
    global _sentry_initialized

    if _sentry_initialized:
        return True

    if settings.app.DEBUG or settings.app.TESTING:
        logger.info("DEBUG/TESTING enabled. Skipping Sentry initialization.")
        return False

    if not settings.sentry.SENTRY_ENABLED or not settings.sentry.SENTRY_DSN:
        logger.info("Sentry disabled or DSN empty. Skipping Sentry initialization.")
        return False

    sentry_sdk.init(
        dsn=settings.sentry.SENTRY_DSN,
        environment=settings.sentry.SENTRY_ENV,
        release=settings.app.VERSION,
        send_default_pii=False,
        before_send=_scrub_event,
        integrations=[
            LoggingIntegration(
                level=logging.INFO,  # breadcrumbs from INFO and up
                event_level=logging.CRITICAL,  # lower levels require explicit capture
            ),
        ],
    )
    _sentry_initialized = True
    logger.info("Sentry initialized.")
    return True
