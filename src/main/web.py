import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sentry_sdk.integrations.asgi import SentryAsgiMiddleware

from loggers import get_logger
from src.core.middleware import register_middlewares
from src.main.config import Config, config
from src.main.lifespan import lifespan
from src.main.presentation import include_exceptions_handlers, include_routers

logging.getLogger("uvicorn.access").disabled = True
logger = get_logger(__name__)


def get_application(settings: Config = config) -> FastAPI:
    application = FastAPI(
        title=settings.app.PROJECT_NAME,
        debug=settings.app.DEBUG,
        version=settings.app.VERSION,
        lifespan=lifespan,
    )

    register_middlewares(application)

    application.add_middleware(
        CORSMiddleware,  # noqa
        allow_origins=settings.app.CORS_ALLOWED_ORIGINS,
        allow_credentials=settings.app.CORS_ALLOW_CREDENTIALS,
        allow_methods=settings.app.CORS_ALLOWED_METHODS,
        allow_headers=settings.app.CORS_ALLOWED_HEADERS,
        expose_headers=settings.app.CORS_EXPOSE_HEADERS,
    )

    include_exceptions_handlers(application)
    include_routers(application)
    logger.info(
        "Application configured: %s routes",
        sum(1 for _ in application.routes),
    )

    application.add_middleware(SentryAsgiMiddleware)

    return application


app = get_application()
