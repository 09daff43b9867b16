from collections.abc import Awaitable, Callable
from dataclasses import dataclass
import time

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import sentry_sdk
from sqlalchemy.exc import IntegrityError, OperationalError, ProgrammingError
from starlette.responses import Response

from loggers import get_logger
from src.core.errors.handlers import UNEXPECTED_ERROR_MESSAGE, format_error_response

logger = get_logger(__name__)
timing_logger = get_logger("src.request.timing", plain_format=True)

STORAGE_UNAVAILABLE_MESSAGE = "Storage is temporarily unavailable"
CONFLICT_MESSAGE = "Conflicting record already exists"

SLOW_REQUEST_THRESHOLD_SECONDS = 0.5
VERY_SLOW_REQUEST_THRESHOLD_SECONDS = 2


@dataclass(slots=True)
class PostgresqlErrorHandlingResult:
    response: JSONResponse
    send_to_sentry: bool
    is_server_error: bool


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=format_error_response(message))


def register_middlewares(app: FastAPI) -> None:
    """Registers all custom middlewares in proper order"""

    @app.middleware("http")
    async def security_headers_middleware(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        response = await call_next(request)
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Content-Security-Policy", "frame-ancestors 'none'")
        # Token responses must never be cached by intermediaries
        response.headers.setdefault("Cache-Control", "no-store")
        return response

    @app.middleware("http")
    async def request_timing_middleware(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        start_time = time.perf_counter()
        response = await call_next(request)
        process_time = time.perf_counter() - start_time

        if process_time < SLOW_REQUEST_THRESHOLD_SECONDS:
            level, category = timing_logger.info, "[FAST]"
        elif process_time < VERY_SLOW_REQUEST_THRESHOLD_SECONDS:
            level, category = timing_logger.warning, "[MODERATE]"
        else:
            level, category = timing_logger.warning, "[SLOW]"

        level(
            "%s %s %s |%.3fs|%s",
            category,
            request.method,
            request.url.path,
            process_time,
            response.status_code,
        )
        return response

    @app.middleware("http")
    async def database_error_middleware(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        try:
            return await call_next(request)
        except IntegrityError as exc:
            handled_result = handle_postgresql_error(exc)
            log_message = "Integrity error at %s: %s"
            if handled_result.is_server_error:
                logger.error(log_message, request.url.path, exc.orig, exc_info=True)
            else:
                logger.info(log_message, request.url.path, exc.orig)
            if handled_result.send_to_sentry:
                sentry_sdk.capture_exception(exc)
            return handled_result.response
        except (OperationalError, TimeoutError) as exc:
            logger.error(
                "Database connection error at %s: %s",
                request.url.path,
                exc.__class__.__name__,
            )
            sentry_sdk.capture_exception(exc)
            return _error_response(500, STORAGE_UNAVAILABLE_MESSAGE)
        except ProgrammingError as exc:
            logger.error("SQL error at %s: %s", request.url.path, exc.orig)
            sentry_sdk.capture_exception(exc)
            return _error_response(500, UNEXPECTED_ERROR_MESSAGE)

    @app.middleware("http")
    async def unexpected_error_middleware(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            logger.exception("Unexpected error at %s", request.url.path)
            sentry_sdk.capture_exception(exc)
            return _error_response(500, UNEXPECTED_ERROR_MESSAGE)


def handle_postgresql_error(error: IntegrityError) -> PostgresqlErrorHandlingResult:
    """
    Map a PostgreSQL IntegrityError to a response, a Sentry flag and a log severity.

    Constraint details are kept out of the response body: they may contain the
    e-mail or token value that collided.
    """
    sqlstate = getattr(error.orig, "sqlstate", None)

    if sqlstate == "23505":  # UniqueViolation
        return PostgresqlErrorHandlingResult(
            response=_error_response(409, CONFLICT_MESSAGE),
            send_to_sentry=False,
            is_server_error=False,
        )
    if sqlstate == "23503":  # ForeignKeyViolation
        return PostgresqlErrorHandlingResult(
            response=_error_response(400, "Referenced record does not exist"),
            send_to_sentry=False,
            is_server_error=False,
        )

    return PostgresqlErrorHandlingResult(
        response=_error_response(500, UNEXPECTED_ERROR_MESSAGE),
        send_to_sentry=True,
        is_server_error=True,
    )
