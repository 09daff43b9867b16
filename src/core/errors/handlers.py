from collections.abc import Awaitable, Callable, Iterable
from typing import Any, cast

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
import sentry_sdk
from starlette.responses import Response

from loggers import get_logger
from src.core.errors.exceptions import (
    CoreException,
    InfrastructureException,
    InstanceNotFoundException,
    InstanceProcessingException,
    UnauthorizedException,
)

response_logger = get_logger("app.request.error_response", plain_format=True)

HandlerCallable = Callable[[Request, Exception], Awaitable[Response]]

INVALID_PAYLOAD_MESSAGE = "Invalid payload"
UNEXPECTED_ERROR_MESSAGE = "Unexpected error"
SENSITIVE_KEYS = frozenset(
    {
        "authorization",
        "token",
        "refresh_token",
        "access_token",
        "password",
        "secret",
        "api_key",
        "api-key",
    }
)


def as_exception_handler(handler: Any) -> HandlerCallable:
    """
    Convert a handler class instance to a compatible exception handler callable.
    This helps mypy understand the correct typing for FastAPI exception handlers.
    """
    return cast(HandlerCallable, handler.__call__)


def format_error_response(messages: str | Iterable[str] | None) -> dict[str, Any]:
    """
    Build the failure body shared by every endpoint: ``{"success": false, "errors": [...]}``.
    """
    if messages is None:
        errors = ["No additional details available"]
    elif isinstance(messages, str):
        errors = [messages]
    else:
        errors = list(messages) or ["No additional details available"]
    return {"success": False, "errors": errors}


def format_log_message(
    request: Request,
    error_type: str,
    message: str | None,
    additional_info: dict[str, Any] | None = None,
    include_request_path: bool = False,
) -> str:
    """
    Format error message for logging

    Args:
        request: FastAPI Request object
        error_type: Type of error
        message: Error message
        additional_info: Additional context information for logs only (not shown to clients)
        include_request_path: Include request path and method in the log message

    Returns:
        Formatted log message
    """
    raw_msg = message or "No additional details available"
    msg = " ".join(raw_msg.split())
    if len(msg) > 500:
        msg = msg[:497] + "..."

    et = (error_type or "").strip()
    err = (et[:1].upper() + et[1:]) if et else "Error"

    request_id = request.headers.get("x-request-id") or getattr(
        getattr(request, "state", object()), "request_id", None
    )

    prefix = f"[{request_id}] " if request_id else ""
    log_msg = f"{prefix}[{err}] {msg}"

    if include_request_path:
        log_msg = f"{prefix}[{err}] {request.method} {request.url.path} | {msg}"

    if additional_info:

        def mask(k: str, v: Any) -> str:
            return "***" if k.lower() in SENSITIVE_KEYS else repr(v)

        additional_str = ", ".join(
            f"{k}={mask(k, additional_info[k])}" for k in sorted(additional_info)
        )
        log_msg = f"{log_msg} | Additional info: {additional_str}"

    return log_msg


def describe_validation_errors(errors: Iterable[dict[str, Any]]) -> list[str]:
    """Render pydantic error entries as ``field: message`` strings without echoing input."""
    described = []
    for error in errors:
        location = ".".join(
            str(part) for part in error.get("loc", ()) if part not in ("body",)
        )
        text = str(error.get("msg", "invalid value"))
        described.append(f"{location}: {text}" if location else text)
    return described


# ----- Infrastructure error handler ----- #
class InfrastructureExceptionHandler:
    async def __call__(
        self, request: Request, exc: InfrastructureException
    ) -> JSONResponse:
        error_type = "Infrastructure error"
        log_msg = format_log_message(
            request, error_type, exc.message, exc.additional_info
        )
        response_logger.error(log_msg)
        sentry_sdk.capture_exception(exc)
        return JSONResponse(
            status_code=500,
            content=format_error_response(exc.message or UNEXPECTED_ERROR_MESSAGE),
        )


# ----- Validation Handlers ----- #
class RequestValidationExceptionHandler:
    async def __call__(
        self, request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        error_type = "Request validation error"
        details = describe_validation_errors(exc.errors())
        log_msg = format_log_message(
            request,
            error_type,
            "; ".join(details),
            include_request_path=True,
        )
        response_logger.debug(log_msg)
        return JSONResponse(
            status_code=422,
            content=format_error_response([INVALID_PAYLOAD_MESSAGE, *details]),
        )


class ValidationErrorExceptionHandler:
    async def __call__(self, request: Request, exc: ValidationError) -> JSONResponse:
        error_type = "Backend validation error"
        log_msg = format_log_message(
            request,
            error_type,
            "; ".join(describe_validation_errors(exc.errors())),
            include_request_path=True,
        )
        response_logger.error(log_msg)
        sentry_sdk.capture_exception(exc)
        return JSONResponse(
            status_code=500, content=format_error_response(UNEXPECTED_ERROR_MESSAGE)
        )


# ----- Core Error Handlers ----- #
class CoreExceptionHandler:
    async def __call__(self, request: Request, exc: CoreException) -> JSONResponse:
        error_type = "Bad request"
        log_msg = format_log_message(
            request, error_type, exc.message, exc.additional_info
        )
        response_logger.info(log_msg)
        return JSONResponse(
            status_code=400,
            content=format_error_response(exc.message),
        )


class InstanceNotFoundExceptionHandler:
    async def __call__(
        self, request: Request, exc: InstanceNotFoundException
    ) -> JSONResponse:
        error_type = "Instance not found"
        log_msg = format_log_message(
            request, error_type, exc.message, exc.additional_info
        )
        response_logger.info(log_msg)
        return JSONResponse(
            status_code=404,
            content=format_error_response(exc.message),
        )


class InstanceProcessingExceptionHandler:
    async def __call__(
        self, request: Request, exc: InstanceProcessingException
    ) -> JSONResponse:
        error_type = "Instance processing error"
        log_msg = format_log_message(
            request, error_type, exc.message, exc.additional_info
        )
        response_logger.info(log_msg)
        return JSONResponse(
            status_code=400,
            content=format_error_response(exc.message),
        )


class UnauthorizedExceptionHandler:
    async def __call__(self, request: Request, exc: UnauthorizedException) -> JSONResponse:
        error_type = "Unauthorized"
        log_msg = format_log_message(
            request, error_type, exc.message, exc.additional_info
        )
        response_logger.warning(log_msg)
        return JSONResponse(
            status_code=401,
            content=format_error_response(exc.message),
        )
