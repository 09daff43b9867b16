import json
import logging
from unittest.mock import Mock

from fastapi import Request
from fastapi.exceptions import RequestValidationError
import pytest

from src.core.errors import handlers
from src.core.errors.exceptions import (
    CoreException,
    InfrastructureException,
    InstanceNotFoundException,
    InstanceProcessingException,
    UnauthorizedException,
)
from src.user.auth.enums import RefreshFailureReason
from src.user.auth.exceptions import RefreshTokenException, StorageException


def _build_request(headers: list[tuple[bytes, bytes]] | None = None) -> Request:
    scope = {
        "type": "http",
        "method": "POST",
        "http_version": "1.1",
        "scheme": "http",
        "path": "/v1/users/auth/login/refresh",
        "root_path": "",
        "raw_path": b"/v1/users/auth/login/refresh",
        "query_string": b"",
        "asgi": {"version": "3.0"},
        "headers": headers or [],
        "client": ("127.0.0.1", 8000),
        "server": ("testserver", 80),
    }
    return Request(scope)


@pytest.fixture(autouse=True)
def _patch_response_logger(monkeypatch: pytest.MonkeyPatch) -> logging.Logger:
    logger = logging.getLogger("response_logger_test")
    logger.handlers = []
    logger.setLevel(logging.DEBUG)
    logger.propagate = True
    monkeypatch.setattr(handlers, "response_logger", logger)
    return logger


@pytest.fixture
def sentry_capture(monkeypatch: pytest.MonkeyPatch) -> Mock:
    capture = Mock()
    monkeypatch.setattr(handlers.sentry_sdk, "capture_exception", capture)
    return capture


def test_format_error_response_shapes() -> None:
    assert handlers.format_error_response("boom") == {
        "success": False,
        "errors": ["boom"],
    }
    assert handlers.format_error_response(["a", "b"])["errors"] == ["a", "b"]
    assert handlers.format_error_response(None)["errors"] == [
        "No additional details available"
    ]


def test_format_log_message_masks_sensitive_data() -> None:
    request = _build_request(headers=[(b"x-request-id", b"req-123")])

    message = handlers.format_log_message(
        request,
        "unauthorized",
        "refresh rejected",
        {"refresh_token": "secret", "password": "P@ss1", "user_id": "42"},
        include_request_path=True,
    )

    assert (
        "[req-123] [Unauthorized] POST /v1/users/auth/login/refresh | refresh rejected"
        in message
    )
    assert "refresh_token=***" in message
    assert "password=***" in message
    assert "secret" not in message
    assert "user_id='42'" in message


def test_format_log_message_truncates_long_text() -> None:
    message = handlers.format_log_message(_build_request(), "error", "a" * 600)

    assert message.endswith("...")
    assert message.count("a") == 497


def test_describe_validation_errors_skips_body_prefix() -> None:
    described = handlers.describe_validation_errors(
        [
            {"loc": ("body", "email"), "msg": "value is not a valid email address"},
            {"loc": ("body",), "msg": "Field required"},
        ]
    )

    assert described == ["email: value is not a valid email address", "Field required"]


@pytest.mark.asyncio
async def test_unauthorized_handler_returns_reason_message(
    caplog: pytest.LogCaptureFixture,
) -> None:
    caplog.set_level(logging.WARNING, logger="response_logger_test")
    exc = RefreshTokenException(RefreshFailureReason.TOKEN_ALREADY_USED)

    response = await handlers.UnauthorizedExceptionHandler()(_build_request(), exc)

    assert response.status_code == 401
    assert json.loads(response.body) == {
        "success": False,
        "errors": ["Token has been used"],
    }
    assert any("Unauthorized" in record.message for record in caplog.records)


@pytest.mark.asyncio
async def test_infrastructure_handler_reports_to_sentry(sentry_capture: Mock) -> None:
    exc = StorageException("Unable to issue tokens", {"user_id": "42"})

    response = await handlers.InfrastructureExceptionHandler()(_build_request(), exc)

    assert response.status_code == 500
    assert json.loads(response.body)["errors"] == ["Unable to issue tokens"]
    sentry_capture.assert_called_once_with(exc)


@pytest.mark.asyncio
async def test_request_validation_handler_leads_with_invalid_payload() -> None:
    exc = RequestValidationError(
        [{"loc": ("body", "password"), "msg": "Field required", "type": "missing"}]
    )

    response = await handlers.RequestValidationExceptionHandler()(
        _build_request(), exc
    )

    assert response.status_code == 422
    assert json.loads(response.body) == {
        "success": False,
        "errors": ["Invalid payload", "password: Field required"],
    }


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "handler_cls,exc_cls,status,error_type,log_level",
    [
        (handlers.CoreExceptionHandler, CoreException, 400, "Bad request", logging.INFO),
        (
            handlers.InstanceNotFoundExceptionHandler,
            InstanceNotFoundException,
            404,
            "Instance not found",
            logging.INFO,
        ),
        (
            handlers.InstanceProcessingExceptionHandler,
            InstanceProcessingException,
            400,
            "Instance processing error",
            logging.INFO,
        ),
        (
            handlers.UnauthorizedExceptionHandler,
            UnauthorizedException,
            401,
            "Unauthorized",
            logging.WARNING,
        ),
        (
            handlers.InfrastructureExceptionHandler,
            InfrastructureException,
            500,
            "Infrastructure error",
            logging.ERROR,
        ),
    ],
)
async def test_handlers_map_status_and_log_level(
    handler_cls,
    exc_cls: type[CoreException],
    status: int,
    error_type: str,
    log_level: int,
    caplog: pytest.LogCaptureFixture,
    sentry_capture: Mock,
) -> None:
    caplog.set_level(log_level, logger="response_logger_test")

    response = await handler_cls()(_build_request(), exc_cls("failure"))

    assert response.status_code == status
    assert json.loads(response.body) == {"success": False, "errors": ["failure"]}
    assert any(
        record.levelno == log_level and error_type in record.message
        for record in caplog.records
    )
