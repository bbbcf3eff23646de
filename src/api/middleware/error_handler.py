"""Application error types and the handlers that turn them into JSON responses."""

import logging
import traceback
from typing import Any, Callable

from fastapi import HTTPException, Request, Response, status
from fastapi.responses import JSONResponse

from src.schemas.auth import AuthErrorKind
from src.schemas.common import ErrorResponse

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Base for errors that reach the client as an ErrorResponse.

    error_type becomes the response's `error` field.
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_type: str = "api_error"

    def __init__(self, message: str, details: list[dict[str, Any]] | None = None) -> None:
        self.message = message
        self.details = details
        super().__init__(message)

    @property
    def headers(self) -> dict[str, str]:
        return {}


class NotFoundError(APIError):
    """A profile, request or chat does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    error_type = "not_found"


class ValidationError(APIError):
    """Input the domain rules refuse: self-requests, empty messages, incomplete profiles."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    error_type = "validation_error"


class AuthenticationError(APIError):
    status_code = status.HTTP_401_UNAUTHORIZED
    error_type = "authentication_error"


class AuthorizationError(APIError):
    """The caller is signed in but not a party to the resource."""

    status_code = status.HTTP_403_FORBIDDEN
    error_type = "authorization_error"


AUTH_FAILURE_STATUS: dict[AuthErrorKind, int] = {
    AuthErrorKind.ACCOUNT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    AuthErrorKind.INCORRECT_PASSWORD: status.HTTP_401_UNAUTHORIZED,
    AuthErrorKind.EMAIL_NOT_CONFIRMED: status.HTTP_403_FORBIDDEN,
    AuthErrorKind.TOO_MANY_ATTEMPTS: status.HTTP_429_TOO_MANY_REQUESTS,
    AuthErrorKind.DUPLICATE_ACCOUNT: status.HTTP_409_CONFLICT,
    AuthErrorKind.WEAK_PASSWORD: status.HTTP_422_UNPROCESSABLE_ENTITY,
    AuthErrorKind.INVALID_EMAIL: status.HTTP_422_UNPROCESSABLE_ENTITY,
    AuthErrorKind.PROVIDER_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


class AuthFailure(APIError):
    """Typed failure of an auth operation.

    The kind is surfaced verbatim as the response error type; these are
    never retried automatically. TOO_MANY_ATTEMPTS failures may carry
    retry_after, sent back as a Retry-After header.
    """

    def __init__(self, kind: AuthErrorKind, message: str, retry_after: int | None = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.status_code = AUTH_FAILURE_STATUS[kind]
        self.error_type = kind.value
        self.retry_after = retry_after

    @property
    def headers(self) -> dict[str, str]:
        if self.retry_after is None:
            return {}
        return {"Retry-After": str(self.retry_after)}


class ProfileUpdateError(APIError):
    """A profile update failed part-way; earlier steps are not rolled back."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error_type = "profile_update_failed"

    def __init__(self, message: str = "Profile update failed") -> None:
        super().__init__(message)


def create_error_response(
    error_type: str,
    message: str,
    status_code: int,
    details: list[dict[str, Any]] | None = None,
    request_id: str | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Build the JSON body every error response shares."""
    body = ErrorResponse.from_exception(
        error_type=error_type,
        message=message,
        details=details,
        request_id=request_id,
    )
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", exclude_none=True),
        headers=headers,
    )


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    """Exception handler for APIError raised inside route handlers."""
    request_id = request.headers.get("X-Request-ID")
    logger.warning(
        "%s %s failed with %s: %s",
        request.method,
        request.url.path,
        exc.error_type,
        exc.message,
        extra={"request_id": request_id, "status_code": exc.status_code},
    )
    return create_error_response(
        error_type=exc.error_type,
        message=exc.message,
        status_code=exc.status_code,
        details=exc.details,
        request_id=request_id,
        headers=exc.headers,
    )


async def error_handler_middleware(request: Request, call_next: Callable[[Request], Any]) -> Response:
    """Last line of defence for anything the route handlers let through.

    Unexpected errors are logged with their stack trace and answered with a
    generic 500 body.
    """
    request_id = request.headers.get("X-Request-ID")

    try:
        return await call_next(request)

    except APIError as e:
        return await api_error_handler(request, e)

    except HTTPException as e:
        logger.warning("HTTP %s on %s: %s", e.status_code, request.url.path, e.detail, extra={"request_id": request_id})
        return create_error_response(
            error_type="http_error",
            message=str(e.detail),
            status_code=e.status_code,
            request_id=request_id,
        )

    except Exception as e:
        logger.error(
            "Unhandled exception on %s: %s\n%s",
            request.url.path,
            e,
            traceback.format_exc(),
            extra={"request_id": request_id},
        )
        return create_error_response(
            error_type="internal_error",
            message="An unexpected error occurred",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            request_id=request_id,
        )
