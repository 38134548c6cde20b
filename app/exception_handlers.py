"""Translate errors into the ``{success: false, message, code}`` envelope."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.cookies import clear_auth_cookies
from app.schemas.auth import ErrorResponse
from app.services.auth.exceptions import AuthError, EmailNotVerifiedError, SessionError
from app.services.repositories import StaleRecordError

logger = logging.getLogger(__name__)


def _envelope(
    status_code: int,
    message: str,
    code: str | None = None,
    headers: dict[str, str] | None = None,
    **extra,
) -> JSONResponse:
    body = ErrorResponse(message=message, code=code).model_dump(by_alias=True)
    body.update(extra)
    return JSONResponse(status_code=status_code, content=body, headers=headers)


def _first_validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid input"
    error = errors[0]
    message = str(error.get("msg", "Invalid input"))
    if error.get("type") == "value_error":
        # Raised by our own validators with a user-facing message
        return message.removeprefix("Value error, ")
    fields = [str(part) for part in error.get("loc", ()) if part != "body"]
    return f"{fields[-1]}: {message}" if fields else message


async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    extra = {"email": exc.email} if isinstance(exc, EmailNotVerifiedError) else {}
    response = _envelope(exc.status_code, exc.message, exc.code, **extra)
    if isinstance(exc, SessionError) and exc.clears_session:
        clear_auth_cookies(response, request.app.state.settings)
    return response


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _envelope(
        status.HTTP_400_BAD_REQUEST, _first_validation_message(exc), "VALIDATION_ERROR"
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _envelope(exc.status_code, str(exc.detail), headers=exc.headers)


async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    logger.info(f"Rate limit exceeded on {request.url.path}: {exc.detail}")
    response = _envelope(
        status.HTTP_429_TOO_MANY_REQUESTS,
        "Too many requests, please try again later",
        "RATE_LIMITED",
    )
    # Same header handling as slowapi's default handler
    return request.app.state.limiter._inject_headers(response, request.state.view_rate_limit)


async def stale_record_handler(request: Request, exc: StaleRecordError) -> JSONResponse:
    logger.info(f"Concurrent update rejected: {exc}")
    return _envelope(
        status.HTTP_409_CONFLICT,
        "Account was modified by another request, please retry",
        "CONFLICT",
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return _envelope(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AuthError, auth_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(StaleRecordError, stale_record_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
