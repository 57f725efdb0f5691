"""
Error handling: domain errors and unexpected failures rendered as one
JSON envelope.

Every error response has the shape::

    {"error": {"code": ..., "message": ..., "path": ..., "method": ...}}

Domain errors (``core.exceptions.ApplicationError``) carry their own status
and code. Database failures are mapped to 409/503/500 without leaking
driver messages. Messages are scrubbed of secrets before they are logged
or returned.
"""

import logging
import re
import traceback
from typing import Any, Callable, Optional

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.exceptions import ApplicationError

logger = logging.getLogger(__name__)

# Patterns for sensitive data that should never be logged
SENSITIVE_PATTERNS = [
    re.compile(r'password["\s:=]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r'token["\s:=]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r'api[_-]?key["\s:=]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r'secret["\s:=]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r'authorization["\s:]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r"\b\d{3}-\d{2}-\d{4}\b"),  # SSN
    re.compile(r"\b\d{16}\b"),  # card number
]


def sanitize_error_message(message: Any) -> str:
    """Replace anything that looks like a credential or PII with [REDACTED]."""
    sanitized = str(message)
    for pattern in SENSITIVE_PATTERNS:
        sanitized = pattern.sub("[REDACTED]", sanitized)
    return sanitized


def get_safe_error_details(exc: Exception, include_details: bool = False) -> dict[str, Any]:
    """
    Describe an exception without exposing sensitive information.

    Args:
        exc: The exception to describe
        include_details: Include the traceback (debug only)
    """
    details = {
        "type": type(exc).__name__,
        "message": sanitize_error_message(str(exc)),
    }
    if include_details:
        details["traceback"] = traceback.format_exc()
    return details


def format_validation_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    """Flatten pydantic validation errors to field/message/type entries."""
    errors = []
    for error in exc.errors():
        entry = {
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": sanitize_error_message(error["msg"]),
            "type": error["type"],
        }
        value = error.get("input")
        if isinstance(value, (str, int, float, bool)) and not any(
            pattern.search(str(value)) for pattern in SENSITIVE_PATTERNS
        ):
            entry["input"] = value
        errors.append(entry)
    return errors


def error_envelope(
    code: str,
    message: str,
    path: str,
    method: str,
    details: Optional[Any] = None,
) -> dict[str, Any]:
    body = {"code": code, "message": message, "path": path, "method": method}
    if details is not None:
        body["details"] = details
    return {"error": body}


class ErrorHandlingMiddleware:
    """
    ASGI middleware turning exceptions that escape the routers into JSON
    error responses.

    Domain errors are logged at WARNING; database and unexpected failures at
    ERROR with the traceback.
    """

    def __init__(self, app: Callable, debug: bool = False):
        self.app = app
        self.debug = debug

    async def __call__(self, scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        try:
            await self.app(scope, receive, send)
        except Exception as exc:
            response = self._handle_exception(exc, scope)
            await response(scope, receive, send)

    def _classify(self, exc: Exception) -> tuple[int, str, str, Optional[Any]]:
        """Map an exception to (status, code, message, details)."""
        debug_details = get_safe_error_details(exc, include_details=True) if self.debug else None

        if isinstance(exc, ApplicationError):
            return exc.status_code, exc.error_code, sanitize_error_message(exc.message), None
        if isinstance(exc, StarletteHTTPException):
            return exc.status_code, "HTTP_EXCEPTION", sanitize_error_message(exc.detail), None
        if isinstance(exc, RequestValidationError):
            return (
                status.HTTP_422_UNPROCESSABLE_ENTITY,
                "VALIDATION_ERROR",
                "Request validation failed",
                format_validation_errors(exc),
            )
        if isinstance(exc, IntegrityError):
            return (
                status.HTTP_409_CONFLICT,
                "INTEGRITY_ERROR",
                "Database integrity constraint violated",
                debug_details,
            )
        if isinstance(exc, OperationalError):
            return (
                status.HTTP_503_SERVICE_UNAVAILABLE,
                "DATABASE_ERROR",
                "Database service temporarily unavailable",
                None,
            )
        if isinstance(exc, SQLAlchemyError):
            return (
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                "DATABASE_ERROR",
                "A database error occurred",
                debug_details,
            )
        if isinstance(exc, ValueError):
            message = sanitize_error_message(str(exc)) or "Invalid input provided"
            return status.HTTP_400_BAD_REQUEST, "INVALID_INPUT", message, None
        return (
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "INTERNAL_SERVER_ERROR",
            "An unexpected error occurred",
            debug_details,
        )

    def _handle_exception(self, exc: Exception, scope: dict) -> JSONResponse:
        path = scope.get("path", "unknown")
        method = scope.get("method", "unknown")
        status_code, error_code, message, details = self._classify(exc)

        if status_code >= 500 or isinstance(exc, IntegrityError):
            logger.error(
                f"{type(exc).__name__}: {method} {path} - "
                f"Status: {status_code}, Code: {error_code}",
                exc_info=True,
            )
        else:
            logger.warning(
                f"Request failed: {method} {path} - "
                f"Status: {status_code}, Code: {error_code}, Message: {message}"
            )

        content = error_envelope(error_code, message, path, method, details)
        request_id = dict(scope.get("headers") or []).get(b"x-request-id")
        if request_id:
            content["error"]["request_id"] = request_id.decode()

        return JSONResponse(status_code=status_code, content=content)


def setup_error_handlers(app):
    """
    Register FastAPI exception handlers that render the same envelope as
    ``ErrorHandlingMiddleware``.
    """

    @app.exception_handler(ApplicationError)
    async def application_error_handler(request: Request, exc: ApplicationError):
        message = sanitize_error_message(exc.message)
        logger.warning(
            f"Application error: {request.method} {request.url.path} - "
            f"Status: {exc.status_code}, Code: {exc.error_code}, Message: {message}"
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=error_envelope(exc.error_code, message, request.url.path, request.method),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=error_envelope(
                "HTTP_EXCEPTION",
                sanitize_error_message(exc.detail),
                request.url.path,
                request.method,
            ),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=error_envelope(
                "VALIDATION_ERROR",
                "Request validation failed",
                request.url.path,
                request.method,
                format_validation_errors(exc),
            ),
        )
