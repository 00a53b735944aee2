"""
Error handling middleware with error sanitization.
Maps exceptions to a uniform JSON error body without leaking secrets.
"""

import logging
import re
import traceback
from typing import Any, Callable

from fastapi import Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.exceptions import (
    AccessDeniedError,
    AuthenticationError,
    DuplicateRecordError,
    FaceVerificationUnavailable,
    FaceVerifierError,
    InvalidTransitionError,
    MissingFaceReferenceError,
    RecordNotFoundError,
)

logger = logging.getLogger(__name__)

# Patterns for sensitive data that should never be returned or logged
SENSITIVE_PATTERNS = [
    re.compile(r"""password\s*["']?\s*[:=]\s*["']?[^"'\s,}]+""", re.IGNORECASE),
    re.compile(r"""token\s*["']?\s*[:=]\s*["']?[^"'\s,}]+""", re.IGNORECASE),
    re.compile(r"""secret\s*["']?\s*[:=]\s*["']?[^"'\s,}]+""", re.IGNORECASE),
    re.compile(
        r"""authorization\s*["']?\s*[:=]\s*["']?(bearer\s+)?[^"'\s,}]+""", re.IGNORECASE
    ),
    re.compile(r'eyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+'),  # JWT
]


def sanitize_error_message(message: Any) -> str:
    """Remove sensitive information from an error message."""
    sanitized = str(message)
    for pattern in SENSITIVE_PATTERNS:
        sanitized = pattern.sub('[REDACTED]', sanitized)
    return sanitized


def get_safe_error_details(exc: Exception, include_details: bool = False) -> dict[str, Any]:
    """
    Extract safe error details.

    Args:
        exc: The exception to extract details from
        include_details: Whether to include the traceback (debug only)
    """
    details = {
        "type": type(exc).__name__,
        "message": sanitize_error_message(str(exc)),
    }
    if include_details:
        details["traceback"] = traceback.format_exc()
    return details


def error_body(code: str, message: str, path: str, method: str, details: Any = None) -> dict:
    body = {
        "error": {
            "code": code,
            "message": message,
            "path": path,
            "method": method,
        }
    }
    if details is not None:
        body["error"]["details"] = details
    return body


def format_validation_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    """Format validation errors into a user-friendly structure."""
    errors = []
    for error in exc.errors():
        errors.append({
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": sanitize_error_message(error["msg"]),
            "type": error["type"],
        })
    return errors


class ErrorHandlingMiddleware:
    """
    Outermost ASGI middleware turning uncaught exceptions into JSON errors.
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

    def _handle_exception(self, exc: Exception, scope: dict) -> Response:
        request_path = scope.get("path", "unknown")
        request_method = scope.get("method", "unknown")

        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        error_code = "INTERNAL_SERVER_ERROR"
        message = "An unexpected error occurred"
        details = None

        if isinstance(exc, StarletteHTTPException):
            status_code = exc.status_code
            error_code = "HTTP_EXCEPTION"
            message = sanitize_error_message(exc.detail)
            logger.warning(
                f"HTTP exception: {request_method} {request_path} - "
                f"Status: {status_code}, Message: {message}"
            )

        elif isinstance(exc, RequestValidationError):
            status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
            error_code = "VALIDATION_ERROR"
            message = "Request validation failed"
            details = format_validation_errors(exc)
            logger.warning(f"Validation error: {request_method} {request_path}")

        elif isinstance(exc, IntegrityError):
            status_code = status.HTTP_409_CONFLICT
            error_code = "INTEGRITY_ERROR"
            message = "Database integrity constraint violated"
            logger.error(f"Database integrity error: {request_method} {request_path}", exc_info=True)

        elif isinstance(exc, OperationalError):
            status_code = status.HTTP_503_SERVICE_UNAVAILABLE
            error_code = "DATABASE_ERROR"
            message = "Database service temporarily unavailable"
            logger.error(f"Database operational error: {request_method} {request_path}", exc_info=True)

        elif isinstance(exc, SQLAlchemyError):
            error_code = "DATABASE_ERROR"
            message = "A database error occurred"
            logger.error(f"SQLAlchemy error: {request_method} {request_path}", exc_info=True)

        elif isinstance(exc, AccessDeniedError):
            status_code = status.HTTP_403_FORBIDDEN
            error_code = "ACCESS_DENIED"
            message = "Access Denied"
            logger.info(f"Geofence rejection: {request_method} {request_path}")

        elif isinstance(exc, RecordNotFoundError):
            status_code = status.HTTP_404_NOT_FOUND
            error_code = "NOT_FOUND"
            message = sanitize_error_message(str(exc))

        elif isinstance(exc, DuplicateRecordError):
            status_code = status.HTTP_409_CONFLICT
            error_code = "DUPLICATE_RECORD"
            message = sanitize_error_message(str(exc))

        elif isinstance(exc, AuthenticationError):
            status_code = status.HTTP_401_UNAUTHORIZED
            error_code = "AUTHENTICATION_FAILED"
            message = sanitize_error_message(str(exc))

        elif isinstance(exc, InvalidTransitionError):
            status_code = status.HTTP_409_CONFLICT
            error_code = "INVALID_TRANSITION"
            message = sanitize_error_message(str(exc))
            logger.warning(f"Invalid transition: {request_method} {request_path} - {message}")

        elif isinstance(exc, FaceVerificationUnavailable):
            status_code = status.HTTP_501_NOT_IMPLEMENTED
            error_code = "FACE_VERIFICATION_UNAVAILABLE"
            message = "Face verification is not configured"

        elif isinstance(exc, FaceVerifierError):
            status_code = status.HTTP_502_BAD_GATEWAY
            error_code = "FACE_VERIFIER_ERROR"
            message = "Face verifier returned an invalid result"
            logger.error(f"Face verifier fault: {request_method} {request_path} - {exc}")

        elif isinstance(exc, MissingFaceReferenceError):
            status_code = status.HTTP_400_BAD_REQUEST
            error_code = "FACE_REFERENCE_MISSING"
            message = str(exc)

        elif isinstance(exc, ValueError):
            status_code = status.HTTP_400_BAD_REQUEST
            error_code = "INVALID_INPUT"
            message = sanitize_error_message(str(exc)) or "Invalid input provided"
            logger.warning(f"Value error: {request_method} {request_path} - {message}")

        elif isinstance(exc, PermissionError):
            status_code = status.HTTP_403_FORBIDDEN
            error_code = "PERMISSION_DENIED"
            message = "You don't have permission to perform this action"
            logger.warning(f"Permission error: {request_method} {request_path}")

        elif isinstance(exc, TimeoutError):
            status_code = status.HTTP_504_GATEWAY_TIMEOUT
            error_code = "TIMEOUT"
            message = "The request timed out"
            logger.error(f"Timeout error: {request_method} {request_path}")

        else:
            logger.error(
                f"Unhandled exception: {request_method} {request_path} - "
                f"{type(exc).__name__}: {sanitize_error_message(str(exc))}",
                exc_info=True,
            )

        if self.debug and status_code >= 500:
            details = get_safe_error_details(exc, include_details=True)

        body = error_body(error_code, message, request_path, request_method, details)

        headers = dict(scope.get("headers") or [])
        request_id = headers.get(b"x-request-id")
        if request_id:
            body["error"]["request_id"] = request_id.decode()

        return JSONResponse(status_code=status_code, content=body)


def setup_error_handlers(app):
    """
    Set up exception handlers for the FastAPI application.

    Args:
        app: FastAPI application instance
    """

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(
                "HTTP_EXCEPTION",
                sanitize_error_message(exc.detail),
                str(request.url.path),
                request.method,
            ),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=error_body(
                "VALIDATION_ERROR",
                "Request validation failed",
                str(request.url.path),
                request.method,
                format_validation_errors(exc),
            ),
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        logger.error(
            f"Unhandled exception: {request.method} {request.url.path} - "
            f"{type(exc).__name__}: {sanitize_error_message(str(exc))}",
            exc_info=True,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_body(
                "INTERNAL_SERVER_ERROR",
                "An unexpected error occurred",
                str(request.url.path),
                request.method,
            ),
        )
