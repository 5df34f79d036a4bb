"""Error handling and structured error responses."""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from atlas_broker.core.config import settings
from atlas_broker.core.metrics import metrics

logger = logging.getLogger(__name__)


class ErrorCode:
    """Stable error codes for API responses."""

    # Host authentication
    AUTH_REQUIRED = "AUTH_REQUIRED"

    # Session
    CONFIG_INVALID = "CONFIG_INVALID"
    NOT_INITIALIZED = "NOT_INITIALIZED"
    TRANSPORT_FAILED = "TRANSPORT_FAILED"

    # Creation statements and usernames
    STATEMENT_EMPTY = "STATEMENT_EMPTY"
    STATEMENT_MISSING_ROLES = "STATEMENT_MISSING_ROLES"
    STATEMENT_INVALID = "STATEMENT_INVALID"
    USERNAME_INVALID = "USERNAME_INVALID"

    # Atlas
    REMOTE_API_ERROR = "REMOTE_API_ERROR"

    # System
    NOT_IMPLEMENTED = "NOT_IMPLEMENTED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ErrorCategory:
    """Error categories for classification."""

    AUTHENTICATION = "authentication"
    VALIDATION = "validation"
    CONFLICT = "conflict"
    UNSUPPORTED = "unsupported"
    INTERNAL = "internal"
    UPSTREAM = "upstream"


class APIError(BaseModel):
    """Structured error response model."""

    code: str
    category: str
    message: str
    details: Optional[Dict[str, Any]] = None
    request_id: str
    timestamp: str
    retryable: bool = False


class APIException(Exception):
    """Base exception for API errors."""

    def __init__(
        self,
        code: str,
        message: str,
        category: str = ErrorCategory.INTERNAL,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None,
        retryable: bool = False,
    ):
        self.code = code
        self.message = message
        self.category = category
        self.status_code = status_code
        self.details = details or {}
        self.retryable = retryable
        super().__init__(message)


class ConfigurationError(APIException):
    """Raised when the plugin configuration is missing required fields."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            code=ErrorCode.CONFIG_INVALID,
            message=message,
            category=ErrorCategory.VALIDATION,
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details,
        )


class NotInitializedError(APIException):
    """Raised when a lifecycle operation runs before a successful initialize."""

    def __init__(self):
        super().__init__(
            code=ErrorCode.NOT_INITIALIZED,
            message="connection has not been initialized",
            category=ErrorCategory.CONFLICT,
            status_code=status.HTTP_409_CONFLICT,
        )


class TransportError(APIException):
    """Raised when the Atlas API client cannot be constructed."""

    def __init__(self, message: str):
        super().__init__(
            code=ErrorCode.TRANSPORT_FAILED,
            message=message,
            category=ErrorCategory.UPSTREAM,
            status_code=status.HTTP_502_BAD_GATEWAY,
            retryable=True,
        )


class EmptyStatementError(APIException):
    """Raised when a user is requested without any creation statement."""

    def __init__(self):
        super().__init__(
            code=ErrorCode.STATEMENT_EMPTY,
            message="empty creation statements",
            category=ErrorCategory.VALIDATION,
            status_code=status.HTTP_400_BAD_REQUEST,
        )


class MissingRolesError(APIException):
    """Raised when a creation statement has an empty roles array."""

    def __init__(self):
        super().__init__(
            code=ErrorCode.STATEMENT_MISSING_ROLES,
            message="roles array is required in creation statement",
            category=ErrorCategory.VALIDATION,
            status_code=status.HTTP_400_BAD_REQUEST,
        )


class InvalidStatementError(APIException):
    """Raised when a creation statement cannot be decoded."""

    def __init__(self, error_message: str):
        super().__init__(
            code=ErrorCode.STATEMENT_INVALID,
            message=f"error unmarshalling statement: {error_message}",
            category=ErrorCategory.VALIDATION,
            status_code=status.HTTP_400_BAD_REQUEST,
        )


class InvalidUsernameError(APIException):
    """Raised when a generated username is not accepted by Atlas."""

    def __init__(self, username: str, reason: str):
        super().__init__(
            code=ErrorCode.USERNAME_INVALID,
            message=f"generated username is invalid: {reason}",
            category=ErrorCategory.VALIDATION,
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"username": username},
        )


class RemoteAPIError(APIException):
    """Raised when the Atlas Admin API rejects or fails a call.

    The Atlas error body (``errorCode``, ``detail``) is carried in ``details``
    untouched so the host sees exactly what the control plane reported.
    """

    def __init__(
        self,
        message: str,
        http_status: Optional[int] = None,
        error_code: Optional[str] = None,
        detail: Optional[str] = None,
    ):
        details: Dict[str, Any] = {}
        if http_status is not None:
            details["http_status"] = http_status
        if error_code:
            details["error_code"] = error_code
        if detail:
            details["detail"] = detail
        super().__init__(
            code=ErrorCode.REMOTE_API_ERROR,
            message=message,
            category=ErrorCategory.UPSTREAM,
            status_code=status.HTTP_502_BAD_GATEWAY,
            details=details,
        )
        self.http_status = http_status
        self.error_code = error_code


class RootRotationNotSupportedError(APIException, NotImplementedError):
    """Raised for every root credential rotation request."""

    def __init__(self):
        super().__init__(
            code=ErrorCode.NOT_IMPLEMENTED,
            message=(
                "root credential rotation is not currently implemented "
                "in this database secrets engine"
            ),
            category=ErrorCategory.UNSUPPORTED,
            status_code=status.HTTP_501_NOT_IMPLEMENTED,
        )


class PluginAuthError(APIException):
    """Raised when the host omits or mismatches the plugin token."""

    def __init__(self):
        super().__init__(
            code=ErrorCode.AUTH_REQUIRED,
            message="Plugin token required",
            category=ErrorCategory.AUTHENTICATION,
            status_code=status.HTTP_401_UNAUTHORIZED,
        )


def redact(text: str, secret_values: Mapping[str, str]) -> str:
    """Replace every secret value in ``text`` with its placeholder."""
    for secret, placeholder in secret_values.items():
        if secret:
            text = text.replace(secret, placeholder)
    return text


def sanitize_exception(
    exc: APIException, secret_values: Mapping[str, str]
) -> APIException:
    """
    Strip secret values out of an APIException in place.

    Args:
        exc: Exception raised by a lifecycle operation
        secret_values: Mapping of sensitive value to placeholder

    Returns:
        The same exception, with message, args and string details redacted
    """
    exc.message = redact(exc.message, secret_values)
    exc.args = (exc.message,)
    exc.details = {
        key: redact(value, secret_values) if isinstance(value, str) else value
        for key, value in exc.details.items()
    }
    return exc


def create_error_response(
    request: Request,
    code: str,
    message: str,
    category: str,
    status_code: int,
    details: Optional[Dict[str, Any]] = None,
    retryable: bool = False,
) -> JSONResponse:
    """Create a structured error response."""
    request_id = getattr(request.state, "request_id", str(uuid.uuid4()))
    error = APIError(
        code=code,
        category=category,
        message=message,
        details=details,
        request_id=request_id,
        timestamp=datetime.now(timezone.utc).isoformat(),
        retryable=retryable,
    )

    logger.error(
        f"API Error: {code} - {message}",
        extra={
            "error_code": code,
            "error_category": category,
            "request_id": request_id,
            "status_code": status_code,
            "details": details,
        },
    )

    metrics.record_error(code, category)

    return JSONResponse(
        status_code=status_code,
        content={"error": error.model_dump()},
    )


async def error_handler(request: Request, exc: APIException) -> JSONResponse:
    """Handle APIException instances."""
    return create_error_response(
        request=request,
        code=exc.code,
        message=exc.message,
        category=exc.category,
        status_code=exc.status_code,
        details=exc.details,
        retryable=exc.retryable,
    )


async def generic_exception_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    """Handle unexpected exceptions."""
    database = getattr(request.app.state, "database", None)
    secret_values = database.secret_values() if database is not None else {}
    logger.error(
        "Unhandled exception: %s",
        redact(f"{type(exc).__name__}: {exc}", secret_values),
    )
    message = "An internal error occurred"
    details: Optional[Dict[str, Any]] = None
    if settings.environment == "development":
        message = redact(str(exc), secret_values) or message
        details = {"exception_type": type(exc).__name__, "detail": message}
    return create_error_response(
        request=request,
        code=ErrorCode.INTERNAL_ERROR,
        message=message,
        category=ErrorCategory.INTERNAL,
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        retryable=False,
        details=details,
    )


def setup_error_handlers(app: FastAPI) -> None:
    """Register error handlers with FastAPI app."""
    app.add_exception_handler(APIException, error_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
