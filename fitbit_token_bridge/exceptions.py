"""
Exception hierarchy with error codes, context, and correlation support.

Every error the bridge raises on purpose derives from BaseError, which carries
the HTTP status the webhook answers with. Store failures (SQLAlchemy errors)
are deliberately not part of this hierarchy; they pass through unmodified.
"""

import threading
import traceback
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

_thread_local = threading.local()


class ErrorCode(str, Enum):
    """Standardized error codes for API responses."""

    # System errors (1xxx)
    INTERNAL_ERROR = "1000"
    CONFIGURATION_ERROR = "1003"

    # Validation errors (2xxx)
    VALIDATION_FAILED = "2000"
    INVALID_FORMAT = "2001"
    MISSING_REQUIRED = "2002"

    # Resource errors (3xxx)
    CONFLICT = "3002"

    # Access errors (4xxx)
    AUTHENTICATION_FAILED = "4001"
    METHOD_NOT_ALLOWED = "4005"

    # External service errors (5xxx)
    EXTERNAL_API_ERROR = "5002"


class BaseError(Exception):
    """Base exception with context, error codes, logging, and error chaining."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        status_code: int = 500,
        cause: Optional[Exception] = None,
        **context: Any,
    ):
        """
        Initialize base error with rich context.

        Args:
            message: Human-readable error message
            error_code: Standardized error code from ErrorCode enum
            status_code: HTTP status code for API responses
            cause: Original exception that caused this error
            **context: Additional context information (owner id, operation, ...)
        """
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc).isoformat()
        self.error_id = str(uuid.uuid4())
        self.context = context

        correlation_id = get_correlation_id()
        if correlation_id:
            self.context["correlation_id"] = correlation_id

        self.context["error_id"] = self.error_id

        if cause:
            self.context["cause"] = {
                "type": type(cause).__name__,
                "message": str(cause),
                "traceback": traceback.format_exception(type(cause), cause, cause.__traceback__),
            }

        self._log_error()

        super().__init__(message)

    def _log_error(self) -> None:
        """Log error with appropriate level based on status code."""
        # Lazy import, the logger module reads config which may raise these errors
        from .utils.logger import get_logger

        logger = get_logger()

        log_data = {
            "error_id": self.error_id,
            "error_code": self.error_code.value,
            "status_code": self.status_code,
            "error_message": self.message,
            "context": {k: v for k, v in self.context.items() if k not in ["cause", "traceback"]},
        }

        if self.status_code >= 500:
            logger.error(f"Error {self.error_code.value}: {self.message}", extra=log_data)
        elif self.status_code >= 400:
            logger.warning(f"Client error {self.error_code.value}: {self.message}", extra=log_data)
        else:
            logger.info(f"Error {self.error_code.value}: {self.message}", extra=log_data)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to the JSON body the webhook answers with.

        Only the message, error code and error id leave the process; context
        and cause stay in the logs.
        """
        return {"error": self.message, "code": self.error_code.value, "errorId": self.error_id}

    def add_context(self, **kwargs: Any) -> "BaseError":
        """Add additional context to the error (fluent interface)."""
        self.context.update(kwargs)
        return self


class AuthenticationError(BaseError):
    """Missing or invalid identity token, or no usable refresh token on file."""

    def __init__(
        self,
        message: str = "Authentication failed",
        cause: Optional[Exception] = None,
        **context: Any,
    ):
        super().__init__(message, ErrorCode.AUTHENTICATION_FAILED, 401, cause, **context)


class ValidationError(BaseError):
    """Malformed request payload or invalid argument."""

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.VALIDATION_FAILED,
        cause: Optional[Exception] = None,
        **context: Any,
    ):
        if field:
            context["field"] = field
        super().__init__(message, error_code, 400, cause, **context)


class ExternalApiError(BaseError):
    """Non-2xx answer from the Fitbit API; the message comes from its error body."""

    def __init__(
        self,
        message: str = "Fitbit API error",
        service_name: str = "fitbit",
        cause: Optional[Exception] = None,
        **context: Any,
    ):
        context["service_name"] = service_name
        super().__init__(message, ErrorCode.EXTERNAL_API_ERROR, 500, cause, **context)


class MethodNotAllowedError(BaseError):
    """HTTP method the webhook does not serve."""

    def __init__(self, message: str = "Method Not Allowed", **context: Any):
        super().__init__(message, ErrorCode.METHOD_NOT_ALLOWED, 405, **context)


class SecretAccessError(BaseError):
    """A secret could not be read from the secret provider."""

    def __init__(
        self,
        message: str = "Failed to access secret. Check configuration and permissions.",
        cause: Optional[Exception] = None,
        **context: Any,
    ):
        super().__init__(message, ErrorCode.CONFIGURATION_ERROR, 500, cause, **context)


class ConfigurationError(BaseError):
    """Required deployment setting is missing or unusable."""

    def __init__(self, message: str = "Invalid configuration", **context: Any):
        super().__init__(message, ErrorCode.CONFIGURATION_ERROR, 500, **context)


class DataIntegrityError(BaseError):
    """Stored credential data violates an invariant (e.g. two records claim one owner)."""

    def __init__(self, message: str = "Credential data integrity violation", **context: Any):
        super().__init__(message, ErrorCode.CONFLICT, 500, **context)


# Correlation ID management
def set_correlation_id(correlation_id: str) -> None:
    """Set the correlation ID for the current thread."""
    _thread_local.correlation_id = correlation_id


def get_correlation_id() -> Optional[str]:
    """Get the current thread's correlation ID."""
    return getattr(_thread_local, "correlation_id", None)


def clear_correlation_id() -> None:
    """Clear the current thread's correlation ID."""
    if hasattr(_thread_local, "correlation_id"):
        delattr(_thread_local, "correlation_id")
