"""
Exception hierarchy for the requirement sync integration.

Every error carries an error code, an HTTP-style status, an error id and
free-form context, and logs itself when constructed. The correlation id of
the surrounding operation is attached automatically.
"""

import threading
import traceback
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

_thread_local = threading.local()


class ErrorCode(str, Enum):
    # System (1xxx)
    INTERNAL_ERROR = "1000"
    DATABASE_ERROR = "1001"
    CONFIGURATION_ERROR = "1003"

    # Validation (2xxx)
    VALIDATION_FAILED = "2000"
    INVALID_FORMAT = "2001"
    MISSING_REQUIRED = "2002"

    # Authentication (4xxx)
    MISSING_CREDENTIALS = "4100"
    AUTHENTICATION_REQUIRED = "4101"

    # Remote services (5xxx)
    EXTERNAL_API_ERROR = "5002"


class BaseError(Exception):
    """Root of the hierarchy: context, error code, self-logging and cause chain."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        status_code: int = 500,
        cause: Optional[Exception] = None,
        **context: Any,
    ):
        """
        Args:
            message: Human-readable message, safe to return to callers
            error_code: Code from ErrorCode
            status_code: HTTP-style status used for the log level
            cause: Exception being wrapped, if any
            **context: Anything useful for diagnosis; never secrets
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
        # Lazy import: the logger reads config, which must not import exceptions at load time
        from .utils.logger import get_logger

        logger = get_logger()
        log_data = {
            "error_id": self.error_id,
            "error_code": self.error_code.value,
            "status_code": self.status_code,
            "error_message": self.message,
            "context": {k: v for k, v in self.context.items() if k != "cause"},
        }

        if self.status_code >= 500:
            logger.error(f"Error {self.error_code.value}: {self.message}", extra=log_data)
        elif self.status_code >= 400:
            logger.warning(f"Client error {self.error_code.value}: {self.message}", extra=log_data)
        else:
            logger.info(f"Error {self.error_code.value}: {self.message}", extra=log_data)

    def to_dict(self, include_cause: bool = False) -> Dict[str, Any]:
        """Serializable form; the cause is only included on request."""
        hidden = ("cause", "error_id", "correlation_id")
        result: Dict[str, Any] = {
            "error": {
                "id": self.error_id,
                "code": self.error_code.value,
                "message": self.message,
                "timestamp": self.timestamp,
                "context": {k: v for k, v in self.context.items() if k not in hidden},
            }
        }

        if "correlation_id" in self.context:
            result["error"]["correlation_id"] = self.context["correlation_id"]

        if include_cause and "cause" in self.context:
            result["error"]["cause"] = {
                "type": self.context["cause"]["type"],
                "message": self.context["cause"]["message"],
            }

        return result

    def add_context(self, **kwargs: Any) -> "BaseError":
        self.context.update(kwargs)
        return self

    @property
    def error_chain(self) -> List[Exception]:
        chain: List[Exception] = [self]
        current = self.cause
        while current:
            chain.append(current)
            current = getattr(current, "cause", None)
        return chain


class ServiceError(BaseError):
    """Failure inside the integration itself (storage, configuration)."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        operation: Optional[str] = None,
        cause: Optional[Exception] = None,
        **context,
    ):
        if operation:
            context["operation"] = operation
        super().__init__(message, error_code, 500, cause, **context)


class ValidationError(BaseError):
    """Caller input that cannot be used, named by ``field``."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.VALIDATION_FAILED,
        cause: Optional[Exception] = None,
        **context,
    ):
        if field:
            context["field"] = field
        super().__init__(message, error_code, 400, cause, **context)


class InvalidKeyError(ValidationError):
    """Secret store key with characters outside the allowed set."""

    def __init__(self, key: Any, **context):
        super().__init__(
            f"Invalid secret store key: {key!r}",
            field="key",
            error_code=ErrorCode.INVALID_FORMAT,
            key=str(key),
            **context,
        )


class MissingParameterError(ValidationError):
    """Blank lookup parameter."""

    def __init__(self, parameter: str, **context):
        super().__init__(
            f"{parameter} is required",
            field=parameter,
            error_code=ErrorCode.MISSING_REQUIRED,
            **context,
        )


class MissingCredentialsError(BaseError):
    """No client credentials available for the token exchange."""

    def __init__(
        self,
        message: str = "Missing client credentials. Configure the Vitareq connection first.",
        **kwargs,
    ):
        super().__init__(
            message=message,
            error_code=ErrorCode.MISSING_CREDENTIALS,
            status_code=401,
            **kwargs,
        )


class AuthenticationRequiredError(BaseError):
    """Neither a delegated session nor a client-credentials token is usable."""

    def __init__(
        self,
        message: str = (
            "Authentication required. Please connect Vitareq or set CLIENT_SECRET for fallback."
        ),
        **kwargs,
    ):
        super().__init__(
            message=message,
            error_code=ErrorCode.AUTHENTICATION_REQUIRED,
            status_code=401,
            **kwargs,
        )


class UpstreamError(BaseError):
    """Non-success HTTP status from the requirement API or the graph store."""

    def __init__(
        self,
        message: str,
        service_name: str,
        upstream_status: Optional[int] = None,
        cause: Optional[Exception] = None,
        **context,
    ):
        context["service_name"] = service_name
        if upstream_status is not None:
            context["upstream_status"] = upstream_status
        self.upstream_status = upstream_status
        super().__init__(message, ErrorCode.EXTERNAL_API_ERROR, 502, cause, **context)


def validation_failed(
    field: str, value: Any, reason: str, cause: Optional[Exception] = None
) -> ValidationError:
    """Build a ValidationError for ``field`` with the offending value and reason."""
    return ValidationError(
        f"Validation failed for {field}: {reason}",
        field=field,
        cause=cause,
        value=str(value),
        reason=reason,
    )


def set_correlation_id(correlation_id: str) -> None:
    _thread_local.correlation_id = correlation_id


def get_correlation_id() -> Optional[str]:
    return getattr(_thread_local, "correlation_id", None)


def clear_correlation_id() -> None:
    _thread_local.__dict__.pop("correlation_id", None)
