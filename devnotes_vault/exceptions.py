"""
Exception hierarchy for the credential vault.

Every error carries a standardized error code, an HTTP-style status code,
a stable ``kind`` used by the vault boundary when it maps failures into
operation results, and a context dict. Errors log themselves on construction
and pick up the current correlation ID when one is set.
"""

import threading
import traceback
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

_thread_local = threading.local()


class ErrorCode(str, Enum):
    """Standardized error codes for operation results."""

    # System errors (1xxx)
    INTERNAL_ERROR = "1000"
    DATABASE_ERROR = "1001"
    CONFIGURATION_ERROR = "1003"
    DECRYPTION_FAILED = "1005"
    ENCRYPTION_UNAVAILABLE = "1006"

    # Validation errors (2xxx)
    VALIDATION_FAILED = "2000"
    INVALID_FORMAT = "2001"
    MISSING_REQUIRED = "2002"

    # Resource errors (3xxx)
    NOT_FOUND = "3000"
    LOCKED = "3003"

    # Business logic errors (4xxx)
    PERMISSION_DENIED = "4003"
    AUTHENTICATION_FAILED = "4005"


class ErrorKind(str, Enum):
    """Error kinds exposed to callers of the vault boundary."""

    VALIDATION = "ValidationError"
    NOT_FOUND = "NotFoundError"
    DECRYPTION = "DecryptionError"
    INCORRECT_PASSWORD = "IncorrectPassword"
    LOCKED_OUT = "LockedOut"
    VERIFICATION_REQUIRED = "VerificationRequired"
    STORAGE = "StorageError"
    ENCRYPTION_UNAVAILABLE = "EncryptionUnavailable"
    INTERNAL = "InternalError"


class BaseError(Exception):
    """Base exception with context, error codes, logging, and error chaining."""

    kind: ErrorKind = ErrorKind.INTERNAL

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
            message: Human-readable error message, safe to show to the caller
            error_code: Standardized error code from ErrorCode enum
            status_code: HTTP-style status code
            cause: Original exception that caused this error
            **context: Additional context information (never secret values)
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
        # Imported here to avoid a circular import at module load time
        from .utils.logger import get_logger

        logger = get_logger()

        log_data = {
            "error_id": self.error_id,
            "error_code": self.error_code.value,
            "error_kind": self.kind.value,
            "status_code": self.status_code,
            "error_message": self.message,
            "timestamp": self.timestamp,
            "context": {k: v for k, v in self.context.items() if k not in ["cause", "traceback"]},
        }

        if "correlation_id" in self.context:
            log_data["correlation_id"] = self.context["correlation_id"]

        if self.status_code >= 500:
            logger.error(
                f"Error {self.error_code}: {self.message}", extra=log_data, exc_info=self.cause
            )
        elif self.status_code >= 400:
            logger.warning(f"Client error {self.error_code}: {self.message}", extra=log_data)
        else:
            logger.info(f"Error {self.error_code}: {self.message}", extra=log_data)

    def to_dict(
        self, include_cause: bool = False, include_traceback: bool = False
    ) -> Dict[str, Any]:
        """
        Convert to dict for API responses.

        Args:
            include_cause: Include cause information (useful for debugging)
            include_traceback: Include full traceback (only in debug mode)

        Returns:
            Dictionary representation suitable for JSON serialization
        """
        result: Dict[str, Any] = {
            "error": {
                "id": self.error_id,
                "kind": self.kind.value,
                "code": self.error_code.value,
                "message": self.message,
                "timestamp": self.timestamp,
                "context": {
                    k: v
                    for k, v in self.context.items()
                    if k not in ["cause", "error_id", "correlation_id"]
                },
            }
        }

        if "correlation_id" in self.context:
            result["error"]["correlation_id"] = self.context["correlation_id"]

        if include_cause and "cause" in self.context:
            result["error"]["cause"] = {
                "type": self.context["cause"]["type"],
                "message": self.context["cause"]["message"],
            }
            if include_traceback:
                result["error"]["cause"]["traceback"] = self.context["cause"]["traceback"]

        return result

    def add_context(self, **kwargs: Any) -> "BaseError":
        """
        Add additional context to the error (fluent interface).

        Returns:
            Self for method chaining
        """
        self.context.update(kwargs)
        return self

    @property
    def error_chain(self) -> List[Exception]:
        """Get the full chain of errors."""
        chain: List[Exception] = [self]
        current = self.cause
        while current:
            chain.append(current)
            current = getattr(current, "cause", None)
        return chain


# Layer-specific base exceptions
class RepositoryError(BaseError):
    """Persistence layer errors."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.DATABASE_ERROR,
        status_code: int = 500,
        cause: Optional[Exception] = None,
        **context,
    ):
        super().__init__(message, error_code, status_code, cause, **context)


class StorageError(RepositoryError):
    """The persistence layer is unavailable or rejected a write."""

    kind = ErrorKind.STORAGE


class ServiceError(BaseError):
    """Service layer errors."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        operation: Optional[str] = None,
        cause: Optional[Exception] = None,
        **context,
    ):
        """Initialize service error with operation context."""
        if operation:
            context["operation"] = operation
        super().__init__(message, error_code, 500, cause, **context)


class ValidationError(BaseError):
    """Validation errors."""

    kind = ErrorKind.VALIDATION

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.VALIDATION_FAILED,
        cause: Optional[Exception] = None,
        **context,
    ):
        """Initialize validation error with field context."""
        if field:
            context["field"] = field
        super().__init__(message, error_code, 400, cause, **context)


# ==================== VAULT-SPECIFIC EXCEPTIONS ====================


class CredentialNotFoundError(RepositoryError):
    """Raised when a requested credential is not found."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, message: str = "Credential not found", **kwargs):
        super().__init__(message=message, error_code=ErrorCode.NOT_FOUND, status_code=404, **kwargs)


class DecryptionError(BaseError):
    """Envelope is corrupt, truncated, tampered with, or sealed under another key."""

    kind = ErrorKind.DECRYPTION

    def __init__(self, message: str = "Unable to decrypt value", **kwargs):
        super().__init__(
            message=message, error_code=ErrorCode.DECRYPTION_FAILED, status_code=500, **kwargs
        )


class EncryptionUnavailableError(BaseError):
    """Raised when the AEAD primitive cannot be loaded at runtime."""

    kind = ErrorKind.ENCRYPTION_UNAVAILABLE

    def __init__(
        self,
        message: str = "Encryption is not available. Cannot save credentials securely.",
        **kwargs,
    ):
        super().__init__(
            message=message,
            error_code=ErrorCode.ENCRYPTION_UNAVAILABLE,
            status_code=503,
            **kwargs,
        )


class IncorrectPasswordError(BaseError):
    """Raised when a re-authentication attempt fails."""

    kind = ErrorKind.INCORRECT_PASSWORD

    def __init__(self, message: str = "Incorrect password.", **kwargs):
        super().__init__(
            message=message,
            error_code=ErrorCode.AUTHENTICATION_FAILED,
            status_code=401,
            **kwargs,
        )


class LockedOutError(BaseError):
    """Raised while an actor is locked out of password verification."""

    kind = ErrorKind.LOCKED_OUT

    def __init__(
        self,
        message: str = "Too many failed attempts. Please wait 5 minutes before trying again.",
        **kwargs,
    ):
        super().__init__(message=message, error_code=ErrorCode.LOCKED, status_code=429, **kwargs)


class VerificationRequiredError(BaseError):
    """Raised when a secret is requested without a fresh password verification."""

    kind = ErrorKind.VERIFICATION_REQUIRED

    def __init__(self, message: str = "Password verification required.", **kwargs):
        super().__init__(
            message=message, error_code=ErrorCode.PERMISSION_DENIED, status_code=403, **kwargs
        )


# Factory functions for common error patterns
def not_found(
    resource_type: str, cause: Optional[Exception] = None, **identifiers
) -> CredentialNotFoundError:
    """
    Factory for not found errors.

    Args:
        resource_type: Type of resource (e.g., 'Credential')
        cause: Original exception if any
        **identifiers: Resource identifiers (e.g., credential_id=12)

    Returns:
        Configured CredentialNotFoundError instance with 404 status
    """
    id_parts = [f"{k}={v}" for k, v in identifiers.items()]
    message = f"{resource_type} not found"
    if id_parts:
        message += f": {', '.join(id_parts)}"

    return CredentialNotFoundError(
        message,
        cause=cause,
        resource_type=resource_type,
        **identifiers,
    )


def validation_failed(
    field: str, value: Any, reason: str, cause: Optional[Exception] = None
) -> ValidationError:
    """
    Factory for validation errors.

    Args:
        field: Field that failed validation
        value: The invalid value (must not be a secret)
        reason: Why validation failed
        cause: Original exception if any

    Returns:
        Configured ValidationError instance
    """
    return ValidationError(
        f"Validation failed for {field}: {reason}",
        field=field,
        error_code=ErrorCode.VALIDATION_FAILED,
        cause=cause,
        value=str(value),
        reason=reason,
    )


def storage_failed(
    operation: str, cause: Optional[Exception] = None, **context
) -> StorageError:
    """Factory for persistence failures raised from service operations."""
    return StorageError(
        f"Storage failure during {operation}",
        cause=cause,
        operation=operation,
        **context,
    )


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
