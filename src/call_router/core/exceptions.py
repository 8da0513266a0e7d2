"""Call Router Exception Hierarchy.

Provides structured error handling with context preservation
and proper HTTP status code mapping.
"""

from __future__ import annotations

from typing import Any


class CallRouterError(Exception):
    """Base exception for all Call Router errors.

    All custom exceptions should inherit from this class.
    Provides:
    - Structured error context
    - HTTP status code mapping
    - Logging-friendly representation
    """

    status_code: int = 500
    error_code: str = "CALL_ROUTER_ERROR"

    def __init__(
        self,
        message: str,
        *,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error message
            details: Additional context for debugging
            cause: Original exception if wrapping
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

    def to_dict(self) -> dict[str, Any]:
        """Convert to API-friendly dictionary."""
        result: dict[str, Any] = {
            "error": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        if self.cause:
            result["cause"] = str(self.cause)
        return result

    def __str__(self) -> str:
        """String representation for logging."""
        parts = [f"{self.error_code}: {self.message}"]
        if self.details:
            parts.append(f"details={self.details}")
        if self.cause:
            parts.append(f"cause={self.cause}")
        return " | ".join(parts)


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(CallRouterError):
    """Base class for routing configuration errors."""

    status_code = 400
    error_code = "CONFIGURATION_ERROR"


class InvalidConfigurationError(ConfigurationError):
    """Configuration value cannot be used (e.g. unknown timezone)."""

    error_code = "INVALID_CONFIGURATION"


class InvalidPhoneNumberError(ConfigurationError):
    """Phone number is not in E.164 format."""

    error_code = "INVALID_PHONE_NUMBER"


class InvalidWorkingHoursError(ConfigurationError):
    """Working hours structure is malformed."""

    error_code = "INVALID_WORKING_HOURS"


# =============================================================================
# Database Errors
# =============================================================================


class DatabaseError(CallRouterError):
    """Base class for database-related errors."""

    status_code = 503
    error_code = "DATABASE_ERROR"


class RecordNotFoundError(DatabaseError):
    """Requested record not found."""

    status_code = 404
    error_code = "RECORD_NOT_FOUND"


class AgentConfigNotFoundError(RecordNotFoundError):
    """Agent configuration with given ID not found."""

    error_code = "AGENT_CONFIG_NOT_FOUND"


class CallRecordNotFoundError(RecordNotFoundError):
    """Call record with given carrier call ID not found."""

    error_code = "CALL_RECORD_NOT_FOUND"


# =============================================================================
# Telephony Errors
# =============================================================================


class TelephonyError(CallRouterError):
    """Base class for telephony-related errors."""

    status_code = 502
    error_code = "TELEPHONY_ERROR"


class DialerNotConfiguredError(TelephonyError):
    """Carrier credentials or originating number missing."""

    status_code = 503
    error_code = "DIALER_NOT_CONFIGURED"


class DialerError(TelephonyError):
    """Carrier rejected or failed an outbound call request."""

    error_code = "DIALER_ERROR"


# =============================================================================
# Authentication Errors
# =============================================================================


class WebhookSecurityError(CallRouterError):
    """Webhook signature validation failed."""

    status_code = 403
    error_code = "INVALID_SIGNATURE"


# =============================================================================
# Utility Functions
# =============================================================================


def wrap_exception(
    exc: Exception,
    wrapper_class: type[CallRouterError] = CallRouterError,
    message: str | None = None,
    **details: Any,
) -> CallRouterError:
    """Wrap a generic exception in a CallRouterError.

    Args:
        exc: Original exception to wrap
        wrapper_class: CallRouterError subclass to use
        message: Override message (defaults to str(exc))
        **details: Additional context details

    Returns:
        Wrapped CallRouterError instance
    """
    return wrapper_class(
        message=message or str(exc),
        details=details or None,
        cause=exc,
    )
