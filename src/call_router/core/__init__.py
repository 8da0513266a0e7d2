"""Core utilities for the call router."""

from call_router.core.exceptions import (
    CallRouterError,
    ConfigurationError,
    InvalidConfigurationError,
    InvalidPhoneNumberError,
    InvalidWorkingHoursError,
    DatabaseError,
    RecordNotFoundError,
    AgentConfigNotFoundError,
    CallRecordNotFoundError,
    TelephonyError,
    DialerError,
    DialerNotConfiguredError,
    WebhookSecurityError,
)
from call_router.core.logging import get_logger, setup_logging

__all__ = [
    # Logging
    "get_logger",
    "setup_logging",
    # Exceptions
    "CallRouterError",
    "ConfigurationError",
    "InvalidConfigurationError",
    "InvalidPhoneNumberError",
    "InvalidWorkingHoursError",
    "DatabaseError",
    "RecordNotFoundError",
    "AgentConfigNotFoundError",
    "CallRecordNotFoundError",
    "TelephonyError",
    "DialerError",
    "DialerNotConfiguredError",
    "WebhookSecurityError",
]
