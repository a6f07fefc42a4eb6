"""
Lib package for Monthly Zen.

Contains shared utilities:
- exceptions.py: Exception hierarchy
- errors.py: Error codes and envelope error builder
- logging.py: structlog configuration
- database.py: Engine, session factory, driver error translation
"""

from src.lib.errors import (
    AUTH_REQUIRED,
    INTERNAL_ERROR,
    NOT_FOUND,
    QUOTA_EXCEEDED,
    SERVICE_UNAVAILABLE,
    VALIDATION_ERROR,
    build_error_response,
    get_error_message,
)
from src.lib.exceptions import (
    ConfigurationError,
    DatabaseError,
    ExternalServiceError,
    MonthlyZenException,
    NotFoundError,
    QuotaExceededError,
    ServiceError,
    ValidationError,
)

__all__ = [
    # Errors
    "AUTH_REQUIRED",
    "INTERNAL_ERROR",
    "NOT_FOUND",
    "QUOTA_EXCEEDED",
    "SERVICE_UNAVAILABLE",
    "VALIDATION_ERROR",
    "build_error_response",
    "get_error_message",
    # Exceptions
    "MonthlyZenException",
    "ConfigurationError",
    "DatabaseError",
    "ExternalServiceError",
    "NotFoundError",
    "QuotaExceededError",
    "ServiceError",
    "ValidationError",
]
