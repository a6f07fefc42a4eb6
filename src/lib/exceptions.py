"""
Custom exception hierarchy for Monthly Zen.

All exceptions inherit from MonthlyZenException, enabling a catch-all
for application errors while keeping the ability to catch specific
error types at the API boundary.

Taxonomy:
    - NotFoundError: required row absent, or owned by another user
    - QuotaExceededError: generation gate closed (expected, never retried)
    - DatabaseError: transient infrastructure failure (caller may retry)
    - ValidationError: malformed input
"""

from __future__ import annotations


class MonthlyZenException(Exception):
    """Base exception for all Monthly Zen errors."""


class ConfigurationError(MonthlyZenException):
    """Missing environment variables, invalid config values, or startup failures."""


class NotFoundError(MonthlyZenException):
    """A required record does not exist or is not visible to the caller."""


class QuotaExceededError(MonthlyZenException):
    """The user's generation quota for the current period is used up."""

    def __init__(self, message: str = "Generation quota exceeded", *, quota_id: int | None = None):
        super().__init__(message)
        self.quota_id = quota_id


class ValidationError(MonthlyZenException):
    """Input validation, parsing, or type conversion failures."""


class DatabaseError(MonthlyZenException):
    """Database connection, timeout, or query failures. Safe to retry."""


class ServiceError(MonthlyZenException):
    """Service-level failures (unexpected responses, bad state)."""


class ExternalServiceError(ServiceError):
    """External API call failures (Redis, LLM providers, etc.)."""
