"""
Centralized Error Response Builder for Monthly Zen.

Provides consistent error codes and messages for the API envelope.
Error codes are constants that map to message strings; the builder
returns structured error dicts for the ``error`` field of a response.
"""

from __future__ import annotations

from typing import Any

# =============================================================================
# Error Code Constants
# =============================================================================

AUTH_REQUIRED = "AUTH_REQUIRED"
NOT_FOUND = "NOT_FOUND"
QUOTA_EXCEEDED = "QUOTA_EXCEEDED"
VALIDATION_ERROR = "VALIDATION_ERROR"
SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
INTERNAL_ERROR = "INTERNAL_ERROR"

# =============================================================================
# Message Registry
#
# Maps (error_code, language) -> message string. Falls back to "en" if a
# translation is missing for the requested language.
# =============================================================================

_ERROR_MESSAGES: dict[str, dict[str, str]] = {
    AUTH_REQUIRED: {
        "en": "Authentication is required.",
        "de": "Authentifizierung erforderlich.",
    },
    NOT_FOUND: {
        "en": "The requested resource was not found.",
        "de": "Die angeforderte Ressource wurde nicht gefunden.",
    },
    QUOTA_EXCEEDED: {
        "en": "You have used all plan generations for this period.",
        "de": "Du hast alle Plan-Generierungen fuer diesen Zeitraum verbraucht.",
    },
    VALIDATION_ERROR: {
        "en": "Invalid input. Please check your request.",
        "de": "Ungueltige Eingabe. Bitte ueberpruefen Sie Ihre Anfrage.",
    },
    SERVICE_UNAVAILABLE: {
        "en": "The service is temporarily unavailable. Please try again.",
        "de": "Der Dienst ist voruebergehend nicht verfuegbar. Bitte erneut versuchen.",
    },
    INTERNAL_ERROR: {
        "en": "An internal error occurred. Please try again.",
        "de": "Ein interner Fehler ist aufgetreten. Bitte erneut versuchen.",
    },
}

_DEFAULT_LANG = "en"


def get_error_message(code: str, lang: str = "en") -> str:
    """
    Get a translated error message for a given error code.

    Falls back to English if the requested language is not available,
    and to a generic message if the error code is unknown.
    """
    messages = _ERROR_MESSAGES.get(code, {})
    return messages.get(lang, messages.get(_DEFAULT_LANG, "An error occurred."))


def build_error_response(
    code: str,
    message: str | None = None,
    details: dict[str, Any] | None = None,
    lang: str = "en",
) -> dict[str, Any]:
    """
    Build a structured error dict: {"code", "message", "details"?}.

    If no message is provided, the registry message for the code and
    language is used.
    """
    resolved_message = message if message is not None else get_error_message(code, lang)
    error: dict[str, Any] = {
        "code": code,
        "message": resolved_message,
    }
    if details is not None:
        error["details"] = details
    return error


__all__ = [
    "AUTH_REQUIRED",
    "NOT_FOUND",
    "QUOTA_EXCEEDED",
    "VALIDATION_ERROR",
    "SERVICE_UNAVAILABLE",
    "INTERNAL_ERROR",
    "get_error_message",
    "build_error_response",
]
