"""Error sanitization utilities to keep credentials out of logs and events."""

import re
from typing import Any

# Patterns whose captured value is replaced
SENSITIVE_PATTERNS = [
    r"(secret(?:[_\s]?access)?[_\s]?key[=:\s]+)([^\s,;\)]+)",
    r"(access[_\s]?key(?:[_\s]?id)?[=:\s]+)([^\s,;\)]+)",
    r"(password[=:\s]+)([^\s,;\)]+)",
    r"(session[_\s]?token[=:\s]+)([^\s,;\)]+)",
    r"(X-Amz-Credential=)([^\s&]+)",
    r"(X-Amz-Signature=)([^\s&]+)",
    r"(Credential=)([^\s,/]+)",
]

# Fields to redact completely
SENSITIVE_FIELDS = {
    "password",
    "secret_key",
    "access_key",
    "session_token",
    "credentials",
    "token",
}

REDACTED = "[REDACTED]"


def sanitize_error_message(message: str) -> str:
    """Sanitize error message to remove credentials.

    Args:
        message: Original error message

    Returns:
        Sanitized error message with sensitive values redacted
    """
    sanitized = message
    for pattern in SENSITIVE_PATTERNS:
        sanitized = re.sub(pattern, rf"\1{REDACTED}", sanitized, flags=re.IGNORECASE)
    return sanitized


def sanitize_exception(error: Exception) -> str:
    """Sanitize exception message."""
    return sanitize_error_message(str(error))


def sanitize_dict(data: dict[str, Any], sensitive_keys: set[str] | None = None) -> dict[str, Any]:
    """Sanitize dictionary by redacting sensitive fields.

    Args:
        data: Dictionary to sanitize
        sensitive_keys: Additional keys to redact (merged with SENSITIVE_FIELDS)

    Returns:
        Sanitized dictionary with sensitive values redacted
    """
    all_sensitive = SENSITIVE_FIELDS | (sensitive_keys or set())
    sanitized: dict[str, Any] = {}

    for key, value in data.items():
        if key.lower() in all_sensitive:
            sanitized[key] = REDACTED
        elif isinstance(value, dict):
            sanitized[key] = sanitize_dict(value, sensitive_keys)
        elif isinstance(value, str):
            sanitized[key] = sanitize_error_message(value)
        else:
            sanitized[key] = value

    return sanitized
