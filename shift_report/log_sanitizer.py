"""
Log sanitization utilities to prevent credential leakage.

Tokens are held in memory for the whole run and SDK error strings may echo
request headers, so every log record passes through SanitizingFilter before
it reaches a handler.
"""

import logging
import re
from typing import Iterable, List


SENSITIVE_PATTERNS = [
    (re.compile(r'(password["\']?\s*[:=]\s*["\']?)([^"\'\s]+)', re.IGNORECASE), r'\1***REDACTED***'),
    (re.compile(r'(client_secret["\']?\s*[:=]\s*["\']?)([^"\'\s]+)', re.IGNORECASE), r'\1***REDACTED***'),
    (re.compile(r'(token["\']?\s*[:=]\s*["\']?)([^"\'\s]+)', re.IGNORECASE), r'\1***REDACTED***'),
    (re.compile(r'(pat["\']?\s*[:=]\s*["\']?)([^"\'\s]+)', re.IGNORECASE), r'\1***REDACTED***'),
    (re.compile(r'((?:basic|bearer)\s+)([a-zA-Z0-9\-._~+/]+=*)', re.IGNORECASE), r'\1***REDACTED***'),
]

REDACTED = '***REDACTED***'


def sanitize_log_message(message: str, secrets: Iterable[str] = ()) -> str:
    """
    Redact credentials from a message.

    Args:
        message: The text to sanitize
        secrets: Literal secret values known to this run

    Returns:
        Message with sensitive values replaced
    """
    if not message:
        return message

    sanitized = message
    for secret in secrets:
        if secret:
            sanitized = sanitized.replace(secret, REDACTED)
    for pattern, replacement in SENSITIVE_PATTERNS:
        sanitized = pattern.sub(replacement, sanitized)

    return sanitized


def safe_log_error(error: Exception, context: str = "") -> str:
    """Create an error message that is safe to log."""
    sanitized_error = sanitize_log_message(str(error))
    error_type = type(error).__name__

    if context:
        return f"{context}: {error_type}: {sanitized_error}"
    return f"{error_type}: {sanitized_error}"


class SanitizingFilter(logging.Filter):
    """
    Logging filter that redacts credentials from formatted messages.

    Literal secrets can be registered once they are read so that even
    values not matching any pattern are masked.
    """

    def __init__(self, name: str = ""):
        super().__init__(name)
        self._secrets: List[str] = []

    def add_secret(self, secret: str) -> None:
        if secret and secret not in self._secrets:
            self._secrets.append(secret)

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        sanitized = sanitize_log_message(message, self._secrets)
        if sanitized != message:
            record.msg = sanitized
            record.args = None
        return True


_default_filter = SanitizingFilter()


def get_sanitizing_filter() -> SanitizingFilter:
    """Return the filter installed on the root handlers by the CLI."""
    return _default_filter


def register_secret(secret: str) -> None:
    """Mask a literal secret value in all subsequent log output."""
    _default_filter.add_secret(secret)
