"""Input sanitization utilities.

Provides:
- extract_bearer_token(): Pull the token out of an Authorization header.
- sanitize_user_input(): Clean user input before sending to the LLM.
"""
from __future__ import annotations

import re

MAX_MESSAGE_LENGTH = 2000

# C0 control characters except tab / newline / carriage return
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


def extract_bearer_token(header: str) -> str | None:
    """Return the token from a ``Bearer <token>`` header value.

    The scheme is matched case-insensitively. Returns None when the header
    uses another scheme or carries no token.

    Examples:
        >>> extract_bearer_token("Bearer abc.def")
        'abc.def'
        >>> extract_bearer_token("Basic dXNlcg==") is None
        True
    """
    scheme, _, token = header.strip().partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        return None
    return token


def sanitize_user_input(text: str) -> str:
    """Sanitize user input before sending to the LLM.

    Applies the following transformations:
    1. Remove control characters and strip leading/trailing whitespace
    2. Truncate to MAX_MESSAGE_LENGTH characters

    Everything else, punctuation and markup included, is passed through
    unchanged. The widget escapes replies itself when rendering.

    Args:
        text: Raw user input string.

    Returns:
        Sanitized string safe for LLM consumption.

    Raises:
        ValueError: If text is empty after stripping.
    """
    if not isinstance(text, str):
        raise ValueError("Input must be a string")

    text = _CONTROL_CHARS.sub("", text).strip()

    if not text:
        raise ValueError("Message cannot be empty")

    if len(text) > MAX_MESSAGE_LENGTH:
        text = text[:MAX_MESSAGE_LENGTH]

    return text
