"""Helpers for sanitizing untrusted request payload strings."""

from __future__ import annotations

MAX_PAYLOAD_STRING_LENGTH = 10000
_ALLOWED_CONTROL_CHARS = frozenset({"\n", "\r", "\t"})


def sanitize_text(value: str, *, max_length: int = MAX_PAYLOAD_STRING_LENGTH) -> str:
    """Strip control characters and cap length before validation and persistence."""

    trimmed = value[:max_length]
    return "".join(
        char for char in trimmed if char in _ALLOWED_CONTROL_CHARS or ord(char) >= 32
    )


def sanitize_json_strings(value: object) -> object:
    """Recursively sanitize all strings inside JSON-like payloads."""

    if isinstance(value, str):
        return sanitize_text(value)
    if isinstance(value, list):
        return [sanitize_json_strings(item) for item in value]
    if isinstance(value, dict):
        return {key: sanitize_json_strings(item) for key, item in value.items()}
    return value
