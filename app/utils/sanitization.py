"""
Payload Sanitization Utilities

Helpers applied to every inbound webhook payload before it reaches the
datastore:
1. Drop prototype-pollution keys
2. Strip null bytes
3. Bound string lengths
"""

from typing import Any


# Maximum length of any string value stored from a webhook
MAX_STRING_LENGTH = 10_000


# ============================================================================
# KEY FILTERING
# ============================================================================

def is_dangerous_key(key: str) -> bool:
    """
    Keys that must never reach a JSON document store.

    - Anything starting with "__" (e.g. __proto__)
    - Anything containing "prototype"
    """
    return key.startswith("__") or "prototype" in key


# ============================================================================
# STRING CLEANING
# ============================================================================

def clean_string(value: str, max_length: int = MAX_STRING_LENGTH) -> str:
    """Remove null bytes and hard-cut to max_length characters"""
    value = value.replace("\x00", "")
    if len(value) > max_length:
        value = value[:max_length]
    return value


def safe_truncate(value: str, max_length: int, suffix: str = "...") -> str:
    """
    Truncate for display (log previews), keeping the result within max_length.
    """
    if not value or len(value) <= max_length:
        return value

    truncate_at = max_length - len(suffix)
    if truncate_at <= 0:
        return value[:max_length]

    return value[:truncate_at] + suffix


# ============================================================================
# RECURSIVE SANITIZATION
# ============================================================================

def sanitize_payload(data: Any, max_length: int = MAX_STRING_LENGTH) -> Any:
    """
    Sanitize a decoded JSON value depth-first.

    Dicts lose dangerous keys, strings (keys and values) lose null bytes
    and are truncated, lists are sanitized element-wise. Other scalars are
    returned unchanged.
    """
    if isinstance(data, dict):
        cleaned = {}
        for key, value in data.items():
            key = clean_string(str(key), max_length)
            if is_dangerous_key(key):
                continue
            cleaned[key] = sanitize_payload(value, max_length)
        return cleaned
    elif isinstance(data, list):
        return [sanitize_payload(item, max_length) for item in data]
    elif isinstance(data, str):
        return clean_string(data, max_length)
    else:
        return data


def sanitize_for_log(value: Any, max_length: int = 200) -> str:
    """Render any value as a short single-line string for log messages"""
    if value is None:
        return "None"
    text = str(value).replace("\n", " ").replace("\r", " ")
    return safe_truncate(text, max_length)
