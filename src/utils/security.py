"""
Security Utilities Module

Markup escaping for stored text and masking of secrets before logging.
"""

from typing import Any, Dict


# Same replacement table as validator.js escape()
_ESCAPE_TABLE = {
    "&": "&amp;",
    '"': "&quot;",
    "'": "&#x27;",
    "<": "&lt;",
    ">": "&gt;",
    "/": "&#x2F;",
    "\\": "&#x5C;",
    "`": "&#96;",
}

_SENSITIVE_FIELDS = ["password", "secret", "token", "key", "authorization", "credential"]


def escape_markup(value: str) -> str:
    """Escape characters that could be interpreted as HTML markup."""
    if not value:
        return ""

    return "".join(_ESCAPE_TABLE.get(char, char) for char in value)


def mask_sensitive_data(data: Dict[str, Any]) -> Dict[str, Any]:
    """Mask sensitive fields in data."""
    masked = {}
    for key, value in data.items():
        if any(sf in key.lower() for sf in _SENSITIVE_FIELDS):
            masked[key] = "***MASKED***"
        elif isinstance(value, dict):
            masked[key] = mask_sensitive_data(value)
        else:
            masked[key] = value

    return masked
