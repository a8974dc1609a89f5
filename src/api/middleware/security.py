"""
Security Middleware

Client identification for per-client rate limiting.
"""

from typing import Optional
from fastapi import Request


UNKNOWN_CLIENT = "unknown"


def forwarded_client(header: Optional[str]) -> Optional[str]:
    """First hop of an X-Forwarded-For header, if any."""
    if not header:
        return None
    first = header.split(",")[0].strip()
    return first or None


def client_identity(request: Request) -> str:
    """Network identity used as the rate limit key."""
    settings = getattr(request.app.state, "settings", None)
    if settings is not None and settings.trust_forwarded_for:
        forwarded = forwarded_client(request.headers.get("x-forwarded-for"))
        if forwarded:
            return forwarded

    if request.client and request.client.host:
        return request.client.host
    return UNKNOWN_CLIENT
