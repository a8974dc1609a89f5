"""
Test helpers: a controllable clock and token minting.
"""

import time
from typing import Any, Dict, Optional

import jwt


SECRET = "test-signing-secret-0123456789-abcdefghijklmnop"


class FakeClock:
    """Manually advanced clock for rate limit windows."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_token(
    claims: Optional[Dict[str, Any]] = None,
    secret: str = SECRET,
    expires_in: Optional[int] = None
) -> str:
    """Mint an HS256 token the way the identity service would."""
    payload = {"sub": "user-001"} if claims is None else dict(claims)
    if expires_in is not None:
        payload["exp"] = int(time.time()) + expires_in
    return jwt.encode(payload, secret, algorithm="HS256")


def bearer(token: str) -> str:
    return f"Bearer {token}"
