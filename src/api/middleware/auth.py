"""
Authentication Middleware

JWT bearer verification for write endpoints. Tokens are minted elsewhere;
this module only verifies them.
"""

from enum import Enum
from typing import List, Optional, Sequence
import jwt
import structlog
from fastapi import Header
from pydantic import BaseModel

from src.models.webtoon import Identity


logger = structlog.get_logger(__name__)


class RejectionReason(str, Enum):
    """Why a credential was refused."""
    MISSING_CREDENTIAL = "missing_credential"
    INVALID_CREDENTIAL = "invalid_credential"


class AuthResult(BaseModel):
    """Either a verified identity or the reason there is none."""
    identity: Optional[Identity] = None
    rejection: Optional[RejectionReason] = None

    @property
    def authenticated(self) -> bool:
        return self.identity is not None

    @classmethod
    def accept(cls, identity: Identity) -> "AuthResult":
        return cls(identity=identity)

    @classmethod
    def reject(cls, reason: RejectionReason) -> "AuthResult":
        return cls(rejection=reason)


def extract_token(authorization: str) -> Optional[str]:
    """
    Take the token portion of an Authorization header.

    The header is split on single spaces and the second piece is the token.
    The scheme is not checked here: a wrong scheme or a missing token simply
    fails verification later.
    """
    parts = authorization.split(" ")
    return parts[1] if len(parts) > 1 else None


class TokenAuthenticator:
    """
    Verifies bearer tokens against a shared signing secret.

    Example:
        authenticator = TokenAuthenticator(secret=settings.jwt_secret.get_secret_value())
        result = await authenticator.authenticate(request.headers.get("authorization"))
        if not result.authenticated:
            ...  # 401 or 403 depending on result.rejection
    """

    def __init__(self, secret: str, algorithms: Sequence[str] = ("HS256",)):
        if not secret:
            raise ValueError("A signing secret is required")

        self._secret = secret
        self.algorithms: List[str] = list(algorithms)

    async def authenticate(self, authorization: Optional[str]) -> AuthResult:
        """Verify the Authorization header value and decode its claims."""
        if not authorization:
            logger.info("auth_rejected", reason=RejectionReason.MISSING_CREDENTIAL.value)
            return AuthResult.reject(RejectionReason.MISSING_CREDENTIAL)

        token = extract_token(authorization)
        if not token:
            logger.info(
                "auth_rejected",
                reason=RejectionReason.INVALID_CREDENTIAL.value,
                error="TokenAbsent"
            )
            return AuthResult.reject(RejectionReason.INVALID_CREDENTIAL)

        try:
            # Signature, exp and nbf only; claim contents are the issuer's business
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=self.algorithms,
                options={"verify_sub": False, "verify_iat": False}
            )
        except jwt.InvalidTokenError as e:
            logger.info(
                "auth_rejected",
                reason=RejectionReason.INVALID_CREDENTIAL.value,
                error=type(e).__name__
            )
            return AuthResult.reject(RejectionReason.INVALID_CREDENTIAL)

        identity = Identity.from_claims(claims)
        logger.debug("auth_accepted", subject=identity.subject)
        return AuthResult.accept(identity)


async def get_authorization(
    authorization: Optional[str] = Header(default=None)
) -> Optional[str]:
    """Raw Authorization header, left unparsed for the pipeline."""
    return authorization
