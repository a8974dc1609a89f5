"""
Authentication Tests

Unit tests for bearer token verification.
"""

import time
import pytest

from helpers import SECRET, bearer, make_token
from src.api.middleware.auth import RejectionReason, TokenAuthenticator, extract_token


class TestExtractToken:
    """Tests for Authorization header splitting."""

    def test_bearer_header(self):
        assert extract_token("Bearer abc.def.ghi") == "abc.def.ghi"

    def test_scheme_without_token(self):
        assert extract_token("Bearer") is None

    def test_double_space_yields_empty_token(self):
        assert extract_token("Bearer  abc") == ""

    def test_only_second_piece_is_used(self):
        assert extract_token("Bearer abc extra") == "abc"


class TestTokenAuthenticator:
    """Tests for the authenticator's tagged results."""

    @pytest.mark.asyncio
    async def test_missing_header(self, authenticator):
        """No header is a missing credential."""
        result = await authenticator.authenticate(None)

        assert result.authenticated is False
        assert result.rejection == RejectionReason.MISSING_CREDENTIAL

    @pytest.mark.asyncio
    async def test_empty_header_counts_as_missing(self, authenticator):
        result = await authenticator.authenticate("")
        assert result.rejection == RejectionReason.MISSING_CREDENTIAL

    @pytest.mark.asyncio
    async def test_scheme_without_token_is_invalid(self, authenticator):
        """A bare 'Bearer' falls through to an invalid credential."""
        result = await authenticator.authenticate("Bearer")
        assert result.rejection == RejectionReason.INVALID_CREDENTIAL

    @pytest.mark.asyncio
    @pytest.mark.parametrize("header", ["Bearer ", "Bearer not-a-jwt", "Bearer a.b.c", "garbage"])
    async def test_malformed_tokens_are_invalid(self, authenticator, header):
        result = await authenticator.authenticate(header)
        assert result.rejection == RejectionReason.INVALID_CREDENTIAL

    @pytest.mark.asyncio
    async def test_wrong_secret_is_invalid(self, authenticator):
        token = make_token(secret="some-other-secret-that-is-long-enough-0123")
        result = await authenticator.authenticate(bearer(token))
        assert result.rejection == RejectionReason.INVALID_CREDENTIAL

    @pytest.mark.asyncio
    async def test_expired_token_is_invalid(self, authenticator):
        result = await authenticator.authenticate(bearer(make_token(expires_in=-60)))
        assert result.rejection == RejectionReason.INVALID_CREDENTIAL

    @pytest.mark.asyncio
    async def test_not_yet_valid_token_is_invalid(self, authenticator):
        token = make_token({"sub": "user-001", "nbf": int(time.time()) + 3600})
        result = await authenticator.authenticate(bearer(token))
        assert result.rejection == RejectionReason.INVALID_CREDENTIAL

    @pytest.mark.asyncio
    async def test_disallowed_algorithm_is_invalid(self):
        authenticator = TokenAuthenticator(secret=SECRET, algorithms=["HS512"])
        result = await authenticator.authenticate(bearer(make_token()))
        assert result.rejection == RejectionReason.INVALID_CREDENTIAL

    @pytest.mark.asyncio
    async def test_valid_token_yields_identity(self, authenticator):
        token = make_token({"sub": "user-042", "role": "editor"}, expires_in=3600)
        result = await authenticator.authenticate(bearer(token))

        assert result.authenticated is True
        assert result.rejection is None
        assert result.identity.subject == "user-042"
        assert result.identity.claims["role"] == "editor"

    @pytest.mark.asyncio
    async def test_token_without_subject(self, authenticator):
        result = await authenticator.authenticate(bearer(make_token({"name": "anon"})))

        assert result.authenticated is True
        assert result.identity.subject is None

    @pytest.mark.asyncio
    async def test_numeric_subject_is_accepted(self, authenticator):
        """Issuers with integer user ids still authenticate."""
        result = await authenticator.authenticate(bearer(make_token({"sub": 42})))

        assert result.authenticated is True
        assert result.identity.subject == "42"
        assert result.identity.claims["sub"] == 42

    @pytest.mark.asyncio
    async def test_future_issued_at_is_accepted(self, authenticator):
        """Only signature, exp and nbf are enforced."""
        token = make_token({"sub": "user-001", "iat": int(time.time()) + 3600})
        result = await authenticator.authenticate(bearer(token))

        assert result.authenticated is True

    @pytest.mark.asyncio
    async def test_scheme_is_not_enforced(self, authenticator):
        """Only the token piece matters; a valid token under another scheme verifies."""
        result = await authenticator.authenticate(f"Token {make_token()}")
        assert result.authenticated is True

    def test_requires_secret(self):
        with pytest.raises(ValueError):
            TokenAuthenticator(secret="")
