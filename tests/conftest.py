"""
Shared test fixtures.
"""

import pytest
from httpx import ASGITransport, AsyncClient

from helpers import SECRET, FakeClock, bearer, make_token
from src.api.main import create_app
from src.api.middleware.auth import TokenAuthenticator
from src.config import Settings
from src.storage.webtoon_store import InMemoryWebtoonStore
from src.utils.rate_limiter import RateLimiter
from src.workflows.pipeline import RequestPipeline


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemoryWebtoonStore()


@pytest.fixture
def rate_limiter(clock):
    return RateLimiter(window_seconds=900, max_requests=100, clock=clock)


@pytest.fixture
def authenticator():
    return TokenAuthenticator(secret=SECRET, algorithms=["HS256"])


@pytest.fixture
def pipeline(store, rate_limiter, authenticator):
    return RequestPipeline(store=store, rate_limiter=rate_limiter, authenticator=authenticator)


@pytest.fixture
def auth_header():
    return bearer(make_token())


@pytest.fixture
def settings():
    return Settings(
        jwt_secret=SECRET,
        jwt_algorithms=["HS256"],
        rate_limit_max_requests=5,
        log_json=False
    )


@pytest.fixture
def app(settings, store, clock):
    limiter = RateLimiter(
        window_seconds=settings.rate_limit_window_seconds,
        max_requests=settings.rate_limit_max_requests,
        clock=clock
    )
    return create_app(settings=settings, store=store, rate_limiter=limiter)


@pytest.fixture
async def client(app):
    """Create async test client."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as client:
        yield client
