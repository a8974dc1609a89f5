"""
Webtoon API - FastAPI Application

Main entry point for the webtoon catalogue service.
Provides REST endpoints to list, read, create and delete webtoon records.
Writes require a bearer token; every catalogue route is rate limited per client.
"""

from contextlib import asynccontextmanager
from typing import Any, Optional
from datetime import datetime, timezone
import json
import structlog

from fastapi import Depends, FastAPI, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.config import Settings, get_settings
from src.api.middleware.auth import TokenAuthenticator, get_authorization
from src.api.middleware.security import client_identity
from src.storage.webtoon_store import InMemoryWebtoonStore, WebtoonStore
from src.utils.observability import RATE_LIMIT_CLIENTS, configure_logging
from src.utils.rate_limiter import RateLimiter
from src.workflows.pipeline import PipelineResponse, RequestPipeline


logger = structlog.get_logger(__name__)

VERSION = "1.0.0"


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[WebtoonStore] = None,
    rate_limiter: Optional[RateLimiter] = None,
    authenticator: Optional[TokenAuthenticator] = None
) -> FastAPI:
    """Build the application with its pipeline components."""
    settings = settings or get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)

    pipeline = RequestPipeline(
        store=store or InMemoryWebtoonStore(),
        rate_limiter=rate_limiter or RateLimiter(
            window_seconds=settings.rate_limit_window_seconds,
            max_requests=settings.rate_limit_max_requests
        ),
        authenticator=authenticator or TokenAuthenticator(
            secret=settings.jwt_secret.get_secret_value(),
            algorithms=settings.jwt_algorithms
        )
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan management."""
        logger.info("application_starting")
        logger.info("server_started", port=settings.port)
        yield
        logger.info("application_shutting_down")

    app = FastAPI(
        title="Webtoon API",
        description="Webtoon catalogue with token-protected writes",
        version=VERSION,
        lifespan=lifespan
    )
    app.state.settings = settings
    app.state.pipeline = pipeline

    _register_routes(app)
    _register_error_handlers(app)

    return app


def get_pipeline(request: Request) -> RequestPipeline:
    return request.app.state.pipeline


def to_response(result: PipelineResponse) -> Response:
    """Convert a pipeline response into an HTTP response."""
    if result.text is not None:
        return PlainTextResponse(
            content=result.text,
            status_code=result.status_code,
            headers=result.headers
        )
    return JSONResponse(
        content=result.body,
        status_code=result.status_code,
        headers=result.headers
    )


def is_json_request(request: Request) -> bool:
    content_type = request.headers.get("content-type", "")
    return content_type.split(";")[0].strip().lower() == "application/json"


async def read_json_body(request: Request) -> Any:
    """Parsed JSON body, or None when the body is empty, not declared JSON, or not JSON."""
    if not is_json_request(request):
        return None
    raw = await request.body()
    if not raw:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        logger.info("request_body_not_json", path=request.url.path)
        return None


# ============================================================================
# Routes
# ============================================================================

def _register_routes(app: FastAPI) -> None:

    @app.get("/health", tags=["Health"])
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": VERSION
        }

    @app.get("/ready", tags=["Health"])
    async def readiness_check(pipeline: RequestPipeline = Depends(get_pipeline)):
        """Readiness check for Kubernetes."""
        checks = {"store": await pipeline.ready()}
        all_ready = all(checks.values())

        return JSONResponse(
            status_code=status.HTTP_200_OK if all_ready else status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"ready": all_ready, "checks": checks}
        )

    @app.get("/metrics", tags=["Health"])
    async def metrics(pipeline: RequestPipeline = Depends(get_pipeline)):
        """Prometheus metrics."""
        RATE_LIMIT_CLIENTS.set(pipeline.rate_limiter.get_stats()["tracked_clients"])
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.get("/webtoons", tags=["Webtoons"])
    async def list_webtoons(
        request: Request,
        pipeline: RequestPipeline = Depends(get_pipeline)
    ):
        """List all webtoons."""
        result = await pipeline.list_webtoons(client_identity(request))
        return to_response(result)

    @app.post("/webtoons", tags=["Webtoons"])
    async def create_webtoon(
        request: Request,
        authorization: Optional[str] = Depends(get_authorization),
        pipeline: RequestPipeline = Depends(get_pipeline)
    ):
        """
        Create a webtoon.

        Body: {"title": str, "description": str, "characters": [str]}
        """
        # Body is read before the pipeline runs but only inspected after auth
        payload = await read_json_body(request)
        result = await pipeline.create_webtoon(
            client_identity(request),
            authorization,
            payload
        )
        return to_response(result)

    @app.get("/webtoons/{webtoon_id}", tags=["Webtoons"])
    async def get_webtoon(
        webtoon_id: str,
        request: Request,
        pipeline: RequestPipeline = Depends(get_pipeline)
    ):
        """Get a webtoon by id."""
        result = await pipeline.get_webtoon(client_identity(request), webtoon_id)
        return to_response(result)

    @app.delete("/webtoons/{webtoon_id}", tags=["Webtoons"])
    async def delete_webtoon(
        webtoon_id: str,
        request: Request,
        authorization: Optional[str] = Depends(get_authorization),
        pipeline: RequestPipeline = Depends(get_pipeline)
    ):
        """Delete a webtoon by id."""
        result = await pipeline.delete_webtoon(
            client_identity(request),
            authorization,
            webtoon_id
        )
        return to_response(result)


# ============================================================================
# Error Handlers
# ============================================================================

def _register_error_handlers(app: FastAPI) -> None:

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request, exc):
        return JSONResponse(
            status_code=exc.status_code,
            content={"message": exc.detail}
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request, exc):
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            error_type=type(exc).__name__,
            error=str(exc)
        )
        return JSONResponse(
            status_code=500,
            content={"message": "Internal server error"}
        )


def run() -> None:
    """Start the API server."""
    import uvicorn

    settings = get_settings()
    app = create_app(settings)
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
