"""
Request Pipeline Module

Ordered request handling for the webtoon routes:

    RECEIVED → RATE_CHECKED → [AUTH_CHECKED] → [VALIDATED] → STORE_OPERATION → RESPONDED

Every stage can end the request early with a failure response. Nothing is
retried. The rate check runs first so throttled clients never reach
authentication, and authentication runs before validation so anonymous
callers never learn why a payload would be rejected.
"""

from typing import Any, Awaitable, Callable, Dict, Optional
from enum import Enum
import time
import structlog
from pydantic import BaseModel, Field

from src.api.middleware.auth import RejectionReason, TokenAuthenticator
from src.models.webtoon import Identity
from src.storage.webtoon_store import WebtoonStore
from src.utils.observability import record_request
from src.utils.rate_limiter import RateDecision, RateLimiter
from src.workflows.errors import (
    InvalidCredential,
    MissingCredential,
    Outcome,
    PipelineError,
    RateExceeded,
    RecordNotFound,
    StoreFailure,
    ValidationFailed,
)
from src.workflows.validation import WebtoonValidator


logger = structlog.get_logger(__name__)

RATE_LIMIT_MESSAGE = "Too many requests, please try again later."
NOT_FOUND_MESSAGE = "Webtoon not found"
DELETED_MESSAGE = "Webtoon deleted successfully"


class Route(str, Enum):
    """Routes handled by the pipeline."""
    LIST_WEBTOONS = "list_webtoons"
    GET_WEBTOON = "get_webtoon"
    CREATE_WEBTOON = "create_webtoon"
    DELETE_WEBTOON = "delete_webtoon"


class RouteSpec(BaseModel):
    """Per-route stage selection and failure mapping."""
    requires_auth: bool = False
    success_status: int = 200
    store_failure_status: int = 500
    store_failure_message: str


ROUTE_SPECS: Dict[Route, RouteSpec] = {
    Route.LIST_WEBTOONS: RouteSpec(
        store_failure_message="Error fetching webtoons"
    ),
    Route.GET_WEBTOON: RouteSpec(
        store_failure_message="Error fetching webtoon"
    ),
    Route.CREATE_WEBTOON: RouteSpec(
        requires_auth=True,
        success_status=201,
        store_failure_status=400,
        store_failure_message="Error creating webtoon"
    ),
    Route.DELETE_WEBTOON: RouteSpec(
        requires_auth=True,
        store_failure_message="Error deleting webtoon"
    ),
}


class PipelineResponse(BaseModel):
    """Transport-neutral response produced by the pipeline."""
    status_code: int
    outcome: Outcome
    body: Any = None
    text: Optional[str] = None
    headers: Dict[str, str] = Field(default_factory=dict)


Operation = Callable[[Optional[Identity]], Awaitable[Any]]


class RequestPipeline:
    """
    Composes rate limiting, authentication, validation and the record store.

    Example:
        pipeline = RequestPipeline(store, RateLimiter(), TokenAuthenticator(secret))
        response = await pipeline.create_webtoon(
            client_id="203.0.113.7",
            authorization="Bearer eyJ...",
            payload={"title": "A", "description": "B", "characters": []}
        )
        response.status_code  # 201
    """

    def __init__(
        self,
        store: WebtoonStore,
        rate_limiter: RateLimiter,
        authenticator: TokenAuthenticator,
        validator: Optional[WebtoonValidator] = None
    ):
        self.store = store
        self.rate_limiter = rate_limiter
        self.authenticator = authenticator
        self.validator = validator or WebtoonValidator()

    # ------------------------------------------------------------------
    # Routes
    # ------------------------------------------------------------------

    async def list_webtoons(self, client_id: str) -> PipelineResponse:
        """List every record."""
        async def operation(identity: Optional[Identity]) -> Any:
            records = await self._call_store(self.store.list)
            return [record.to_document() for record in records]

        return await self._run(Route.LIST_WEBTOONS, client_id, None, operation)

    async def get_webtoon(self, client_id: str, webtoon_id: str) -> PipelineResponse:
        """Fetch one record by id."""
        async def operation(identity: Optional[Identity]) -> Any:
            record = await self._call_store(self.store.get, webtoon_id)
            if record is None:
                raise RecordNotFound(webtoon_id)
            return record.to_document()

        return await self._run(Route.GET_WEBTOON, client_id, None, operation)

    async def create_webtoon(
        self,
        client_id: str,
        authorization: Optional[str],
        payload: Any
    ) -> PipelineResponse:
        """Validate and store a new record. Requires a bearer token."""
        async def operation(identity: Optional[Identity]) -> Any:
            result = self.validator.validate(payload)
            if not result.is_valid:
                raise ValidationFailed(result.violations)
            if result.candidate is None:
                raise StoreFailure("payload could not be cast to a webtoon record")

            record = await self._call_store(self.store.create, result.candidate)
            logger.info(
                "webtoon_created",
                webtoon_id=record.id,
                subject=identity.subject if identity else None
            )
            return record.to_document()

        return await self._run(Route.CREATE_WEBTOON, client_id, authorization, operation)

    async def delete_webtoon(
        self,
        client_id: str,
        authorization: Optional[str],
        webtoon_id: str
    ) -> PipelineResponse:
        """Delete a record by id. Requires a bearer token."""
        async def operation(identity: Optional[Identity]) -> Any:
            deleted = await self._call_store(self.store.delete_by_id, webtoon_id)
            if not deleted:
                raise RecordNotFound(webtoon_id)

            logger.info(
                "webtoon_deleted",
                webtoon_id=webtoon_id,
                subject=identity.subject if identity else None
            )
            return {"message": DELETED_MESSAGE}

        return await self._run(Route.DELETE_WEBTOON, client_id, authorization, operation)

    async def ready(self) -> bool:
        """Whether the backing store can serve requests."""
        return await self.store.ping()

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _run(
        self,
        route: Route,
        client_id: str,
        authorization: Optional[str],
        operation: Operation
    ) -> PipelineResponse:
        route_spec = ROUTE_SPECS[route]
        started = time.perf_counter()
        decision: Optional[RateDecision] = None

        try:
            decision = await self.rate_limiter.check(client_id)
            if not decision.allowed:
                raise RateExceeded()

            identity = None
            if route_spec.requires_auth:
                identity = await self._authenticate(authorization)

            body = await operation(identity)
            response = PipelineResponse(
                status_code=route_spec.success_status,
                outcome=Outcome.CREATED if route_spec.success_status == 201 else Outcome.OK,
                body=body
            )
        except PipelineError as e:
            response = self._map_error(route, route_spec, e)

        if decision is not None:
            response.headers.update(decision.headers(self.rate_limiter.clock()))

        record_request(route.value, response.outcome.value, time.perf_counter() - started)
        return response

    async def _authenticate(self, authorization: Optional[str]) -> Identity:
        result = await self.authenticator.authenticate(authorization)
        if result.identity is not None:
            return result.identity
        if result.rejection == RejectionReason.MISSING_CREDENTIAL:
            raise MissingCredential()
        raise InvalidCredential()

    async def _call_store(self, method: Callable[..., Awaitable[Any]], *args: Any) -> Any:
        """Run one store operation, turning any store error into StoreFailure."""
        try:
            return await method(*args)
        except Exception as e:
            raise StoreFailure(str(e)) from e

    def _map_error(self, route: Route, route_spec: RouteSpec, error: PipelineError) -> PipelineResponse:
        outcome = error.outcome

        if isinstance(error, RateExceeded):
            return PipelineResponse(status_code=429, outcome=outcome, text=RATE_LIMIT_MESSAGE)

        if isinstance(error, MissingCredential):
            return PipelineResponse(status_code=401, outcome=outcome, text="Unauthorized")

        if isinstance(error, InvalidCredential):
            return PipelineResponse(status_code=403, outcome=outcome, text="Forbidden")

        if isinstance(error, ValidationFailed):
            return PipelineResponse(
                status_code=400,
                outcome=outcome,
                body={"errors": [v.as_error() for v in error.violations]}
            )

        if isinstance(error, RecordNotFound):
            return PipelineResponse(
                status_code=404,
                outcome=outcome,
                body={"message": NOT_FOUND_MESSAGE}
            )

        # Store details stay in the logs
        cause = error.__cause__ or error
        logger.error(
            "store_operation_failed",
            route=route.value,
            error_type=type(cause).__name__,
            error=str(cause)
        )
        return PipelineResponse(
            status_code=route_spec.store_failure_status,
            outcome=Outcome.STORE_FAILURE,
            body={"message": route_spec.store_failure_message}
        )
