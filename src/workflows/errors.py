"""
Pipeline Errors

Expected ways a webtoon request can end early. Each error names the
outcome it produces so the pipeline can map it to a response.
"""

from enum import Enum
from typing import List

from src.models.webtoon import Violation


class Outcome(str, Enum):
    """Terminal outcome of a pipeline request."""
    OK = "ok"
    CREATED = "created"
    RATE_EXCEEDED = "rate_exceeded"
    MISSING_CREDENTIAL = "missing_credential"
    INVALID_CREDENTIAL = "invalid_credential"
    VALIDATION_FAILED = "validation_failed"
    NOT_FOUND = "not_found"
    STORE_FAILURE = "store_failure"


class PipelineError(Exception):
    """Base class for expected request failures."""
    outcome: Outcome = Outcome.STORE_FAILURE


class RateExceeded(PipelineError):
    outcome = Outcome.RATE_EXCEEDED


class MissingCredential(PipelineError):
    outcome = Outcome.MISSING_CREDENTIAL


class InvalidCredential(PipelineError):
    outcome = Outcome.INVALID_CREDENTIAL


class ValidationFailed(PipelineError):
    """Carries every violation found in the submitted payload."""
    outcome = Outcome.VALIDATION_FAILED

    def __init__(self, violations: List[Violation]):
        super().__init__(f"{len(violations)} validation error(s)")
        self.violations = violations


class RecordNotFound(PipelineError):
    outcome = Outcome.NOT_FOUND

    def __init__(self, record_id: str):
        super().__init__(f"Webtoon {record_id} not found")
        self.record_id = record_id


class StoreFailure(PipelineError):
    """The store failed. The cause is kept for logging, never for clients."""
    outcome = Outcome.STORE_FAILURE
