"""
Webtoon Store Module

Record store interface used by the request pipeline, plus an in-process
implementation. Identifiers follow the object id format (24 hex characters).
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional
import asyncio
import re
import secrets
import structlog

from src.models.webtoon import WebtoonCandidate, WebtoonRecord


logger = structlog.get_logger(__name__)

_OBJECT_ID_PATTERN = re.compile(r"^[0-9a-fA-F]{24}$")


class StoreError(Exception):
    """Raised when the store cannot complete an operation."""


class InvalidRecordId(StoreError):
    """Raised when an identifier is not a well-formed object id."""

    def __init__(self, record_id: str):
        super().__init__(f"Cast to ObjectId failed for value {record_id!r}")
        self.record_id = record_id


def is_valid_record_id(record_id: str) -> bool:
    return bool(_OBJECT_ID_PATTERN.match(record_id or ""))


def new_record_id() -> str:
    """Generate a fresh object id."""
    return secrets.token_hex(12)


class WebtoonStore(ABC):
    """Generic document collection for webtoon records."""

    @abstractmethod
    async def list(self) -> List[WebtoonRecord]:
        """Return every record, oldest first."""

    @abstractmethod
    async def get(self, record_id: str) -> Optional[WebtoonRecord]:
        """Return the record with ``record_id``, or None if it does not exist."""

    @abstractmethod
    async def create(self, fields: WebtoonCandidate) -> WebtoonRecord:
        """Persist ``fields`` and return the stored record with its new id."""

    @abstractmethod
    async def delete_by_id(self, record_id: str) -> bool:
        """Delete a record. Returns False when nothing matched."""

    async def ping(self) -> bool:
        """Whether the store can currently serve requests."""
        return True


class InMemoryWebtoonStore(WebtoonStore):
    """
    Process-local webtoon store.

    Records live in an insertion-ordered dict guarded by an asyncio lock.
    Returned records are copies, so callers cannot mutate stored state.

    Example:
        store = InMemoryWebtoonStore()
        record = await store.create(WebtoonCandidate(title="A", description="B"))
        await store.get(record.id)
    """

    def __init__(self):
        self._records: Dict[str, WebtoonRecord] = {}
        self._lock = asyncio.Lock()

        logger.info("webtoon_store_initialized", backend="memory")

    async def list(self) -> List[WebtoonRecord]:
        async with self._lock:
            return [record.model_copy(deep=True) for record in self._records.values()]

    async def get(self, record_id: str) -> Optional[WebtoonRecord]:
        self._check_id(record_id)
        async with self._lock:
            record = self._records.get(record_id.lower())
            return record.model_copy(deep=True) if record else None

    async def create(self, fields: WebtoonCandidate) -> WebtoonRecord:
        async with self._lock:
            record_id = new_record_id()
            while record_id in self._records:
                record_id = new_record_id()

            record = WebtoonRecord(
                id=record_id,
                title=fields.title,
                description=fields.description,
                characters=list(fields.characters)
            )
            self._records[record_id] = record

        logger.debug("webtoon_stored", webtoon_id=record_id)
        return record.model_copy(deep=True)

    async def delete_by_id(self, record_id: str) -> bool:
        self._check_id(record_id)
        async with self._lock:
            return self._records.pop(record_id.lower(), None) is not None

    def _check_id(self, record_id: str) -> None:
        if not is_valid_record_id(record_id):
            raise InvalidRecordId(record_id)

    def __len__(self) -> int:
        return len(self._records)
