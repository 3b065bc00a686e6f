"""In-memory record store."""

from typing import Any

from loguru import logger

from deploy_engine.exceptions import ResourceNotFoundError
from deploy_engine.models.base_model import Record
from deploy_engine.store.base import RecordStore


class InMemoryRecordStore[T: Record](RecordStore[T]):
    """Keeps deep copies of records in a dict keyed by id.

    Copies go in and out so callers can never mutate stored state by accident.
    """

    def __init__(self, record_type: type[T]):
        super().__init__(record_type)
        self._records: dict[str, T] = {}

    async def create(self, record: T) -> T:
        if record.id in self._records:
            raise ValueError(f"{self.kind} already exists: {record.id}")
        self._records[record.id] = record.model_copy(deep=True)
        logger.trace(f"Stored {self.kind} {record.id}")
        return record

    async def get(self, record_id: str) -> T | None:
        record = self._records.get(record_id)
        return record.model_copy(deep=True) if record is not None else None

    async def update(self, record: T) -> T:
        if record.id not in self._records:
            raise ResourceNotFoundError(self.kind, record.id)
        self._records[record.id] = record.model_copy(deep=True)
        return record

    async def delete(self, record_id: str) -> bool:
        return self._records.pop(record_id, None) is not None

    async def list(self, **filters: Any) -> list[T]:
        return [record.model_copy(deep=True) for record in self._records.values() if self._matches(record, filters)]
