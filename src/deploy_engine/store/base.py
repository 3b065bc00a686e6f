"""Record store port.

Stores hold pydantic ``Record`` models addressed by id. Writes are complete
when the awaited call returns and reads always reflect the latest write.
Read-modify-write sequences on one record are serialised with ``lock``.
"""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any

from deploy_engine.exceptions import ResourceNotFoundError
from deploy_engine.models.base_model import Record


class RecordStore[T: Record](ABC):
    """Generic CRUD store for one record type."""

    def __init__(self, record_type: type[T]):
        self.record_type = record_type
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    @property
    def kind(self) -> str:
        return self.record_type.__name__

    @abstractmethod
    async def create(self, record: T) -> T:
        """Persist a new record; raises ``ValueError`` if the id is taken."""

    @abstractmethod
    async def get(self, record_id: str) -> T | None:
        """Return the record or ``None`` when unknown."""

    @abstractmethod
    async def update(self, record: T) -> T:
        """Replace an existing record; raises ``ResourceNotFoundError`` if unknown."""

    @abstractmethod
    async def delete(self, record_id: str) -> bool:
        """Delete a record, returning whether it existed."""

    @abstractmethod
    async def list(self, **filters: Any) -> list[T]:
        """Return records whose top-level fields equal every filter value."""

    async def require(self, record_id: str) -> T:
        record = await self.get(record_id)
        if record is None:
            raise ResourceNotFoundError(self.kind, record_id)
        return record

    @asynccontextmanager
    async def lock(self, record_id: str) -> AsyncIterator[None]:
        """Serialise mutations of one record id.

        The lock is dropped once no task holds or waits for it.
        """
        lock = self._locks.setdefault(record_id, asyncio.Lock())
        self._lock_users[record_id] = self._lock_users.get(record_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[record_id] -= 1
            if not self._lock_users[record_id]:
                del self._lock_users[record_id]
                del self._locks[record_id]

    @property
    def held_locks(self) -> int:
        """Number of record ids with a live lock."""
        return len(self._locks)

    @staticmethod
    def _matches(record: Record, filters: dict[str, Any]) -> bool:
        return all(getattr(record, field) == value for field, value in filters.items())


def newest_first[T: Record](records: list[T], key: Callable[[T], Any] = lambda r: r.created_at) -> list[T]:
    """Sort records newest first.

    Stores list records in insertion order, so records with equal timestamps
    keep the later insert first.
    """
    return sorted(reversed(records), key=key, reverse=True)
