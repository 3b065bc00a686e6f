"""SQL-backed record store.

Each record is kept as a JSON payload in a single ``records`` table keyed by
(kind, record_id). Blocking database work runs in a worker thread so the
event loop is never held up by I/O.
"""

from __future__ import annotations

import asyncio
import threading
from collections.abc import Generator
from contextlib import contextmanager
from datetime import datetime
from typing import Any

from loguru import logger
from sqlalchemy import JSON
from sqlalchemy.pool import StaticPool
from sqlmodel import Field, Session, SQLModel, create_engine, select, text
from tenacity import before_sleep_log, retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from deploy_engine.exceptions import ResourceNotFoundError
from deploy_engine.models.base_model import Record
from deploy_engine.store.base import RecordStore
from deploy_engine.utils import utcnow


class StoredRecord(SQLModel, table=True):
    """Row holding one serialized record."""

    __tablename__ = "records"

    kind: str = Field(primary_key=True)
    record_id: str = Field(primary_key=True)
    payload: dict = Field(sa_type=JSON, default_factory=dict)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class SqlDatabase:
    """Owns the engine for one database URL.

    SQLite connections are shared across worker threads, so access to them is
    serialised with a lock.
    """

    def __init__(self, database_url: str, echo: bool = False):
        self.database_url = database_url
        self._is_sqlite = database_url.startswith("sqlite")
        self._thread_lock = threading.Lock() if self._is_sqlite else None
        self.engine = self._build_engine(echo)

    def _build_engine(self, echo: bool):  # type: ignore[no-untyped-def]
        if self._is_sqlite:
            engine = create_engine(
                self.database_url,
                echo=echo,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            engine = create_engine(
                self.database_url,
                pool_pre_ping=True,
                pool_recycle=3600,
                pool_size=5,
                max_overflow=10,
                pool_timeout=30,
                echo=echo,
                connect_args={"connect_timeout": 10},
            )
        logger.info("SQL echo is {}", "enabled" if echo else "disabled")
        return engine

    def create_tables(self) -> None:
        """Create the record table if it does not exist yet."""
        logger.info("Ensuring record tables exist")
        SQLModel.metadata.create_all(self.engine, tables=[StoredRecord.__table__])

    @retry(
        stop=stop_after_attempt(5),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        reraise=True,
        retry=retry_if_exception_type(Exception),
        before_sleep=before_sleep_log(logger, "DEBUG"),
    )
    def _create_session(self) -> Session:
        """Create a session and test the connection, retrying with backoff."""
        session = Session(self.engine)
        try:
            session.execute(text("SELECT 1"))
        except Exception as e:
            session.close()
            logger.warning("Database connection failed, retrying: {}", e)
            raise
        return session

    @contextmanager
    def borrow_session(self) -> Generator[Session]:
        """Yield a session, holding the SQLite thread lock when needed."""
        if self._thread_lock is not None:
            self._thread_lock.acquire()
        try:
            session = self._create_session()
            try:
                yield session
            except Exception as e:
                logger.error("Error during database session {}: {}", id(session), e)
                session.rollback()
                raise
            finally:
                session.close()
        finally:
            if self._thread_lock is not None:
                self._thread_lock.release()

    def dispose(self) -> None:
        logger.info("Closing database connections")
        self.engine.dispose()


class SqlRecordStore[T: Record](RecordStore[T]):
    """Record store persisting JSON payloads through SQLModel."""

    def __init__(self, record_type: type[T], database: SqlDatabase):
        super().__init__(record_type)
        self.database = database

    async def create(self, record: T) -> T:
        await asyncio.to_thread(self._insert, record)
        return record

    async def get(self, record_id: str) -> T | None:
        return await asyncio.to_thread(self._fetch, record_id)

    async def update(self, record: T) -> T:
        await asyncio.to_thread(self._replace, record)
        return record

    async def delete(self, record_id: str) -> bool:
        return await asyncio.to_thread(self._remove, record_id)

    async def list(self, **filters: Any) -> list[T]:
        records = await asyncio.to_thread(self._fetch_all)
        return [record for record in records if self._matches(record, filters)]

    def _row(self, session: Session, record_id: str) -> StoredRecord | None:
        return session.get(StoredRecord, (self.kind, record_id))

    def _insert(self, record: T) -> None:
        with self.database.borrow_session() as session:
            if self._row(session, record.id) is not None:
                raise ValueError(f"{self.kind} already exists: {record.id}")
            session.add(StoredRecord(kind=self.kind, record_id=record.id, payload=record.model_dump(mode="json")))
            session.commit()

    def _fetch(self, record_id: str) -> T | None:
        with self.database.borrow_session() as session:
            row = self._row(session, record_id)
            return self.record_type.model_validate(row.payload) if row is not None else None

    def _replace(self, record: T) -> None:
        with self.database.borrow_session() as session:
            row = self._row(session, record.id)
            if row is None:
                raise ResourceNotFoundError(self.kind, record.id)
            row.payload = record.model_dump(mode="json")
            row.updated_at = utcnow()
            session.add(row)
            session.commit()

    def _remove(self, record_id: str) -> bool:
        with self.database.borrow_session() as session:
            row = self._row(session, record_id)
            if row is None:
                return False
            session.delete(row)
            session.commit()
            return True

    def _fetch_all(self) -> list[T]:
        with self.database.borrow_session() as session:
            statement = select(StoredRecord).where(StoredRecord.kind == self.kind).order_by(StoredRecord.created_at)
            return [self.record_type.model_validate(row.payload) for row in session.exec(statement)]
