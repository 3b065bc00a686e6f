"""Record stores for deployments, snapshots, test executions and requests."""

from dataclasses import dataclass

from loguru import logger

from deploy_engine.models import Deployment, DeploymentApprovalRequest, RollbackRequest, Snapshot, TestExecution
from deploy_engine.settings import Settings
from deploy_engine.store.base import RecordStore, newest_first
from deploy_engine.store.memory import InMemoryRecordStore
from deploy_engine.store.sql import SqlDatabase, SqlRecordStore, StoredRecord


@dataclass
class RecordStores:
    """The typed stores the engine components share."""

    deployments: RecordStore[Deployment]
    snapshots: RecordStore[Snapshot]
    test_executions: RecordStore[TestExecution]
    approvals: RecordStore[DeploymentApprovalRequest]
    rollbacks: RecordStore[RollbackRequest]
    database: SqlDatabase | None = None

    @classmethod
    def in_memory(cls) -> "RecordStores":
        return cls(
            deployments=InMemoryRecordStore(Deployment),
            snapshots=InMemoryRecordStore(Snapshot),
            test_executions=InMemoryRecordStore(TestExecution),
            approvals=InMemoryRecordStore(DeploymentApprovalRequest),
            rollbacks=InMemoryRecordStore(RollbackRequest),
        )

    @classmethod
    def sql(cls, database: SqlDatabase) -> "RecordStores":
        database.create_tables()
        return cls(
            deployments=SqlRecordStore(Deployment, database),
            snapshots=SqlRecordStore(Snapshot, database),
            test_executions=SqlRecordStore(TestExecution, database),
            approvals=SqlRecordStore(DeploymentApprovalRequest, database),
            rollbacks=SqlRecordStore(RollbackRequest, database),
            database=database,
        )

    def close(self) -> None:
        if self.database is not None:
            self.database.dispose()


def create_record_stores(settings: Settings) -> RecordStores:
    """Build SQL-backed stores when a database URL is configured, in-memory ones otherwise."""
    if settings.database_url:
        logger.info("Using SQL record store")
        return RecordStores.sql(SqlDatabase(settings.database_url, echo=settings.sql_log))
    logger.info("No database URL configured, using in-memory record store")
    return RecordStores.in_memory()


__all__ = [
    "InMemoryRecordStore",
    "RecordStore",
    "RecordStores",
    "SqlDatabase",
    "SqlRecordStore",
    "StoredRecord",
    "create_record_stores",
    "newest_first",
]
