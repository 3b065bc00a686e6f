"""Service for snapshot records."""

from loguru import logger

from deploy_engine.exceptions import SnapshotInUseError, SnapshotNotFoundError
from deploy_engine.models import RollbackRequest, RollbackStatus, Snapshot
from deploy_engine.ports.audit import AuditSink
from deploy_engine.ports.snapshot import CapturedState
from deploy_engine.store import RecordStore, newest_first
from deploy_engine.utils import utcnow

_OPEN_ROLLBACK_STATUSES = {
    RollbackStatus.REQUESTED,
    RollbackStatus.PENDING_APPROVAL,
    RollbackStatus.APPROVED,
    RollbackStatus.EXECUTING,
}


class SnapshotService:
    """Creates, verifies and lists snapshots.

    A snapshot only becomes a rollback candidate once ``verify`` has run for it.
    """

    def __init__(self, store: RecordStore[Snapshot], audit: AuditSink, rollbacks: RecordStore[RollbackRequest] | None = None):
        self.store = store
        self.audit = audit
        self.rollbacks = rollbacks

    async def create_pre_deployment(self, environment: str, captured: CapturedState, deployment_id: str | None = None) -> Snapshot:
        """Store an unverified snapshot of ``environment`` taken before a deployment."""
        snapshot = Snapshot(
            environment=environment,
            source_revision=captured.source_revision,
            config_files=captured.config_files,
            database_backup_handle=captured.database_backup_handle,
            deployment_id=deployment_id,
        )
        await self.store.create(snapshot)
        logger.debug(f"Service: created pre-deployment snapshot {snapshot.id} for {environment}")

        await self.audit.try_record(
            "pre_deployment_snapshot_created",
            f"Pre-deployment snapshot created for {environment}",
            {
                "snapshot_id": snapshot.id,
                "environment": environment,
                "source_revision": snapshot.source_revision,
                "config_files_count": len(snapshot.config_files),
            },
        )
        return snapshot

    async def get(self, snapshot_id: str) -> Snapshot | None:
        return await self.store.get(snapshot_id)

    async def require(self, snapshot_id: str) -> Snapshot:
        snapshot = await self.store.get(snapshot_id)
        if snapshot is None:
            raise SnapshotNotFoundError(snapshot_id)
        return snapshot

    async def verify(self, snapshot_id: str, verified_by: str | None = None) -> Snapshot:
        """Mark a snapshot as integrity-verified. Verifying twice is a no-op."""
        async with self.store.lock(snapshot_id):
            snapshot = await self.require(snapshot_id)
            if snapshot.verified:
                return snapshot
            snapshot = snapshot.model_copy(update={"verified": True, "verified_by": verified_by, "verified_at": utcnow()})
            await self.store.update(snapshot)

        logger.info(f"Snapshot {snapshot_id} verified for {snapshot.environment}")
        await self.audit.try_record(
            "snapshot_verified",
            f"Snapshot verified: {snapshot.source_revision} for {snapshot.environment}",
            {"snapshot_id": snapshot_id, "environment": snapshot.environment, "source_revision": snapshot.source_revision},
            actor_id=verified_by,
        )
        return snapshot

    async def list_for_environment(self, environment: str, verified_only: bool = False) -> list[Snapshot]:
        """Snapshots of ``environment``, newest first."""
        filters = {"environment": environment}
        if verified_only:
            filters["verified"] = True
        snapshots = await self.store.list(**filters)
        return newest_first(snapshots)

    async def list_verified(self, environment: str, limit: int | None = None) -> list[Snapshot]:
        snapshots = await self.list_for_environment(environment, verified_only=True)
        return snapshots[:limit] if limit is not None else snapshots

    async def latest_verified(self, environment: str) -> Snapshot | None:
        snapshots = await self.list_verified(environment, limit=1)
        return snapshots[0] if snapshots else None

    async def delete(self, snapshot_id: str, actor_id: str | None = None) -> bool:
        """Delete a snapshot unless an open rollback request targets it."""
        if self.rollbacks is not None:
            for request in await self.rollbacks.list(snapshot_id=snapshot_id):
                if request.status in _OPEN_ROLLBACK_STATUSES:
                    raise SnapshotInUseError(snapshot_id, request.id)

        deleted = await self.store.delete(snapshot_id)
        if deleted:
            await self.audit.try_record("snapshot_deleted", f"Deleted snapshot: {snapshot_id}", {"snapshot_id": snapshot_id}, actor_id)
        return deleted
