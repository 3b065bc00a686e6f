"""Service for deployment records."""

from loguru import logger

from deploy_engine.exceptions import InvalidTransitionError, ResourceNotFoundError
from deploy_engine.models import Deployment, DeploymentStatus, Snapshot
from deploy_engine.store import RecordStore, newest_first
from deploy_engine.utils import utcnow

# Forward-only lifecycle; rolled_back records are created, never transitioned into
_ALLOWED_TRANSITIONS: dict[DeploymentStatus, set[DeploymentStatus]] = {
    DeploymentStatus.PENDING: {DeploymentStatus.IN_PROGRESS, DeploymentStatus.FAILED},
    DeploymentStatus.IN_PROGRESS: {DeploymentStatus.SUCCESS, DeploymentStatus.FAILED},
    DeploymentStatus.SUCCESS: set(),
    DeploymentStatus.FAILED: set(),
    DeploymentStatus.ROLLED_BACK: set(),
}

_TERMINAL = {DeploymentStatus.SUCCESS, DeploymentStatus.FAILED, DeploymentStatus.ROLLED_BACK}


class DeploymentService:
    """Owns deployment records and their status lifecycle."""

    def __init__(self, store: RecordStore[Deployment]):
        self.store = store

    async def create(self, deployment: Deployment) -> Deployment:
        if deployment.status != DeploymentStatus.PENDING:
            raise InvalidTransitionError("Deployment", "new", deployment.status)
        return await self.store.create(deployment)

    async def get(self, deployment_id: str) -> Deployment | None:
        return await self.store.get(deployment_id)

    async def require(self, deployment_id: str) -> Deployment:
        deployment = await self.store.get(deployment_id)
        if deployment is None:
            raise ResourceNotFoundError("Deployment", deployment_id)
        return deployment

    async def transition(self, deployment_id: str, target: DeploymentStatus, log: str | None = None) -> Deployment:
        """Move a deployment forward, optionally appending a log line.

        Raises:
            InvalidTransitionError: If ``target`` is not reachable from the current status
        """
        async with self.store.lock(deployment_id):
            deployment = await self.require(deployment_id)
            current = DeploymentStatus(deployment.status)
            if target not in _ALLOWED_TRANSITIONS[current]:
                raise InvalidTransitionError("Deployment", current, target)

            update: dict = {"status": target}
            if log:
                update["logs"] = [*deployment.logs, log]
            if target in _TERMINAL:
                update["completed_at"] = utcnow()
            deployment = deployment.model_copy(update=update)
            await self.store.update(deployment)

        logger.debug(f"Service: deployment {deployment_id} {current} -> {target}")
        return deployment

    async def append_log(self, deployment_id: str, line: str) -> Deployment:
        async with self.store.lock(deployment_id):
            deployment = await self.require(deployment_id)
            deployment = deployment.model_copy(update={"logs": [*deployment.logs, line]})
            await self.store.update(deployment)
        return deployment

    async def record_rollback(self, snapshot: Snapshot, request_id: str, actor_id: str) -> Deployment:
        """Create a new ``rolled_back`` record; earlier records are left untouched."""
        deployment = Deployment(
            environment=snapshot.environment,
            version=snapshot.source_revision,
            status=DeploymentStatus.ROLLED_BACK,
            snapshot_id=snapshot.id,
            deployed_by=actor_id,
            completed_at=utcnow(),
            rollback_available=False,
            rollback_request_id=request_id,
            logs=[f"Rolled back to snapshot {snapshot.id} ({snapshot.source_revision})"],
        )
        await self.store.create(deployment)
        logger.info(f"Recorded rollback deployment {deployment.id} for {snapshot.environment}")
        return deployment

    async def history(self, environment: str | None = None, limit: int | None = None) -> list[Deployment]:
        """Deployments, newest first, optionally for one environment."""
        filters = {"environment": environment} if environment else {}
        deployments = newest_first(await self.store.list(**filters), key=lambda d: d.deployed_at)
        return deployments[:limit] if limit is not None else deployments
