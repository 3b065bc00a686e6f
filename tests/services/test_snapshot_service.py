"""Tests for SnapshotService and DeploymentService."""

import pytest

from deploy_engine.exceptions import InvalidTransitionError, ResourceNotFoundError, SnapshotInUseError, SnapshotNotFoundError
from deploy_engine.models import Deployment, DeploymentStatus, RollbackRequest, RollbackStatus
from deploy_engine.ports import CapturedState
from deploy_engine.services import DeploymentService, SnapshotService
from deploy_engine.store import RecordStores


@pytest.fixture
def stores():
    return RecordStores.in_memory()


@pytest.fixture
def snapshots(stores, audit):
    return SnapshotService(stores.snapshots, audit, stores.rollbacks)


class TestSnapshotService:
    """Creation, verification and candidate listing."""

    @pytest.mark.asyncio
    async def test_pre_deployment_snapshot_starts_unverified(self, snapshots, audit):
        captured = CapturedState(source_revision="1234567890abcdef", config_files=["a.yaml", "b.toml"])

        snapshot = await snapshots.create_pre_deployment("staging", captured, "dep_1")

        assert snapshot.verified is False
        assert snapshot.deployment_id == "dep_1"
        assert audit.entries[0]["action_type"] == "pre_deployment_snapshot_created"
        assert audit.entries[0]["context"]["config_files_count"] == 2

    @pytest.mark.asyncio
    async def test_verify_makes_snapshot_a_candidate(self, snapshots):
        snapshot = await snapshots.create_pre_deployment("staging", CapturedState(source_revision="abc"))
        assert await snapshots.list_verified("staging") == []

        verified = await snapshots.verify(snapshot.id, verified_by="alice")

        assert verified.verified is True
        assert verified.verified_by == "alice"
        assert [s.id for s in await snapshots.list_verified("staging")] == [snapshot.id]
        assert (await snapshots.latest_verified("staging")).id == snapshot.id
        assert await snapshots.latest_verified("production") is None

    @pytest.mark.asyncio
    async def test_verify_twice_is_a_no_op(self, snapshots, audit):
        snapshot = await snapshots.create_pre_deployment("staging", CapturedState(source_revision="abc"))
        first = await snapshots.verify(snapshot.id, "alice")
        second = await snapshots.verify(snapshot.id, "bob")

        assert second.verified_by == "alice"
        assert second.verified_at == first.verified_at
        assert audit.actions().count("snapshot_verified") == 1

    @pytest.mark.asyncio
    async def test_verify_unknown_snapshot(self, snapshots):
        with pytest.raises(SnapshotNotFoundError):
            await snapshots.verify("snap_missing")

    @pytest.mark.asyncio
    async def test_delete_refuses_snapshot_targeted_by_open_rollback(self, snapshots, stores):
        snapshot = await snapshots.create_pre_deployment("staging", CapturedState(source_revision="abc"))
        request = RollbackRequest(
            snapshot_id=snapshot.id,
            environment="staging",
            reason="bad release",
            requested_by="dev",
            status=RollbackStatus.PENDING_APPROVAL,
        )
        await stores.rollbacks.create(request)

        with pytest.raises(SnapshotInUseError):
            await snapshots.delete(snapshot.id)

        await stores.rollbacks.update(request.model_copy(update={"status": RollbackStatus.REJECTED}))
        assert await snapshots.delete(snapshot.id) is True


class TestDeploymentService:
    """Lifecycle transitions of deployment records."""

    @pytest.mark.asyncio
    async def test_transitions_follow_lifecycle(self, stores):
        service = DeploymentService(stores.deployments)
        deployment = await service.create(Deployment(environment="staging", version="v1"))

        running = await service.transition(deployment.id, DeploymentStatus.IN_PROGRESS, log="started")
        done = await service.transition(deployment.id, DeploymentStatus.SUCCESS)

        assert running.logs == ["started"]
        assert done.status == DeploymentStatus.SUCCESS
        assert done.completed_at is not None

        with pytest.raises(InvalidTransitionError):
            await service.transition(deployment.id, DeploymentStatus.IN_PROGRESS)

    @pytest.mark.asyncio
    async def test_require_unknown(self, stores):
        with pytest.raises(ResourceNotFoundError):
            await DeploymentService(stores.deployments).require("dep_missing")

    @pytest.mark.asyncio
    async def test_history_filters_by_environment(self, stores):
        service = DeploymentService(stores.deployments)
        await service.create(Deployment(environment="staging", version="v1"))
        await service.create(Deployment(environment="production", version="v1"))

        assert [d.environment for d in await service.history("production")] == ["production"]
        assert len(await service.history()) == 2

