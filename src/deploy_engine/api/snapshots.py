"""Snapshot API - list snapshots and mark them verified."""

from fastapi import APIRouter, Depends

from deploy_engine.api.dependencies import component, current_actor
from deploy_engine.approval import can_approve
from deploy_engine.constants import ENV_STAGING
from deploy_engine.exceptions import AuthorizationError
from deploy_engine.models import Actor, Snapshot
from deploy_engine.services.snapshot_service import SnapshotService

router = APIRouter()


@router.get("/snapshots", response_model=list[Snapshot])
async def list_snapshots(
    environment: str = ENV_STAGING,
    verified_only: bool = False,
    snapshots: SnapshotService = Depends(component(SnapshotService)),
) -> list[Snapshot]:
    """Snapshots of an environment, newest first."""
    return await snapshots.list_for_environment(environment, verified_only=verified_only)


@router.get("/snapshots/{snapshot_id}", response_model=Snapshot)
async def get_snapshot(
    snapshot_id: str,
    snapshots: SnapshotService = Depends(component(SnapshotService)),
) -> Snapshot:
    return await snapshots.require(snapshot_id)


@router.post("/snapshots/{snapshot_id}/verify", response_model=Snapshot)
async def verify_snapshot(
    snapshot_id: str,
    actor: Actor = Depends(current_actor),
    snapshots: SnapshotService = Depends(component(SnapshotService)),
) -> Snapshot:
    """Record a passed integrity check for a snapshot, making it a rollback candidate.

    Only roles that may approve deployments to the snapshot's environment can verify.
    """
    snapshot = await snapshots.require(snapshot_id)
    if not can_approve(actor.role, snapshot.environment):
        raise AuthorizationError(actor.role, "verify snapshots", snapshot.environment)
    return await snapshots.verify(snapshot_id, actor.id)
