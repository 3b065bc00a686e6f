"""
Rollback API - candidates, human-confirmed requests and execution.

A rollback request is created in ``pending_approval`` and must be approved
before ``execute`` is accepted.
"""

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from deploy_engine.api.dependencies import component, current_actor
from deploy_engine.exceptions import ResourceNotFoundError
from deploy_engine.models import Actor, RollbackOption, RollbackRequest, RollbackResult, SecurityAlert
from deploy_engine.rollback import RollbackController

router = APIRouter()


class RollbackInput(BaseModel):
    snapshot_id: str
    reason: str


class RejectionInput(BaseModel):
    reason: str


@router.get("/rollbacks/candidates/{environment}", response_model=list[RollbackOption])
async def list_candidates(
    environment: str,
    limit: int = 5,
    controller: RollbackController = Depends(component(RollbackController)),
) -> list[RollbackOption]:
    """Verified snapshots of an environment, newest first."""
    return await controller.list_candidates(environment, limit)


@router.get("/rollbacks", response_model=list[RollbackRequest])
async def list_rollbacks(
    environment: str | None = None,
    controller: RollbackController = Depends(component(RollbackController)),
) -> list[RollbackRequest]:
    return await controller.history(environment)


@router.post("/rollbacks", response_model=RollbackRequest, status_code=status.HTTP_201_CREATED)
async def initiate_rollback(
    body: RollbackInput,
    actor: Actor = Depends(current_actor),
    controller: RollbackController = Depends(component(RollbackController)),
) -> RollbackRequest:
    """Request a rollback to a verified snapshot.

    Raises:
        SnapshotNotFoundError: Unknown snapshot (404)
        UnverifiedSnapshotError: Snapshot not verified (400)
    """
    return await controller.initiate(body.snapshot_id, body.reason, actor)


@router.post("/rollbacks/alerts", response_model=RollbackRequest | None)
async def handle_security_alert(
    alert: SecurityAlert,
    actor: Actor = Depends(current_actor),
    controller: RollbackController = Depends(component(RollbackController)),
) -> RollbackRequest | None:
    """Feed a security alert; returns the opened rollback request, if any."""
    return await controller.handle_security_alert(alert, actor)


@router.get("/rollbacks/{request_id}", response_model=RollbackRequest)
async def get_rollback(
    request_id: str,
    controller: RollbackController = Depends(component(RollbackController)),
) -> RollbackRequest:
    request = await controller.get_request(request_id)
    if request is None:
        raise ResourceNotFoundError("RollbackRequest", request_id)
    return request


@router.post("/rollbacks/{request_id}/approve", response_model=RollbackRequest)
async def approve_rollback(
    request_id: str,
    actor: Actor = Depends(current_actor),
    controller: RollbackController = Depends(component(RollbackController)),
) -> RollbackRequest:
    return await controller.approve(request_id, actor)


@router.post("/rollbacks/{request_id}/reject", response_model=RollbackRequest)
async def reject_rollback(
    request_id: str,
    body: RejectionInput,
    actor: Actor = Depends(current_actor),
    controller: RollbackController = Depends(component(RollbackController)),
) -> RollbackRequest:
    return await controller.reject(request_id, actor, body.reason)


@router.post("/rollbacks/{request_id}/execute", response_model=RollbackResult)
async def execute_rollback(
    request_id: str,
    actor: Actor = Depends(current_actor),
    controller: RollbackController = Depends(component(RollbackController)),
) -> RollbackResult:
    """Execute an approved rollback.

    Raises:
        AuthorizationError: If the actor may not approve rollbacks of the environment (403)
        InvalidTransitionError: If the request is not approved (409)
    """
    return await controller.execute(request_id, actor)
