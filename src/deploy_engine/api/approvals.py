"""Approval API - list and resolve pending deployment approvals."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from deploy_engine.api.dependencies import component, current_actor
from deploy_engine.deployment import DeploymentTrigger
from deploy_engine.models import Actor, DeploymentApprovalRequest, DeploymentTriggerResult

router = APIRouter()


class ApprovalInput(BaseModel):
    notes: str | None = None


class RejectionInput(BaseModel):
    reason: str


@router.get("/approvals", response_model=list[DeploymentApprovalRequest])
async def list_pending_approvals(
    environment: str | None = None,
    actor: Actor = Depends(current_actor),
    trigger: DeploymentTrigger = Depends(component(DeploymentTrigger)),
) -> list[DeploymentApprovalRequest]:
    """Pending requests the calling actor is allowed to approve, newest first."""
    return await trigger.pending_approvals(actor, environment)


@router.get("/approvals/{request_id}", response_model=DeploymentApprovalRequest)
async def get_approval(
    request_id: str,
    trigger: DeploymentTrigger = Depends(component(DeploymentTrigger)),
) -> DeploymentApprovalRequest:
    return await trigger.get_approval(request_id)


@router.post("/approvals/{request_id}/approve", response_model=DeploymentTriggerResult)
async def approve_deployment(
    request_id: str,
    body: ApprovalInput | None = None,
    actor: Actor = Depends(current_actor),
    trigger: DeploymentTrigger = Depends(component(DeploymentTrigger)),
) -> DeploymentTriggerResult:
    """Approve a pending deployment and run it.

    Approving an already approved request returns the original outcome.
    """
    return await trigger.approve(request_id, actor, body.notes if body else None)


@router.post("/approvals/{request_id}/reject", response_model=DeploymentTriggerResult)
async def reject_deployment(
    request_id: str,
    body: RejectionInput,
    actor: Actor = Depends(current_actor),
    trigger: DeploymentTrigger = Depends(component(DeploymentTrigger)),
) -> DeploymentTriggerResult:
    return await trigger.reject(request_id, actor, body.reason)
