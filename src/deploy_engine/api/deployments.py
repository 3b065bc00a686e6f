"""
Deployment API - trigger deployments and read deployment history.

Deployments to environments that require approval return ``202`` with a
``pending_approval`` result; approvals are resolved through the approvals API.
"""

from fastapi import APIRouter, Depends, Response, status

from deploy_engine.api.dependencies import component, current_actor
from deploy_engine.deployment import DeploymentTrigger
from deploy_engine.models import (
    Actor,
    Deployment,
    DeploymentTriggerRequest,
    DeploymentTriggerResult,
    EnvironmentInfo,
    TriggerStatus,
)
from deploy_engine.services.deployment_service import DeploymentService

router = APIRouter()


@router.post("/deployments", response_model=DeploymentTriggerResult)
async def trigger_deployment(
    request: DeploymentTriggerRequest,
    response: Response,
    actor: Actor = Depends(current_actor),
    trigger: DeploymentTrigger = Depends(component(DeploymentTrigger)),
) -> DeploymentTriggerResult:
    """Trigger a deployment.

    Args:
        request: Project, change specification and target environment
        response: Outgoing response, used to set the status code
        actor: Calling actor
        trigger: Deployment trigger instance

    Returns:
        DeploymentTriggerResult; status 202 while the deployment awaits approval
    """
    result = await trigger.trigger(request, actor)
    if result.status == TriggerStatus.PENDING_APPROVAL:
        response.status_code = status.HTTP_202_ACCEPTED
    return result


@router.get("/deployments", response_model=list[Deployment])
async def list_deployments(
    environment: str | None = None,
    limit: int = 20,
    trigger: DeploymentTrigger = Depends(component(DeploymentTrigger)),
) -> list[Deployment]:
    """Deployment history, newest first."""
    return await trigger.deployment_history(environment, limit)


@router.get("/deployments/{deployment_id}", response_model=Deployment)
async def get_deployment(
    deployment_id: str,
    deployments: DeploymentService = Depends(component(DeploymentService)),
) -> Deployment:
    """Get a deployment by ID.

    Raises:
        ResourceNotFoundError: If the deployment does not exist (404)
    """
    return await deployments.require(deployment_id)


@router.get("/environments", response_model=list[EnvironmentInfo])
async def list_environments(
    actor: Actor = Depends(current_actor),
    trigger: DeploymentTrigger = Depends(component(DeploymentTrigger)),
) -> list[EnvironmentInfo]:
    """Environments with approval requirements as seen by the calling actor."""
    return trigger.available_environments(actor)
