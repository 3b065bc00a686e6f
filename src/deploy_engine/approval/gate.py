"""Approval Gate.

Holds deployment approval requests. Approving or rejecting is terminal and
idempotent on the request id: the first resolution wins and later calls
return the stored request.
"""

from collections.abc import Awaitable, Callable

import arrow
from loguru import logger

from deploy_engine.approval.policy import can_approve
from deploy_engine.exceptions import AuthorizationError, InvalidTransitionError
from deploy_engine.models import (
    Actor,
    ApprovalStatus,
    DeploymentApprovalRequest,
    DeploymentTriggerRequest,
    DeploymentTriggerResult,
    TriggerStatus,
)
from deploy_engine.ports.audit import AuditSink
from deploy_engine.store import RecordStore, newest_first
from deploy_engine.utils import utcnow

ApprovedAction = Callable[[DeploymentApprovalRequest], Awaitable[DeploymentTriggerResult]]


class ApprovalGate:
    """Stores and resolves pending deployment approval requests."""

    def __init__(self, store: RecordStore[DeploymentApprovalRequest], audit: AuditSink, retention_seconds: float = 3600.0):
        self.store = store
        self.audit = audit
        self.retention_seconds = retention_seconds

    async def open_request(
        self,
        deployment_id: str,
        request: DeploymentTriggerRequest,
        environment: str,
        version: str,
        requester: Actor,
    ) -> DeploymentApprovalRequest:
        await self.prune_resolved()
        approval = DeploymentApprovalRequest(
            deployment_id=deployment_id,
            project_id=request.project_id,
            environment=environment,
            version=version,
            requested_by=requester.id,
            requested_role=requester.role,
            trigger_request=request,
        )
        await self.store.create(approval)
        logger.info(f"Deployment approval requested for {environment} by {requester.id}: {approval.id}")

        await self.audit.try_record(
            "deployment_approval_requested",
            f"Deployment approval requested for {environment}",
            {
                "approval_request_id": approval.id,
                "deployment_id": deployment_id,
                "project_id": request.project_id,
                "environment": environment,
                "version": version,
            },
            requester.id,
        )
        return approval

    async def get_request(self, request_id: str) -> DeploymentApprovalRequest | None:
        return await self.store.get(request_id)

    async def pending_for(self, role: str, environment: str | None = None) -> list[DeploymentApprovalRequest]:
        """Pending requests ``role`` may approve, newest first."""
        filters: dict[str, str] = {"status": ApprovalStatus.PENDING}
        if environment is not None:
            filters["environment"] = environment
        pending = [request for request in await self.store.list(**filters) if can_approve(role, request.environment)]
        return newest_first(pending)

    async def approve(
        self,
        request_id: str,
        approver: Actor,
        notes: str | None,
        action: ApprovedAction,
    ) -> DeploymentApprovalRequest:
        """Approve a pending request and run ``action`` for it exactly once.

        The request is locked for the duration of ``action`` so a concurrent
        approval waits and then sees the stored outcome. An error raised by
        ``action`` is stored as a failed outcome.

        Raises:
            AuthorizationError: If the approver may not approve the environment
            InvalidTransitionError: If the request was already rejected
        """
        async with self.store.lock(request_id):
            approval = await self.store.require(request_id)
            if approval.status == ApprovalStatus.APPROVED:
                logger.debug(f"Approval request {request_id} already approved")
                return approval
            if approval.status == ApprovalStatus.REJECTED:
                raise InvalidTransitionError("DeploymentApprovalRequest", approval.status, ApprovalStatus.APPROVED)
            if not can_approve(approver.role, approval.environment):
                raise AuthorizationError(approver.role, "approve deployments", approval.environment)

            approval = approval.model_copy(
                update={
                    "status": ApprovalStatus.APPROVED,
                    "approved_by": approver.id,
                    "approval_notes": notes,
                    "resolved_at": utcnow(),
                }
            )
            await self.store.update(approval)
            logger.info(f"Approval request {request_id} approved by {approver.id}")
            await self.audit.try_record(
                "deployment_approved",
                f"Deployment to {approval.environment} approved",
                {"approval_request_id": request_id, "deployment_id": approval.deployment_id, "notes": notes},
                approver.id,
            )

            try:
                outcome = await action(approval)
            except Exception as e:
                logger.error(f"Approved deployment {approval.deployment_id} could not run: {e}")
                outcome = DeploymentTriggerResult(
                    status=TriggerStatus.FAILED,
                    message=f"Approved deployment could not run: {e}",
                    deployment_id=approval.deployment_id,
                    approval_request_id=request_id,
                )
            approval = approval.model_copy(update={"outcome": outcome})
            await self.store.update(approval)
        return approval

    async def reject(self, request_id: str, approver: Actor, reason: str) -> tuple[DeploymentApprovalRequest, bool]:
        """Reject a pending request.

        Returns:
            The request and whether this call rejected it (False when it was already rejected)

        Raises:
            AuthorizationError: If the approver may not approve the environment
            InvalidTransitionError: If the request was already approved
        """
        async with self.store.lock(request_id):
            approval = await self.store.require(request_id)
            if approval.status == ApprovalStatus.REJECTED:
                return approval, False
            if approval.status == ApprovalStatus.APPROVED:
                raise InvalidTransitionError("DeploymentApprovalRequest", approval.status, ApprovalStatus.REJECTED)
            if not can_approve(approver.role, approval.environment):
                raise AuthorizationError(approver.role, "reject deployments", approval.environment)

            approval = approval.model_copy(
                update={
                    "status": ApprovalStatus.REJECTED,
                    "approved_by": approver.id,
                    "approval_notes": reason,
                    "resolved_at": utcnow(),
                }
            )
            await self.store.update(approval)

        logger.warning(f"Approval request {request_id} rejected by {approver.id}: {reason}")
        await self.audit.try_record(
            "deployment_rejected",
            f"Deployment to {approval.environment} rejected",
            {"approval_request_id": request_id, "deployment_id": approval.deployment_id, "reason": reason},
            approver.id,
        )
        return approval, True

    async def prune_resolved(self) -> int:
        """Delete resolved requests older than the retention period."""
        cutoff = arrow.utcnow().shift(seconds=-self.retention_seconds).datetime
        removed = 0
        for approval in await self.store.list():
            if approval.status != ApprovalStatus.PENDING and approval.resolved_at and approval.resolved_at < cutoff:
                await self.store.delete(approval.id)
                removed += 1
        if removed:
            logger.debug(f"Pruned {removed} resolved approval requests")
        return removed
