"""Deployment Trigger.

The user-facing entry point tying the approval gate, config generator,
pipeline runner and monitor into one action. Authorization is decided
before anything is generated, stored or executed.
"""

from loguru import logger

from deploy_engine.approval import ApprovalGate, can_request, environment_catalogue, requires_approval
from deploy_engine.exceptions import AuthorizationError, ResourceNotFoundError
from deploy_engine.models import (
    Actor,
    Deployment,
    DeploymentApprovalRequest,
    DeploymentTriggerRequest,
    DeploymentTriggerResult,
    EnvironmentInfo,
    HealthCheckResult,
    PipelineConfig,
    TriggerStatus,
)
from deploy_engine.monitoring import DeploymentMonitor
from deploy_engine.pipeline import PipelineConfigGenerator, PipelineRunner
from deploy_engine.ports.audit import AuditSink
from deploy_engine.ports.broadcast import StatusBroadcaster
from deploy_engine.services.deployment_service import DeploymentService
from deploy_engine.settings import Settings
from deploy_engine.utils import epoch_millis, new_record_id

APPROVAL_PENDING_MESSAGE = "Deployment approval requested. Waiting for approval from authorized personnel."


class DeploymentTrigger:
    """Starts deployments, pausing them for approval where policy requires."""

    def __init__(
        self,
        generator: PipelineConfigGenerator,
        runner: PipelineRunner,
        monitor: DeploymentMonitor,
        gate: ApprovalGate,
        deployments: DeploymentService,
        broadcaster: StatusBroadcaster,
        audit: AuditSink,
        settings: Settings,
    ):
        self.generator = generator
        self.runner = runner
        self.monitor = monitor
        self.gate = gate
        self.deployments = deployments
        self.broadcaster = broadcaster
        self.audit = audit
        self.settings = settings

    async def trigger(self, request: DeploymentTriggerRequest, actor: Actor) -> DeploymentTriggerResult:
        """Deploy ``request`` now, or open an approval request for it.

        Raises:
            AuthorizationError: If the actor may not deploy to the target environment
            InvalidSpecificationError: If the change specification is empty
        """
        environment = request.environment or request.specification.environment_hint or self.settings.default_environment
        if not can_request(actor.role, environment):
            logger.warning(f"Deployment to {environment} refused for role {actor.role}")
            raise AuthorizationError(actor.role, "trigger deployments", environment)

        request = request.model_copy(
            update={
                "environment": environment,
                "specification": request.specification.model_copy(update={"environment_hint": environment}),
            }
        )
        config = await self.generator.generate(request.specification)
        version = request.version or f"v{epoch_millis()}"
        deployment_id = new_record_id("dep_")

        if requires_approval(environment, actor.role):
            approval = await self.gate.open_request(deployment_id, request, environment, version, actor)
            await self.broadcaster.try_publish(
                deployment_id,
                TriggerStatus.PENDING_APPROVAL,
                APPROVAL_PENDING_MESSAGE,
                {"approval_request_id": approval.id, "environment": environment},
            )
            return DeploymentTriggerResult(
                status=TriggerStatus.PENDING_APPROVAL,
                message=APPROVAL_PENDING_MESSAGE,
                deployment_id=deployment_id,
                approval_request_id=approval.id,
            )

        return await self._run(config, request, version, deployment_id, actor.id)

    async def approve(self, request_id: str, approver: Actor, notes: str | None = None) -> DeploymentTriggerResult:
        """Approve a pending request and execute its deployment.

        A repeated approval returns the outcome of the first one without
        deploying again.
        """

        async def deploy(approval: DeploymentApprovalRequest) -> DeploymentTriggerResult:
            config = await self.generator.generate(approval.trigger_request.specification)
            return await self._run(
                config, approval.trigger_request, approval.version, approval.deployment_id, approval.requested_by, approver.id
            )

        approval = await self.gate.approve(request_id, approver, notes, deploy)
        return approval.outcome

    async def reject(self, request_id: str, approver: Actor, reason: str) -> DeploymentTriggerResult:
        """Reject a pending request; rejecting twice is a no-op."""
        approval, rejected_now = await self.gate.reject(request_id, approver, reason)
        message = f"Deployment request rejected: {approval.approval_notes}"
        if rejected_now:
            await self.broadcaster.try_publish(
                approval.deployment_id,
                TriggerStatus.REJECTED,
                message,
                {"approval_request_id": request_id, "requested_by": approval.requested_by, "rejected_by": approver.id},
            )
        return DeploymentTriggerResult(
            status=TriggerStatus.REJECTED,
            message=message,
            deployment_id=approval.deployment_id,
            approval_request_id=request_id,
        )

    async def get_approval(self, request_id: str) -> DeploymentApprovalRequest:
        approval = await self.gate.get_request(request_id)
        if approval is None:
            raise ResourceNotFoundError("DeploymentApprovalRequest", request_id)
        return approval

    async def pending_approvals(self, actor: Actor, environment: str | None = None) -> list[DeploymentApprovalRequest]:
        return await self.gate.pending_for(actor.role, environment)

    def available_environments(self, actor: Actor) -> list[EnvironmentInfo]:
        return environment_catalogue(actor.role)

    async def deployment_history(self, environment: str | None = None, limit: int = 20) -> list[Deployment]:
        return await self.deployments.history(environment=environment, limit=limit)

    async def _run(
        self,
        config: PipelineConfig,
        request: DeploymentTriggerRequest,
        version: str,
        deployment_id: str,
        requested_by: str,
        approved_by: str | None = None,
    ) -> DeploymentTriggerResult:
        environment = config.target_environment
        await self.monitor.start_monitoring(deployment_id)
        try:
            result = await self.runner.execute(
                config,
                environment,
                deployed_by=requested_by,
                project_id=request.project_id,
                version=version,
                deployment_id=deployment_id,
                observer=self.monitor,
                post_deploy_check=self._latest_health,
                fail_on_unhealthy=self.settings.fail_on_unhealthy_probe,
            )
        finally:
            await self.monitor.stop_monitoring(deployment_id)

        context = {"deployment_id": deployment_id, "environment": environment, "version": version, "success": result.success}
        if approved_by:
            context["approved_by"] = approved_by
        await self.audit.try_record(
            "deployment_executed",
            f"Deployment to {environment} {'succeeded' if result.success else 'failed'}",
            context,
            requested_by,
        )

        if result.success:
            message = f"Deployment to {environment} completed successfully"
            status = TriggerStatus.SUCCESS
        else:
            message = f"Deployment to {environment} failed: {result.error}"
            status = TriggerStatus.FAILED
        return DeploymentTriggerResult(status=status, message=message, deployment_id=deployment_id, deployment_result=result)

    async def _latest_health(self, deployment_id: str) -> HealthCheckResult | None:
        """Health result recorded after the deploy stage, probing now if there is none."""
        session = self.monitor.get_session(deployment_id)
        if session is not None and session.health_checks:
            return session.health_checks[-1]
        if session is None:
            return None
        return await self.monitor.run_health_check(deployment_id)
