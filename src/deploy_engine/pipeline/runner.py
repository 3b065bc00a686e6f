"""Pipeline Runner.

Sequences stage execution for one deployment. The pipeline is strictly
linear and fail-fast: the first failing stage aborts the remaining stages and
fails the deployment. There are no stage retries at this layer.
"""

from collections.abc import Awaitable, Callable

import arrow
from loguru import logger

from deploy_engine.constants import SYSTEM_ACTOR
from deploy_engine.models import Deployment, DeploymentResult, DeploymentStatus, HealthCheckResult, PipelineConfig, StageResult
from deploy_engine.pipeline.observer import CompositeObserver, StageObserver
from deploy_engine.pipeline.stage_executor import StageExecutor
from deploy_engine.ports.audit import AuditSink
from deploy_engine.ports.snapshot import SnapshotCapture
from deploy_engine.services.deployment_service import DeploymentService
from deploy_engine.services.snapshot_service import SnapshotService
from deploy_engine.utils import epoch_millis

PostDeployCheck = Callable[[str], Awaitable[HealthCheckResult | None]]


class PipelineRunner:
    """Executes pipeline configurations against an environment."""

    def __init__(
        self,
        executor: StageExecutor,
        deployments: DeploymentService,
        snapshots: SnapshotService,
        capture: SnapshotCapture,
        audit: AuditSink,
    ):
        self.executor = executor
        self.deployments = deployments
        self.snapshots = snapshots
        self.capture = capture
        self.audit = audit

    async def execute(
        self,
        config: PipelineConfig,
        environment: str,
        *,
        deployed_by: str = SYSTEM_ACTOR,
        project_id: str | None = None,
        version: str | None = None,
        deployment_id: str | None = None,
        observer: StageObserver | None = None,
        post_deploy_check: PostDeployCheck | None = None,
        fail_on_unhealthy: bool = False,
    ) -> DeploymentResult:
        """Run every stage of ``config`` in order against ``environment``.

        A pre-deployment snapshot is captured and a deployment record created
        before the first stage runs. When every stage passed, ``post_deploy_check``
        is consulted; with ``fail_on_unhealthy`` an unhealthy result fails the
        deployment, otherwise it is only reported.

        Returns:
            DeploymentResult: ``success`` is true only if every stage passed
        """
        start_time = arrow.utcnow().float_timestamp
        observers = CompositeObserver([observer] if observer else [])
        deployment = Deployment(
            project_id=project_id,
            environment=environment,
            version=version or f"v{epoch_millis()}",
            pipeline_config=config,
            deployed_by=deployed_by,
        )
        if deployment_id:
            deployment.id = deployment_id

        try:
            captured = await self.capture.capture(environment, config)
        except Exception as e:
            logger.error(f"Snapshot capture failed for {environment}: {e}")
            deployment.rollback_available = False
            await self.deployments.create(deployment)
            error = f"Snapshot capture failed: {e}"
            await self.deployments.transition(deployment.id, DeploymentStatus.FAILED, log=error)
            result = DeploymentResult(success=False, deployment_id=deployment.id, environment=environment, error=error)
            await observers.pipeline_finished(deployment.id, result)
            return result

        snapshot = await self.snapshots.create_pre_deployment(environment, captured, deployment.id)
        deployment.snapshot_id = snapshot.id
        await self.deployments.create(deployment)
        deployment = await self.deployments.transition(
            deployment.id,
            DeploymentStatus.IN_PROGRESS,
            log=f"Pipeline started: {len(config.stages)} stages targeting {environment}",
        )
        logger.info(f"Deployment {deployment.id} started: {len(config.stages)} stages to {environment}")
        await observers.pipeline_started(deployment, config)

        stage_results: list[StageResult] = []
        result: DeploymentResult | None = None
        try:
            for index, stage in enumerate(config.stages):
                await self._audit_stage("pipeline_stage_started", f"Started pipeline stage: {stage.name}", deployment, stage.name)
                await observers.stage_started(deployment.id, stage, index, len(config.stages))

                stage_result = await self.executor.execute(stage, deployment.id, observers)
                stage_results.append(stage_result)
                await observers.stage_finished(deployment.id, stage, stage_result)

                if stage_result.success:
                    logger.info(f"Stage {stage.name} completed successfully")
                    await self.deployments.append_log(deployment.id, f"Stage {stage.name} completed ({stage_result.duration_seconds:.1f}s)")
                    await self._audit_stage("pipeline_stage_completed", f"Completed pipeline stage: {stage.name}", deployment, stage.name)
                    continue

                failure = f"Pipeline failed at stage: {stage.name}. Error: {stage_result.error}"
                logger.error(f"Deployment {deployment.id}: {failure}")
                await self.deployments.transition(deployment.id, DeploymentStatus.FAILED, log=failure)
                await self._audit_stage(
                    "pipeline_stage_failed", f"Failed pipeline stage: {stage.name}", deployment, stage.name, error=stage_result.error
                )
                result = DeploymentResult(
                    success=False,
                    deployment_id=deployment.id,
                    environment=environment,
                    snapshot_id=snapshot.id,
                    stage_results=stage_results,
                    error=failure,
                    skipped_stages=self._remaining_stage_names(config, index),
                )
                break

        except Exception as e:
            logger.error(f"Pipeline execution failed with exception: {e}")
            error = f"Pipeline execution failed: {e}"
            await self.deployments.transition(deployment.id, DeploymentStatus.FAILED, log=error)
            result = DeploymentResult(
                success=False,
                deployment_id=deployment.id,
                environment=environment,
                snapshot_id=snapshot.id,
                stage_results=stage_results,
                error=error,
            )

        if result is None:
            health = await self._post_deploy_health(post_deploy_check, deployment.id)
            if health is not None and not health.healthy and fail_on_unhealthy:
                failure = f"Post-deploy health check failed: {health.message}"
                logger.error(f"Deployment {deployment.id}: {failure}")
                await self.deployments.transition(deployment.id, DeploymentStatus.FAILED, log=failure)
                result = DeploymentResult(
                    success=False,
                    deployment_id=deployment.id,
                    environment=environment,
                    snapshot_id=snapshot.id,
                    stage_results=stage_results,
                    error=failure,
                    health_check=health,
                )
            else:
                await self.deployments.transition(deployment.id, DeploymentStatus.SUCCESS, log="Pipeline completed successfully")
                logger.info(f"Deployment {deployment.id} succeeded")
                result = DeploymentResult(
                    success=True,
                    deployment_id=deployment.id,
                    environment=environment,
                    snapshot_id=snapshot.id,
                    stage_results=stage_results,
                    health_check=health,
                )

        result.duration_seconds = arrow.utcnow().float_timestamp - start_time
        await observers.pipeline_finished(deployment.id, result)
        return result

    async def get_deployment(self, deployment_id: str) -> Deployment | None:
        return await self.deployments.get(deployment_id)

    async def recent_deployments(self, limit: int = 10) -> list[Deployment]:
        return await self.deployments.history(limit=limit)

    @staticmethod
    async def _post_deploy_health(check: PostDeployCheck | None, deployment_id: str) -> HealthCheckResult | None:
        """Run the post-deploy check; a raised error counts as an unhealthy result."""
        if check is None:
            return None
        try:
            return await check(deployment_id)
        except Exception as e:
            logger.error(f"Post-deploy health check for {deployment_id} raised: {e}")
            return HealthCheckResult(
                deployment_id=deployment_id,
                target="unknown",
                healthy=False,
                status_code=0,
                latency_ms=0.0,
                message=f"Health check error: {e}",
            )

    @staticmethod
    def _remaining_stage_names(config: PipelineConfig, failed_index: int) -> list[str]:
        """Names of the stages after the failed one, which never run."""
        return [stage.name for stage in config.stages[failed_index + 1 :]]

    async def _audit_stage(self, action: str, description: str, deployment: Deployment, stage_name: str, error: str | None = None) -> None:
        context = {"deployment_id": deployment.id, "stage_name": stage_name, "environment": deployment.environment}
        if error:
            context["error"] = error
        await self.audit.try_record(action, description, context, deployment.deployed_by)
