"""Deployment Monitor.

Owns the live status of monitored deployments. A session moves through
``starting -> running -> {success | failed} -> completed`` and is discarded
after a grace period. Build logs are kept in a bounded buffer per deployment,
oldest entries evicted first.
"""

import asyncio
from collections import deque
from dataclasses import dataclass, field
from typing import Any

import arrow
from loguru import logger

from deploy_engine.constants import LOG_STAGE_ERROR, LOG_STAGE_HEALTH_CHECK
from deploy_engine.exceptions import ResourceNotFoundError
from deploy_engine.models import (
    BuildLogEntry,
    Deployment,
    DeploymentMetrics,
    DeploymentMonitorSession,
    DeploymentResult,
    DeploymentStatusUpdate,
    HealthCheckResult,
    LogLevel,
    PipelineConfig,
    PipelineStage,
    SessionStatus,
    StageResult,
)
from deploy_engine.monitoring.subscription import StatusSubscription
from deploy_engine.pipeline.observer import StageObserver
from deploy_engine.ports.broadcast import StatusBroadcaster
from deploy_engine.ports.health import HealthProbe
from deploy_engine.settings import Settings
from deploy_engine.utils import utcnow

DEPLOY_STAGE = "deploy"


@dataclass
class _MonitorState:
    session: DeploymentMonitorSession
    logs: deque[BuildLogEntry]
    metrics: DeploymentMetrics
    stage_started_at: dict[str, float] = field(default_factory=dict)
    health_task: asyncio.Task | None = None
    discard_handle: asyncio.TimerHandle | None = None


class DeploymentMonitor(StageObserver):
    """Tracks sessions, build logs, metrics and health of running deployments."""

    def __init__(self, probe: HealthProbe, broadcaster: StatusBroadcaster, settings: Settings):
        self.probe = probe
        self.broadcaster = broadcaster
        self.settings = settings
        self._states: dict[str, _MonitorState] = {}
        self._subscriptions: set[StatusSubscription] = set()

    # Sessions

    async def start_monitoring(self, deployment_id: str, periodic_health: bool = False) -> DeploymentMonitorSession:
        """Open a session for ``deployment_id``; an existing session is returned as is."""
        state = self._states.get(deployment_id)
        if state is not None:
            return self._view(state)

        state = _MonitorState(
            session=DeploymentMonitorSession(deployment_id=deployment_id),
            logs=deque(maxlen=self.settings.build_log_capacity),
            metrics=DeploymentMetrics(deployment_id=deployment_id),
        )
        self._states[deployment_id] = state
        logger.info(f"Started monitoring deployment {deployment_id}")

        if periodic_health:
            state.health_task = asyncio.create_task(self._periodic_health(deployment_id))
        await self._publish(deployment_id, SessionStatus.STARTING, "Monitoring started")
        return self._view(state)

    async def stop_monitoring(self, deployment_id: str) -> DeploymentMonitorSession:
        """Mark the session completed and schedule its removal."""
        state = self._require(deployment_id)
        self._cancel_health_task(state)
        state.session.status = SessionStatus.COMPLETED
        state.session.completed_at = utcnow()

        if state.discard_handle is None:
            loop = asyncio.get_running_loop()
            state.discard_handle = loop.call_later(self.settings.session_retention_seconds, self._discard, deployment_id)
        logger.info(f"Stopped monitoring deployment {deployment_id}")
        return self._view(state)

    def get_session(self, deployment_id: str) -> DeploymentMonitorSession | None:
        state = self._states.get(deployment_id)
        return self._view(state) if state else None

    def active_sessions(self) -> list[DeploymentMonitorSession]:
        """Sessions that have not completed yet."""
        return [self._view(state) for state in self._states.values() if state.session.status != SessionStatus.COMPLETED]

    # Build logs

    def add_log(self, deployment_id: str, stage: str, level: LogLevel, message: str) -> BuildLogEntry:
        state = self._require(deployment_id)
        entry = BuildLogEntry(deployment_id=deployment_id, stage=stage, level=level, message=message)
        state.logs.append(entry)
        if level == LogLevel.ERROR:
            logger.error(f"[{deployment_id}] {stage}: {message}")
        return entry

    def get_build_logs(
        self,
        deployment_id: str,
        stage: str | None = None,
        min_level: LogLevel | None = None,
        limit: int | None = None,
    ) -> list[BuildLogEntry]:
        """Return buffered log entries in append order, optionally filtered.

        ``limit`` keeps the most recent entries.
        """
        entries = list(self._require(deployment_id).logs)
        if stage is not None:
            entries = [entry for entry in entries if entry.stage == stage]
        if min_level is not None:
            floor = LogLevel(min_level).rank
            entries = [entry for entry in entries if LogLevel(entry.level).rank >= floor]
        if limit is not None:
            entries = entries[-limit:] if limit > 0 else []
        return entries

    def get_metrics(self, deployment_id: str) -> DeploymentMetrics:
        return self._require(deployment_id).metrics.model_copy()

    # Health

    async def run_health_check(self, deployment_id: str, target: str | None = None) -> HealthCheckResult:
        """Probe the deployment's target and log the outcome under ``health_check``.

        An unhealthy result is logged at error level but does not change the
        session status.
        """
        state = self._require(deployment_id)
        url = self.settings.probe_url(target or self.settings.health_check_path)
        outcome = await self.probe.check(url, self.settings.health_check_timeout_seconds)

        result = HealthCheckResult(deployment_id=deployment_id, target=url, **outcome.model_dump())
        state.session.health_checks.append(result)
        state.metrics.last_health_status = result.healthy

        level = LogLevel.INFO if result.healthy else LogLevel.ERROR
        self.add_log(deployment_id, LOG_STAGE_HEALTH_CHECK, level, result.message)
        await self._publish(
            deployment_id,
            "healthy" if result.healthy else "unhealthy",
            result.message,
            {"status_code": result.status_code, "latency_ms": round(result.latency_ms, 1)},
        )
        return result

    # Observers

    def subscribe(self) -> StatusSubscription:
        subscription = StatusSubscription(self.settings.subscriber_queue_size, on_close=self._subscriptions.discard)
        self._subscriptions.add(subscription)
        return subscription

    async def shutdown(self) -> None:
        for state in self._states.values():
            self._cancel_health_task(state)
            if state.discard_handle is not None:
                state.discard_handle.cancel()
        self._states.clear()
        for subscription in list(self._subscriptions):
            subscription.close()
        logger.debug("Deployment monitor shut down")

    # StageObserver hooks

    async def pipeline_started(self, deployment: Deployment, config: PipelineConfig) -> None:
        if deployment.id not in self._states:
            await self.start_monitoring(deployment.id)
        state = self._states[deployment.id]
        state.session.status = SessionStatus.RUNNING
        state.metrics.total_stages = len(config.stages)
        self.add_log(
            deployment.id,
            "pipeline",
            LogLevel.INFO,
            f"Deployment started: {len(config.stages)} stages targeting {deployment.environment}",
        )
        await self._publish(deployment.id, SessionStatus.RUNNING, f"Deploying {deployment.version} to {deployment.environment}")

    async def stage_started(self, deployment_id: str, stage: PipelineStage, index: int, total: int) -> None:
        state = self._require(deployment_id)
        state.session.current_stage = stage.name
        state.stage_started_at[stage.name] = arrow.utcnow().float_timestamp
        self.add_log(deployment_id, stage.name, LogLevel.INFO, f"Starting stage: {stage.name}")
        await self._publish(
            deployment_id, SessionStatus.RUNNING, f"Starting stage: {stage.name}", {"stage": stage.name, "index": index, "total": total}
        )

    async def stage_progress(self, deployment_id: str, stage_name: str, done: int, total: int) -> None:
        percent = int(done * 100 / total) if total else 100
        self.add_log(deployment_id, stage_name, LogLevel.DEBUG, f"Stage {stage_name} progress: {percent}%")

    async def stage_finished(self, deployment_id: str, stage: PipelineStage, result: StageResult) -> None:
        state = self._require(deployment_id)
        state.stage_started_at.pop(stage.name, None)
        metrics = state.metrics

        if not result.success:
            metrics.failed_stages += 1
            self.add_log(deployment_id, stage.name, LogLevel.ERROR, f"Stage {stage.name} failed: {result.error}")
            await self._publish(deployment_id, "stage_failed", f"Stage {stage.name} failed", {"stage": stage.name, "error": result.error})
            return

        completed = metrics.completed_stages
        metrics.average_stage_seconds = (metrics.average_stage_seconds * completed + result.duration_seconds) / (completed + 1)
        metrics.completed_stages = completed + 1
        self.add_log(deployment_id, stage.name, LogLevel.INFO, f"Completed stage: {stage.name} ({result.duration_seconds:.1f}s)")
        await self._publish(
            deployment_id,
            "stage_completed",
            f"Completed stage: {stage.name}",
            {"stage": stage.name, "progress": metrics.progress_percent},
        )

        if stage.name == DEPLOY_STAGE:
            await self.run_health_check(deployment_id)

    async def pipeline_finished(self, deployment_id: str, result: DeploymentResult) -> None:
        state = self._states.get(deployment_id)
        if state is None:
            # Capture failed before the pipeline started; nothing was monitored.
            return

        state.session.current_stage = None
        if result.success:
            state.session.status = SessionStatus.SUCCESS
            self.add_log(deployment_id, "pipeline", LogLevel.INFO, "Deployment completed successfully")
            await self._publish(deployment_id, SessionStatus.SUCCESS, "Deployment completed successfully")
        else:
            state.session.status = SessionStatus.FAILED
            self.add_log(deployment_id, LOG_STAGE_ERROR, LogLevel.ERROR, f"Deployment failed: {result.error}")
            await self._publish(deployment_id, SessionStatus.FAILED, f"Deployment failed: {result.error}")

    # Internals

    def _require(self, deployment_id: str) -> _MonitorState:
        state = self._states.get(deployment_id)
        if state is None:
            raise ResourceNotFoundError("MonitorSession", deployment_id)
        return state

    @staticmethod
    def _view(state: _MonitorState) -> DeploymentMonitorSession:
        return state.session.model_copy(
            update={"build_logs": list(state.logs), "health_checks": list(state.session.health_checks)}
        )

    async def _publish(self, deployment_id: str, status: str, message: str, metadata: dict[str, Any] | None = None) -> None:
        update = DeploymentStatusUpdate(deployment_id=deployment_id, status=status, message=message, metadata=metadata or {})
        for subscription in list(self._subscriptions):
            subscription.offer(update)
        await self.broadcaster.try_publish(deployment_id, str(status), message, metadata or {})

    async def _periodic_health(self, deployment_id: str) -> None:
        interval = self.settings.health_check_interval_seconds
        while True:
            await asyncio.sleep(interval)
            state = self._states.get(deployment_id)
            if state is None or state.session.status not in (SessionStatus.STARTING, SessionStatus.RUNNING):
                return
            try:
                await self.run_health_check(deployment_id)
            except Exception as e:
                logger.warning(f"Periodic health check for {deployment_id} failed: {e}")

    @staticmethod
    def _cancel_health_task(state: _MonitorState) -> None:
        if state.health_task is not None and not state.health_task.done():
            state.health_task.cancel()
        state.health_task = None

    def _discard(self, deployment_id: str) -> None:
        if self._states.pop(deployment_id, None) is not None:
            logger.debug(f"Discarded monitor session for {deployment_id}")
