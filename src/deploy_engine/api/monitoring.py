"""Monitoring API - live sessions, build logs and metrics."""

from fastapi import APIRouter, Depends

from deploy_engine.api.dependencies import component
from deploy_engine.exceptions import ResourceNotFoundError
from deploy_engine.models import BuildLogEntry, DeploymentMetrics, DeploymentMonitorSession, HealthCheckResult, LogLevel
from deploy_engine.monitoring import DeploymentMonitor

router = APIRouter()


@router.get("/monitor/sessions", response_model=list[DeploymentMonitorSession])
async def list_active_sessions(
    monitor: DeploymentMonitor = Depends(component(DeploymentMonitor)),
) -> list[DeploymentMonitorSession]:
    return monitor.active_sessions()


@router.get("/monitor/{deployment_id}", response_model=DeploymentMonitorSession)
async def get_session(
    deployment_id: str,
    monitor: DeploymentMonitor = Depends(component(DeploymentMonitor)),
) -> DeploymentMonitorSession:
    session = monitor.get_session(deployment_id)
    if session is None:
        raise ResourceNotFoundError("MonitorSession", deployment_id)
    return session


@router.get("/monitor/{deployment_id}/logs", response_model=list[BuildLogEntry])
async def get_build_logs(
    deployment_id: str,
    stage: str | None = None,
    min_level: LogLevel | None = None,
    limit: int | None = None,
    monitor: DeploymentMonitor = Depends(component(DeploymentMonitor)),
) -> list[BuildLogEntry]:
    """Buffered build log entries in the order they were appended.

    Args:
        deployment_id: Monitored deployment
        stage: Only entries of this stage
        min_level: Only entries at or above this level
        limit: Only the most recent entries
        monitor: Deployment monitor instance
    """
    return monitor.get_build_logs(deployment_id, stage=stage, min_level=min_level, limit=limit)


@router.get("/monitor/{deployment_id}/metrics", response_model=DeploymentMetrics)
async def get_metrics(
    deployment_id: str,
    monitor: DeploymentMonitor = Depends(component(DeploymentMonitor)),
) -> DeploymentMetrics:
    return monitor.get_metrics(deployment_id)


@router.post("/monitor/{deployment_id}/health-check", response_model=HealthCheckResult)
async def run_health_check(
    deployment_id: str,
    target: str | None = None,
    monitor: DeploymentMonitor = Depends(component(DeploymentMonitor)),
) -> HealthCheckResult:
    return await monitor.run_health_check(deployment_id, target)
