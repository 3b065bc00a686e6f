"""Data models for live deployment monitoring."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from deploy_engine.models.enums import LogLevel, SessionStatus
from deploy_engine.utils import new_record_id, utcnow


class BuildLogEntry(BaseModel):
    """One append-only build log line for a deployment."""

    model_config = {"use_enum_values": True}

    id: str = Field(default_factory=lambda: new_record_id("log_"))
    deployment_id: str
    stage: str
    level: LogLevel
    message: str
    timestamp: datetime = Field(default_factory=utcnow)


class HealthCheckResult(BaseModel):
    """Outcome of one health probe against a deployment's target."""

    deployment_id: str
    target: str
    healthy: bool
    status_code: int
    latency_ms: float
    message: str
    checked_at: datetime = Field(default_factory=utcnow)


class DeploymentMetrics(BaseModel):
    """Stage timing metrics tracked per deployment."""

    deployment_id: str
    total_stages: int = 0
    completed_stages: int = 0
    failed_stages: int = 0
    average_stage_seconds: float = 0.0
    last_health_status: bool | None = None

    @property
    def progress_percent(self) -> int:
        if not self.total_stages:
            return 0
        return int(self.completed_stages * 100 / self.total_stages)


class DeploymentMonitorSession(BaseModel):
    """Point-in-time view of one monitored deployment."""

    model_config = {"use_enum_values": True}

    id: str = Field(default_factory=lambda: new_record_id("mon_"))
    deployment_id: str
    status: SessionStatus = SessionStatus.STARTING
    started_at: datetime = Field(default_factory=utcnow)
    completed_at: datetime | None = None
    current_stage: str | None = None
    health_checks: list[HealthCheckResult] = Field(default_factory=list)
    build_logs: list[BuildLogEntry] = Field(default_factory=list)


class DeploymentStatusUpdate(BaseModel):
    """A status change published to observers."""

    deployment_id: str
    status: str
    message: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=utcnow)
