"""Data models for pipeline generation and execution."""

from datetime import datetime

from pydantic import BaseModel, Field

from deploy_engine.models.enums import DeploymentStrategy, ProjectType
from deploy_engine.models.monitoring import HealthCheckResult
from deploy_engine.utils import new_record_id, utcnow


class ChangeSpecification(BaseModel):
    """A validated change request the pipeline generator turns into stages."""

    model_config = {"use_enum_values": True}

    id: str = Field(default_factory=lambda: new_record_id("spec_"))
    description: str
    branch_name: str
    environment_hint: str | None = None
    project_type: ProjectType = ProjectType.GENERIC
    deployment_strategy: DeploymentStrategy = DeploymentStrategy.STANDARD


class PipelineStage(BaseModel):
    """One named unit of work: ordered commands under a timeout."""

    model_config = {"frozen": True}

    name: str
    description: str
    commands: list[str] = Field(default_factory=list)
    timeout_seconds: float


class PipelineConfig(BaseModel):
    """An ordered, immutable list of stages targeting one environment."""

    model_config = {"frozen": True, "use_enum_values": True}

    id: str = Field(default_factory=lambda: new_record_id("pipe_"))
    source_spec_id: str
    branch_name: str
    stages: list[PipelineStage]
    target_environment: str
    project_type: ProjectType = ProjectType.GENERIC
    deployment_strategy: DeploymentStrategy = DeploymentStrategy.STANDARD
    created_at: datetime = Field(default_factory=utcnow)

    @property
    def stage_names(self) -> list[str]:
        return [stage.name for stage in self.stages]


class StageResult(BaseModel):
    """Outcome of one stage execution attempt."""

    model_config = {"frozen": True}

    stage_name: str
    success: bool
    duration_seconds: float
    output: str = ""
    error: str | None = None
    started_at: datetime = Field(default_factory=utcnow)


class DeploymentResult(BaseModel):
    """Result of running a pipeline for one deployment."""

    success: bool
    deployment_id: str
    environment: str
    snapshot_id: str | None = None
    stage_results: list[StageResult] = Field(default_factory=list)
    error: str | None = None
    duration_seconds: float = 0.0
    skipped_stages: list[str] = Field(default_factory=list)
    health_check: HealthCheckResult | None = None

    @property
    def failed_stage(self) -> str | None:
        return next((result.stage_name for result in self.stage_results if not result.success), None)
