"""Deployment and snapshot records shared by the runner and the rollback controller."""

from datetime import datetime

from pydantic import Field

from deploy_engine.constants import SYSTEM_ACTOR
from deploy_engine.models.base_model import Record
from deploy_engine.models.enums import DeploymentStatus
from deploy_engine.models.pipeline import PipelineConfig
from deploy_engine.utils import new_record_id, utcnow


class Snapshot(Record):
    """A captured, restorable system state used as a rollback target.

    ``verified`` is only set by an explicit integrity pass.
    """

    id: str = Field(default_factory=lambda: new_record_id("snap_"))
    environment: str
    source_revision: str
    database_backup_handle: str | None = None
    config_files: list[str] = Field(default_factory=list)
    deployment_id: str | None = None
    verified: bool = False
    verified_by: str | None = None
    verified_at: datetime | None = None


class Deployment(Record):
    """A single deployment attempt of a pipeline to an environment."""

    id: str = Field(default_factory=lambda: new_record_id("dep_"))
    project_id: str | None = None
    environment: str
    version: str
    status: DeploymentStatus = DeploymentStatus.PENDING
    pipeline_config: PipelineConfig | None = None
    snapshot_id: str | None = None
    deployed_by: str = SYSTEM_ACTOR
    deployed_at: datetime = Field(default_factory=utcnow)
    completed_at: datetime | None = None
    rollback_available: bool = True
    rollback_request_id: str | None = None
    logs: list[str] = Field(default_factory=list)
