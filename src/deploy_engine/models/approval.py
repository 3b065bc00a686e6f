"""Data models for approval-gated deployment triggers."""

from datetime import datetime

from pydantic import BaseModel, Field

from deploy_engine.models.base_model import Record
from deploy_engine.models.enums import ApprovalStatus, TriggerStatus
from deploy_engine.models.pipeline import ChangeSpecification, DeploymentResult
from deploy_engine.utils import new_record_id


class Actor(BaseModel):
    """The caller of an operation, as supplied by the identity provider.

    ``role`` is kept as an opaque string; unknown roles match no policy entry.
    """

    id: str
    role: str


class DeploymentTriggerRequest(BaseModel):
    """A user request to deploy a change to an environment."""

    project_id: str
    specification: ChangeSpecification
    environment: str | None = None
    version: str | None = None
    notes: str | None = None


class DeploymentApprovalRequest(Record):
    """A deployment paused until an authorized approver resolves it."""

    id: str = Field(default_factory=lambda: new_record_id("appr_"))
    deployment_id: str
    project_id: str
    environment: str
    version: str
    requested_by: str
    requested_role: str
    trigger_request: DeploymentTriggerRequest
    status: ApprovalStatus = ApprovalStatus.PENDING
    approved_by: str | None = None
    approval_notes: str | None = None
    resolved_at: datetime | None = None
    outcome: "DeploymentTriggerResult | None" = None


class DeploymentTriggerResult(BaseModel):
    """Outcome of a trigger, approval or rejection."""

    model_config = {"use_enum_values": True}

    status: TriggerStatus
    message: str
    deployment_id: str | None = None
    approval_request_id: str | None = None
    deployment_result: DeploymentResult | None = None


class EnvironmentInfo(BaseModel):
    name: str
    description: str
    requires_approval: bool
    can_deploy: bool


DeploymentApprovalRequest.model_rebuild()
