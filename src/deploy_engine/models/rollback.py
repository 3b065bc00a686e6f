"""Data models for rollback requests and failure analysis."""

from datetime import datetime

from pydantic import BaseModel, Field

from deploy_engine.models.base_model import Record
from deploy_engine.models.enums import ErrorCategory, RollbackStatus, Severity
from deploy_engine.models.records import Snapshot
from deploy_engine.utils import new_record_id


class RollbackOption(BaseModel):
    """A verified snapshot offered as a rollback candidate."""

    snapshot: Snapshot
    description: str
    age_description: str
    reasoning: str


class IntegrityCheck(BaseModel):
    item: str
    passed: bool
    message: str


class IntegrityReport(BaseModel):
    """Post-rollback integrity checklist outcome."""

    verified: bool
    checks: list[IntegrityCheck] = Field(default_factory=list)

    @property
    def passed_count(self) -> int:
        return sum(1 for check in self.checks if check.passed)

    @property
    def failed_checks(self) -> list[str]:
        return [check.item for check in self.checks if not check.passed]


class ErrorAnalysis(BaseModel):
    """Deterministic classification of a rollback failure."""

    model_config = {"use_enum_values": True}

    category: ErrorCategory
    severity: Severity
    root_cause: str
    affected_components: list[str] = Field(default_factory=list)
    summary: str
    error_text: str


class RollbackRequest(Record):
    """A human-confirmed rollback of an environment to a verified snapshot."""

    id: str = Field(default_factory=lambda: new_record_id("rb_"))
    environment: str
    snapshot_id: str
    reason: str
    requested_by: str
    status: RollbackStatus = RollbackStatus.REQUESTED
    explanation: str | None = None
    approved_by: str | None = None
    approved_at: datetime | None = None
    rejected_by: str | None = None
    rejection_reason: str | None = None
    executed_by: str | None = None
    completed_at: datetime | None = None
    result: "RollbackResult | None" = None


class RollbackResult(BaseModel):
    """Result of executing a rollback request."""

    request_id: str
    success: bool
    message: str
    deployment_id: str | None = None
    integrity: IntegrityReport | None = None
    error_analysis: ErrorAnalysis | None = None
    recovery_options: list[str] = Field(default_factory=list)


class SecurityAlert(BaseModel):
    """An alert from the external alert feed."""

    id: str
    environment: str
    alert_type: str
    severity: Severity
    title: str
    description: str = ""
    rollback_suggested: bool = False


RollbackRequest.model_rebuild()
