"""Pydantic models and enumerations for engine entities."""

from deploy_engine.models.approval import (
    Actor,
    DeploymentApprovalRequest,
    DeploymentTriggerRequest,
    DeploymentTriggerResult,
    EnvironmentInfo,
)
from deploy_engine.models.base_model import Record
from deploy_engine.models.enums import (
    ApprovalStatus,
    DeploymentStatus,
    DeploymentStrategy,
    ErrorCategory,
    ExecutionStatus,
    LogLevel,
    ProjectType,
    Role,
    RollbackStatus,
    SessionStatus,
    Severity,
    SuiteStatus,
    TriggerStatus,
    TriggerType,
)
from deploy_engine.models.monitoring import (
    BuildLogEntry,
    DeploymentMetrics,
    DeploymentMonitorSession,
    DeploymentStatusUpdate,
    HealthCheckResult,
)
from deploy_engine.models.pipeline import ChangeSpecification, DeploymentResult, PipelineConfig, PipelineStage, StageResult
from deploy_engine.models.records import Deployment, Snapshot
from deploy_engine.models.rollback import (
    ErrorAnalysis,
    IntegrityCheck,
    IntegrityReport,
    RollbackOption,
    RollbackRequest,
    RollbackResult,
    SecurityAlert,
)
from deploy_engine.models.suites import TestExecution, TestSuiteConfig, TestSuiteResult, TestTriggerConfig

__all__ = [
    "Actor",
    "ApprovalStatus",
    "BuildLogEntry",
    "ChangeSpecification",
    "Deployment",
    "DeploymentApprovalRequest",
    "DeploymentMetrics",
    "DeploymentMonitorSession",
    "DeploymentResult",
    "DeploymentStatus",
    "DeploymentStatusUpdate",
    "DeploymentStrategy",
    "DeploymentTriggerRequest",
    "DeploymentTriggerResult",
    "EnvironmentInfo",
    "ErrorAnalysis",
    "ErrorCategory",
    "ExecutionStatus",
    "HealthCheckResult",
    "IntegrityCheck",
    "IntegrityReport",
    "LogLevel",
    "PipelineConfig",
    "PipelineStage",
    "ProjectType",
    "Record",
    "Role",
    "RollbackOption",
    "RollbackRequest",
    "RollbackResult",
    "RollbackStatus",
    "SecurityAlert",
    "SessionStatus",
    "Severity",
    "Snapshot",
    "StageResult",
    "SuiteStatus",
    "TestExecution",
    "TestSuiteConfig",
    "TestSuiteResult",
    "TestTriggerConfig",
    "TriggerStatus",
    "TriggerType",
]
