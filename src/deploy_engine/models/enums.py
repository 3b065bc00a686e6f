"""Closed enumerations for engine entities.

This module contains only enums to avoid circular dependencies between the
model modules.
"""

from enum import StrEnum


class DeploymentStatus(StrEnum):
    """Lifecycle of a deployment record."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    SUCCESS = "success"
    FAILED = "failed"
    ROLLED_BACK = "rolled_back"


class ProjectType(StrEnum):
    """Project toolchains the pipeline generator knows commands for."""

    FLUTTER = "flutter"
    NODEJS = "nodejs"
    PYTHON = "python"
    DOTNET = "dotnet"
    GENERIC = "generic"


class DeploymentStrategy(StrEnum):
    """How the deploy stage rolls the new version out."""

    STANDARD = "standard"
    BLUE_GREEN = "blue_green"
    ROLLING = "rolling"


class LogLevel(StrEnum):
    """Build log levels, ordered from least to most severe."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"

    @property
    def rank(self) -> int:
        return _LOG_LEVEL_ORDER.index(self)


_LOG_LEVEL_ORDER = (LogLevel.DEBUG, LogLevel.INFO, LogLevel.WARNING, LogLevel.ERROR)


class SessionStatus(StrEnum):
    """Status of a deployment monitor session."""

    STARTING = "starting"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    COMPLETED = "completed"


class TriggerType(StrEnum):
    """What started a test execution."""

    COMMIT = "commit"
    PULL_REQUEST = "pull_request"
    MANUAL = "manual"
    SCHEDULED = "scheduled"


class ExecutionStatus(StrEnum):
    """Overall status of a test execution."""

    QUEUED = "queued"
    RUNNING = "running"
    PASSED = "passed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class SuiteStatus(StrEnum):
    """Status of a single test suite run."""

    RUNNING = "running"
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"
    ERROR = "error"


class ApprovalStatus(StrEnum):
    """Status of a deployment approval request."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class TriggerStatus(StrEnum):
    """Outcome of a deployment trigger."""

    SUCCESS = "success"
    FAILED = "failed"
    PENDING_APPROVAL = "pending_approval"
    CANCELLED = "cancelled"
    REJECTED = "rejected"


class RollbackStatus(StrEnum):
    """Lifecycle of a rollback request."""

    REQUESTED = "requested"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"
    REJECTED = "rejected"


class ErrorCategory(StrEnum):
    """Failure categories used to select recovery guidance."""

    DATABASE = "database"
    FILESYSTEM = "filesystem"
    NETWORK = "network"
    TIMEOUT = "timeout"
    RESOURCES = "resources"
    UNKNOWN = "unknown"


class Severity(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Role(StrEnum):
    """Actor roles known to the approval policy tables."""

    ADMIN = "admin"
    LEAD_DEVELOPER = "lead_developer"
    DEVELOPER = "developer"
    VIEWER = "viewer"
