"""Common exceptions for the deployment engine.

Validation, authorization and lifecycle errors are raised to callers.
Stage and suite execution failures are never raised; they are recorded as
failed results instead.
"""


class DeployEngineError(Exception):
    """Base class for all engine errors."""


class ResourceNotFoundError(DeployEngineError):
    """Raised when a resource doesn't exist.

    Generic exception for any resource that cannot be found by its identifier.
    """

    def __init__(self, resource_type: str, identifier: str):
        self.resource_type = resource_type
        self.identifier = identifier
        super().__init__(f"{resource_type} not found: {identifier}")


class SnapshotNotFoundError(ResourceNotFoundError):
    """Raised when a rollback target snapshot id is unknown."""

    def __init__(self, snapshot_id: str):
        super().__init__("Snapshot", snapshot_id)


class InvalidSpecificationError(DeployEngineError):
    """Raised when a change specification is empty or cannot be resolved."""


class DuplicateStageError(InvalidSpecificationError):
    """Raised when a pipeline would contain two stages with the same name."""

    def __init__(self, stage_name: str):
        self.stage_name = stage_name
        super().__init__(f"Stage '{stage_name}' already exists")


class UnverifiedSnapshotError(DeployEngineError):
    """Raised when a rollback targets a snapshot that has not passed an integrity check."""

    def __init__(self, snapshot_id: str):
        self.snapshot_id = snapshot_id
        super().__init__(f"Snapshot {snapshot_id} is not verified and cannot be used as a rollback target")


class AuthorizationError(DeployEngineError):
    """Raised when the actor's role is insufficient for the requested action."""

    def __init__(self, role: str, action: str, environment: str | None = None):
        self.role = role
        self.action = action
        self.environment = environment
        target = f" in {environment}" if environment else ""
        super().__init__(f"Role '{role}' is not allowed to {action}{target}")


class InvalidTransitionError(DeployEngineError):
    """Raised when a lifecycle transition is not allowed from the current state."""

    def __init__(self, entity: str, current: str, target: str):
        self.entity = entity
        self.current = current
        self.target = target
        super().__init__(f"{entity} cannot move from '{current}' to '{target}'")


class TestTriggerNotConfiguredError(DeployEngineError):
    """Raised when a project has no trigger configuration for the requested trigger."""

    __test__ = False

    def __init__(self, project_id: str, trigger: str):
        self.project_id = project_id
        self.trigger = trigger
        super().__init__(f"Test trigger '{trigger}' is not configured for project {project_id}")


class SnapshotInUseError(DeployEngineError):
    """Raised when deleting a snapshot that an open rollback request still targets."""

    def __init__(self, snapshot_id: str, request_id: str):
        self.snapshot_id = snapshot_id
        self.request_id = request_id
        super().__init__(f"Snapshot {snapshot_id} is referenced by rollback request {request_id}")
