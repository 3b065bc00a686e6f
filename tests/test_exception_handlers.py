"""Tests for mapping engine errors to HTTP status codes."""

import pytest

from deploy_engine.exception_handlers import status_code_for
from deploy_engine.exceptions import (
    AuthorizationError,
    DeployEngineError,
    DuplicateStageError,
    InvalidSpecificationError,
    InvalidTransitionError,
    ResourceNotFoundError,
    SnapshotInUseError,
    SnapshotNotFoundError,
    TestTriggerNotConfiguredError,
    UnverifiedSnapshotError,
)


@pytest.mark.parametrize(
    "error,expected",
    [
        (ResourceNotFoundError("Deployment", "dep_1"), 404),
        (SnapshotNotFoundError("snap_1"), 404),
        (AuthorizationError("viewer", "deploy", "production"), 403),
        (InvalidTransitionError("Rollback request", "rejected", "approved"), 409),
        (SnapshotInUseError("snap_1", "rb_1"), 409),
        (InvalidSpecificationError("empty description"), 422),
        (DuplicateStageError("build"), 422),
        (UnverifiedSnapshotError("snap_1"), 400),
        (TestTriggerNotConfiguredError("proj", "commit"), 400),
        (DeployEngineError("anything else"), 400),
    ],
)
def test_status_code_for(error, expected):
    assert status_code_for(error) == expected


def test_error_messages():
    assert str(AuthorizationError("viewer", "deploy", "production")) == "Role 'viewer' is not allowed to deploy in production"
    assert str(AuthorizationError("viewer", "approve")) == "Role 'viewer' is not allowed to approve"
    assert str(SnapshotNotFoundError("snap_1")) == "Snapshot not found: snap_1"
    assert str(DuplicateStageError("build")) == "Stage 'build' already exists"
