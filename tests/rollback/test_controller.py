"""Tests for RollbackController."""

import asyncio

import pytest

from deploy_engine.exceptions import AuthorizationError, InvalidTransitionError, SnapshotNotFoundError, UnverifiedSnapshotError
from deploy_engine.models import (
    ChangeSpecification,
    DeploymentStatus,
    DeploymentTriggerRequest,
    ErrorCategory,
    RollbackStatus,
    SecurityAlert,
    Severity,
)
from deploy_engine.ports import CapturedState, ExplanationGenerator
from deploy_engine.rollback import SUCCESS_MESSAGE
from deploy_engine.services.engine import build_engine
from deploy_engine.store import RecordStores

from tests.fakes import FakeProbe, FakeSandbox, failed


async def _snapshot(engine, environment="production", verified=True, revision="0123456789abcdef"):
    snapshot = await engine.snapshots.create_pre_deployment(environment, CapturedState(source_revision=revision, config_files=["app.yaml"]))
    if verified:
        snapshot = await engine.snapshots.verify(snapshot.id, "alice")
    return snapshot


async def _approved_request(engine, developer, admin):
    snapshot = await _snapshot(engine)
    request = await engine.rollbacks.initiate(snapshot.id, "Error rate spiked", developer)
    await engine.rollbacks.approve(request.id, admin)
    return request


class BrokenExplainer(ExplanationGenerator):
    async def explain(self, snapshot, reason):
        raise RuntimeError("model offline")


class TestInitiate:
    """Only verified snapshots can become rollback targets."""

    @pytest.mark.asyncio
    async def test_unverified_snapshot_is_refused(self, engine, developer):
        snapshot = await _snapshot(engine, verified=False)

        with pytest.raises(UnverifiedSnapshotError):
            await engine.rollbacks.initiate(snapshot.id, "bad deploy", developer)

        assert await engine.rollbacks.history() == []

    @pytest.mark.asyncio
    async def test_unknown_snapshot(self, engine, developer):
        with pytest.raises(SnapshotNotFoundError):
            await engine.rollbacks.initiate("snap_missing", "bad deploy", developer)

    @pytest.mark.asyncio
    async def test_viewer_cannot_request(self, engine, viewer):
        snapshot = await _snapshot(engine)
        with pytest.raises(AuthorizationError):
            await engine.rollbacks.initiate(snapshot.id, "bad deploy", viewer)

    @pytest.mark.asyncio
    async def test_request_always_waits_for_approval(self, engine, audit, admin):
        snapshot = await _snapshot(engine)

        request = await engine.rollbacks.initiate(snapshot.id, "Error rate spiked", admin)

        assert request.status == RollbackStatus.PENDING_APPROVAL
        assert request.requested_by == "alice"
        assert request.explanation.startswith("Rollback Analysis:")
        assert "Reason for Rollback: Error rate spiked" in request.explanation
        assert request.explanation.endswith("Human approval is required before execution.")
        assert "rollback_requested" in audit.actions()

    @pytest.mark.asyncio
    async def test_explanation_failure_falls_back_to_plain_text(self, settings, developer):
        engine = build_engine(
            settings, stores=RecordStores.in_memory(), sandbox=FakeSandbox(), probe=FakeProbe(), explainer=BrokenExplainer()
        )
        snapshot = await _snapshot(engine)

        request = await engine.rollbacks.initiate(snapshot.id, "bad deploy", developer)

        assert request.explanation == "Rollback to 0123456789abcdef requested: bad deploy"


class TestApproval:
    """Approval and rejection are idempotent."""

    @pytest.mark.asyncio
    async def test_only_production_approvers(self, engine, developer, lead, admin):
        snapshot = await _snapshot(engine)
        request = await engine.rollbacks.initiate(snapshot.id, "bad deploy", developer)

        with pytest.raises(AuthorizationError):
            await engine.rollbacks.approve(request.id, lead)

        first = await engine.rollbacks.approve(request.id, admin)
        second = await engine.rollbacks.approve(request.id, admin)
        assert first.status == second.status == RollbackStatus.APPROVED
        assert second.approved_at == first.approved_at

    @pytest.mark.asyncio
    async def test_reject_is_terminal(self, engine, developer, admin):
        snapshot = await _snapshot(engine)
        request = await engine.rollbacks.initiate(snapshot.id, "bad deploy", developer)

        rejected = await engine.rollbacks.reject(request.id, admin, "not needed")
        again = await engine.rollbacks.reject(request.id, admin, "other")

        assert rejected.status == RollbackStatus.REJECTED
        assert again.rejection_reason == "not needed"
        with pytest.raises(InvalidTransitionError):
            await engine.rollbacks.approve(request.id, admin)
        with pytest.raises(InvalidTransitionError):
            await engine.rollbacks.execute(request.id, admin)


class TestExecute:
    """Execution restores, verifies and records the rollback."""

    @pytest.mark.asyncio
    async def test_unapproved_request_cannot_execute(self, engine, sandbox, developer, admin):
        snapshot = await _snapshot(engine)
        request = await engine.rollbacks.initiate(snapshot.id, "bad deploy", developer)

        with pytest.raises(InvalidTransitionError):
            await engine.rollbacks.execute(request.id, admin)
        assert not sandbox.ran("Restoring")

    @pytest.mark.asyncio
    async def test_successful_rollback(self, engine, sandbox, developer, admin):
        request = await _approved_request(engine, developer, admin)

        result = await engine.rollbacks.execute(request.id, admin)

        assert result.success is True
        assert result.message == SUCCESS_MESSAGE
        assert result.integrity.verified is True
        assert result.integrity.passed_count == 5
        assert sandbox.ran('Restoring production to 0123456789abcdef')

        stored = await engine.rollbacks.get_request(request.id)
        assert stored.status == RollbackStatus.COMPLETED
        assert stored.completed_at is not None
        assert stored.executed_by == "alice"

        deployment = await engine.deployments.require(result.deployment_id)
        assert deployment.status == DeploymentStatus.ROLLED_BACK
        assert deployment.rollback_request_id == request.id
        assert deployment.version == "0123456789abcdef"
        assert deployment.deployed_by == "alice"

        with pytest.raises(InvalidTransitionError):
            await engine.rollbacks.execute(request.id, admin)

    @pytest.mark.asyncio
    async def test_only_approvers_execute(self, engine, sandbox, developer, lead, admin):
        request = await _approved_request(engine, developer, admin)

        with pytest.raises(AuthorizationError):
            await engine.rollbacks.execute(request.id, lead)

        stored = await engine.rollbacks.get_request(request.id)
        assert stored.status == RollbackStatus.APPROVED
        assert stored.executed_by is None
        assert not sandbox.ran("Restoring")

    @pytest.mark.asyncio
    async def test_restore_failure_is_analysed(self, engine, sandbox, audit, developer, admin):
        sandbox.script("Restoring", RuntimeError("database connection refused"))
        request = await _approved_request(engine, developer, admin)

        result = await engine.rollbacks.execute(request.id, admin)

        assert result.success is False
        assert result.error_analysis.category == ErrorCategory.DATABASE
        assert result.message.startswith("Rollback failed. Database-related rollback failure detected.")
        assert result.message.endswith("Alternative recovery options available.")
        assert result.recovery_options[0] == "Perform manual database restoration from verified backup"
        assert (await engine.rollbacks.get_request(request.id)).status == RollbackStatus.FAILED
        assert "rollback_failed" in audit.actions()
        assert [d for d in await engine.deployments.history() if d.status == DeploymentStatus.ROLLED_BACK] == []

    @pytest.mark.asyncio
    async def test_restore_command_failure(self, engine, sandbox, developer, admin):
        sandbox.script("Restoring", failed("Operation timed out"))
        request = await _approved_request(engine, developer, admin)

        result = await engine.rollbacks.execute(request.id, admin)

        assert result.success is False
        assert result.error_analysis.category == ErrorCategory.TIMEOUT

    @pytest.mark.asyncio
    async def test_integrity_failure_fails_the_rollback(self, engine, probe, developer, admin):
        probe.overrides["/health/security"] = False
        request = await _approved_request(engine, developer, admin)

        result = await engine.rollbacks.execute(request.id, admin)

        assert result.success is False
        assert result.integrity.verified is False
        assert result.integrity.failed_checks == ["security_monitoring"]
        assert result.error_analysis.error_text == "Integrity verification failed: security_monitoring"


class TestCandidates:
    """Candidate listing and security alerts."""

    @pytest.mark.asyncio
    async def test_candidates_are_verified_snapshots(self, engine):
        await _snapshot(engine, verified=False, revision="unverified000")
        verified = await _snapshot(engine, revision="fedcba9876543210")

        candidates = await engine.rollbacks.list_candidates("production")

        assert [c.snapshot.id for c in candidates] == [verified.id]
        assert candidates[0].description == "Rollback to fedcba9876543210 (fedcba98) - Created just now"
        assert candidates[0].age_description == "just now"
        assert await engine.rollbacks.list_candidates("staging") == []

    @pytest.mark.asyncio
    async def test_deployment_snapshot_becomes_candidate_after_verify(self, engine, admin):
        result = await engine.trigger.trigger(
            DeploymentTriggerRequest(
                project_id="web", environment="production", specification=ChangeSpecification(description="x", branch_name="main")
            ),
            admin,
        )
        snapshot_id = result.deployment_result.snapshot_id
        assert await engine.rollbacks.list_candidates("production") == []

        await engine.snapshots.verify(snapshot_id, admin.id)

        assert [c.snapshot.id for c in await engine.rollbacks.list_candidates("production")] == [snapshot_id]

    @pytest.mark.asyncio
    async def test_security_alert_opens_pending_request(self, engine, admin):
        snapshot = await _snapshot(engine)
        alert = SecurityAlert(
            id="alert-1",
            environment="production",
            alert_type="intrusion",
            severity=Severity.CRITICAL,
            title="Suspicious outbound traffic",
            rollback_suggested=True,
        )

        request = await engine.rollbacks.handle_security_alert(alert, admin)

        assert request.status == RollbackStatus.PENDING_APPROVAL
        assert request.snapshot_id == snapshot.id
        assert request.reason == "Security alert: Suspicious outbound traffic"

    @pytest.mark.asyncio
    async def test_security_alert_without_suggestion_or_snapshot(self, engine, admin):
        alert = SecurityAlert(id="a", environment="production", alert_type="scan", severity=Severity.LOW, title="Port scan")
        assert await engine.rollbacks.handle_security_alert(alert, admin) is None

        suggested = alert.model_copy(update={"rollback_suggested": True})
        assert await engine.rollbacks.handle_security_alert(suggested, admin) is None


class TestRetention:
    """Finished requests are dropped once they outlive the retention period."""

    @pytest.mark.asyncio
    async def test_finished_requests_are_pruned_on_initiate(self, engine, developer, admin):
        engine.rollbacks.retention_seconds = 0
        snapshot = await _snapshot(engine)
        rejected = await engine.rollbacks.initiate(snapshot.id, "bad deploy", developer)
        await engine.rollbacks.reject(rejected.id, admin, "not needed")
        pending = await engine.rollbacks.initiate(snapshot.id, "still bad", developer)
        await asyncio.sleep(0.01)

        latest = await engine.rollbacks.initiate(snapshot.id, "worse", developer)

        assert await engine.rollbacks.get_request(rejected.id) is None
        assert {r.id for r in await engine.rollbacks.history()} == {pending.id, latest.id}

    @pytest.mark.asyncio
    async def test_recent_finished_requests_are_kept(self, engine, developer, admin):
        snapshot = await _snapshot(engine)
        rejected = await engine.rollbacks.initiate(snapshot.id, "bad deploy", developer)
        await engine.rollbacks.reject(rejected.id, admin, "not needed")

        await engine.rollbacks.initiate(snapshot.id, "again", developer)

        assert (await engine.rollbacks.get_request(rejected.id)).status == RollbackStatus.REJECTED
