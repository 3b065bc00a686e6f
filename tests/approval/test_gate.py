"""Tests for ApprovalGate."""

import asyncio

import pytest

from deploy_engine.approval import ApprovalGate
from deploy_engine.exceptions import AuthorizationError, InvalidTransitionError, ResourceNotFoundError
from deploy_engine.models import (
    ApprovalStatus,
    ChangeSpecification,
    DeploymentApprovalRequest,
    DeploymentTriggerRequest,
    DeploymentTriggerResult,
    TriggerStatus,
)
from deploy_engine.store import InMemoryRecordStore

from tests.fakes import MemoryAuditSink


@pytest.fixture
def gate():
    return ApprovalGate(InMemoryRecordStore(DeploymentApprovalRequest), MemoryAuditSink(), retention_seconds=0)


def _request(environment="production"):
    return DeploymentTriggerRequest(
        project_id="web",
        environment=environment,
        specification=ChangeSpecification(description="Ship", branch_name="main", environment_hint=environment),
    )


async def _open(gate, developer, environment="production"):
    return await gate.open_request("dep_1", _request(environment), environment, "v1", developer)


class CountingAction:
    def __init__(self, delay=0.0):
        self.calls = 0
        self.delay = delay

    async def __call__(self, approval):
        self.calls += 1
        await asyncio.sleep(self.delay)
        return DeploymentTriggerResult(status=TriggerStatus.SUCCESS, message="done", deployment_id=approval.deployment_id)


class BrokenAction:
    def __init__(self):
        self.calls = 0

    async def __call__(self, approval):
        self.calls += 1
        raise RuntimeError("record store offline")


class TestApprovalGate:
    """Resolution is terminal and idempotent."""

    @pytest.mark.asyncio
    async def test_open_request_is_pending(self, gate, developer):
        approval = await _open(gate, developer)

        assert approval.status == ApprovalStatus.PENDING
        assert approval.requested_role == "developer"
        assert gate.audit.actions() == ["deployment_approval_requested"]

    @pytest.mark.asyncio
    async def test_approve_runs_action_once(self, gate, developer, admin):
        approval = await _open(gate, developer)
        action = CountingAction()

        first = await gate.approve(approval.id, admin, "looks good", action)
        second = await gate.approve(approval.id, admin, "again", action)

        assert action.calls == 1
        assert first.status == ApprovalStatus.APPROVED
        assert first.outcome.status == TriggerStatus.SUCCESS
        assert second.approval_notes == "looks good"
        assert second.outcome == first.outcome

    @pytest.mark.asyncio
    async def test_concurrent_approvals_run_action_once(self, gate, developer, admin):
        approval = await _open(gate, developer)
        action = CountingAction(delay=0.01)

        results = await asyncio.gather(*(gate.approve(approval.id, admin, None, action) for _ in range(3)))

        assert action.calls == 1
        assert all(result.outcome is not None for result in results)

    @pytest.mark.asyncio
    async def test_failing_action_stores_failed_outcome(self, gate, developer, admin):
        approval = await _open(gate, developer)
        action = BrokenAction()

        first = await gate.approve(approval.id, admin, None, action)
        second = await gate.approve(approval.id, admin, None, action)

        assert action.calls == 1
        assert first.status == ApprovalStatus.APPROVED
        assert first.outcome.status == TriggerStatus.FAILED
        assert first.outcome.message == "Approved deployment could not run: record store offline"
        assert first.outcome.deployment_id == "dep_1"
        assert first.outcome.approval_request_id == approval.id
        assert second.outcome == first.outcome

    @pytest.mark.asyncio
    async def test_unauthorized_approver(self, gate, developer, lead):
        approval = await _open(gate, developer)
        with pytest.raises(AuthorizationError):
            await gate.approve(approval.id, lead, None, CountingAction())
        assert (await gate.get_request(approval.id)).status == ApprovalStatus.PENDING

    @pytest.mark.asyncio
    async def test_reject_then_approve_conflicts(self, gate, developer, admin):
        approval = await _open(gate, developer)

        rejected, now = await gate.reject(approval.id, admin, "not today")
        again, now_again = await gate.reject(approval.id, admin, "still no")

        assert (now, now_again) == (True, False)
        assert rejected.status == ApprovalStatus.REJECTED
        assert again.approval_notes == "not today"
        with pytest.raises(InvalidTransitionError):
            await gate.approve(approval.id, admin, None, CountingAction())

    @pytest.mark.asyncio
    async def test_unknown_request(self, gate, admin):
        with pytest.raises(ResourceNotFoundError):
            await gate.approve("appr_missing", admin, None, CountingAction())

    @pytest.mark.asyncio
    async def test_pending_for_filters_by_approver(self, gate, developer, admin, lead):
        await _open(gate, developer, "production")
        await _open(gate, developer, "staging")

        assert len(await gate.pending_for(admin.role)) == 2
        assert [a.environment for a in await gate.pending_for(lead.role)] == ["staging"]
        assert [a.environment for a in await gate.pending_for(admin.role, "production")] == ["production"]

    @pytest.mark.asyncio
    async def test_prune_resolved(self, gate, developer, admin):
        pending = await _open(gate, developer)
        resolved = await _open(gate, developer)
        await gate.reject(resolved.id, admin, "no")
        await asyncio.sleep(0.01)

        assert await gate.prune_resolved() == 1
        assert await gate.get_request(resolved.id) is None
        assert await gate.get_request(pending.id) is not None

    @pytest.mark.asyncio
    async def test_opening_a_request_prunes_old_resolved_ones(self, gate, developer, admin):
        resolved = await _open(gate, developer)
        await gate.reject(resolved.id, admin, "no")
        await asyncio.sleep(0.01)

        latest = await _open(gate, developer)

        assert await gate.get_request(resolved.id) is None
        assert await gate.get_request(latest.id) is not None
