"""Tests for TestScheduler."""

import pytest

from deploy_engine.exceptions import ResourceNotFoundError, TestTriggerNotConfiguredError
from deploy_engine.models import (
    ExecutionStatus,
    SuiteStatus,
    TestExecution,
    TestSuiteConfig,
    TestSuiteResult,
    TestTriggerConfig,
    TriggerType,
)
from deploy_engine.ports import CommandOutcome
from deploy_engine.store import InMemoryRecordStore
from deploy_engine.suites import SuiteRunner, TestScheduler, overall_status

from tests.fakes import FakeSandbox, MemoryAuditSink, RecordingBroadcaster, failed


def _suite(name, fail_fast=False, patterns=()):
    return TestSuiteConfig(name=name, display_name=name, command=f"run-{name}", fail_fast=fail_fast, path_patterns=list(patterns))


def _scheduler(sandbox, history_limit=50):
    return TestScheduler(
        SuiteRunner(sandbox),
        InMemoryRecordStore(TestExecution),
        RecordingBroadcaster(),
        MemoryAuditSink(),
        history_limit=history_limit,
    )


def test_overall_status():
    passed = TestSuiteResult(suite_name="a", status=SuiteStatus.PASSED)
    skipped = TestSuiteResult(suite_name="b", status=SuiteStatus.SKIPPED)

    assert overall_status([passed]) == ExecutionStatus.PASSED
    assert overall_status([passed, skipped]) == ExecutionStatus.FAILED
    assert overall_status([]) == ExecutionStatus.FAILED


class TestSequentialExecution:
    """Suites run one after another in configured order."""

    @pytest.mark.asyncio
    async def test_fail_fast_failure_skips_later_suites(self):
        sandbox = FakeSandbox().script("run-lint", failed("lint errors"))
        scheduler = _scheduler(sandbox)
        scheduler.configure(TestTriggerConfig(project_id="web", suites=[_suite("lint", fail_fast=True), _suite("unit")]))

        execution = await scheduler.trigger_manual("web")

        assert execution.status == ExecutionStatus.FAILED
        assert not sandbox.ran("run-unit")
        assert [r.status for r in execution.suite_results] == [SuiteStatus.FAILED, SuiteStatus.SKIPPED]
        assert execution.suite_results[1].attempts == 0
        assert execution.suite_results[1].error == "Skipped after lint failed"

    @pytest.mark.asyncio
    async def test_failure_without_fail_fast_continues(self):
        sandbox = FakeSandbox().script("run-lint", failed("lint errors"))
        scheduler = _scheduler(sandbox)
        scheduler.configure(TestTriggerConfig(project_id="web", suites=[_suite("lint"), _suite("unit")]))

        execution = await scheduler.trigger_manual("web")

        assert sandbox.ran("run-unit")
        assert execution.status == ExecutionStatus.FAILED
        assert execution.total_failed == 1
        assert execution.total_passed == 1

    @pytest.mark.asyncio
    async def test_execution_is_stored_and_broadcast(self):
        scheduler = _scheduler(FakeSandbox())
        scheduler.configure(TestTriggerConfig(project_id="web", suites=[_suite("unit")]))

        execution = await scheduler.trigger_manual("web", actor_id="dev")

        stored = await scheduler.get_execution(execution.id)
        assert stored.status == ExecutionStatus.PASSED
        assert stored.completed_at is not None
        assert stored.triggered_by == "dev"
        assert scheduler.broadcaster.statuses(execution.id) == ["test_started", "passed"]
        assert scheduler.audit.actions() == ["test_execution_started", "test_execution_completed"]


class TestParallelExecution:
    """Concurrency is bounded by max_concurrent_suites."""

    @pytest.mark.asyncio
    async def test_concurrency_never_exceeds_limit(self):
        sandbox = FakeSandbox(delay=0.01)
        scheduler = _scheduler(sandbox)
        suites = [_suite(f"suite{i}") for i in range(6)]
        scheduler.configure(TestTriggerConfig(project_id="web", parallel_execution=True, max_concurrent_suites=2, suites=suites))

        execution = await scheduler.trigger_manual("web")

        assert execution.status == ExecutionStatus.PASSED
        assert len(sandbox.calls) == 6
        assert 1 <= sandbox.max_running <= 2
        assert [r.suite_name for r in execution.suite_results] == [s.name for s in suites]

    @pytest.mark.asyncio
    async def test_one_failure_fails_the_execution(self):
        sandbox = FakeSandbox().script("run-b", failed("nope"))
        scheduler = _scheduler(sandbox)
        scheduler.configure(
            TestTriggerConfig(project_id="web", parallel_execution=True, max_concurrent_suites=3, suites=[_suite("a"), _suite("b"), _suite("c")])
        )

        execution = await scheduler.trigger_manual("web")

        assert execution.status == ExecutionStatus.FAILED
        assert [r.status for r in execution.suite_results] == [SuiteStatus.PASSED, SuiteStatus.FAILED, SuiteStatus.PASSED]


class TestTriggers:
    """Commit, pull request and manual triggers."""

    @pytest.mark.asyncio
    async def test_commit_runs_affected_suites(self):
        sandbox = FakeSandbox()
        scheduler = _scheduler(sandbox)
        scheduler.configure(
            TestTriggerConfig(project_id="web", suites=[_suite("unit", patterns=["src/**/*"]), _suite("e2e", patterns=["e2e/**/*"])])
        )

        execution = await scheduler.trigger_on_commit("web", "abc123", ["src/app.ts"])

        assert execution.trigger_type == TriggerType.COMMIT
        assert execution.commit_sha == "abc123"
        assert [s.name for s in execution.test_suites] == ["unit"]
        assert not sandbox.ran("run-e2e")

    @pytest.mark.asyncio
    async def test_commit_trigger_disabled(self):
        scheduler = _scheduler(FakeSandbox())
        scheduler.configure(TestTriggerConfig(project_id="web", trigger_on_commit=False, suites=[_suite("unit")]))

        with pytest.raises(TestTriggerNotConfiguredError):
            await scheduler.trigger_on_commit("web", "abc123")

    @pytest.mark.asyncio
    async def test_unconfigured_project(self):
        with pytest.raises(TestTriggerNotConfiguredError):
            await _scheduler(FakeSandbox()).trigger_manual("ghost")

    @pytest.mark.asyncio
    async def test_pull_request_runs_every_suite(self):
        scheduler = _scheduler(FakeSandbox())
        scheduler.configure(
            TestTriggerConfig(project_id="web", suites=[_suite("unit", patterns=["src/**/*"]), _suite("e2e", patterns=["e2e/**/*"])])
        )

        execution = await scheduler.trigger_on_pull_request("web", "42", ["src/app.ts"])

        assert execution.pull_request_id == "42"
        assert [s.name for s in execution.test_suites] == ["unit", "e2e"]

    @pytest.mark.asyncio
    async def test_manual_with_unknown_suite(self):
        scheduler = _scheduler(FakeSandbox())
        scheduler.configure(TestTriggerConfig(project_id="web", suites=[_suite("unit")]))

        with pytest.raises(ResourceNotFoundError, match="TestSuite not found: smoke"):
            await scheduler.trigger_manual("web", ["smoke"])

    @pytest.mark.asyncio
    async def test_manual_subset_in_requested_order(self):
        sandbox = FakeSandbox()
        scheduler = _scheduler(sandbox)
        scheduler.configure(TestTriggerConfig(project_id="web", suites=[_suite("a"), _suite("b"), _suite("c")]))

        await scheduler.trigger_manual("web", ["c", "a"])

        assert sandbox.executed == ["run-c", "run-a"]

    @pytest.mark.asyncio
    async def test_scheduled_runs_every_suite(self):
        sandbox = FakeSandbox()
        scheduler = _scheduler(sandbox)
        scheduler.configure(
            TestTriggerConfig(project_id="web", suites=[_suite("unit", patterns=["src/**/*"]), _suite("e2e", patterns=["e2e/**/*"])])
        )

        execution = await scheduler.trigger_scheduled("web", actor_id="nightly")

        assert execution.trigger_type == TriggerType.SCHEDULED
        assert execution.triggered_by == "nightly"
        assert execution.status == ExecutionStatus.PASSED
        assert sandbox.executed == ["run-unit", "run-e2e"]
        assert [e.id for e in await scheduler.history("web")] == [execution.id]

    @pytest.mark.asyncio
    async def test_scheduled_needs_configuration(self):
        with pytest.raises(TestTriggerNotConfiguredError):
            await _scheduler(FakeSandbox()).trigger_scheduled("ghost")


class TestPreMergeGate:
    """Merge gating on pull request executions."""

    @pytest.mark.asyncio
    async def test_requires_passing_pull_request_execution(self):
        sandbox = FakeSandbox().script("run-unit", failed("red"), CommandOutcome(success=True, output="1 passed"))
        scheduler = _scheduler(sandbox)
        scheduler.configure(TestTriggerConfig(project_id="web", suites=[_suite("unit")]))

        assert await scheduler.is_pre_merge_testing_passed("web", "7") is False

        await scheduler.trigger_on_pull_request("web", "7")
        assert await scheduler.is_pre_merge_testing_passed("web", "7") is False

        await scheduler.trigger_on_pull_request("web", "7")
        assert await scheduler.is_pre_merge_testing_passed("web", "7") is True

    @pytest.mark.asyncio
    async def test_not_required(self):
        scheduler = _scheduler(FakeSandbox())
        scheduler.configure(TestTriggerConfig(project_id="web", require_pre_merge_testing=False, suites=[_suite("unit")]))
        assert await scheduler.is_pre_merge_testing_passed("web", "7") is True


@pytest.mark.asyncio
async def test_history_is_pruned_to_limit():
    scheduler = _scheduler(FakeSandbox(), history_limit=2)
    scheduler.configure(TestTriggerConfig(project_id="web", suites=[_suite("unit")]))

    for _ in range(4):
        await scheduler.trigger_manual("web")

    assert len(await scheduler.history("web")) == 2
