"""Test Trigger & Scheduler.

Selects suites for a commit, pull request, manual or scheduled trigger and
runs them, either sequentially (a failing ``fail_fast`` suite stops the queue)
or in parallel with at most ``max_concurrent_suites`` running at once.
"""

import asyncio
from typing import Any

from loguru import logger

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
from deploy_engine.ports.audit import AuditSink
from deploy_engine.ports.broadcast import StatusBroadcaster
from deploy_engine.store import RecordStore, newest_first
from deploy_engine.suites.selection import select_suites
from deploy_engine.suites.suite_runner import SuiteRunner
from deploy_engine.utils import utcnow


def overall_status(results: list[TestSuiteResult]) -> ExecutionStatus:
    """``passed`` only when there is at least one result and every result passed."""
    if not results:
        return ExecutionStatus.FAILED
    if all(result.status == SuiteStatus.PASSED for result in results):
        return ExecutionStatus.PASSED
    return ExecutionStatus.FAILED


class TestScheduler:
    """Triggers and runs test executions per project."""

    __test__ = False

    def __init__(
        self,
        suite_runner: SuiteRunner,
        executions: RecordStore[TestExecution],
        broadcaster: StatusBroadcaster,
        audit: AuditSink,
        history_limit: int = 50,
    ):
        self.suite_runner = suite_runner
        self.executions = executions
        self.broadcaster = broadcaster
        self.audit = audit
        self.history_limit = history_limit
        self._configs: dict[str, TestTriggerConfig] = {}

    def configure(self, config: TestTriggerConfig) -> TestTriggerConfig:
        """Register or replace the trigger configuration of a project."""
        self._configs[config.project_id] = config
        logger.info(f"Configured test triggers for project {config.project_id}: {len(config.suites)} suites")
        return config

    def get_config(self, project_id: str) -> TestTriggerConfig | None:
        return self._configs.get(project_id)

    async def trigger_on_commit(
        self,
        project_id: str,
        commit_sha: str,
        changed_files: list[str] | None = None,
        actor_id: str | None = None,
    ) -> TestExecution:
        """Run the suites affected by a commit.

        Raises:
            TestTriggerNotConfiguredError: If the project does not test on commit
        """
        config = self._configs.get(project_id)
        if config is None or not config.trigger_on_commit:
            raise TestTriggerNotConfiguredError(project_id, TriggerType.COMMIT)

        suites = select_suites(config.suites, changed_files)
        context = {"commit_sha": commit_sha, "changed_files": list(changed_files or [])}
        return await self._execute(config, TriggerType.COMMIT, suites, context, actor_id, commit_sha=commit_sha)

    async def trigger_on_pull_request(
        self,
        project_id: str,
        pull_request_id: str,
        changed_files: list[str] | None = None,
        actor_id: str | None = None,
    ) -> TestExecution:
        """Run every suite for a pull request; pre-merge testing never narrows the selection."""
        config = self._configs.get(project_id)
        if config is None or not config.trigger_on_pull_request:
            raise TestTriggerNotConfiguredError(project_id, TriggerType.PULL_REQUEST)

        context = {"pull_request_id": pull_request_id, "changed_files": list(changed_files or [])}
        return await self._execute(
            config, TriggerType.PULL_REQUEST, list(config.suites), context, actor_id, pull_request_id=pull_request_id
        )

    async def trigger_manual(self, project_id: str, suite_names: list[str] | None = None, actor_id: str | None = None) -> TestExecution:
        """Run the named suites, or all suites when no names are given."""
        config = self._require_config(project_id, TriggerType.MANUAL)
        suites = self._pick_suites(config, suite_names)
        return await self._execute(config, TriggerType.MANUAL, suites, {"suite_names": [s.name for s in suites]}, actor_id)

    async def trigger_scheduled(self, project_id: str, actor_id: str | None = None) -> TestExecution:
        """Run every suite of a configured project on behalf of an external timer."""
        config = self._require_config(project_id, TriggerType.SCHEDULED)
        return await self._execute(config, TriggerType.SCHEDULED, list(config.suites), {}, actor_id)

    async def get_execution(self, execution_id: str) -> TestExecution | None:
        return await self.executions.get(execution_id)

    async def history(self, project_id: str, limit: int | None = None) -> list[TestExecution]:
        """Executions of a project, newest first."""
        executions = newest_first(await self.executions.list(project_id=project_id))
        return executions[:limit] if limit is not None else executions

    async def is_pre_merge_testing_passed(self, project_id: str, pull_request_id: str) -> bool:
        """Whether a pull request may merge as far as testing is concerned.

        True when the project does not require pre-merge testing; otherwise
        the most recent execution for the pull request must have passed.
        """
        config = self._configs.get(project_id)
        if config is None or not config.require_pre_merge_testing:
            return True

        for execution in await self.history(project_id):
            if execution.trigger_type == TriggerType.PULL_REQUEST and execution.pull_request_id == pull_request_id:
                return execution.status == ExecutionStatus.PASSED
        return False

    def _require_config(self, project_id: str, trigger: TriggerType) -> TestTriggerConfig:
        config = self._configs.get(project_id)
        if config is None:
            raise TestTriggerNotConfiguredError(project_id, trigger)
        return config

    @staticmethod
    def _pick_suites(config: TestTriggerConfig, suite_names: list[str] | None) -> list[TestSuiteConfig]:
        if not suite_names:
            return list(config.suites)
        by_name = {suite.name: suite for suite in config.suites}
        missing = [name for name in suite_names if name not in by_name]
        if missing:
            raise ResourceNotFoundError("TestSuite", ", ".join(missing))
        return [by_name[name] for name in suite_names]

    async def _execute(
        self,
        config: TestTriggerConfig,
        trigger_type: TriggerType,
        suites: list[TestSuiteConfig],
        context: dict[str, Any],
        actor_id: str | None,
        commit_sha: str | None = None,
        pull_request_id: str | None = None,
    ) -> TestExecution:
        execution = TestExecution(
            project_id=config.project_id,
            trigger_type=trigger_type,
            trigger_context=context,
            commit_sha=commit_sha,
            pull_request_id=pull_request_id,
            triggered_by=actor_id,
            test_suites=suites,
            status=ExecutionStatus.RUNNING,
            started_at=utcnow(),
        )
        await self.executions.create(execution)
        logger.info(f"Test execution {execution.id} started for {config.project_id} ({trigger_type}): {len(suites)} suites")

        await self.broadcaster.try_publish(
            execution.id,
            "test_started",
            f"Test execution started with {len(suites)} suites",
            {"project_id": config.project_id, "trigger_type": str(trigger_type)},
        )
        await self.audit.try_record(
            "test_execution_started",
            f"Started {trigger_type} test execution for project {config.project_id}",
            {"execution_id": execution.id, "suites": [s.name for s in suites], **context},
            actor_id,
        )

        if config.parallel_execution:
            results = await self._run_parallel(suites, config.max_concurrent_suites)
        else:
            results = await self._run_sequential(suites)

        status = overall_status(results)
        execution = execution.model_copy(
            update={
                "status": status,
                "suite_results": results,
                "completed_at": utcnow(),
                "total_passed": sum(r.passed for r in results),
                "total_failed": sum(r.failed for r in results),
                "total_skipped": sum(r.skipped for r in results),
            }
        )
        await self.executions.update(execution)
        logger.info(f"Test execution {execution.id} finished: {status}")

        await self.broadcaster.try_publish(
            execution.id,
            str(status),
            f"Test execution {status}: {execution.total_passed} passed, {execution.total_failed} failed",
            {"project_id": config.project_id},
        )
        await self.audit.try_record(
            "test_execution_completed",
            f"Test execution {execution.id} {status}",
            {"execution_id": execution.id, "status": str(status), "passed": execution.total_passed, "failed": execution.total_failed},
            actor_id,
        )
        await self._prune_history(config.project_id)
        return execution

    async def _run_sequential(self, suites: list[TestSuiteConfig]) -> list[TestSuiteResult]:
        results: list[TestSuiteResult] = []
        for index, suite in enumerate(suites):
            result = await self.suite_runner.run(suite)
            results.append(result)
            if suite.fail_fast and result.status != SuiteStatus.PASSED:
                logger.warning(f"Fail-fast suite {suite.name} did not pass, skipping remaining suites")
                results.extend(
                    TestSuiteResult(suite_name=rest.name, status=SuiteStatus.SKIPPED, attempts=0, error=f"Skipped after {suite.name} failed")
                    for rest in suites[index + 1 :]
                )
                break
        return results

    async def _run_parallel(self, suites: list[TestSuiteConfig], max_concurrent: int) -> list[TestSuiteResult]:
        semaphore = asyncio.Semaphore(max_concurrent)

        async def run_bounded(suite: TestSuiteConfig) -> TestSuiteResult:
            async with semaphore:
                return await self.suite_runner.run(suite)

        outcomes = await asyncio.gather(*(run_bounded(suite) for suite in suites), return_exceptions=True)
        results: list[TestSuiteResult] = []
        for suite, outcome in zip(suites, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                logger.error(f"Suite {suite.name} crashed: {outcome}")
                results.append(TestSuiteResult(suite_name=suite.name, status=SuiteStatus.ERROR, attempts=0, error=str(outcome)))
            else:
                results.append(outcome)
        return results

    async def _prune_history(self, project_id: str) -> None:
        for stale in (await self.history(project_id))[self.history_limit :]:
            await self.executions.delete(stale.id)
