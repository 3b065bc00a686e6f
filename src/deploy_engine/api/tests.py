"""
Test trigger API - configure per-project test triggers and run suites.

Endpoints:
- Configure a project's suites and execution policy
- Trigger executions on commit, pull request or manually
- Read execution history and the pre-merge gate
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from deploy_engine.api.dependencies import component, current_actor
from deploy_engine.exceptions import ResourceNotFoundError
from deploy_engine.models import Actor, TestExecution, TestTriggerConfig
from deploy_engine.suites import TestScheduler

router = APIRouter()


class CommitTriggerInput(BaseModel):
    commit_sha: str
    changed_files: list[str] = Field(default_factory=list)


class PullRequestTriggerInput(BaseModel):
    pull_request_id: str
    changed_files: list[str] = Field(default_factory=list)


class ManualTriggerInput(BaseModel):
    suite_names: list[str] = Field(default_factory=list)


class PreMergeStatus(BaseModel):
    project_id: str
    pull_request_id: str
    passed: bool


@router.put("/tests/{project_id}/config", response_model=TestTriggerConfig)
async def configure_tests(
    project_id: str,
    config: TestTriggerConfig,
    scheduler: TestScheduler = Depends(component(TestScheduler)),
) -> TestTriggerConfig:
    """Register the test trigger configuration of a project.

    The ``project_id`` of the path wins over the one in the body.
    """
    return scheduler.configure(config.model_copy(update={"project_id": project_id}))


@router.get("/tests/{project_id}/config", response_model=TestTriggerConfig)
async def get_test_config(
    project_id: str,
    scheduler: TestScheduler = Depends(component(TestScheduler)),
) -> TestTriggerConfig:
    config = scheduler.get_config(project_id)
    if config is None:
        raise ResourceNotFoundError("TestTriggerConfig", project_id)
    return config


@router.post("/tests/{project_id}/commit", response_model=TestExecution)
async def trigger_on_commit(
    project_id: str,
    body: CommitTriggerInput,
    actor: Actor = Depends(current_actor),
    scheduler: TestScheduler = Depends(component(TestScheduler)),
) -> TestExecution:
    return await scheduler.trigger_on_commit(project_id, body.commit_sha, body.changed_files, actor.id)


@router.post("/tests/{project_id}/pull-request", response_model=TestExecution)
async def trigger_on_pull_request(
    project_id: str,
    body: PullRequestTriggerInput,
    actor: Actor = Depends(current_actor),
    scheduler: TestScheduler = Depends(component(TestScheduler)),
) -> TestExecution:
    return await scheduler.trigger_on_pull_request(project_id, body.pull_request_id, body.changed_files, actor.id)


@router.post("/tests/{project_id}/manual", response_model=TestExecution)
async def trigger_manual(
    project_id: str,
    body: ManualTriggerInput,
    actor: Actor = Depends(current_actor),
    scheduler: TestScheduler = Depends(component(TestScheduler)),
) -> TestExecution:
    return await scheduler.trigger_manual(project_id, body.suite_names or None, actor.id)


@router.post("/tests/{project_id}/scheduled", response_model=TestExecution)
async def trigger_scheduled(
    project_id: str,
    actor: Actor = Depends(current_actor),
    scheduler: TestScheduler = Depends(component(TestScheduler)),
) -> TestExecution:
    """Run every suite of the project; called by whatever timer owns the schedule."""
    return await scheduler.trigger_scheduled(project_id, actor.id)


@router.get("/tests/{project_id}/history", response_model=list[TestExecution])
async def get_test_history(
    project_id: str,
    limit: int | None = None,
    scheduler: TestScheduler = Depends(component(TestScheduler)),
) -> list[TestExecution]:
    return await scheduler.history(project_id, limit)


@router.get("/tests/{project_id}/pre-merge/{pull_request_id}", response_model=PreMergeStatus)
async def get_pre_merge_status(
    project_id: str,
    pull_request_id: str,
    scheduler: TestScheduler = Depends(component(TestScheduler)),
) -> PreMergeStatus:
    passed = await scheduler.is_pre_merge_testing_passed(project_id, pull_request_id)
    return PreMergeStatus(project_id=project_id, pull_request_id=pull_request_id, passed=passed)


@router.get("/tests/executions/{execution_id}", response_model=TestExecution)
async def get_execution(
    execution_id: str,
    scheduler: TestScheduler = Depends(component(TestScheduler)),
) -> TestExecution:
    execution = await scheduler.get_execution(execution_id)
    if execution is None:
        raise ResourceNotFoundError("TestExecution", execution_id)
    return execution
