"""Data models for automated test triggering.

Class names starting with ``Test`` set ``__test__ = False`` so pytest does
not try to collect them.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from deploy_engine.models.base_model import Record
from deploy_engine.models.enums import ExecutionStatus, SuiteStatus, TriggerType
from deploy_engine.utils import new_record_id


class TestSuiteConfig(BaseModel):
    """A named test suite and the paths it covers."""

    __test__ = False

    name: str
    display_name: str
    command: str
    timeout_seconds: float = 600.0
    retry_count: int = Field(default=0, ge=0)
    fail_fast: bool = False
    path_patterns: list[str] = Field(default_factory=list)


class TestTriggerConfig(BaseModel):
    """Per-project test trigger policy."""

    __test__ = False

    project_id: str
    trigger_on_commit: bool = True
    trigger_on_pull_request: bool = True
    require_pre_merge_testing: bool = True
    parallel_execution: bool = False
    max_concurrent_suites: int = Field(default=2, ge=1)
    suites: list[TestSuiteConfig] = Field(default_factory=list)

    @field_validator("suites")
    @classmethod
    def validate_unique_suite_names(cls, v: list[TestSuiteConfig]) -> list[TestSuiteConfig]:
        names = [suite.name for suite in v]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Duplicate suite names: {', '.join(duplicates)}")
        return v


class TestSuiteResult(BaseModel):
    """Outcome of one suite, after any retries."""

    __test__ = False
    model_config = {"use_enum_values": True}

    suite_name: str
    status: SuiteStatus
    passed: int = 0
    failed: int = 0
    skipped: int = 0
    duration_seconds: float = 0.0
    attempts: int = 1
    output: str = ""
    error: str | None = None


class TestExecution(Record):
    """One triggered run of a project's test suites."""

    __test__ = False

    id: str = Field(default_factory=lambda: new_record_id("test_"))
    project_id: str
    trigger_type: TriggerType
    trigger_context: dict[str, Any] = Field(default_factory=dict)
    pull_request_id: str | None = None
    commit_sha: str | None = None
    triggered_by: str | None = None
    test_suites: list[TestSuiteConfig] = Field(default_factory=list)
    status: ExecutionStatus = ExecutionStatus.QUEUED
    suite_results: list[TestSuiteResult] = Field(default_factory=list)
    started_at: datetime | None = None
    completed_at: datetime | None = None
    total_passed: int = 0
    total_failed: int = 0
    total_skipped: int = 0
