"""Tests for StageExecutor."""

import pytest

from deploy_engine.models import PipelineStage
from deploy_engine.pipeline import StageExecutor, StageObserver

from tests.fakes import FakeSandbox, failed


class ProgressRecorder(StageObserver):
    def __init__(self):
        self.ticks = []

    async def stage_progress(self, deployment_id, stage_name, done, total):
        self.ticks.append((stage_name, done, total))


def _stage(commands, timeout=5.0):
    return PipelineStage(name="build", description="Build", commands=commands, timeout_seconds=timeout)


class TestStageExecutor:
    """Every failure mode becomes a failed StageResult."""

    @pytest.mark.asyncio
    async def test_success_reports_progress(self):
        observer = ProgressRecorder()
        result = await StageExecutor(FakeSandbox()).execute(_stage(["a", "b"]), "dep_1", observer)

        assert result.success is True
        assert result.stage_name == "build"
        assert result.error is None
        assert result.duration_seconds >= 0
        assert observer.ticks == [("build", 1, 2), ("build", 2, 2)]

    @pytest.mark.asyncio
    async def test_sandbox_failure(self):
        sandbox = FakeSandbox().script("b", failed("exit status 2", output="compiler output"))
        result = await StageExecutor(sandbox).execute(_stage(["a", "b", "c"]), "dep_1")

        assert result.success is False
        assert result.error == "exit status 2"
        assert result.output == "compiler output"

    @pytest.mark.asyncio
    async def test_sandbox_exception(self):
        sandbox = FakeSandbox().script("a", RuntimeError("sandbox crashed"))
        result = await StageExecutor(sandbox).execute(_stage(["a"]), "dep_1")

        assert result.success is False
        assert result.error == "RuntimeError: sandbox crashed"

    @pytest.mark.asyncio
    async def test_timeout(self):
        sandbox = FakeSandbox().slow("a", 1.0)
        result = await StageExecutor(sandbox).execute(_stage(["a"], timeout=0.05), "dep_1")

        assert result.success is False
        assert result.error == "Stage 'build' timed out after 0.05s"
        assert result.duration_seconds < 1.0
