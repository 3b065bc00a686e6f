"""Stage execution for deployment pipelines.

This module provides the StageExecutor class responsible for running one
pipeline stage through the command sandbox. It enforces the stage timeout,
measures execution time and converts every failure mode into a failed
``StageResult``.
"""

import asyncio

import arrow
from loguru import logger

from deploy_engine.models import PipelineStage, StageResult
from deploy_engine.pipeline.observer import StageObserver
from deploy_engine.ports.sandbox import CommandSandbox
from deploy_engine.utils import utcnow


class StageExecutor:
    """Runs individual pipeline stages.

    A stage fails when the sandbox reports failure, raises, or does not
    finish within the stage timeout. No exception escapes ``execute``.
    """

    def __init__(self, sandbox: CommandSandbox):
        self.sandbox = sandbox

    async def execute(self, stage: PipelineStage, deployment_id: str, observer: StageObserver | None = None) -> StageResult:
        """Execute one stage and return its result.

        Args:
            stage: The stage to run
            deployment_id: Deployment the stage belongs to, for progress events
            observer: Receives sub-stage progress ticks

        Returns:
            StageResult: success flag, duration, captured output and error text
        """
        logger.debug(f"Running stage: {stage.name} ({len(stage.commands)} commands)")
        started_at = utcnow()
        start_time = arrow.utcnow().float_timestamp

        async def report_progress(done: int, total: int) -> None:
            if observer is not None:
                await observer.stage_progress(deployment_id, stage.name, done, total)

        try:
            outcome = await asyncio.wait_for(
                self.sandbox.run(list(stage.commands), stage.timeout_seconds, report_progress),
                timeout=stage.timeout_seconds,
            )
        except TimeoutError:
            error = f"Stage '{stage.name}' timed out after {stage.timeout_seconds:g}s"
            logger.error(error)
            return self._result(stage, False, start_time, started_at, error=error)
        except Exception as e:
            logger.error(f"Stage {stage.name} threw exception: {e}")
            return self._result(stage, False, start_time, started_at, error=f"{type(e).__name__}: {e}")

        if not outcome.success:
            return self._result(stage, False, start_time, started_at, output=outcome.output, error=outcome.error or "Stage commands failed")
        return self._result(stage, True, start_time, started_at, output=outcome.output)

    @staticmethod
    def _result(
        stage: PipelineStage,
        success: bool,
        start_time: float,
        started_at,
        output: str = "",
        error: str | None = None,
    ) -> StageResult:
        return StageResult(
            stage_name=stage.name,
            success=success,
            duration_seconds=arrow.utcnow().float_timestamp - start_time,
            output=output,
            error=error,
            started_at=started_at,
        )
