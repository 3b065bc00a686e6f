"""Stage-boundary observer interface for pipeline runs."""

from loguru import logger

from deploy_engine.models import Deployment, DeploymentResult, PipelineConfig, PipelineStage, StageResult


class StageObserver:
    """Receives pipeline lifecycle events. Every hook defaults to a no-op."""

    async def pipeline_started(self, deployment: Deployment, config: PipelineConfig) -> None:
        pass

    async def stage_started(self, deployment_id: str, stage: PipelineStage, index: int, total: int) -> None:
        pass

    async def stage_progress(self, deployment_id: str, stage_name: str, done: int, total: int) -> None:
        pass

    async def stage_finished(self, deployment_id: str, stage: PipelineStage, result: StageResult) -> None:
        pass

    async def pipeline_finished(self, deployment_id: str, result: DeploymentResult) -> None:
        pass


class CompositeObserver(StageObserver):
    """Fans events out to several observers.

    A failing observer is logged and skipped; it never affects the pipeline
    or the other observers.
    """

    def __init__(self, observers: list[StageObserver] | None = None):
        self.observers = [observer for observer in observers or [] if observer is not None]

    async def _dispatch(self, hook: str, *args) -> None:
        for observer in self.observers:
            try:
                await getattr(observer, hook)(*args)
            except Exception as e:
                logger.warning(f"Observer {type(observer).__name__}.{hook} failed: {e}")

    async def pipeline_started(self, deployment: Deployment, config: PipelineConfig) -> None:
        await self._dispatch("pipeline_started", deployment, config)

    async def stage_started(self, deployment_id: str, stage: PipelineStage, index: int, total: int) -> None:
        await self._dispatch("stage_started", deployment_id, stage, index, total)

    async def stage_progress(self, deployment_id: str, stage_name: str, done: int, total: int) -> None:
        await self._dispatch("stage_progress", deployment_id, stage_name, done, total)

    async def stage_finished(self, deployment_id: str, stage: PipelineStage, result: StageResult) -> None:
        await self._dispatch("stage_finished", deployment_id, stage, result)

    async def pipeline_finished(self, deployment_id: str, result: DeploymentResult) -> None:
        await self._dispatch("pipeline_finished", deployment_id, result)
