"""Builder for assembling pipeline configurations."""

from deploy_engine.exceptions import DuplicateStageError
from deploy_engine.models import DeploymentStrategy, PipelineConfig, PipelineStage, ProjectType


class PipelineBuilder:
    """Collects stages in order and builds an immutable ``PipelineConfig``."""

    def __init__(self):
        self.stages: list[PipelineStage] = []
        self._stages_by_name: dict[str, PipelineStage] = {}

    def add_stage(self, name: str, description: str, commands: list[str], timeout_seconds: float) -> "PipelineBuilder":
        """Append a stage.

        Raises:
            DuplicateStageError: If a stage with the same name was already added
        """
        if name in self._stages_by_name:
            raise DuplicateStageError(name)

        stage = PipelineStage(name=name, description=description, commands=commands, timeout_seconds=timeout_seconds)
        self.stages.append(stage)
        self._stages_by_name[name] = stage
        return self

    def get_stage(self, name: str) -> PipelineStage | None:
        return self._stages_by_name.get(name)

    def build(
        self,
        source_spec_id: str,
        branch_name: str,
        target_environment: str,
        project_type: ProjectType = ProjectType.GENERIC,
        deployment_strategy: DeploymentStrategy = DeploymentStrategy.STANDARD,
    ) -> PipelineConfig:
        return PipelineConfig(
            source_spec_id=source_spec_id,
            branch_name=branch_name,
            stages=list(self.stages),
            target_environment=target_environment,
            project_type=project_type,
            deployment_strategy=deployment_strategy,
        )

    def __str__(self) -> str:
        return f"PipelineBuilder(stages={len(self.stages)})"
