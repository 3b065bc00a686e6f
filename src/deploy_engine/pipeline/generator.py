"""Pipeline Config Generator.

Turns a change specification into the fixed stage sequence
build -> test -> [security_scan] -> package -> deploy. The security scan is
only included when the change description mentions security.
"""

from loguru import logger

from deploy_engine.constants import ENV_STAGING
from deploy_engine.exceptions import InvalidSpecificationError
from deploy_engine.models import ChangeSpecification, DeploymentStrategy, PipelineConfig, ProjectType
from deploy_engine.pipeline import commands
from deploy_engine.pipeline.builder import PipelineBuilder
from deploy_engine.ports.audit import AuditSink

BUILD_TIMEOUT = 10 * 60
TEST_TIMEOUT = 15 * 60
SECURITY_SCAN_TIMEOUT = 5 * 60
PACKAGE_TIMEOUT = 5 * 60
DEPLOY_TIMEOUT = 10 * 60

SECURITY_KEYWORDS = ("security",)


def mentions_security(text: str) -> bool:
    lowered = text.lower()
    return any(keyword in lowered for keyword in SECURITY_KEYWORDS)


class PipelineConfigGenerator:
    """Generates pipeline configurations from change specifications."""

    def __init__(self, audit: AuditSink, default_environment: str = ENV_STAGING):
        self.audit = audit
        self.default_environment = default_environment

    async def generate(self, spec: ChangeSpecification) -> PipelineConfig:
        """Build the pipeline for ``spec``.

        Raises:
            InvalidSpecificationError: If the description or branch name is empty
        """
        self._validate(spec)
        project_type = ProjectType(spec.project_type)
        strategy = DeploymentStrategy(spec.deployment_strategy)
        environment = spec.environment_hint or self.default_environment

        builder = PipelineBuilder()
        builder.add_stage("build", "Build application and dependencies", commands.BUILD_COMMANDS[project_type], BUILD_TIMEOUT)
        builder.add_stage("test", "Run automated tests", commands.TEST_COMMANDS[project_type], TEST_TIMEOUT)
        if mentions_security(spec.description):
            builder.add_stage(
                "security_scan",
                "Run security vulnerability scan",
                commands.SECURITY_SCAN_COMMANDS[project_type],
                SECURITY_SCAN_TIMEOUT,
            )
        builder.add_stage("package", "Package application for deployment", commands.PACKAGE_COMMANDS[project_type], PACKAGE_TIMEOUT)
        builder.add_stage("deploy", "Deploy to target environment", commands.deploy_commands(strategy, environment), DEPLOY_TIMEOUT)

        config = builder.build(
            source_spec_id=spec.id,
            branch_name=spec.branch_name.strip(),
            target_environment=environment,
            project_type=project_type,
            deployment_strategy=strategy,
        )
        logger.info(f"Generated pipeline {config.id} for {config.branch_name}: {', '.join(config.stage_names)}")

        await self.audit.try_record(
            "pipeline_generated",
            f"Generated CI/CD pipeline for specification: {config.branch_name}",
            {
                "spec_id": spec.id,
                "pipeline_id": config.id,
                "branch_name": config.branch_name,
                "stages_count": len(config.stages),
                "target_environment": environment,
            },
        )
        return config

    @staticmethod
    def export(config: PipelineConfig) -> str:
        """Render ``config`` as an indented JSON document."""
        return config.model_dump_json(indent=2)

    @staticmethod
    def _validate(spec: ChangeSpecification) -> None:
        if not spec.description or not spec.description.strip():
            raise InvalidSpecificationError("Change specification has an empty description")
        if not spec.branch_name or not spec.branch_name.strip():
            raise InvalidSpecificationError(f"Change specification {spec.id} has no branch name")
