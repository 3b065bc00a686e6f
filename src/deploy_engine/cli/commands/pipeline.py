"""Pipeline commands."""

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from deploy_engine.exceptions import InvalidSpecificationError
from deploy_engine.models import ChangeSpecification, DeploymentStrategy, ProjectType
from deploy_engine.pipeline import PipelineConfigGenerator
from deploy_engine.ports import LoguruAuditSink
from deploy_engine.settings import get_settings

app = typer.Typer(help="Pipeline configuration")
console = Console()


@app.command()
def generate(
    description: str = typer.Argument(..., help="Change description"),
    branch: str = typer.Option("main", "--branch", "-b", help="Source branch"),
    environment: str | None = typer.Option(None, "--environment", "-e", help="Target environment"),
    project_type: ProjectType = typer.Option(ProjectType.GENERIC, "--project-type", "-t", case_sensitive=False),
    strategy: DeploymentStrategy = typer.Option(DeploymentStrategy.STANDARD, "--strategy", "-s", case_sensitive=False),
    as_json: bool = typer.Option(False, "--json", help="Print the configuration as JSON"),
):
    """Generate the pipeline a change would run.

    Examples:
        deploy-engine-cli pipeline generate "Patch security headers" --branch fix/headers
        deploy-engine-cli pipeline generate "New API" -t python -s blue_green --json
    """
    generator = PipelineConfigGenerator(LoguruAuditSink(), get_settings().default_environment)
    spec = ChangeSpecification(
        description=description,
        branch_name=branch,
        environment_hint=environment,
        project_type=project_type,
        deployment_strategy=strategy,
    )
    try:
        config = asyncio.run(generator.generate(spec))
    except InvalidSpecificationError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1) from None

    if as_json:
        console.print_json(PipelineConfigGenerator.export(config))
        return

    table = Table(title=f"Pipeline for {config.branch_name} -> {config.target_environment}")
    table.add_column("#", justify="right")
    table.add_column("Stage", style="bold", no_wrap=True)
    table.add_column("Timeout")
    table.add_column("Commands")
    for index, stage in enumerate(config.stages, start=1):
        table.add_row(str(index), stage.name, f"{stage.timeout_seconds / 60:.0f} min", "\n".join(stage.commands))
    console.print(table)
