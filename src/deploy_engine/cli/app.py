"""Administrative CLI: offline pipeline, suite and rollback tools."""

import typer

from deploy_engine import __version__
from deploy_engine.cli.commands import pipeline, rollback, suites

app = typer.Typer(
    name="deploy-engine-cli",
    help="Deployment engine CLI - offline pipeline, suite and rollback tools",
    no_args_is_help=True,
)

app.add_typer(pipeline.app, name="pipeline")
app.add_typer(rollback.app, name="rollback")
app.add_typer(suites.app, name="suites")


def _print_version(value: bool) -> None:
    if value:
        typer.echo(f"deploy-engine {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(False, "--version", callback=_print_version, is_eager=True, help="Show the engine version"),
) -> None:
    """Work with pipelines, suites and rollback analysis without a running server."""
