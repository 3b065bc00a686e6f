"""Test suite commands."""

import typer
from rich.console import Console
from rich.table import Table

from deploy_engine.models import ProjectType
from deploy_engine.suites import default_trigger_config, select_suites
from deploy_engine.suites.selection import suite_matches

app = typer.Typer(help="Test suite selection")
console = Console()


@app.command()
def select(
    project_type: ProjectType = typer.Argument(..., case_sensitive=False, help="Project type with default suites"),
    changed_files: list[str] = typer.Argument(None, help="Changed file paths"),
):
    """Show which default suites a change would run.

    Examples:
        deploy-engine-cli suites select flutter lib/src/app.dart
        deploy-engine-cli suites select python docs/readme.md
    """
    try:
        config = default_trigger_config("cli", project_type)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1) from None

    selected = select_suites(config.suites, changed_files or [])
    table = Table(title=f"Suites for {project_type} ({len(selected)}/{len(config.suites)})")
    table.add_column("Suite", style="bold", no_wrap=True)
    table.add_column("Command")
    table.add_column("Patterns")
    for suite in selected:
        table.add_row(suite.name, suite.command, ", ".join(suite.path_patterns))
    console.print(table)

    if changed_files and not any(suite_matches(suite, changed_files) for suite in config.suites):
        console.print("[yellow]No suite covers the changed files; running every suite.[/yellow]")
