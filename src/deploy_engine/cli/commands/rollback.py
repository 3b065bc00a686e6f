"""Rollback commands."""

import typer
from rich.console import Console

from deploy_engine.rollback import categorize_error, recovery_options

app = typer.Typer(help="Rollback failure analysis")
console = Console()

_SEVERITY_STYLE = {"low": "green", "medium": "yellow", "high": "red", "critical": "bold red"}


@app.command()
def analyze(error_text: str = typer.Argument(..., help="Raw error text of a failed rollback")):
    """Categorize a rollback error and list recovery options.

    Examples:
        deploy-engine-cli rollback analyze "Connection to db timed out"
    """
    analysis = categorize_error(error_text)
    style = _SEVERITY_STYLE.get(analysis.severity, "white")

    console.print(f"[bold]Category:[/bold] {analysis.category}")
    console.print(f"[bold]Severity:[/bold] [{style}]{analysis.severity}[/{style}]")
    console.print(f"[bold]Root cause:[/bold] {analysis.root_cause}")
    console.print(f"[bold]Affected:[/bold] {', '.join(analysis.affected_components)}")
    console.print(f"\n{analysis.summary}\n")
    console.print("[bold]Recovery options:[/bold]")
    for index, option in enumerate(recovery_options(analysis.category), start=1):
        console.print(f"  {index}. {option}")
