"""stepflow validate — Structural checks for a workflow file."""

from pathlib import Path

import typer
from rich.console import Console

console = Console()


def validate_workflow(
    file: Path = typer.Argument(..., help="Workflow file (.json, .yaml or .yml)"),
):
    """Validate a workflow document and print its errors and warnings.

    Exits with code 1 when the file cannot be loaded or the workflow is invalid.

    Example:
        stepflow validate workflows/support.yaml
    """
    from stepflow.exceptions import WorkflowLoadError
    from stepflow.services import InMemoryRetrievalService, StaticCompletionService
    from stepflow.workflows.loader import load_workflow
    from stepflow.workflows.registry import default_registry
    from stepflow.workflows.validator import WorkflowValidator

    try:
        workflow = load_workflow(file)
    except WorkflowLoadError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1)

    registry = default_registry(retrieval=InMemoryRetrievalService(), completion=StaticCompletionService())
    result = WorkflowValidator().validate(workflow, registry=registry)

    label = f"[bold]{workflow.name or workflow.id}[/bold] [dim](v{workflow.version}, {len(workflow.steps)} step(s))[/dim]"
    for error in result.errors:
        console.print(f"  [red]✗[/red] {error}")
    for warning in result.warnings:
        console.print(f"  [yellow]⚠[/yellow] {warning}")

    if not result.valid:
        console.print(f"{label}: [bold red]INVALID[/bold red] ({len(result.errors)} error(s))")
        raise typer.Exit(1)
    console.print(f"{label}: [bold green]VALID[/bold green]")
