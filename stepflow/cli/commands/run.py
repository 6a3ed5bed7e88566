"""stepflow run — Execute a workflow file from the command line."""

import asyncio
import json
from pathlib import Path
from typing import Optional

import typer
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

console = Console()

_STATUS_COLOR = {
    "completed": "green",
    "failed": "red",
    "timeout": "yellow",
    "cancelled": "yellow",
    "running": "blue",
    "pending": "dim",
    "skipped": "dim",
}


def _build_executor(documents: Optional[Path], live: bool):
    """Executor wired to in-memory retrieval and a static (or litellm) completion service."""
    from stepflow.callbacks import NullSink
    from stepflow.config import config
    from stepflow.services import InMemoryRetrievalService, StaticCompletionService
    from stepflow.workflows import WorkflowExecutor, default_registry

    retrieval = InMemoryRetrievalService()
    if documents is not None:
        retrieval.load_file(documents)

    if live:
        from stepflow.services.llm import LiteLLMCompletionService
        completion = LiteLLMCompletionService(config)
    else:
        completion = StaticCompletionService()

    registry = default_registry(
        retrieval=retrieval,
        completion=completion,
        default_model=config.default_llm_model if live else "static",
    )
    return WorkflowExecutor(registry, sink=NullSink(), config=config)


def _print_execution(execution) -> None:
    status = execution.status.value
    color = _STATUS_COLOR.get(status, "white")

    table = Table(box=box.SIMPLE, show_header=True, header_style="bold dim", padding=(0, 1))
    table.add_column("#", style="dim", width=3, justify="right")
    table.add_column("Step", style="cyan")
    table.add_column("Type")
    table.add_column("Status", width=10)
    table.add_column("Retries", justify="right")
    table.add_column("ms", justify="right")
    table.add_column("Error")
    for i, se in enumerate(execution.step_executions, 1):
        step_color = _STATUS_COLOR.get(se.status.value, "white")
        table.add_row(
            str(i),
            se.step_id,
            se.step_type,
            f"[{step_color}]{se.status.value}[/{step_color}]",
            str(se.retry_count),
            str(se.duration_ms if se.duration_ms is not None else ""),
            f"[dim]{(se.error or '')[:80]}[/dim]",
        )

    m = execution.metrics
    summary = (
        f"[bold]Workflow:[/bold] {execution.workflow_id} v{execution.workflow_version}\n"
        f"[bold]Execution:[/bold] [dim]{execution.id}[/dim]\n"
        f"[bold]Status:[/bold] [{color}]{status.upper()}[/{color}]  "
        f"[dim]{m.steps_executed} step(s), {m.retries} retr{'y' if m.retries == 1 else 'ies'}, "
        f"{m.llm_call_count} LLM call(s), {m.total_tokens_used} token(s), "
        f"{execution.duration_ms}ms[/dim]"
    )
    if execution.error is not None:
        summary += f"\n[bold]Error:[/bold] [red]{execution.error.code}[/red] {execution.error.message}"

    console.print()
    console.print(Panel(summary, title="[bold blue]stepflow execution[/bold blue]", border_style=color))
    if execution.step_executions:
        console.print(table)
    if execution.output is not None:
        rendered = json.dumps(execution.output, indent=2, ensure_ascii=False, default=str)
        console.print(Panel(Syntax(rendered, "json", word_wrap=True), title="[bold]Output[/bold]"))


async def _execute(file: Path, payload: dict, documents: Optional[Path], tenant: str, live: bool):
    from stepflow.workflows.loader import load_workflow

    workflow = load_workflow(file)
    executor = _build_executor(documents, live)
    with console.status(f"[blue]Running:[/blue] {workflow.name or workflow.id}"):
        return await executor.execute(workflow, tenant, payload)


def run_workflow(
    file: Path = typer.Argument(..., help="Workflow file (.json, .yaml or .yml)"),
    input: str = typer.Option("{}", "--input", "-i", help="Input payload as a JSON object"),
    documents: Optional[Path] = typer.Option(
        None, "--documents", "-d", help="JSON array of documents for retrieval steps"
    ),
    tenant: str = typer.Option("cli-tenant", "--tenant", "-t", help="Tenant id for the run"),
    live: bool = typer.Option(False, "--live", help="Use litellm instead of the static completion service"),
):
    """Run a workflow fully in-memory and print the step table and final output.

    Completion steps answer with a deterministic echo unless --live is given.
    Exits with code 1 when the run does not complete.

    Example:
        stepflow run support.yaml --input '{"question": "refund window?"}' --documents docs.json
    """
    from stepflow.exceptions import StepflowError
    from stepflow.types import ExecutionStatus

    try:
        payload = json.loads(input)
    except json.JSONDecodeError as exc:
        console.print(f"[red]Error:[/red] --input is not valid JSON: {exc}")
        raise typer.Exit(1)
    if not isinstance(payload, dict):
        console.print("[red]Error:[/red] --input must be a JSON object")
        raise typer.Exit(1)

    try:
        execution = asyncio.run(_execute(file, payload, documents, tenant, live))
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted.[/yellow]")
        raise typer.Exit(1)
    except StepflowError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1)

    _print_execution(execution)
    if execution.status != ExecutionStatus.COMPLETED:
        raise typer.Exit(1)
