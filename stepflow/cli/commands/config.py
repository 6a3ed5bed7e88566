"""stepflow config — Show resolved stepflow configuration."""

from rich import box
from rich.console import Console
from rich.table import Table

console = Console()


def config_show():
    """Show the resolved stepflow configuration.

    Reads from environment variables and .env file.

    Example:
        stepflow config
    """
    from stepflow.config import StepflowConfig
    cfg = StepflowConfig()

    table = Table(
        box=box.ROUNDED,
        header_style="bold dim",
        show_lines=False,
        title="[bold]stepflow Configuration[/bold]",
    )
    table.add_column("Key", style="cyan", width=30)
    table.add_column("Value", width=45)
    table.add_column("Env Var", style="dim", width=38)

    sections = [
        ("App", ["debug", "log_level", "audit_log_enabled"]),
        ("Workflow limits", [
            "default_max_steps",
            "default_retry_base_delay_ms",
            "default_step_timeout_ms",
        ]),
        ("LLM", ["default_llm_model", "llm_api_base", "llm_max_tokens", "llm_temperature"]),
        ("HTTP", ["http_timeout_seconds"]),
    ]

    first = True
    for section_name, fields in sections:
        if not first:
            table.add_row("", "", "")
        first = False
        table.add_row(f"[bold dim]── {section_name} ──[/bold dim]", "", "")
        for attr in fields:
            val = getattr(cfg, attr, None)
            display = "[dim](not set)[/dim]" if val is None else str(val)
            table.add_row(f"  {attr}", display, f"STEPFLOW_{attr.upper()}")

    console.print()
    console.print(table)
    console.print()
    console.print("[dim]Source: environment variables + .env file (prefix: STEPFLOW_)[/dim]")
