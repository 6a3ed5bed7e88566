"""stepflow CLI — Typer application."""

import logging

import typer
from rich.console import Console

from stepflow.version import __version__

app = typer.Typer(
    name="stepflow",
    help="stepflow — validate and run declarative multi-step AI workflows.",
    no_args_is_help=True,
    invoke_without_command=True,
)
console = Console()


@app.callback()
def main(
    ctx: typer.Context,
    version: bool = typer.Option(False, "--version", "-v", is_eager=True, help="Show version"),
    verbose: bool = typer.Option(False, "--verbose", help="Log engine activity to stderr"),
):
    """stepflow CLI."""
    if version:
        console.print(f"stepflow v{__version__}")
        raise typer.Exit()
    if verbose:
        from stepflow.config import config

        logging.basicConfig(
            level=getattr(logging, config.log_level.upper(), logging.INFO),
            format="%(levelname)s %(name)s: %(message)s",
        )
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


from stepflow.cli.commands import config, run, validate  # noqa: E402

app.command(name="validate", help="Check a workflow file for structural errors")(validate.validate_workflow)
app.command(name="run", help="Run a workflow against in-memory services")(run.run_workflow)
app.command(name="config", help="Show resolved configuration")(config.config_show)


if __name__ == "__main__":
    app()
