"""toolprobe CLI entry point."""

import typer

from toolprobe import __version__
from toolprobe.cli.report_cmd import report as report_cmd
from toolprobe.cli.run_cmd import run
from toolprobe.cli.validate_cmd import validate

app = typer.Typer(
    name="toolprobe",
    help="Scenario-based evaluation harness for tool-calling agents",
    no_args_is_help=True,
)

# Register subcommands
app.command(name="report")(report_cmd)
app.command()(run)
app.command()(validate)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"toolprobe {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """Scenario-based evaluation harness for tool-calling agents."""
