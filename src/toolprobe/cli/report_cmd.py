"""toolprobe report -- summarise the eval logs written by ``toolprobe run``."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape

from toolprobe.cli.output import render_log_summary
from toolprobe.models.config import find_project_root, load_project_config
from toolprobe.storage.log_writer import load_eval_logs, summarise_logs


def report(
    log_dir: Optional[str] = typer.Option(None, "--log-dir", help="Directory containing eval-*.jsonl logs"),
    format_json: bool = typer.Option(False, "--json", help="Output the summary as JSON"),
) -> None:
    """Summarise eval logs: total runs, pass rate, failed runs, unique scenarios."""
    console = Console()

    if log_dir:
        directory = Path(log_dir)
    else:
        project_root = find_project_root()
        config = load_project_config(project_root, use_env=False)
        directory = project_root / config.log_dir

    entries = load_eval_logs(directory)
    if not entries:
        typer.echo("No eval logs found. Run a scenario first.", err=True)
        raise typer.Exit(code=1)

    summary = summarise_logs(entries)
    if format_json:
        typer.echo(json.dumps(summary.to_dict(), indent=2))
        return

    render_log_summary(summary, console)

    failing = sorted({entry.scenario for entry in entries if entry.status == "failed"})
    if failing:
        console.print()
        console.print("[bold]Follow-up[/bold]")
        for name in failing:
            console.print(f"  - {escape(name)}")
