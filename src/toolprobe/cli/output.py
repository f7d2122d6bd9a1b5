"""Rich terminal output layer for eval results and log summaries."""

from __future__ import annotations

import json
import logging
import sys

from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from toolprobe.models.result import EvalResult
from toolprobe.storage.log_writer import LogSummary

_STATUS_STYLES: dict[bool, tuple[str, str]] = {
    True: ("✓ PASS", "bold green"),
    False: ("✗ FAIL", "bold red"),
}


def configure_logging(verbose: bool = False) -> None:
    """Route library logging through rich on stderr (DEBUG when verbose)."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def render_results(results: list[EvalResult], console: Console) -> None:
    """Render the per-scenario verdict table, the summary, and all failures."""
    table = Table(box=box.SIMPLE, padding=(0, 2))
    table.add_column("Scenario", style="bold")
    table.add_column("Mode")
    table.add_column("Tool calls", justify="right")
    table.add_column("Verdict")

    for result in results:
        symbol, style = _STATUS_STYLES[result.passed]
        table.add_row(
            escape(result.scenario),
            result.mode,
            str(len(result.tool_calls)),
            f"[{style}]{symbol}[/{style}]",
        )

    console.print()
    console.print(table)

    passed = sum(1 for result in results if result.passed)
    failed = len(results) - passed
    console.print("[bold]Eval Summary[/bold]")
    console.print(f"  Scenarios run: {len(results)}")
    console.print(f"  Passed: [green]{passed}[/green]")
    console.print(f"  Failed: [red]{failed}[/red]" if failed else "  Failed: 0")

    for result in results:
        if result.passed:
            continue
        console.print()
        console.print(f"[bold red]✗ {escape(result.scenario)}[/bold red]")
        for failure in result.failures:
            console.print(f"  - {escape(failure)}", soft_wrap=True)


def output_json(results: list[EvalResult]) -> None:
    """Write results as a JSON array to stdout (no Rich formatting)."""
    payload = [result.model_dump(mode="json") for result in results]
    sys.stdout.write(json.dumps(payload, indent=2, ensure_ascii=False))
    sys.stdout.write("\n")
    sys.stdout.flush()


def render_log_summary(summary: LogSummary, console: Console) -> None:
    table = Table(box=box.SIMPLE, show_header=False, padding=(0, 2))
    table.add_column("Key", style="bold")
    table.add_column("Value")
    table.add_row("Total runs analysed", str(summary.total_runs))
    table.add_row("Pass rate", f"{summary.pass_rate:.2f}%")
    table.add_row("Failed runs", str(summary.failed_runs))
    table.add_row("Unique scenarios", str(summary.unique_scenarios))

    console.print("[bold]Eval Summary[/bold]")
    console.print(table)
