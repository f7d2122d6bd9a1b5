"""toolprobe validate CLI command for scenario file validation.

Validates JSON/YAML scenario files against the scenario schema,
reporting all errors at once.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape

from toolprobe.loader.validator import (
    ValidationErrorDetail,
    discover_scenario_files,
    validate_scenario_file,
)
from toolprobe.models.config import find_project_root, load_project_config


def validate(
    scenarios: Optional[list[str]] = typer.Argument(
        None, help="Scenario files to validate (default: all in the scenarios directory)"
    ),
) -> None:
    """Validate scenario files against the scenario schema.

    Exits with code 0 if all valid, 1 if any errors.
    """
    console = Console()

    files: list[Path] = []
    if scenarios:
        for s in scenarios:
            p = Path(s)
            if not p.exists():
                typer.echo(f"Error: File not found: {s}", err=True)
                raise typer.Exit(code=1)
            files.append(p)
    else:
        project_root = find_project_root()
        config = load_project_config(project_root, use_env=False)
        files = discover_scenario_files(project_root / config.scenarios_dir)
        if not files:
            typer.echo(
                f"No scenario files found. Specify files or add them to {config.scenarios_dir}/."
            )
            raise typer.Exit(code=1)

    error_count = 0
    seen_ids: dict[str, Path] = {}
    for filepath in files:
        scenario, errors = validate_scenario_file(filepath)
        if scenario is not None and scenario.id in seen_ids:
            errors = [
                ValidationErrorDetail(
                    field="id",
                    message=f"Duplicate scenario id '{scenario.id}' (also in {seen_ids[scenario.id]})",
                    type="duplicate_id",
                )
            ]
        elif scenario is not None:
            seen_ids[scenario.id] = filepath

        if errors:
            error_count += 1
            console.print(f"[bold red]✗[/bold red] {escape(str(filepath))}")
            for err in errors:
                console.print(f"    {escape(err.describe())}", soft_wrap=True)
        else:
            console.print(f"  {escape(str(filepath))} ... valid")

    typer.echo(f"\n{len(files) - error_count}/{len(files)} scenarios valid")

    if error_count > 0:
        raise typer.Exit(code=1)
