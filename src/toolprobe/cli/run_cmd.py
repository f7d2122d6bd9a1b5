"""toolprobe run -- evaluate scenarios in deterministic or LLM mode.

Loads scenarios, runs each one against a fresh support toolset (directly,
or through a model when --llm is given), renders the verdicts, writes one
eval log per scenario, and exits non-zero if anything failed.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional
from uuid import uuid4

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape

from toolprobe.adapters.base import AdapterConfig
from toolprobe.adapters.registry import get_adapter
from toolprobe.cli.output import configure_logging, output_json, render_results
from toolprobe.evaluation.evaluator import ScenarioEvaluator
from toolprobe.loader.validator import ScenarioLoadError, load_scenarios
from toolprobe.models.config import (
    ConfigError,
    LLMSettings,
    ProjectConfig,
    find_project_root,
    load_project_config,
)
from toolprobe.models.result import EvalResult
from toolprobe.optimization.hook import CaptureOptimizationHook, resolve_optimization_hook
from toolprobe.storage.log_writer import EvalLogWriter
from toolprobe.tools.support import build_support_registry, support_system_prompt

console = Console(stderr=True)


def run(
    scenario: Optional[str] = typer.Option(None, "--scenario", "-s", help="Only run the scenario with this id"),
    llm: bool = typer.Option(False, "--llm", help="Let an LLM choose the tools instead of calling them directly"),
    provider: Optional[str] = typer.Option(
        None, "--provider", help="LLM provider for --llm (openai, openrouter, ollama, gemini)"
    ),
    verbose: bool = typer.Option(False, "-V", "--verbose", help="Debug logging"),
    scenarios_dir: Optional[str] = typer.Option(None, "--scenarios-dir", help="Directory of scenario files"),
    max_turns: Optional[int] = typer.Option(None, "--max-turns", min=1, help="Override the LLM turn limit"),
    no_log: bool = typer.Option(False, "--no-log", help="Do not write eval logs"),
    format_json: bool = typer.Option(False, "--json", help="Output pure JSON to stdout"),
) -> None:
    """Run evaluation scenarios and report the results."""
    configure_logging(verbose)
    asyncio.run(
        _run_async(
            scenario_id=scenario,
            llm=llm,
            provider=provider,
            scenarios_dir=scenarios_dir,
            max_turns=max_turns,
            write_logs=not no_log,
            format_json=format_json,
        )
    )


def _resolve_llm_settings(
    config: ProjectConfig, provider: str | None, max_turns: int | None
) -> LLMSettings:
    updates: dict[str, object] = {}
    if provider:
        updates["provider"] = provider.strip().lower()
    if max_turns is not None:
        updates["max_turns"] = max_turns
    try:
        settings = LLMSettings.model_validate({**config.llm.model_dump(), **updates})
    except ValidationError as exc:
        raise ConfigError(f"Invalid LLM settings: {exc.errors()[0]['msg']}") from exc
    settings.require_ready()
    return settings


def _build_evaluator(
    config: ProjectConfig,
    *,
    llm: bool,
    provider: str | None,
    max_turns: int | None,
) -> ScenarioEvaluator:
    if not llm:
        return ScenarioEvaluator(build_support_registry)

    settings = _resolve_llm_settings(config, provider, max_turns)
    adapter = get_adapter(settings.provider, settings)
    console.print(
        f"[dim]Running evals with LLM tool selection "
        f"(provider: {settings.provider}, model: {settings.model}).[/dim]"
    )
    return ScenarioEvaluator(
        build_support_registry,
        adapter=adapter,
        adapter_config=AdapterConfig(
            model=settings.model or "",
            temperature=settings.temperature,
            tool_choice=settings.tool_choice,
        ),
        system_prompt=support_system_prompt(),
        max_turns=settings.max_turns,
        optimization_hook=resolve_optimization_hook(config),
    )


async def _run_async(
    *,
    scenario_id: str | None,
    llm: bool,
    provider: str | None,
    scenarios_dir: str | None,
    max_turns: int | None,
    write_logs: bool,
    format_json: bool,
) -> None:
    """Async implementation of the run command."""
    project_root = find_project_root()
    try:
        config = load_project_config(project_root)
    except ValidationError as exc:
        console.print(f"[bold red]Configuration error:[/bold red] {escape(str(exc))}")
        raise typer.Exit(code=1)

    # 1. Load scenarios
    directory = Path(scenarios_dir) if scenarios_dir else project_root / config.scenarios_dir
    try:
        scenarios = load_scenarios(directory, scenario_id)
    except ScenarioLoadError as exc:
        console.print(f"[bold red]Scenario validation errors:[/bold red] {exc}")
        for path, errors in exc.errors.items():
            for err in errors:
                console.print(f"  {escape(path)}: {escape(err.describe())}")
        raise typer.Exit(code=1)

    if not scenarios:
        console.print("[bold red]No scenarios matched your selection.[/bold red]")
        raise typer.Exit(code=1)

    # 2. Resolve evaluator (and provider settings in LLM mode)
    try:
        evaluator = _build_evaluator(config, llm=llm, provider=provider, max_turns=max_turns)
    except (ConfigError, ValueError) as exc:
        console.print(f"[bold red]Configuration error:[/bold red] {escape(str(exc))}")
        raise typer.Exit(code=1)

    # 3. Evaluate sequentially
    mode = "llm" if llm else "tools"
    writer = EvalLogWriter(project_root / config.log_dir) if write_logs and config.write_logs else None
    run_id = str(uuid4())
    results: list[EvalResult] = []
    for scenario in scenarios:
        if not format_json:
            console.print(f"[bold]=== {escape(scenario.id)} ===[/bold]")
        result = await evaluator.evaluate(scenario, mode)
        results.append(result)
        if writer is not None:
            writer.write(result, run_id=run_id)

    hook = evaluator.optimization_hook
    if isinstance(hook, CaptureOptimizationHook):
        captured = hook.drain()
        console.print(f"[dim]Captured {len(captured)} invocation(s) for optimization.[/dim]")

    # 4. Output
    if format_json:
        output_json(results)
    else:
        render_results(results, Console())

    if any(not result.passed for result in results):
        raise typer.Exit(code=1)
