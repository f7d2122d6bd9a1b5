"""toolprobe loader - scenario discovery, parsing, and validation."""

from toolprobe.loader.validator import (
    ScenarioLoadError,
    ValidationErrorDetail,
    discover_scenario_files,
    load_scenarios,
    validate_scenario,
    validate_scenario_file,
)

__all__ = [
    "ScenarioLoadError",
    "ValidationErrorDetail",
    "discover_scenario_files",
    "load_scenarios",
    "validate_scenario",
    "validate_scenario_file",
]
