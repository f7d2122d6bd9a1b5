"""Project configuration model for toolprobe.

Captures toolprobe.yaml fields with sensible defaults, then applies
environment overrides (after loading a local .env file) for the LLM
provider settings.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field

CONFIG_FILENAME = "toolprobe.yaml"

# Providers that work without an explicit base URL.
_DEFAULT_BASE_URLS: dict[str, str] = {
    "openai": "https://api.openai.com/v1",
    "openrouter": "https://openrouter.ai/api/v1",
    "gemini": "https://generativelanguage.googleapis.com/v1beta",
}

# Providers that can run without an API key (local inference servers).
_KEYLESS_PROVIDERS: frozenset[str] = frozenset({"ollama"})


class ConfigError(Exception):
    """Raised when required configuration values are missing or invalid."""


class LLMSettings(BaseModel):
    """Settings for the chat-completion backend used in LLM mode."""

    model_config = {"extra": "forbid"}

    provider: Literal["openai", "openrouter", "ollama", "gemini"] = "openai"
    model: str | None = None
    api_key: str | None = None
    base_url: str | None = None
    temperature: float = 0.1
    max_turns: int = Field(default=8, ge=1, le=100)
    tool_choice: Literal["auto", "required"] = "required"
    timeout_seconds: float = Field(default=60.0, gt=0)

    def resolved_base_url(self) -> str | None:
        return self.base_url or _DEFAULT_BASE_URLS.get(self.provider)

    def require_ready(self) -> None:
        """Check that the settings are complete enough to start a session.

        Raises:
            ConfigError: Naming the environment variable to set.
        """
        if not self.model:
            raise ConfigError("LLM_MODEL must be set to run LLM-backed evals.")
        if not self.resolved_base_url():
            raise ConfigError("LLM_PROVIDER_BASE_URL must be set to run LLM-backed evals.")
        if self.provider not in _KEYLESS_PROVIDERS and not self.api_key:
            raise ConfigError("LLM_PROVIDER_API_KEY is required to run LLM-backed evals.")


class ProjectConfig(BaseModel):
    """Project-level configuration loaded from toolprobe.yaml."""

    model_config = {"extra": "forbid"}

    scenarios_dir: str = "evals/scenarios"
    log_dir: str = "evals/logs"
    write_logs: bool = True
    optimization_enabled: bool = False
    optimizer_api_key: str | None = None
    llm: LLMSettings = Field(default_factory=LLMSettings)


def find_project_root(start: Path | None = None) -> Path:
    """Walk up from start (default: cwd) looking for toolprobe.yaml.

    Returns cwd if no config file is found.
    """
    current = (start or Path.cwd()).resolve()
    if current.is_file():
        current = current.parent
    while current != current.parent:
        if (current / CONFIG_FILENAME).exists():
            return current
        current = current.parent
    return Path.cwd()


def _coerce_float(value: str | None, fallback: float) -> float:
    if value is None or not value.strip():
        return fallback
    try:
        return float(value)
    except ValueError:
        return fallback


def _coerce_int(value: str | None, fallback: int) -> int:
    if value is None or not value.strip():
        return fallback
    try:
        return int(float(value))
    except ValueError:
        return fallback


def apply_env_overrides(
    config: ProjectConfig, environ: dict[str, str] | None = None
) -> ProjectConfig:
    """Return a copy of config with LLM_* / OPTIMIZER_* environment values applied."""
    env = os.environ if environ is None else environ
    llm = config.llm

    updates: dict[str, object] = {}
    provider = env.get("LLM_PROVIDER", "").strip().lower()
    if provider:
        updates["provider"] = provider
    for env_key, field_name in (
        ("LLM_MODEL", "model"),
        ("LLM_PROVIDER_API_KEY", "api_key"),
        ("LLM_PROVIDER_BASE_URL", "base_url"),
    ):
        if env.get(env_key):
            updates[field_name] = env[env_key]
    updates["temperature"] = _coerce_float(env.get("LLM_TEMPERATURE"), llm.temperature)
    updates["max_turns"] = _coerce_int(env.get("LLM_MAX_TURNS"), llm.max_turns)

    merged = LLMSettings.model_validate({**llm.model_dump(), **updates})

    project_updates: dict[str, object] = {"llm": merged}
    if env.get("OPTIMIZER_API_KEY"):
        project_updates["optimizer_api_key"] = env["OPTIMIZER_API_KEY"]
    if env.get("OPTIMIZER_ENABLED"):
        project_updates["optimization_enabled"] = env["OPTIMIZER_ENABLED"].lower() in ("true", "1", "yes")
    return config.model_copy(update=project_updates)


def load_project_config(
    project_root: Path | None = None, *, use_env: bool = True
) -> ProjectConfig:
    """Load ProjectConfig from toolprobe.yaml plus environment overrides.

    Args:
        project_root: Path to the project root directory. If None,
            uses find_project_root() to locate it.
        use_env: Load ``.env`` and apply environment overrides.

    Returns:
        Validated ProjectConfig instance.
    """
    if project_root is None:
        project_root = find_project_root()

    config = ProjectConfig()
    config_path = project_root / CONFIG_FILENAME
    if config_path.exists():
        import yaml

        raw = yaml.safe_load(config_path.read_text(encoding="utf-8"))
        if raw is not None:
            config = ProjectConfig.model_validate(raw)

    if use_env:
        load_dotenv(project_root / ".env", override=False)
        config = apply_env_overrides(config)
    return config
