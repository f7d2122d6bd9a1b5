"""Adapter registry for resolving provider names to adapter instances.

Supports the builtin provider names ("openai", "openrouter", "ollama",
"gemini") and custom dotted-path imports (e.g., "my.module.MyAdapter").
"""

from __future__ import annotations

import importlib

from toolprobe.adapters.base import BaseAdapter
from toolprobe.models.config import LLMSettings

# Builtin provider names mapped to their fully-qualified class paths.
# Adapters are imported lazily.
BUILTIN_ADAPTERS: dict[str, str] = {
    "openai": "toolprobe.adapters.openai_adapter.OpenAIAdapter",
    "openrouter": "toolprobe.adapters.openai_adapter.OpenAIAdapter",
    "ollama": "toolprobe.adapters.openai_adapter.OpenAIAdapter",
    "gemini": "toolprobe.adapters.gemini_adapter.GeminiAdapter",
}


def _import_class(dotted_path: str) -> type:
    module_path, _, class_name = dotted_path.rpartition(".")
    if not module_path or not class_name:
        raise ValueError(
            f"Invalid adapter path '{dotted_path}'. "
            f"Expected format: 'module.path.ClassName'."
        )

    module = importlib.import_module(module_path)
    try:
        cls = getattr(module, class_name)
    except AttributeError:
        raise ImportError(
            f"Module '{module_path}' has no attribute '{class_name}'."
        ) from None

    if not isinstance(cls, type) or not issubclass(cls, BaseAdapter):
        raise TypeError(
            f"'{dotted_path}' is not a subclass of BaseAdapter. "
            f"Custom adapters must inherit from toolprobe.adapters.base.BaseAdapter."
        )
    return cls


def get_adapter(provider: str, settings: LLMSettings | None = None) -> BaseAdapter:
    """Resolve a provider name (or dotted path) to a configured adapter.

    Args:
        provider: A builtin provider name or a fully-qualified dotted path
            to a BaseAdapter subclass (instantiated without arguments).
        settings: Credentials, base URL and timeout for builtin providers.

    Raises:
        ValueError: If the name is not a builtin and has no dots (unknown).
        TypeError: If the resolved class is not a subclass of BaseAdapter.
    """
    name = provider.strip().lower() if "." not in provider else provider
    settings = settings or LLMSettings()

    if name in BUILTIN_ADAPTERS:
        cls = _import_class(BUILTIN_ADAPTERS[name])
        if name == "gemini":
            return cls(
                api_key=settings.api_key,
                base_url=settings.base_url,
                timeout=settings.timeout_seconds,
            )
        return cls(
            api_key=settings.api_key,
            base_url=settings.resolved_base_url(),
            provider=name,
            timeout=settings.timeout_seconds,
        )

    if "." in name:
        return _import_class(name)()

    available = ", ".join(sorted(BUILTIN_ADAPTERS))
    raise ValueError(
        f"Unsupported LLM provider '{provider}'. "
        f"Available providers: {available}. "
        f"For custom adapters, provide the full dotted path "
        f"(e.g., 'my.module.MyAdapter')."
    )
