"""Tests for the adapter registry (get_adapter function)."""

from __future__ import annotations

import types
from unittest.mock import patch

import pytest

from toolprobe.adapters.base import (
    AdapterTurnResult,
    BaseAdapter,
    TokenUsage,
)
from toolprobe.adapters.gemini_adapter import GeminiAdapter
from toolprobe.adapters.openai_adapter import OpenAIAdapter
from toolprobe.adapters.registry import get_adapter
from toolprobe.models.config import LLMSettings


# --- Test adapter for dotted-path tests ---


class _TestAdapter(BaseAdapter):
    """A valid test adapter for dotted-path loading tests."""

    async def send_turn(self, messages, tools=None, config=None):
        return AdapterTurnResult(
            content="test",
            tool_calls=[],
            usage=TokenUsage(),
            raw_response={},
            finish_reason="stop",
        )


class _NotAnAdapter:
    """Not a BaseAdapter subclass -- used to test type validation."""

    pass


class TestGetAdapterBuiltin:
    """Test builtin provider name resolution."""

    @pytest.mark.parametrize("provider", ["openai", "openrouter", "ollama", " OpenAI "])
    def test_openai_compatible_providers(self, provider: str) -> None:
        """OpenAI-compatible providers share OpenAIAdapter."""
        adapter = get_adapter(provider)
        assert isinstance(adapter, OpenAIAdapter)
        assert adapter.provider_name() == provider.strip().lower()

    def test_settings_flow_into_adapter(self) -> None:
        """Key, default base URL and timeout come from LLMSettings."""
        settings = LLMSettings(provider="openrouter", api_key="or-key", timeout_seconds=5)
        adapter = get_adapter("openrouter", settings)
        assert adapter._api_key == "or-key"
        assert adapter._base_url == "https://openrouter.ai/api/v1"
        assert adapter._timeout == 5

    def test_gemini(self) -> None:
        """gemini resolves to the REST adapter."""
        adapter = get_adapter("gemini", LLMSettings(provider="gemini", api_key="g"))
        assert isinstance(adapter, GeminiAdapter)
        assert adapter.provider_name() == "gemini"


class TestGetAdapterDottedPath:
    """Test custom dotted-path adapter loading."""

    def test_get_adapter_custom_dotted_path(self) -> None:
        """get_adapter with a dotted path loads the class and returns an instance."""
        mock_module = types.ModuleType("tests.test_adapters_registry")
        mock_module._TestAdapter = _TestAdapter  # type: ignore[attr-defined]

        with patch("importlib.import_module", return_value=mock_module):
            adapter = get_adapter("tests.test_adapters_registry._TestAdapter")

        assert isinstance(adapter, _TestAdapter)

    def test_get_adapter_not_subclass_raises_type_error(self) -> None:
        """get_adapter raises TypeError if the loaded class is not a BaseAdapter subclass."""
        mock_module = types.ModuleType("tests.test_adapters_registry")
        mock_module._NotAnAdapter = _NotAnAdapter  # type: ignore[attr-defined]

        with patch("importlib.import_module", return_value=mock_module):
            with pytest.raises(TypeError, match="not a subclass of BaseAdapter"):
                get_adapter("tests.test_adapters_registry._NotAnAdapter")

    def test_get_adapter_missing_attribute(self) -> None:
        """A module without the named class raises ImportError."""
        mock_module = types.ModuleType("tests.test_adapters_registry")

        with patch("importlib.import_module", return_value=mock_module):
            with pytest.raises(ImportError, match="has no attribute"):
                get_adapter("tests.test_adapters_registry.Missing")


class TestGetAdapterUnknown:
    """Test error handling for unknown provider names."""

    def test_unknown_provider_lists_builtins(self) -> None:
        """Unknown names raise ValueError listing available providers."""
        with pytest.raises(ValueError, match="Unsupported LLM provider") as exc_info:
            get_adapter("anthropic")
        message = str(exc_info.value)
        for name in ("gemini", "ollama", "openai", "openrouter"):
            assert name in message
