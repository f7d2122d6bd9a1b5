"""toolprobe adapters - chat-completion provider abstraction layer.

Re-exports the BaseAdapter ABC, the message/result dataclasses, the
provider errors and the adapter registry function.
"""

from toolprobe.adapters.base import (
    AdapterConfig,
    AdapterTurnResult,
    BaseAdapter,
    EmptyCompletionError,
    Message,
    ProviderRequestError,
    TokenUsage,
    ToolCallResult,
)
from toolprobe.adapters.registry import get_adapter

__all__ = [
    "AdapterConfig",
    "AdapterTurnResult",
    "BaseAdapter",
    "EmptyCompletionError",
    "Message",
    "ProviderRequestError",
    "TokenUsage",
    "ToolCallResult",
    "get_adapter",
]
