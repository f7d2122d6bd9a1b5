"""toolprobe tools - registry, definitions, and the bundled support toolset."""

from toolprobe.tools.registry import (
    ToolCall,
    ToolDefinition,
    ToolExecutionError,
    ToolNotFoundError,
    ToolRegistry,
    ToolSchema,
)
from toolprobe.tools.support import (
    SupportStore,
    build_support_registry,
    support_system_prompt,
)

__all__ = [
    "SupportStore",
    "ToolCall",
    "ToolDefinition",
    "ToolExecutionError",
    "ToolNotFoundError",
    "ToolRegistry",
    "ToolSchema",
    "build_support_registry",
    "support_system_prompt",
]
