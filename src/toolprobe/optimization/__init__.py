"""toolprobe optimization - optional capture of LLM tool usage."""

from toolprobe.optimization.hook import (
    CaptureOptimizationHook,
    OptimizationCapture,
    OptimizationHook,
    resolve_optimization_hook,
)

__all__ = [
    "CaptureOptimizationHook",
    "OptimizationCapture",
    "OptimizationHook",
    "resolve_optimization_hook",
]
