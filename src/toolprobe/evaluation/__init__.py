"""toolprobe evaluation - path resolution, assertions, and conversation variants.

ScenarioEvaluator lives in toolprobe.evaluation.evaluator (it depends on
the execution layer, which itself imports from here).
"""

from toolprobe.evaluation.assertions import (
    apply_captures,
    compare_arguments,
    evaluate_assertion,
    run_assertions,
)
from toolprobe.evaluation.paths import (
    MISSING,
    deep_equal,
    get_by_path,
    interpolate,
    resolve_value,
)
from toolprobe.evaluation.variants import ConversationVariant, expand_conversation

__all__ = [
    "MISSING",
    "ConversationVariant",
    "apply_captures",
    "compare_arguments",
    "deep_equal",
    "evaluate_assertion",
    "expand_conversation",
    "get_by_path",
    "interpolate",
    "resolve_value",
    "run_assertions",
]
