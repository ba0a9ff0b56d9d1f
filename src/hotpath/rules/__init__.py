"""Pattern rule engine: the rule registry, the built-in catalog and its evaluator."""

from .context import RuleContext
from .engine import RuleEvaluation, evaluate_rules
from .registry import Hit, Rule, RuleRegistry, default_registry, rule

__all__ = [
    "Hit",
    "Rule",
    "RuleContext",
    "RuleEvaluation",
    "RuleRegistry",
    "default_registry",
    "evaluate_rules",
    "rule",
]
