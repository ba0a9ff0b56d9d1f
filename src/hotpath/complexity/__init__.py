"""Complexity estimator: per-scope asymptotic class from loop and recursion structure."""

from .estimator import ComplexityEstimate, estimate_all, estimate_scope, memo_evidence, self_calls, testability
from .model import ComplexityClass, ComplexityResult, notation

__all__ = [
    "ComplexityClass",
    "ComplexityEstimate",
    "ComplexityResult",
    "estimate_all",
    "estimate_scope",
    "memo_evidence",
    "notation",
    "self_calls",
    "testability",
]
