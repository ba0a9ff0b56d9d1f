"""Complexity classes and per-scope results."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from hotpath.isg import Span

_SUPERSCRIPTS = str.maketrans("0123456789", "⁰¹²³⁴⁵⁶⁷⁸⁹")


class ComplexityClass(str, Enum):
    CONSTANT = "O(1)"
    LOGARITHMIC = "O(log n)"
    LINEAR = "O(n)"
    LINEARITHMIC = "O(n log n)"
    QUADRATIC = "O(n^2)"
    POLYNOMIAL = "O(n^k)"
    EXPONENTIAL = "O(2^n)"
    INDETERMINATE = "indeterminate"

    @property
    def rank(self) -> int:
        return _RANKS[self]

    @classmethod
    def from_degree(cls, degree: int, log_factor: bool = False) -> "ComplexityClass":
        """Map a polynomial degree (plus an optional log factor) to a class."""
        if degree <= 0:
            return cls.LOGARITHMIC if log_factor else cls.CONSTANT
        if degree == 1:
            return cls.LINEARITHMIC if log_factor else cls.LINEAR
        if degree == 2:
            return cls.QUADRATIC
        return cls.POLYNOMIAL


_RANKS = {
    ComplexityClass.CONSTANT: 0,
    ComplexityClass.LOGARITHMIC: 1,
    ComplexityClass.LINEAR: 2,
    ComplexityClass.LINEARITHMIC: 3,
    ComplexityClass.QUADRATIC: 4,
    ComplexityClass.POLYNOMIAL: 5,
    ComplexityClass.EXPONENTIAL: 6,
    ComplexityClass.INDETERMINATE: 7,
}


def notation(complexity: ComplexityClass, degree: int = 0) -> str:
    """Human notation: ``O(n²)``, ``O(n³)``, ``O(2ⁿ)``..."""
    if complexity is ComplexityClass.QUADRATIC:
        return "O(n²)"
    if complexity is ComplexityClass.POLYNOMIAL:
        return f"O(n{str(max(degree, 3)).translate(_SUPERSCRIPTS)})"
    if complexity is ComplexityClass.EXPONENTIAL:
        return "O(2ⁿ)"
    return complexity.value


@dataclass(frozen=True)
class ComplexityResult:
    """Estimated complexity of one scope."""

    scope_id: int
    scope_name: str
    span: Span
    complexity: ComplexityClass
    degree: int = 0
    log_factor: bool = False
    contributors: tuple[int, ...] = ()
    reason: str = ""
    recursion: str = "none"
    testability: int = 10

    @property
    def notation(self) -> str:
        return notation(self.complexity, self.degree)

    @property
    def annotation(self) -> str:
        """One-line explanation, e.g. ``O(n²) — nested loop at lines 4-9``."""
        if not self.reason:
            return self.notation
        return f"{self.notation} — {self.reason}"

    @property
    def is_constant(self) -> bool:
        return self.complexity is ComplexityClass.CONSTANT

    def to_dict(self) -> dict:
        return {
            "scope": self.scope_name,
            "scope_id": self.scope_id,
            "span": self.span.to_dict(),
            "complexity": self.complexity.value,
            "notation": self.notation,
            "degree": self.degree,
            "log_factor": self.log_factor,
            "contributors": list(self.contributors),
            "reason": self.reason,
            "recursion": self.recursion,
            "testability": self.testability,
        }
