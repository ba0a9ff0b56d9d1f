"""Finding severities and the contextual modifiers that adjust them.

Severity is a pure function of a rule's default and the modifiers its
predicate observed. Callers cannot supply severities directly.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Iterable


class Severity(IntEnum):
    LOW = 1
    MEDIUM = 2
    HIGH = 3
    CRITICAL = 4

    @property
    def label(self) -> str:
        return self.name.capitalize()

    @classmethod
    def parse(cls, value: "str | Severity") -> "Severity":
        if isinstance(value, Severity):
            return value
        try:
            return cls[str(value).strip().upper()]
        except KeyError:
            valid = ", ".join(s.label for s in cls)
            raise ValueError(f"unknown severity {value!r} (expected one of: {valid})") from None


# Contextual severity modifiers, in severity steps.
MODIFIER_WEIGHTS: dict[str, int] = {
    "hot_scope": +1,
    "large_input": +1,
    "match_call": -1,
    "weak_origin": -1,
}


def resolve_severity(default: Severity, modifiers: Iterable[str] = ()) -> Severity:
    """Apply modifiers to a default severity, clamped to Low..Critical."""
    level = int(default) + sum(MODIFIER_WEIGHTS.get(m, 0) for m in modifiers)
    return Severity(max(Severity.LOW, min(Severity.CRITICAL, level)))
