"""Caller-supplied analysis hints.

Hints are tie-breakers: they can raise the severity of a finding that the
structure already confirms, or let a weakly evidenced pattern through, but
they never create a finding on their own.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable


def _frozen(values: Iterable[str] | None) -> frozenset[str]:
    return frozenset(v.strip() for v in values or () if v and v.strip())


@dataclass(frozen=True)
class AnalysisHints:
    hot_scopes: frozenset[str] = field(default_factory=frozenset)
    large_collections: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self):
        object.__setattr__(self, "hot_scopes", _frozen(self.hot_scopes))
        object.__setattr__(self, "large_collections", _frozen(self.large_collections))

    def is_hot(self, scope_name: str) -> bool:
        return bool(scope_name) and scope_name in self.hot_scopes

    def is_large(self, *names: str) -> bool:
        """True when any name (or its last dotted part) is hinted as large."""
        for name in names:
            if not name:
                continue
            if name in self.large_collections or name.rsplit(".", 1)[-1] in self.large_collections:
                return True
        return False
