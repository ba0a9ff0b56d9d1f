"""Immutable context shared by every rule predicate of one request."""

from __future__ import annotations

from dataclasses import dataclass, field

from hotpath.callgraph import CallGraph
from hotpath.config import EngineConfig
from hotpath.hints import AnalysisHints
from hotpath.isg import ISG, ISGNode, Scope


@dataclass(frozen=True)
class RuleContext:
    isg: ISG
    language: str
    hints: AnalysisHints = field(default_factory=AnalysisHints)
    config: EngineConfig = field(default_factory=EngineConfig)
    call_graph: CallGraph | None = None

    def __post_init__(self):
        if self.call_graph is None:
            object.__setattr__(self, "call_graph", CallGraph(self.isg))

    def text(self, node: ISGNode) -> str:
        return self.isg.text(node)

    def scope_of(self, node: ISGNode) -> Scope:
        return self.isg.scope_of(node)

    def loops(self, node: ISGNode) -> list[ISGNode]:
        """Enclosing loops of ``node`` within its function, nearest first."""
        return self.isg.enclosing_loops(node)

    def hot_reasons(self, scope: Scope) -> tuple[str, ...]:
        """Why a scope counts as hot; empty when it does not."""
        if scope.is_module:
            return ()
        reasons = []
        if self.hints.is_hot(scope.name):
            reasons.append("caller hint")
        if self.call_graph.fan_in(scope.id) >= self.config.hot_fan_in:
            reasons.append(f"{self.call_graph.fan_in(scope.id)} call sites")
        if self.call_graph.called_in_loop(scope.id):
            reasons.append("called inside a loop")
        return tuple(reasons)
