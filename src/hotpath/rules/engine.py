"""Run the rule catalog over an ISG."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType

from hotpath.budget import Budget
from hotpath.callgraph import CallGraph
from hotpath.config import EngineConfig
from hotpath.exit_codes import AnalysisTimeout
from hotpath.hints import AnalysisHints
from hotpath.isg import ISG, Capture, ISGNode, Match, NodeKind
from hotpath.severity import resolve_severity

from .context import RuleContext
from .registry import Hit, Rule, RuleRegistry, default_registry


@dataclass
class RuleEvaluation:
    matches: list[Match] = field(default_factory=list)
    failures: list[dict] = field(default_factory=list)
    rules_executed: int = 0
    partial: bool = False


def _capture(isg: ISG, hit: Hit, value) -> Capture:
    if isinstance(value, ISGNode):
        return Capture(isg.text(value), value.span)
    if isinstance(value, tuple):
        text, node = value
        return Capture(str(text), node.span)
    return Capture(str(value), hit.node.span)


def _hits(result) -> list[Hit]:
    if result is None:
        return []
    if isinstance(result, Hit):
        return [result]
    return [h for h in result if h is not None]


def _to_match(isg: ISG, rule: Rule, hit: Hit) -> Match:
    span_node = hit.span_node or hit.node
    captures = {name: _capture(isg, hit, value) for name, value in hit.captures.items()}
    return Match(
        rule_id=rule.id,
        category=rule.category,
        node_id=span_node.id,
        scope_id=isg.scope_of(span_node).id,
        span=span_node.span,
        captures=MappingProxyType(captures),
        modifiers=tuple(sorted(set(hit.modifiers))),
        severity=resolve_severity(rule.severity, hit.modifiers),
    )


def evaluate_rules(
    isg: ISG,
    language: str,
    *,
    registry: RuleRegistry | None = None,
    hints: AnalysisHints | None = None,
    config: EngineConfig | None = None,
    budget: Budget | None = None,
    call_graph: CallGraph | None = None,
) -> RuleEvaluation:
    """Evaluate every applicable rule against every node of its target kinds.

    A predicate that raises loses its result for that node only; the error
    is recorded in ``failures`` and evaluation continues. When the budget
    runs out, matches of the rule in progress are dropped and the result is
    marked partial.
    """
    registry = registry or default_registry()
    config = config or EngineConfig()
    ctx = RuleContext(
        isg=isg,
        language=language,
        hints=hints or AnalysisHints(),
        config=config,
        call_graph=call_graph,
    )
    budget = budget or Budget()
    result = RuleEvaluation()

    by_kind: dict[NodeKind, list[ISGNode]] = {}
    for node in isg.walk():
        by_kind.setdefault(node.kind, []).append(node)

    rules = registry.rules_for(language, enabled=config.enabled_rules, disabled=config.disabled_rules)
    for rule in rules:
        pending: list[Match] = []
        try:
            budget.check("rules")
            for kind in sorted(rule.target_kinds, key=lambda k: k.value):
                for node in by_kind.get(kind, ()):
                    budget.check("rules")
                    try:
                        hits = _hits(rule.predicate(node, ctx))
                    except Exception as exc:
                        result.failures.append({"rule_id": rule.id, "node_id": node.id, "error": f"{type(exc).__name__}: {exc}"})
                        continue
                    for hit in hits:
                        match = _to_match(isg, rule, hit)
                        if not isg.in_bounds(match.span):
                            result.failures.append(
                                {"rule_id": rule.id, "node_id": node.id, "error": "match span outside the syntax tree"}
                            )
                            continue
                        pending.append(match)
        except AnalysisTimeout:
            result.partial = True
            break
        result.matches.extend(pending)
        result.rules_executed += 1

    result.matches.sort(key=lambda m: (m.span, m.rule_id, m.node_id))
    return result
