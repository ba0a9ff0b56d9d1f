"""Finding aggregation and ranking.

Rule matches are grouped per (scope, category); a match whose span lies
inside another match of the same group collapses into one finding. Scope
complexity results become findings of their own when the class is costly,
and annotate every other finding in a non-constant scope.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Iterable, Mapping

from hotpath.complexity import ComplexityClass, ComplexityEstimate, ComplexityResult
from hotpath.config import EngineConfig
from hotpath.hints import AnalysisHints
from hotpath.isg import ISG, Match, Span
from hotpath.rules.helpers import fetched_origin, loop_iterable
from hotpath.rules.registry import RuleRegistry, default_registry
from hotpath.severity import Severity

__all__ = ["Finding", "Severity", "Suggestion", "aggregate", "sort_key"]


@dataclass(frozen=True)
class Suggestion:
    before: str
    after: str
    language: str

    def to_dict(self) -> dict:
        return {"before": self.before, "after": self.after, "language": self.language}


@dataclass(frozen=True)
class Finding:
    pattern_id: str
    title: str
    category: str
    severity: Severity
    span: Span
    scope: str
    scope_id: int
    message: str
    remediation: str = ""
    complexity: str | None = None
    suggestion: Suggestion | None = None
    suggestion_error: str = ""
    sources: tuple[str, ...] = ()
    merged: tuple[str, ...] = ()
    template_key: str = ""
    captures: Mapping[str, str] = field(default_factory=dict, compare=False)
    match: Match | None = field(default=None, compare=False, repr=False)

    def with_suggestion(self, suggestion: Suggestion | None, error: str = "") -> "Finding":
        return replace(self, suggestion=suggestion, suggestion_error=error)

    def to_dict(self) -> dict:
        out = {
            "pattern_id": self.pattern_id,
            "title": self.title,
            "category": self.category,
            "severity": self.severity.label,
            "span": self.span.to_dict(),
            "scope": self.scope,
            "message": self.message,
            "remediation": self.remediation,
            "complexity": self.complexity,
            "suggestion": self.suggestion.to_dict() if self.suggestion else None,
            "sources": list(self.sources),
            "merged": list(self.merged),
        }
        if self.suggestion_error:
            out["suggestion_error"] = self.suggestion_error
        return out


def sort_key(finding: Finding) -> tuple:
    s = finding.span
    return (-int(finding.severity), s.start_line, s.start_col, s.end_line, s.end_col, finding.pattern_id)


# ── Match collapsing ──────────────────────────────────────────────────


def _clusters(matches: list[Match]) -> list[list[Match]]:
    """Group matches whose spans nest; the first match of a cluster is outermost."""
    ordered = sorted(matches, key=lambda m: (m.span.start, tuple(-x for x in m.span.end), m.rule_id))
    clusters: list[list[Match]] = []
    for match in ordered:
        for cluster in clusters:
            if cluster[0].span.contains(match.span):
                cluster.append(match)
                break
        else:
            clusters.append([match])
    return clusters


def _finding_from_cluster(isg: ISG, cluster: list[Match], registry: RuleRegistry) -> Finding:
    outer = cluster[0]
    primary = min(cluster, key=lambda m: (-int(m.severity), m is not outer, m.rule_id))
    rule = registry.get(primary.rule_id)
    captures = primary.capture_texts()
    rule_ids = sorted({m.rule_id for m in cluster})
    return Finding(
        pattern_id=primary.rule_id,
        title=rule.title,
        category=primary.category,
        severity=primary.severity,
        span=outer.span,
        scope=isg.scope(primary.scope_id).name,
        scope_id=primary.scope_id,
        message=rule.render_message(captures),
        remediation=rule.remediation,
        sources=tuple(rule_ids),
        merged=tuple(r for r in rule_ids if r != primary.rule_id),
        template_key=rule.template_key,
        captures=MappingProxyType(captures),
        match=primary,
    )


# ── Complexity findings ───────────────────────────────────────────────

_COMPLEXITY_FINDINGS = {
    ComplexityClass.EXPONENTIAL: (
        "exponential-recursion",
        "Exponential-time recursion",
        "Memoize the function (cache results by argument) or rewrite it bottom-up.",
        "memoize",
    ),
    ComplexityClass.POLYNOMIAL: (
        "polynomial-complexity",
        "Deeply nested loops",
        "Index the inner collections (dicts/sets) or precompute aggregates to remove a nesting level.",
        "",
    ),
    ComplexityClass.QUADRATIC: (
        "quadratic-complexity",
        "Quadratic nested loops",
        "Replace the inner loop with a dict/set lookup built once, or sort and merge.",
        "",
    ),
    ComplexityClass.LINEARITHMIC: (
        "linearithmic-complexity",
        "O(n log n) work on a large input",
        "Check whether a single pass or a heap (top-k) avoids the log factor.",
        "",
    ),
}


def _loops_of(isg: ISG, result: ComplexityResult):
    return [isg.node(i) for i in result.contributors if isg.node(i).iterates]


def large_input_suspected(isg: ISG, result: ComplexityResult, hints: AnalysisHints) -> bool:
    """Caller hint on an iterated collection, or a loop over fetched data."""
    for loop in _loops_of(isg, result):
        text, root = loop_iterable(loop)
        if hints.is_large(root, text):
            return True
        origin = fetched_origin(isg, loop)
        if origin is not None and origin[0] == "strong":
            return True
    return False


def _complexity_severity(isg: ISG, result: ComplexityResult, hints: AnalysisHints) -> Severity | None:
    c = result.complexity
    if c is ComplexityClass.EXPONENTIAL:
        return Severity.CRITICAL
    if c is ComplexityClass.POLYNOMIAL:
        return Severity.HIGH
    if c is ComplexityClass.QUADRATIC:
        return Severity.HIGH if large_input_suspected(isg, result, hints) else Severity.MEDIUM
    if c is ComplexityClass.LINEARITHMIC and large_input_suspected(isg, result, hints):
        return Severity.HIGH
    return None


def _complexity_finding(isg: ISG, result: ComplexityResult, hints: AnalysisHints) -> Finding | None:
    severity = _complexity_severity(isg, result, hints)
    if severity is None:
        return None
    pattern_id, title, remediation, template = _COMPLEXITY_FINDINGS[result.complexity]
    loops = _loops_of(isg, result)
    if result.recursion != "none" or not loops:
        span = result.span
        captures = {"function": result.scope_name}
    else:
        span = loops[0].span
        captures = {"function": result.scope_name, "outer": loop_iterable(loops[0])[0]}
    return Finding(
        pattern_id=pattern_id,
        title=title,
        category="complexity",
        severity=severity,
        span=span,
        scope=result.scope_name,
        scope_id=result.scope_id,
        message=f"`{result.scope_name}` is {result.annotation}",
        remediation=remediation,
        complexity=result.annotation,
        sources=(f"complexity:{result.complexity.value}",),
        template_key=template,
        captures=MappingProxyType(captures),
    )


# ── Entry point ───────────────────────────────────────────────────────


def aggregate(
    isg: ISG,
    matches: Iterable[Match],
    complexity: ComplexityEstimate | Iterable[ComplexityResult] | None,
    hints: AnalysisHints | None = None,
    config: EngineConfig | None = None,
    *,
    registry: RuleRegistry | None = None,
) -> list[Finding]:
    """Merge matches and complexity results into ranked findings."""
    hints = hints or AnalysisHints()
    config = config or EngineConfig()
    registry = registry or default_registry()
    if isinstance(complexity, ComplexityEstimate):
        results = list(complexity.results)
    else:
        results = list(complexity or ())
    by_scope = {r.scope_id: r for r in results}

    groups: dict[tuple[int, str], list[Match]] = {}
    for match in matches:
        groups.setdefault((match.scope_id, match.category), []).append(match)

    findings: list[Finding] = []
    for key in sorted(groups):
        for cluster in _clusters(groups[key]):
            finding = _finding_from_cluster(isg, cluster, registry)
            result = by_scope.get(finding.scope_id)
            if result is not None and not result.is_constant:
                finding = replace(finding, complexity=result.annotation)
            findings.append(finding)

    for result in results:
        finding = _complexity_finding(isg, result, hints)
        if finding is not None:
            findings.append(finding)

    findings = [f for f in findings if f.severity >= config.min_severity]
    findings.sort(key=sort_key)
    if config.max_findings:
        findings = findings[: config.max_findings]
    return findings
