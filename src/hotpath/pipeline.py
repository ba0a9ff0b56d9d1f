"""Analysis pipeline: tree -> ISG -> (rules || complexity) -> findings -> suggestions.

One call analyzes one file. Rule evaluation and complexity estimation read
the same immutable ISG, so they run side by side on a small thread pool;
the aggregator waits for both.
"""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

from hotpath.budget import Budget
from hotpath.callgraph import CallGraph
from hotpath.complexity import ComplexityEstimate, ComplexityResult, estimate_all
from hotpath.config import EngineConfig
from hotpath.exit_codes import AnalysisTimeout
from hotpath.findings import Finding, aggregate
from hotpath.hints import AnalysisHints
from hotpath.languages import detect_language, get_adapter, normalize_language, parse_source
from hotpath.metrics import source_metrics
from hotpath.rules import RuleEvaluation, RuleRegistry, default_registry, evaluate_rules
from hotpath.severity import Severity
from hotpath.suggest import synthesize_all


@dataclass
class AnalysisReport:
    language: str
    findings: list[Finding] = field(default_factory=list)
    complexity: list[ComplexityResult] = field(default_factory=list)
    partial: bool = False
    failures: list[dict] = field(default_factory=list)
    metrics: dict = field(default_factory=dict)
    rules_executed: int = 0
    elapsed: float = 0.0

    def severity_counts(self) -> dict[str, int]:
        counts = {s.label: 0 for s in sorted(Severity, reverse=True)}
        for f in self.findings:
            counts[f.severity.label] += 1
        return counts

    @property
    def highest(self) -> Severity | None:
        return max((f.severity for f in self.findings), default=None)

    def to_dict(self) -> dict:
        """Deterministic report body; timing lives in the envelope's ``_meta``."""
        return {
            "language": self.language,
            "partial": self.partial,
            "summary": {
                "findings": len(self.findings),
                "by_severity": self.severity_counts(),
                "highest": self.highest.label if self.highest else None,
                "rules_executed": self.rules_executed,
            },
            "findings": [f.to_dict() for f in self.findings],
            "complexity": [r.to_dict() for r in self.complexity],
            "failures": list(self.failures),
            "metrics": dict(self.metrics),
        }


def _run_stages(isg, language, *, registry, hints, config, budget, call_graph, parallel):
    rule_kwargs = dict(registry=registry, hints=hints, config=config, budget=budget, call_graph=call_graph)
    if not parallel:
        evaluation = evaluate_rules(isg, language, **rule_kwargs)
        estimate = estimate_all(isg, budget, call_graph=call_graph)
        return evaluation, estimate
    with ThreadPoolExecutor(max_workers=2) as executor:
        rules_future = executor.submit(evaluate_rules, isg, language, **rule_kwargs)
        complexity_future = executor.submit(estimate_all, isg, budget, call_graph=call_graph)
        return rules_future.result(), complexity_future.result()


def analyze(
    language: str,
    tree,
    source: bytes | str,
    *,
    hints: AnalysisHints | None = None,
    config: EngineConfig | None = None,
    budget_s: float | None = None,
    registry: RuleRegistry | None = None,
    parallel: bool | None = None,
    raise_on_timeout: bool = False,
    suggestions: bool = True,
) -> AnalysisReport:
    """Analyze one parsed file.

    Raises:
        UnsupportedLanguage: No adapter is registered for ``language``.
        MalformedTree: The tree violates the grammar's structure.
        AnalysisTimeout: The budget ran out and ``raise_on_timeout`` is set;
            the exception carries the partial report.
    """
    started = time.monotonic()
    adapter = get_adapter(language)
    tag = normalize_language(language)
    config = config or EngineConfig()
    hints = hints or AnalysisHints()
    registry = registry or default_registry()
    budget = Budget(config.budget_s if budget_s is None else budget_s)
    parallel = config.parallel if parallel is None else parallel

    isg = adapter.adapt(tree, source)
    call_graph = CallGraph(isg)
    evaluation: RuleEvaluation
    estimate: ComplexityEstimate
    evaluation, estimate = _run_stages(
        isg,
        tag,
        registry=registry,
        hints=hints,
        config=config,
        budget=budget,
        call_graph=call_graph,
        parallel=parallel,
    )

    findings = aggregate(isg, evaluation.matches, estimate, hints, config, registry=registry)
    if suggestions:
        findings = synthesize_all(findings, tag)

    metrics = source_metrics(source, tag)
    metrics["isg_nodes"] = len(isg)
    metrics["scopes"] = len(isg.scopes())
    report = AnalysisReport(
        language=tag,
        findings=findings,
        complexity=list(estimate.results),
        partial=evaluation.partial or estimate.partial,
        failures=list(evaluation.failures),
        metrics=metrics,
        rules_executed=evaluation.rules_executed,
        elapsed=time.monotonic() - started,
    )
    if report.partial and raise_on_timeout:
        stage = "rules" if evaluation.partial else "complexity"
        raise AnalysisTimeout(stage, budget.elapsed, partial_report=report)
    return report


def analyze_source(
    source: bytes | str,
    language: str | None = None,
    path: str | None = None,
    **kwargs,
) -> AnalysisReport:
    """Parse ``source`` with tree-sitter, then :func:`analyze` it."""
    if language is None and path is not None:
        language = detect_language(path)
    tree = parse_source(source, language, path)
    return analyze(language, tree, source, **kwargs)
