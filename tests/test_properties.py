"""Property-based tests (hypothesis) for severity, ranking and complexity."""

from __future__ import annotations

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from hotpath.complexity import ComplexityClass
from hotpath.findings import Finding, sort_key
from hotpath.isg import Span
from hotpath.pipeline import analyze_source
from hotpath.severity import MODIFIER_WEIGHTS, Severity, resolve_severity

pytestmark = pytest.mark.slow

_PARSE_SETTINGS = settings(max_examples=25, deadline=None)

severities = st.sampled_from(list(Severity))
modifiers = st.lists(st.sampled_from(sorted(MODIFIER_WEIGHTS) + ["unknown"]), max_size=6)


def _program(depths: list[int], concat: bool) -> str:
    """A function with one loop nest per entry of ``depths``, side by side."""
    lines = ["def f(p0, p1, p2, p3):", '    out = ""']
    for block, depth in enumerate(depths):
        indent = 4
        for level in range(depth):
            lines.append(" " * indent + f"for v{block}_{level} in p{level}:")
            indent += 4
        var = f"v{block}_{depth - 1}" if depth else "p0"
        stmt = f"out += str({var})" if concat else f"print({var})"
        lines.append(" " * indent + stmt)
    lines.append("    return out")
    return "\n".join(lines) + "\n"


def _scope_result(report, name="f"):
    return next(r for r in report.complexity if r.scope_name == name)


class TestSeverityProperties:
    @given(default=severities, mods=modifiers)
    def test_resolved_severity_is_clamped(self, default, mods):
        resolved = resolve_severity(default, mods)
        assert Severity.LOW <= resolved <= Severity.CRITICAL
        raw = int(default) + sum(MODIFIER_WEIGHTS.get(m, 0) for m in mods)
        assert int(resolved) == max(1, min(4, raw))

    @given(default=severities)
    def test_no_modifiers_keeps_the_default(self, default):
        assert resolve_severity(default) is default


finding_inputs = st.lists(
    st.tuples(severities, st.integers(min_value=1, max_value=200), st.integers(min_value=0, max_value=40)),
    min_size=1,
    max_size=12,
)


class TestRankingProperties:
    @given(items=finding_inputs)
    def test_sort_key_orders_by_severity_then_position(self, items):
        findings = [
            Finding(
                pattern_id=f"p{i}",
                title="t",
                category="c",
                severity=sev,
                span=Span(line, col, line, col + 1),
                scope="f",
                scope_id=1,
                message="m",
            )
            for i, (sev, line, col) in enumerate(items)
        ]
        ranked = sorted(findings, key=sort_key)
        for a, b in zip(ranked, ranked[1:]):
            assert a.severity >= b.severity
            if a.severity == b.severity:
                assert a.span.start <= b.span.start


class TestComplexityProperties:
    @_PARSE_SETTINGS
    @given(depth=st.integers(min_value=0, max_value=4))
    def test_nesting_depth_sets_the_degree(self, depth):
        report = analyze_source(_program([depth], concat=False), "python")
        result = _scope_result(report)
        assert result.complexity is ComplexityClass.from_degree(depth)
        if depth >= 1:
            assert result.degree == depth

    @_PARSE_SETTINGS
    @given(count=st.integers(min_value=1, max_value=5))
    def test_sequential_loops_stay_linear(self, count):
        report = analyze_source(_program([1] * count, concat=False), "python")
        assert _scope_result(report).complexity is ComplexityClass.LINEAR

    @_PARSE_SETTINGS
    @given(depths=st.lists(st.integers(min_value=1, max_value=3), min_size=1, max_size=4))
    def test_degree_is_the_deepest_nest(self, depths):
        report = analyze_source(_program(depths, concat=False), "python")
        assert _scope_result(report).complexity is ComplexityClass.from_degree(max(depths))


class TestReportProperties:
    @_PARSE_SETTINGS
    @given(depths=st.lists(st.integers(min_value=1, max_value=3), min_size=1, max_size=3), concat=st.booleans())
    def test_finding_spans_lie_inside_their_scope(self, depths, concat):
        report = analyze_source(_program(depths, concat), "python")
        spans = {r.scope_name: r.span for r in report.complexity}
        for finding in report.findings:
            assert spans[finding.scope].contains(finding.span)

    @_PARSE_SETTINGS
    @given(depths=st.lists(st.integers(min_value=1, max_value=3), min_size=1, max_size=3), concat=st.booleans())
    def test_analysis_is_deterministic(self, depths, concat):
        source = _program(depths, concat)
        assert analyze_source(source, "python").to_dict() == analyze_source(source, "python").to_dict()

    @_PARSE_SETTINGS
    @given(depths=st.lists(st.integers(min_value=1, max_value=3), min_size=1, max_size=3))
    def test_every_accumulation_is_reported(self, depths):
        report = analyze_source(_program(depths, concat=True), "python")
        concat = [f for f in report.findings if f.pattern_id == "string-concat-in-loop"]
        assert len(concat) == len(depths)
