"""Tests for the suggestion synthesizer and its template table."""

from __future__ import annotations

import builtins
import keyword
import re
from dataclasses import replace
from types import MappingProxyType

from conftest import parse_isg

from hotpath.complexity import estimate_all
from hotpath.findings import aggregate
from hotpath.isg import Capture
from hotpath.rules import default_registry, evaluate_rules
from hotpath.suggest import get_template, languages_for, synthesize, synthesize_all, template_keys
from hotpath.suggest.templates import _TEMPLATES

CONCAT = """
def render(rows):
    out = ""
    for row in rows:
        out += str(row)
    return out
"""


def _findings(source, language="python"):
    isg = parse_isg(source, language)
    matches = evaluate_rules(isg, language).matches
    return aggregate(isg, matches, estimate_all(isg))


# Names a snippet may use besides its placeholders: keywords, builtins and
# the standard APIs the fixes call.
_VOCABULARY = {
    "python": set(keyword.kwlist)
    | set(dir(builtins))
    | {
        "append", "appendleft", "asyncio", "collections", "compile", "copy", "deque",
        "Event", "functools", "gather", "get", "iterrows", "join", "lru_cache",
        "maxlen", "maxsize", "re", "search", "setdefault", "threading", "timeout", "wait",
    },
    "javascript": {
        "Array", "Map", "Promise", "RegExp", "Set", "all", "await", "const", "for",
        "from", "function", "get", "has", "if", "join", "length", "map", "new", "of",
        "push", "reduce", "return", "set", "shift", "structuredClone", "test",
    },
    "java": {
        "ArrayDeque", "CountDownLatch", "HashMap", "HashSet", "MILLISECONDS", "Map",
        "Object", "Pattern", "Set", "StringBuilder", "TimeUnit", "add", "addFirst",
        "append", "await", "compile", "contains", "containsKey", "final", "for", "get",
        "if", "matcher", "new", "private", "put", "return", "toString", "var",
    },
    "go": {
        "After", "Builder", "MatchString", "MustCompile", "String", "WriteString", "_",
        "any", "append", "case", "for", "func", "if", "len", "map", "range", "regexp",
        "select", "strings", "time", "var",
    },
}

# Plain identifiers every capturing rule provides; only these may seed a new name.
_NAME_SEEDS = {"loop_var", "inner_var", "outer_var", "function"}


def _foreign_names(text, language):
    text = re.sub(r"\$\{\w+\}\w*|\$\w+", " ", text)
    if language == "python":
        text = re.sub(r"#.*", " ", text)
    else:
        text = re.sub(r"/\*.*?\*/", " ", text, flags=re.S)
        text = re.sub(r"//.*", " ", text)
    text = re.sub(r"\"[^\"\n]*\"|'[^'\n]*'", " ", text)
    return set(re.findall(r"[A-Za-z_]\w*", text)) - _VOCABULARY[language]


class TestTemplates:
    def test_every_catalog_template_exists(self):
        keys = template_keys()
        for rule in default_registry().rules():
            assert rule.template_key in keys, rule.id

    def test_typescript_uses_javascript_templates(self):
        assert get_template("join-parts", "typescript") == get_template("join-parts", "javascript")
        assert get_template("join-parts", "TypeScript") is not None

    def test_languages_for(self):
        assert languages_for("vectorize") == ["python"]
        assert languages_for("batch-fetch") == ["go", "java", "javascript", "python"]

    def test_unknown_pair(self):
        assert get_template("vectorize", "go") is None
        assert get_template("no-such-template", "python") is None
        assert get_template("join-parts", None) is None

    def test_snippets_only_name_what_they_capture(self):
        for (key, language), template in _TEMPLATES.items():
            for text in (template.before, template.after):
                assert _foreign_names(text, language) == set(), (key, language, text)

    def test_new_names_grow_from_captured_identifiers(self):
        for (key, language), template in _TEMPLATES.items():
            seeds = set(re.findall(r"\$\{(\w+)\}\w", template.after))
            assert seeds <= _NAME_SEEDS, (key, language, seeds)

    def test_filled_snippet_names(self):
        findings = _findings(
            """
            import re

            def grep(lines):
                for line in lines:
                    re.search("err", line)
            """
        )
        (finding,) = [f for f in findings if f.pattern_id == "regex-in-loop"]
        out = synthesize(finding, finding.match, "python")
        assert out.suggestion.after.startswith("line_pattern = re.compile(\"err\")\n")
        assert "line_pattern.search(...)" in out.suggestion.after


class TestSynthesize:
    def test_fills_from_match_captures(self):
        (finding,) = _findings(CONCAT)
        out = synthesize(finding, finding.match, "python")
        assert out.suggestion is not None
        assert out.suggestion.before == "for row in rows:\n    out += str(row)"
        assert out.suggestion.after == 'out += "".join(str(row) for row in rows)'
        assert out.suggestion.language == "python"
        assert out.suggestion_error == ""

    def test_finding_is_otherwise_unchanged(self):
        (finding,) = _findings(CONCAT)
        out = synthesize(finding, finding.match, "python")
        assert replace(out, suggestion=None) == finding

    def test_missing_capture_keeps_the_finding(self):
        (finding,) = _findings(CONCAT)
        match = finding.match
        partial = replace(match, captures=MappingProxyType({"target": match.captures["target"]}))
        out = synthesize(finding, partial, "python")
        assert out.suggestion is None
        assert out.suggestion_error.startswith("missing capture")
        assert out.pattern_id == finding.pattern_id

    def test_empty_capture_counts_as_missing(self):
        (finding,) = _findings(CONCAT)
        captures = dict(finding.match.captures)
        captures["piece"] = Capture("   ", captures["piece"].span)
        out = synthesize(finding, replace(finding.match, captures=MappingProxyType(captures)), "python")
        assert out.suggestion is None
        assert out.suggestion_error == "missing capture 'piece' for template 'join-parts'"

    def test_no_template_for_language(self):
        (finding,) = _findings(
            """
            def score(df):
                for _, row in df.iterrows():
                    print(row)
            """
        )
        out = synthesize(finding, finding.match, "go")
        assert out.suggestion is None
        assert out.suggestion_error == "no 'vectorize' template for go"

    def test_findings_without_a_template_key_are_returned_as_is(self):
        findings = _findings(
            """
            def pairs(xs, ys):
                for x in xs:
                    for y in ys:
                        print(x, y)
            """
        )
        (quad,) = [f for f in findings if f.pattern_id == "quadratic-complexity"]
        assert quad.template_key == ""
        assert synthesize(quad, None, "python") is quad

    def test_exponential_recursion_suggests_memoization(self):
        (finding,) = _findings(
            """
            def fib(n):
                if n < 2:
                    return n
                return fib(n - 1) + fib(n - 2)
            """
        )
        out = synthesize(finding, None, "python")
        assert "lru_cache" in out.suggestion.after
        assert "def fib(" in out.suggestion.before

    def test_typescript_suggestion(self):
        (finding,) = _findings(
            """
            function render(rows: string[]): string {
              let out = "";
              for (const row of rows) {
                out += row;
              }
              return out;
            }
            """,
            language="typescript",
        )
        out = synthesize(finding, finding.match, "typescript")
        assert out.suggestion.language == "typescript"
        assert out.suggestion.after == 'out += Array.from(rows, (row) => row).join("");'

    def test_synthesize_all_uses_each_findings_match(self):
        findings = _findings(CONCAT)
        (out,) = synthesize_all(findings, "python")
        assert out.suggestion is not None
