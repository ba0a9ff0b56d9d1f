"""Shared test fixtures and helpers for hotpath tests.

Provides:
- Parsing helpers: parse_isg(), analyze_snippet(), write_source()
- FakeNode: a minimal duck-typed syntax node for malformed-tree tests
- CliRunner fixtures: cli_runner, invoke_cli()
- JSON validation helpers: parse_json_output(), assert_json_envelope()
"""

from __future__ import annotations

import json
import os
import textwrap

import pytest
from click.testing import CliRunner

# ===========================================================================
# Parsing helpers
# ===========================================================================


def dedent(source: str) -> str:
    """Dedent a triple-quoted snippet so its first code line is line 1."""
    return textwrap.dedent(source).lstrip("\n")


def parse_isg(source: str, language: str = "python"):
    """Parse a snippet with tree-sitter and adapt it to an ISG."""
    from hotpath.languages import adapt, parse_source

    text = dedent(source)
    tree = parse_source(text, language)
    return adapt(language, tree, text)


def analyze_snippet(source: str, language: str = "python", **kwargs):
    """Run the full pipeline over a snippet and return the report."""
    from hotpath.pipeline import analyze_source

    return analyze_source(dedent(source), language, **kwargs)


def rule_ids(report_or_findings) -> list[str]:
    findings = getattr(report_or_findings, "findings", report_or_findings)
    return [f.pattern_id for f in findings]


def write_source(tmp_path, name: str, source: str):
    """Write a dedented snippet under tmp_path and return its path."""
    path = tmp_path / name
    path.write_text(dedent(source), encoding="utf-8")
    return path


# ===========================================================================
# Fake syntax nodes
# ===========================================================================


class FakeNode:
    """Duck-typed stand-in for a tree-sitter node.

    Positions are derived from byte offsets into a single-line source, which
    is all the malformed-tree tests need.
    """

    def __init__(self, type, start=0, end=0, children=(), fields=None, named=True):
        self.type = type
        self.start_byte = start
        self.end_byte = end
        self.start_point = (0, start)
        self.end_point = (0, end)
        self.children = list(children)
        self.is_named = named
        self.is_error = type == "ERROR"
        self.is_missing = False
        self.parent = None
        self._fields = dict(fields or {})
        for child in self.children:
            child.parent = self

    def child_by_field_name(self, name):
        return self._fields.get(name)

    def children_by_field_name(self, name):
        node = self._fields.get(name)
        return [node] if node is not None else []


# ===========================================================================
# CliRunner helpers
# ===========================================================================


@pytest.fixture
def cli_runner():
    """Provide a Click CliRunner for in-process CLI testing."""
    return CliRunner()


def invoke_cli(runner, args, cwd=None, json_mode=False, sarif_mode=False):
    """Invoke the hotpath CLI via CliRunner.

    Args:
        runner: CliRunner instance
        args: list of CLI arguments (e.g. ["analyze", "app.py"])
        cwd: directory to run in
        json_mode: if True, prepend --json flag
        sarif_mode: if True, prepend --sarif flag
    Returns:
        click.testing.Result
    """
    from hotpath.cli import cli

    full_args = []
    if json_mode:
        full_args.append("--json")
    if sarif_mode:
        full_args.append("--sarif")
    full_args.extend(str(a) for a in args)

    old_cwd = os.getcwd()
    try:
        if cwd:
            os.chdir(str(cwd))
        result = runner.invoke(cli, full_args)
    finally:
        os.chdir(old_cwd)
    return result


# ===========================================================================
# JSON validation helpers
# ===========================================================================


def parse_json_output(result, command=None):
    """Parse JSON from a CliRunner result.

    Raises:
        AssertionError with context on a non-zero exit or a parse failure
    """
    assert result.exit_code == 0, f"Command {command or '?'} failed (exit {result.exit_code}):\n{result.output}"
    try:
        return json.loads(result.output)
    except json.JSONDecodeError as e:
        pytest.fail(f"Invalid JSON from {command or '?'}: {e}\nOutput was:\n{result.output[:500]}")


def assert_json_envelope(data, command=None):
    """Validate that a parsed JSON dict follows the hotpath envelope contract."""
    assert isinstance(data, dict), f"Expected dict, got {type(data)}"
    for key in ("schema", "schema_version", "command", "version", "summary", "_meta"):
        assert key in data, f"Missing {key!r} key in envelope"
    assert "timestamp" in data["_meta"], "Missing 'timestamp' in _meta"
    if command:
        assert data["command"] == command, f"Expected command={command}, got {data['command']}"
    assert isinstance(data["summary"], dict), f"summary should be dict, got {type(data['summary'])}"
