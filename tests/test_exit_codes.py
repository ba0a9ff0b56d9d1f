"""Tests for exit code constants and the error taxonomy."""

from __future__ import annotations

import click
import pytest

from hotpath.exit_codes import (
    DESCRIPTIONS,
    EXIT_ERROR,
    EXIT_GATE_FAILURE,
    EXIT_MALFORMED,
    EXIT_PARTIAL,
    EXIT_SUCCESS,
    EXIT_UNSUPPORTED,
    EXIT_USAGE,
    AnalysisTimeout,
    ConfigError,
    GateFailureError,
    HotpathError,
    MalformedTree,
    UnsupportedLanguage,
    exit_with,
)


class TestConstants:
    def test_values(self):
        assert EXIT_SUCCESS == 0
        assert EXIT_ERROR == 1
        assert EXIT_USAGE == 2
        assert EXIT_UNSUPPORTED == 3
        assert EXIT_MALFORMED == 4
        assert EXIT_GATE_FAILURE == 5
        assert EXIT_PARTIAL == 6

    def test_every_code_is_described(self):
        assert sorted(DESCRIPTIONS) == list(range(7))


class TestExceptions:
    def test_all_are_click_exceptions(self):
        for exc in (
            UnsupportedLanguage("cobol"),
            MalformedTree("loop without a body"),
            AnalysisTimeout("rules", 0.5),
            ConfigError("bad"),
            GateFailureError(),
        ):
            assert isinstance(exc, HotpathError)
            assert isinstance(exc, click.ClickException)

    def test_unsupported_language(self):
        exc = UnsupportedLanguage("cobol")
        assert exc.exit_code == EXIT_UNSUPPORTED
        assert exc.language == "cobol"
        assert str(exc) == "Unsupported language: 'cobol'"

    def test_malformed_tree_context(self):
        exc = MalformedTree("loop without a body", "for_statement", 7)
        assert exc.exit_code == EXIT_MALFORMED
        assert exc.format_message() == "Malformed syntax tree: loop without a body (for_statement at line 7)"
        assert str(MalformedTree("empty tree")) == "Malformed syntax tree: empty tree"

    def test_timeout(self):
        exc = AnalysisTimeout("complexity", 1.23456)
        assert exc.exit_code == EXIT_PARTIAL
        assert exc.stage == "complexity"
        assert exc.partial_report is None
        assert "1.235s" in str(exc)

    def test_config_error(self):
        exc = ConfigError("unknown key(s): colour")
        assert exc.exit_code == EXIT_USAGE
        assert str(exc) == "Invalid configuration: unknown key(s): colour"

    def test_gate_failure(self):
        assert GateFailureError().exit_code == EXIT_GATE_FAILURE


class TestExitWith:
    def test_exits_with_code(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            exit_with(EXIT_PARTIAL, "time budget exceeded")
        assert exc_info.value.code == EXIT_PARTIAL
        assert "Error: time budget exceeded" in capsys.readouterr().err

    def test_silent_exit(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            exit_with(EXIT_SUCCESS)
        assert exc_info.value.code == 0
        assert capsys.readouterr().err == ""
