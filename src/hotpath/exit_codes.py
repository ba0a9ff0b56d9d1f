"""Standardized exit codes and error taxonomy for hotpath.

Exit code scheme (POSIX + SAST tool conventions):

    0  SUCCESS          -- analysis completed
    1  GENERAL_ERROR    -- unexpected failure, crash, unhandled exception
    2  USAGE_ERROR      -- invalid arguments, bad flags, unknown command (Click default)
    3  UNSUPPORTED      -- no syntax adapter registered for the language tag
    4  MALFORMED_TREE   -- the syntax tree violates structural expectations
    5  GATE_FAILURE     -- a finding at or above the --fail-on severity was reported
    6  PARTIAL          -- the time budget expired; results are partial

CI tools can differentiate between "analysis found issues" (5),
"input could not be analyzed" (3/4) and "tool crashed" (1).
"""

from __future__ import annotations

import sys

import click

# ---------------------------------------------------------------------------
# Exit code constants
# ---------------------------------------------------------------------------

EXIT_SUCCESS: int = 0
EXIT_ERROR: int = 1
EXIT_USAGE: int = 2
EXIT_UNSUPPORTED: int = 3
EXIT_MALFORMED: int = 4
EXIT_GATE_FAILURE: int = 5
EXIT_PARTIAL: int = 6

DESCRIPTIONS: dict[int, str] = {
    EXIT_SUCCESS: "success",
    EXIT_ERROR: "unexpected error",
    EXIT_USAGE: "invalid usage (bad arguments or flags)",
    EXIT_UNSUPPORTED: "unsupported language",
    EXIT_MALFORMED: "malformed syntax tree",
    EXIT_GATE_FAILURE: "severity gate failed",
    EXIT_PARTIAL: "partial results (time budget exceeded)",
}

# ---------------------------------------------------------------------------
# Custom exceptions (caught by the click error handler)
# ---------------------------------------------------------------------------


class HotpathError(click.ClickException):
    """Base class for hotpath errors with exit codes."""

    def __init__(self, message: str, exit_code: int = EXIT_ERROR):
        super().__init__(message)
        self.exit_code = exit_code

    def format_message(self) -> str:
        return self.message


class UnsupportedLanguage(HotpathError):
    """Raised when no syntax adapter is registered for a language tag."""

    def __init__(self, language: str):
        self.language = language
        super().__init__(f"Unsupported language: {language!r}", EXIT_UNSUPPORTED)


class MalformedTree(HotpathError):
    """Raised when a syntax tree cannot be mapped onto the ISG."""

    def __init__(self, reason: str, node_type: str | None = None, line: int | None = None):
        self.reason = reason
        self.node_type = node_type
        self.line = line
        where = ""
        if node_type:
            where = f" ({node_type}"
            if line is not None:
                where += f" at line {line}"
            where += ")"
        super().__init__(f"Malformed syntax tree: {reason}{where}", EXIT_MALFORMED)


class AnalysisTimeout(HotpathError):
    """Raised when the caller-imposed time budget is exceeded.

    ``partial_report`` is filled in by the pipeline with the findings that
    were finalized before the deadline.
    """

    def __init__(self, stage: str, elapsed: float, partial_report=None):
        self.stage = stage
        self.elapsed = elapsed
        self.partial_report = partial_report
        super().__init__(
            f"Analysis budget exceeded during {stage} after {elapsed:.3f}s",
            EXIT_PARTIAL,
        )


class ConfigError(HotpathError):
    """Raised for unreadable or invalid configuration."""

    def __init__(self, message: str):
        super().__init__(f"Invalid configuration: {message}", EXIT_USAGE)


class GateFailureError(HotpathError):
    """Raised when findings at or above the gate severity were reported."""

    def __init__(self, message: str = "Severity gate failed."):
        super().__init__(message, EXIT_GATE_FAILURE)


def exit_with(code: int, message: str | None = None) -> None:
    """Print an optional message to stderr and exit with the given code."""
    if message:
        click.echo(f"Error: {message}", err=True)
    sys.exit(code)
