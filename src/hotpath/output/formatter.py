"""Plain-text and JSON formatting for analysis reports."""

from __future__ import annotations

import json as _json
from datetime import datetime, timezone

# Envelope schema versioning (semver: major.minor.patch)
ENVELOPE_SCHEMA_VERSION = "1.0.0"
ENVELOPE_SCHEMA_NAME = "hotpath-envelope-v1"

SEVERITY_ICONS = {"Critical": "!!", "High": "! ", "Medium": "~ ", "Low": "  "}


def loc(path: str, line: int | None = None) -> str:
    if line is not None:
        return f"{path}:{line}"
    return path


def section(title: str, lines: list[str], budget: int = 0) -> str:
    out = [title]
    if budget and len(lines) > budget:
        out.extend(lines[:budget])
        out.append(f"  (+{len(lines) - budget} more)")
    else:
        out.extend(lines)
    return "\n".join(out)


def indent(text: str, level: int = 1) -> str:
    prefix = "  " * level
    return "\n".join(prefix + line for line in text.splitlines())


def format_table(headers: list[str], rows: list[list[str]], budget: int = 0) -> str:
    if not rows:
        return "(none)"
    widths = [len(h) for h in headers]
    num_cols = len(widths)
    for row in rows:
        for i, cell in enumerate(row):
            if i < num_cols:
                widths[i] = max(widths[i], len(str(cell)))
    lines = []
    lines.append("  ".join(h.ljust(widths[i]) for i, h in enumerate(headers)))
    lines.append("  ".join("-" * w for w in widths))
    display_rows = rows
    if budget and len(rows) > budget:
        display_rows = rows[:budget]
    for row in display_rows:
        lines.append("  ".join(str(cell).ljust(widths[i]) for i, cell in enumerate(row)).rstrip())
    if budget and len(rows) > budget:
        lines.append(f"(+{len(rows) - budget} more)")
    return "\n".join(lines)


def to_json(data) -> str:
    """Serialize data to a JSON string with deterministic key ordering.

    Uses ``sort_keys=True`` so that identical reports always produce
    byte-identical output.
    """
    return _json.dumps(data, indent=2, default=str, sort_keys=True, ensure_ascii=False)


def json_envelope(command: str, summary: dict | None = None, **payload) -> dict:
    """Wrap command output in a self-describing envelope.

    Non-deterministic metadata (``timestamp``, ``elapsed_ms``) goes into a
    ``_meta`` sub-dict so the content keys stay byte-identical across runs
    over the same input. Pass ``elapsed_ms`` as a payload key to record it.
    """
    elapsed_ms = payload.pop("elapsed_ms", None)
    ts = datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")

    out: dict = {
        "schema": ENVELOPE_SCHEMA_NAME,
        "schema_version": ENVELOPE_SCHEMA_VERSION,
        "command": command,
        "version": _get_version(),
        "summary": summary or {},
    }
    out.update(payload)
    out["_meta"] = {
        "timestamp": ts,
        "elapsed_ms": elapsed_ms,
    }
    return out


def _get_version() -> str:
    from hotpath import __version__

    return __version__


# ── Report text ──────────────────────────────────────────────────────


def verdict(report) -> str:
    """One-line summary of a report, e.g. ``3 findings (1 Critical, 2 High)``."""
    total = len(report.findings)
    if not total:
        text = "No performance findings"
    else:
        parts = [f"{n} {label}" for label, n in report.severity_counts().items() if n]
        text = f"{total} finding{'s' if total != 1 else ''} ({', '.join(parts)})"
    if report.partial:
        text += " [partial: time budget exceeded]"
    return text


def finding_lines(finding, path: str = "", show_fix: bool = True) -> list[str]:
    icon = SEVERITY_ICONS.get(finding.severity.label, "  ")
    where = loc(path, finding.span.start_line) if path else f"line {finding.span.lines}"
    lines = [f"{icon} [{finding.severity.label}] {finding.pattern_id}  {where}  ({finding.scope})"]
    lines.append(f"     {finding.message}")
    if finding.merged:
        lines.append(f"     also: {', '.join(finding.merged)}")
    if finding.complexity:
        lines.append(f"     complexity: {finding.complexity}")
    if finding.remediation:
        lines.append(f"     fix: {finding.remediation}")
    if show_fix and finding.suggestion is not None:
        lines.append("     suggested:")
        lines.append(indent(finding.suggestion.after, 4))
    return lines


def complexity_rows(report) -> list[list[str]]:
    rows = []
    for result in report.complexity:
        if result.is_constant:
            continue
        rows.append([result.scope_name, result.span.lines, result.notation, str(result.testability), result.reason])
    return rows


def format_report(report, path: str = "", show_fixes: bool = True, show_failures: bool = True) -> str:
    """Full text rendering: VERDICT line, findings grouped by scope, complexity table."""
    out = [f"VERDICT: {verdict(report)}"]
    if report.findings:
        out.append("")
        by_scope: dict[str, list] = {}
        for f in report.findings:
            by_scope.setdefault(f.scope, []).append(f)
        for scope_name, findings in by_scope.items():
            out.append(f"{scope_name}")
            for f in findings:
                out.extend(f"  {line}" for line in finding_lines(f, path, show_fixes))
            out.append("")

    rows = complexity_rows(report)
    if rows:
        out.append(section("Complexity:", [format_table(["scope", "lines", "class", "testability", "reason"], rows)]))
    if show_failures and report.failures:
        out.append("")
        out.append(
            section(
                f"Rule failures ({len(report.failures)}):",
                [f"  {f['rule_id']} at node {f['node_id']}: {f['error']}" for f in report.failures],
                budget=10,
            )
        )
    return "\n".join(out).rstrip()
