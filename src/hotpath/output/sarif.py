"""SARIF 2.1.0 output for code scanning integration.

Converts hotpath findings into Static Analysis Results Interchange Format
for GitHub code scanning, the VS Code SARIF viewer, and other SARIF-aware
tools.

Usage::

    from hotpath.output.sarif import findings_to_sarif, write_sarif

    sarif = findings_to_sarif(report.findings, "app/views.py")
    write_sarif(sarif, "hotpath.sarif")
"""

from __future__ import annotations

import hashlib as _hashlib
import json as _json
from pathlib import Path

_SARIF_VERSION = "2.1.0"
_SARIF_SCHEMA = "https://raw.githubusercontent.com/oasis-tcs/sarif-spec/main/sarif-2.1/schema/sarif-schema-2.1.0.json"
_TOOL_NAME = "hotpath"


def _get_version() -> str:
    from hotpath import __version__

    return __version__


# ── Severity mapping ─────────────────────────────────────────────────

_LEVEL_MAP = {
    "CRITICAL": "error",
    "HIGH": "error",
    "MEDIUM": "warning",
    "LOW": "note",
}


def _to_level(severity: str) -> str:
    """Map a finding severity label to a SARIF level."""
    return _LEVEL_MAP.get(severity.upper(), "note")


# ── Location helpers ─────────────────────────────────────────────────


def _physical_location(file_path: str, span=None) -> dict:
    """Build a SARIF physicalLocation object.

    Columns are 1-based in SARIF; spans carry 0-based columns.
    """
    uri = file_path.replace("\\", "/")
    out: dict = {"artifactLocation": {"uri": uri}}
    if span is not None:
        out["region"] = {
            "startLine": span.start_line,
            "startColumn": span.start_col + 1,
            "endLine": span.end_line,
            "endColumn": span.end_col + 1,
        }
    return out


def _location(file_path: str, span=None) -> dict:
    return {"physicalLocation": _physical_location(file_path, span)}


# ── Core builder ─────────────────────────────────────────────────────


def to_sarif(tool_name: str, version: str, rules: list[dict], results: list[dict]) -> dict:
    """Build a complete SARIF 2.1.0 document from rule and result dicts."""
    driver: dict = {
        "name": tool_name,
        "version": version,
        "rules": [_build_rule(r) for r in rules],
    }
    return {
        "$schema": _SARIF_SCHEMA,
        "version": _SARIF_VERSION,
        "runs": [
            {
                "tool": {"driver": driver},
                "results": results,
            }
        ],
    }


def _build_rule(rule: dict) -> dict:
    """Normalise a rule dict into the SARIF rule schema."""
    out: dict = {
        "id": rule["id"],
        "shortDescription": {"text": rule["shortDescription"]},
    }
    if "fullDescription" in rule:
        out["fullDescription"] = {"text": rule["fullDescription"]}
    if "help" in rule:
        out["help"] = {"text": rule["help"]}
    if "defaultLevel" in rule:
        out["defaultConfiguration"] = {"level": rule["defaultLevel"]}
    if "properties" in rule:
        out["properties"] = rule["properties"]
    return out


def write_sarif(data: dict, output_path: str | Path | None = None) -> str:
    """Serialise *data* to JSON and optionally write it to *output_path*."""
    text = _json.dumps(data, indent=2, default=str, sort_keys=True)
    if output_path is not None:
        Path(output_path).write_text(text, encoding="utf-8")
    return text


# ── Findings ─────────────────────────────────────────────────────────


def findings_to_sarif(findings: list, file_path: str) -> dict:
    """Convert hotpath findings for one file to SARIF."""
    seen_rules: dict[str, dict] = {}
    results: list[dict] = []

    for f in findings:
        level = _to_level(f.severity.label)
        if f.pattern_id not in seen_rules:
            seen_rules[f.pattern_id] = {
                "id": f.pattern_id,
                "shortDescription": f.title,
                "help": f.remediation or f.title,
                "defaultLevel": level,
                "properties": {"category": f.category, "tags": ["performance", f.category]},
            }

        result = {
            "ruleId": f.pattern_id,
            "level": level,
            "message": {"text": _message(f)},
            "locations": [_location(file_path, f.span)],
            "properties": {
                "severity": f.severity.label,
                "scope": f.scope,
                "complexity": f.complexity,
                "merged": list(f.merged),
            },
            "partialFingerprints": {
                "primaryLocationLineHash": _primary_location_line_hash(f, file_path),
                "hotpathFindingFingerprint/v1": _finding_fingerprint(f, file_path),
            },
        }
        if f.suggestion is not None:
            result["fixes"] = [
                {
                    "description": {"text": f.remediation or "Suggested rewrite"},
                    "artifactChanges": [
                        {
                            "artifactLocation": {"uri": file_path.replace("\\", "/")},
                            "replacements": [
                                {
                                    "deletedRegion": {"startLine": f.span.start_line, "endLine": f.span.end_line},
                                    "insertedContent": {"text": f.suggestion.after},
                                }
                            ],
                        }
                    ],
                }
            ]
        results.append(result)

    return to_sarif(_TOOL_NAME, _get_version(), list(seen_rules.values()), results)


def _message(finding) -> str:
    msg = finding.message
    if finding.complexity:
        msg += f" [{finding.complexity}]"
    return msg


def _finding_fingerprint(finding, file_path: str) -> str:
    """Stable across line shifts: rule, scope and message only."""
    payload = "|".join([finding.pattern_id, finding.scope, finding.message, file_path])
    return _hashlib.sha1(payload.encode("utf-8")).hexdigest()


def _primary_location_line_hash(finding, file_path: str) -> str:
    payload = "|".join([finding.pattern_id, file_path, str(finding.span.start_line)])
    return _hashlib.sha1(payload.encode("utf-8")).hexdigest()
