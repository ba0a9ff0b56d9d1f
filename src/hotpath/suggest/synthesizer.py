"""Fill fix templates from finding captures."""

from __future__ import annotations

from string import Template
from typing import Iterable

from hotpath.findings import Finding, Suggestion
from hotpath.isg import Match
from hotpath.languages import normalize_language

from .templates import get_template


def _fill(text: str, values: dict[str, str]) -> str:
    return Template(text).substitute(values)


def synthesize(finding: Finding, match: Match | None = None, language: str = "") -> Finding:
    """Attach a before/after snippet to *finding*.

    Placeholders are filled strictly from the captures of *match* (or, when
    no match is given, the captures the finding carries). A missing
    template or an empty capture leaves the finding without a snippet and
    records why in ``suggestion_error``; the finding itself is always kept.
    """
    if not finding.template_key:
        return finding
    language = normalize_language(language)
    template = get_template(finding.template_key, language)
    if template is None:
        return finding.with_suggestion(None, f"no {finding.template_key!r} template for {language or 'unknown language'}")

    captures = match.capture_texts() if match is not None else dict(finding.captures)
    values = {name: text for name, text in captures.items() if text and text.strip()}
    try:
        before = _fill(template.before, values)
        after = _fill(template.after, values)
    except KeyError as exc:
        return finding.with_suggestion(None, f"missing capture {exc.args[0]!r} for template {finding.template_key!r}")
    except ValueError as exc:
        return finding.with_suggestion(None, f"invalid template {finding.template_key!r}: {exc}")
    return finding.with_suggestion(Suggestion(before=before, after=after, language=language))


def synthesize_all(findings: Iterable[Finding], language: str) -> list[Finding]:
    return [synthesize(f, f.match, language) for f in findings]
