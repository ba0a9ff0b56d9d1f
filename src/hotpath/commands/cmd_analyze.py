"""Analyze one source file for performance anti-patterns and complexity."""

from __future__ import annotations

import logging
from pathlib import Path

import click

from hotpath.config import discover_config, load_config
from hotpath.exit_codes import EXIT_PARTIAL, GateFailureError, HotpathError, exit_with
from hotpath.hints import AnalysisHints
from hotpath.output.formatter import format_report, json_envelope, to_json, verdict
from hotpath.severity import Severity

log = logging.getLogger(__name__)

_SEVERITY_CHOICE = click.Choice([s.label for s in Severity], case_sensitive=False)


@click.command("analyze")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--language", "-l", default=None, help="Language tag (default: from the file extension)")
@click.option("--hot", "hot_scopes", multiple=True, help="Function known to run on a hot path (repeatable)")
@click.option("--large", "large_collections", multiple=True, help="Collection known to be large (repeatable)")
@click.option("--budget", "budget_s", type=float, default=None, help="Time budget in seconds")
@click.option("--min-severity", type=_SEVERITY_CHOICE, default=None, help="Hide findings below this severity")
@click.option("--fail-on", type=_SEVERITY_CHOICE, default=None, help="Exit 5 if a finding at or above this severity is reported")
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False), default=None,
              help="Config file (default: nearest .hotpath.yml)")
@click.option("--no-suggestions", is_flag=True, help="Skip before/after fix snippets")
@click.option("--verbose", "-v", is_flag=True, help="Show rule failures and debug logging")
@click.pass_context
def analyze(ctx, path, language, hot_scopes, large_collections, budget_s, min_severity, fail_on,
            config_path, no_suggestions, verbose):
    """Report performance anti-patterns and per-function complexity.

    Findings are ranked Critical first. Hints (--hot, --large) only
    raise the severity of patterns the code structure already shows.

    \b
    Examples:
        hotpath analyze app/views.py
        hotpath analyze job.js --large orders --fail-on high
        hotpath --sarif analyze Service.java > hotpath.sarif
    """
    json_mode = ctx.obj.get("json") if ctx.obj else False
    sarif_mode = ctx.obj.get("sarif") if ctx.obj else False
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    config = load_config(config_path) if config_path else discover_config(path)
    if min_severity:
        config = config.merged(min_severity=Severity.parse(min_severity))

    try:
        source = Path(path).read_bytes()
    except OSError as exc:
        raise HotpathError(f"cannot read {path}: {exc.strerror or exc}") from None

    from hotpath.pipeline import analyze_source

    log.debug("analyzing %s (%d bytes)", path, len(source))
    report = analyze_source(
        source,
        language,
        path,
        hints=AnalysisHints(frozenset(hot_scopes), frozenset(large_collections)),
        config=config,
        budget_s=budget_s,
        suggestions=not no_suggestions,
    )
    log.debug("%d rules executed, %d failures", report.rules_executed, len(report.failures))

    if sarif_mode:
        from hotpath.output.sarif import findings_to_sarif, write_sarif

        click.echo(write_sarif(findings_to_sarif(report.findings, path)))
    elif json_mode:
        body = report.to_dict()
        summary = body.pop("summary")
        summary["verdict"] = verdict(report)
        click.echo(
            to_json(
                json_envelope(
                    "analyze",
                    summary=summary,
                    path=path.replace("\\", "/"),
                    elapsed_ms=round(report.elapsed * 1000, 1),
                    **body,
                )
            )
        )
    else:
        click.echo(format_report(report, path=path, show_fixes=not no_suggestions, show_failures=verbose))

    if fail_on:
        gate = Severity.parse(fail_on)
        failing = [f for f in report.findings if f.severity >= gate]
        if failing:
            raise GateFailureError(f"{len(failing)} finding(s) at or above {gate.label}")
    if report.partial:
        exit_with(EXIT_PARTIAL, "time budget exceeded; results are partial")
