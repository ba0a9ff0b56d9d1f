"""List the built-in anti-pattern rules."""

from __future__ import annotations

import click

from hotpath.languages import get_supported_languages, normalize_language
from hotpath.output.formatter import format_table, json_envelope, to_json
from hotpath.rules import default_registry
from hotpath.suggest import languages_for


@click.command("rules")
@click.option("--language", "-l", default=None, help="Only rules that apply to this language")
@click.pass_context
def rules(ctx, language):
    """List the anti-pattern rules, their default severity and fix templates.

    Severities shown are defaults; context (hot scope, large input, loop
    nesting) can move a finding one step up or down.
    """
    json_mode = ctx.obj.get("json") if ctx.obj else False
    registry = default_registry()
    if language:
        tag = normalize_language(language)
        if tag not in get_supported_languages():
            from hotpath.exit_codes import UnsupportedLanguage

            raise UnsupportedLanguage(language)
        selected = registry.rules_for(tag)
    else:
        selected = registry.rules()

    if json_mode:
        items = []
        for r in selected:
            d = r.to_dict()
            d["template_languages"] = languages_for(r.template_key)
            items.append(d)
        click.echo(
            to_json(
                json_envelope(
                    "rules",
                    summary={"total": len(items), "language": normalize_language(language) if language else None},
                    rules=items,
                )
            )
        )
        return

    rows = [
        [r.id, r.severity.label, r.category, ", ".join(sorted(r.languages)) or "all", r.title]
        for r in selected
    ]
    click.echo(f"{len(rows)} rule{'s' if len(rows) != 1 else ''}")
    click.echo(format_table(["id", "severity", "category", "languages", "title"], rows))
