"""Suggestion synthesizer: before/after fix snippets for findings."""

from .synthesizer import synthesize, synthesize_all
from .templates import SnippetTemplate, get_template, languages_for, template_keys

__all__ = [
    "SnippetTemplate",
    "get_template",
    "languages_for",
    "synthesize",
    "synthesize_all",
    "template_keys",
]
