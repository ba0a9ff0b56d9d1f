"""Language service: source text -> tree-sitter tree.

This is the invocation surface only. The engine itself never parses; it
receives trees produced here (or by any other tree-sitter host).
"""

from __future__ import annotations

import os

from hotpath.exit_codes import UnsupportedLanguage

from .registry import get_adapter, get_supported_languages, normalize_language

_EXTENSION_MAP: dict[str, str] = {
    ".py": "python",
    ".pyi": "python",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".tsx": "typescript",
    ".java": "java",
    ".go": "go",
}

# Files whose grammar differs from their language's default grammar.
_GRAMMAR_OVERRIDES = {".tsx": "tsx"}


def detect_language(path: str) -> str | None:
    """Determine the language for a file based on its extension."""
    _, ext = os.path.splitext(path)
    return _EXTENSION_MAP.get(ext.lower())


def grammar_for(language: str, path: str | None = None) -> str:
    """Tree-sitter grammar name for a language tag (and optional file path)."""
    if path:
        _, ext = os.path.splitext(path)
        override = _GRAMMAR_OVERRIDES.get(ext.lower())
        if override:
            return override
    if normalize_language(language) == "typescript" and language.strip().lower() == "tsx":
        return "tsx"
    return get_adapter(language).grammar


def parse_source(source: bytes | str, language: str | None = None, path: str | None = None):
    """Parse ``source`` with tree-sitter and return the tree.

    The language comes from ``language`` or, failing that, from the file
    extension of ``path``.

    Raises:
        UnsupportedLanguage: If neither names a supported language.
    """
    if language is None and path is not None:
        language = detect_language(path)
    if language is None:
        raise UnsupportedLanguage(os.path.splitext(path or "")[1] or "<unknown>")
    if normalize_language(language) not in get_supported_languages():
        raise UnsupportedLanguage(language)
    if isinstance(source, str):
        source = source.encode("utf-8")

    from tree_sitter_language_pack import get_parser

    parser = get_parser(grammar_for(language, path))
    return parser.parse(source)
