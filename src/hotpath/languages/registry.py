"""Language tag normalization and syntax adapter registry."""

from __future__ import annotations

from functools import lru_cache
from typing import TYPE_CHECKING

from hotpath.exit_codes import UnsupportedLanguage

if TYPE_CHECKING:
    from .base import SyntaxAdapter

_LANG_ALIASES = {
    "py": "python",
    "python3": "python",
    "js": "javascript",
    "jsx": "javascript",
    "node": "javascript",
    "ts": "typescript",
    "tsx": "typescript",
    "golang": "go",
}

_SUPPORTED_LANGUAGES = frozenset({"python", "javascript", "typescript", "java", "go"})


def normalize_language(language: str | None) -> str:
    """Lower-case a language tag and resolve aliases (``py`` -> ``python``)."""
    tag = (language or "").strip().lower()
    return _LANG_ALIASES.get(tag, tag)


@lru_cache(maxsize=None)
def _create_adapter(language: str) -> "SyntaxAdapter":
    """Create and cache an adapter instance for a normalized language tag."""
    if language == "python":
        from .python_lang import PythonAdapter

        return PythonAdapter()
    elif language == "javascript":
        from .javascript_lang import JavaScriptAdapter

        return JavaScriptAdapter()
    elif language == "typescript":
        from .typescript_lang import TypeScriptAdapter

        return TypeScriptAdapter()
    elif language == "java":
        from .java_lang import JavaAdapter

        return JavaAdapter()
    elif language == "go":
        from .go_lang import GoAdapter

        return GoAdapter()
    raise UnsupportedLanguage(language)


def get_adapter(language: str | None) -> "SyntaxAdapter":
    """Get the adapter for a language tag.

    Raises:
        UnsupportedLanguage: If no adapter is registered for the tag.
    """
    tag = normalize_language(language)
    if tag not in _SUPPORTED_LANGUAGES:
        raise UnsupportedLanguage(language or "")
    return _create_adapter(tag)


def get_supported_languages() -> list[str]:
    """Return all supported language names."""
    return sorted(_SUPPORTED_LANGUAGES)


def get_supported_extensions() -> list[str]:
    """Return all file extensions with a registered adapter."""
    return sorted({ext for lang in _SUPPORTED_LANGUAGES for ext in _create_adapter(lang).extensions})


def adapt(language: str | None, tree, source: bytes | str):
    """Translate ``tree`` into an ISG with the adapter registered for ``language``."""
    return get_adapter(language).adapt(tree, source)
