"""Syntax model adapters: concrete syntax trees -> ISG."""

from .registry import adapt, get_adapter, get_supported_languages, normalize_language
from .service import detect_language, parse_source

__all__ = [
    "adapt",
    "detect_language",
    "get_adapter",
    "get_supported_languages",
    "normalize_language",
    "parse_source",
]
