"""Line-level source metrics reported next to the findings."""

from __future__ import annotations

from hotpath.languages import normalize_language

_COMMENT_MARKERS = {
    "python": ("#",),
    "javascript": ("//", "/*", "*"),
    "typescript": ("//", "/*", "*"),
    "java": ("//", "/*", "*"),
    "go": ("//", "/*", "*"),
}


def source_metrics(source: bytes | str, language: str | None = None) -> dict:
    """Count total, code and comment lines of *source*.

    A non-blank line counts as a comment when it starts with one of the
    language's comment markers; everything else non-blank is code.
    """
    if isinstance(source, bytes):
        source = source.decode("utf-8", errors="replace")
    markers = _COMMENT_MARKERS.get(normalize_language(language), ("#", "//", "/*", "*"))

    lines = source.splitlines()
    code_lines = 0
    comment_lines = 0
    non_blank_chars = 0
    for line in lines:
        stripped = line.strip()
        if not stripped:
            continue
        non_blank_chars += len(line.rstrip())
        if stripped.startswith(markers):
            comment_lines += 1
        else:
            code_lines += 1

    non_blank = code_lines + comment_lines
    return {
        "total_lines": len(lines),
        "code_lines": code_lines,
        "comment_lines": comment_lines,
        "avg_line_length": round(non_blank_chars / non_blank, 1) if non_blank else 0.0,
        "comment_ratio": round(comment_lines / non_blank, 3) if non_blank else 0.0,
    }
