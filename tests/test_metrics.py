"""Tests for line-level source metrics."""

from __future__ import annotations

from hotpath.metrics import source_metrics


class TestSourceMetrics:
    def test_python(self):
        source = "# header\n\ndef f():\n    # inner\n    return 1\n"
        m = source_metrics(source, "python")
        assert m["total_lines"] == 5
        assert m["code_lines"] == 2
        assert m["comment_lines"] == 2
        assert m["comment_ratio"] == 0.5

    def test_bytes_input(self):
        m = source_metrics(b"x = 1\ny = 2\n", "py")
        assert m["total_lines"] == 2
        assert m["code_lines"] == 2
        assert m["avg_line_length"] == 5.0

    def test_c_style_comments(self):
        source = "/**\n * Docs.\n */\nint x = 1; // trailing\n"
        m = source_metrics(source, "java")
        assert m["comment_lines"] == 3
        assert m["code_lines"] == 1

    def test_hash_is_code_in_javascript(self):
        m = source_metrics("#!/usr/bin/env node\nconst a = 1;\n", "javascript")
        assert m["comment_lines"] == 0
        assert m["code_lines"] == 2

    def test_empty(self):
        m = source_metrics("", "go")
        assert m == {
            "total_lines": 0,
            "code_lines": 0,
            "comment_lines": 0,
            "avg_line_length": 0.0,
            "comment_ratio": 0.0,
        }
