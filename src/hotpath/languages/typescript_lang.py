from __future__ import annotations

from .javascript_lang import JavaScriptAdapter


class TypeScriptAdapter(JavaScriptAdapter):
    """TypeScript adapter; ``.tsx`` files parse with the tsx grammar."""

    language = "typescript"
    grammar = "typescript"
    extensions = (".ts", ".tsx", ".mts", ".cts")

    CLASS_TYPES = JavaScriptAdapter.CLASS_TYPES | {"abstract_class_declaration"}
    # Type-only wrappers around expressions: `x as T`, `x!`, `<T>x`.
    PAREN_TYPES = JavaScriptAdapter.PAREN_TYPES | {"as_expression", "non_null_expression", "satisfies_expression"}
    BINDING_FIELDS = {
        **JavaScriptAdapter.BINDING_FIELDS,
        "public_field_definition": ("name", "value"),
    }
