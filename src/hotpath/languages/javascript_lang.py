from __future__ import annotations

from .base import SyntaxAdapter


class JavaScriptAdapter(SyntaxAdapter):
    """JavaScript adapter (tree-sitter-javascript, JSX included)."""

    language = "javascript"
    grammar = "javascript"
    extensions = (".js", ".jsx", ".mjs", ".cjs")

    CLASS_TYPES = frozenset({"class_declaration", "class"})
    FUNCTION_TYPES = frozenset({"function_declaration", "generator_function_declaration", "method_definition"})
    CLOSURE_TYPES = frozenset({"arrow_function", "function_expression", "function", "generator_function"})
    LOOP_TYPES = {
        "for_statement": "for",
        "for_in_statement": "for-each",
        "while_statement": "while",
        "do_statement": "do-while",
    }
    CALL_TYPES = frozenset({"call_expression"})
    NEW_TYPES = frozenset({"new_expression"})
    LITERAL_ALLOCATIONS = {"array": "array", "object": "object"}
    CONDITIONAL_TYPES = frozenset({"if_statement", "ternary_expression"})
    ASSIGNMENT_TYPES = frozenset({"assignment_expression", "augmented_assignment_expression", "variable_declarator"})
    DECLARATION_TYPES = frozenset({"variable_declarator"})
    UPDATE_TYPES = frozenset({"update_expression"})
    AWAIT_TYPES = frozenset({"await_expression"})
    BODY_REQUIRED = frozenset(
        {
            "function_declaration",
            "generator_function_declaration",
            "method_definition",
            "arrow_function",
            "function_expression",
            "function",
            "generator_function",
        }
    )

    IDENT_TYPES = frozenset({"identifier", "shorthand_property_identifier"})
    THIS_TYPES = frozenset({"this"})
    STRING_TYPES = frozenset({"string", "template_string"})
    NUMBER_TYPES = frozenset({"number"})
    REGEX_TYPES = frozenset({"regex"})
    SPREAD_TYPES = frozenset({"spread_element"})
    ARG_LIST_TYPES = frozenset({"arguments"})
    MEMBER_FIELDS = {"member_expression": ("object", "property")}
    SUBSCRIPT_FIELDS = {"subscript_expression": "object"}
    SKIP_FIELDS = {"pair": ("key",)}
    BINDING_FIELDS = {
        "variable_declarator": ("name", "value"),
        "assignment_expression": ("left", "right"),
        "pair": ("key", "value"),
        "field_definition": ("property", "value"),
    }

    def is_method(self, node) -> bool:
        return node.type == "method_definition"

    def loop_once_nodes(self, node) -> list:
        if node.type == "for_in_statement":
            return [self.field(node, "right")]
        if node.type == "for_statement":
            return [self.field(node, "initializer")]
        return []

    def _declared_names(self, node, source: bytes) -> tuple[str, ...]:
        if node is None:
            return ()
        declarators = self.find_all(node, frozenset({"variable_declarator"}))
        if declarators:
            return self.names_of([self.field(d, "name") for d in declarators], source)
        assignments = self.find_all(node, frozenset({"assignment_expression"}))
        return self.names_of([self.field(a, "left") for a in assignments], source)

    def _initialized_with_literal(self, node) -> bool:
        if node is None:
            return False
        values = [self.field(d, "value") for d in self.find_all(node, frozenset({"variable_declarator"}))]
        values += [self.field(a, "right") for a in self.find_all(node, frozenset({"assignment_expression"}))]
        values = [self.unwrap(v) for v in values if v is not None]
        return bool(values) and all(v.type in self.NUMBER_TYPES for v in values)

    def loop_attrs(self, node, source: bytes) -> dict:
        kind = self.LOOP_TYPES[node.type]
        if node.type == "for_in_statement":
            return self.build_loop_attrs(
                node,
                source,
                loop_kind=kind,
                iter_vars=self.names(self.field(node, "left"), source),
                iterable=self.field(node, "right"),
            )
        if node.type == "for_statement":
            init = self.field(node, "initializer")
            return self.build_loop_attrs(
                node,
                source,
                loop_kind=kind,
                iter_vars=self._declared_names(init, source),
                condition=self.field(node, "condition"),
                update=self.field(node, "increment"),
                init_literal=self._initialized_with_literal(init),
            )
        return self.build_loop_attrs(node, source, loop_kind=kind, condition=self.field(node, "condition"))
