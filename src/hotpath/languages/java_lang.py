from __future__ import annotations

from .base import SyntaxAdapter

_DECLARATOR = frozenset({"variable_declarator"})


class JavaAdapter(SyntaxAdapter):
    """Java adapter (tree-sitter-java)."""

    language = "java"
    grammar = "java"
    extensions = (".java",)

    CLASS_TYPES = frozenset({"class_declaration", "interface_declaration", "enum_declaration", "record_declaration"})
    FUNCTION_TYPES = frozenset({"method_declaration", "constructor_declaration"})
    CLOSURE_TYPES = frozenset({"lambda_expression"})
    LOOP_TYPES = {
        "for_statement": "for",
        "enhanced_for_statement": "for-each",
        "while_statement": "while",
        "do_statement": "do-while",
    }
    CALL_TYPES = frozenset({"method_invocation"})
    NEW_TYPES = frozenset({"object_creation_expression", "array_creation_expression"})
    LITERAL_ALLOCATIONS = {"array_initializer": "array"}
    CONDITIONAL_TYPES = frozenset({"if_statement", "ternary_expression"})
    ASSIGNMENT_TYPES = frozenset({"assignment_expression", "variable_declarator"})
    DECLARATION_TYPES = frozenset({"variable_declarator"})
    UPDATE_TYPES = frozenset({"update_expression"})
    BODY_REQUIRED = frozenset({"constructor_declaration", "lambda_expression"})

    THIS_TYPES = frozenset({"this"})
    STRING_TYPES = frozenset({"string_literal"})
    NUMBER_TYPES = frozenset(
        {"decimal_integer_literal", "decimal_floating_point_literal", "hex_integer_literal", "binary_integer_literal"}
    )
    ARG_LIST_TYPES = frozenset({"argument_list"})
    MEMBER_FIELDS = {"field_access": ("object", "field")}
    SUBSCRIPT_FIELDS = {"array_access": "array"}
    SKIP_FIELDS = {"method_invocation": ("name",)}
    BINDING_FIELDS = {"variable_declarator": ("name", "value")}

    def call_parts(self, node):
        return self.field(node, "name"), self.field(node, "object"), self.field(node, "arguments")

    def is_method(self, node) -> bool:
        return True

    def decorators(self, node, source: bytes) -> tuple[str, ...]:
        names = []
        for child in node.children:
            if child.type != "modifiers":
                continue
            for annotation in child.children:
                if annotation.type in ("marker_annotation", "annotation"):
                    names.append(self.text(self.field(annotation, "name"), source).rsplit(".", 1)[-1])
        return tuple(names)

    def loop_once_nodes(self, node) -> list:
        if node.type == "enhanced_for_statement":
            return [self.field(node, "value")]
        if node.type == "for_statement":
            return self.fields(node, "init")
        return []

    def loop_attrs(self, node, source: bytes) -> dict:
        kind = self.LOOP_TYPES[node.type]
        if node.type == "enhanced_for_statement":
            return self.build_loop_attrs(
                node,
                source,
                loop_kind=kind,
                iter_vars=self.names(self.field(node, "name"), source),
                iterable=self.field(node, "value"),
            )
        if node.type == "for_statement":
            inits = self.fields(node, "init")
            declarators = [d for init in inits for d in self.find_all(init, _DECLARATOR)]
            values = [self.unwrap(self.field(d, "value")) for d in declarators]
            return self.build_loop_attrs(
                node,
                source,
                loop_kind=kind,
                iter_vars=self.names_of([self.field(d, "name") for d in declarators], source),
                condition=self.field(node, "condition"),
                update=self.field(node, "update"),
                init_literal=bool(values) and all(v is not None and v.type in self.NUMBER_TYPES for v in values),
            )
        return self.build_loop_attrs(node, source, loop_kind=kind, condition=self.field(node, "condition"))
