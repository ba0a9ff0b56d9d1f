from __future__ import annotations

from hotpath.isg import NodeKind

from .base import SyntaxAdapter

# Builtins that take the collection as their first argument.
_COLLECTION_BUILTINS = frozenset({"append", "delete", "copy"})
_LIST_TYPES = frozenset({"slice_type", "array_type", "implicit_length_array_type"})


class GoAdapter(SyntaxAdapter):
    """Go adapter (tree-sitter-go)."""

    language = "go"
    grammar = "go"
    extensions = (".go",)

    FUNCTION_TYPES = frozenset({"function_declaration", "method_declaration"})
    CLOSURE_TYPES = frozenset({"func_literal"})
    LOOP_TYPES = {"for_statement": "for"}
    CALL_TYPES = frozenset({"call_expression"})
    LITERAL_ALLOCATIONS = {"composite_literal": "object"}
    CONDITIONAL_TYPES = frozenset({"if_statement"})
    ASSIGNMENT_TYPES = frozenset({"assignment_statement", "short_var_declaration", "var_spec"})
    DECLARATION_TYPES = frozenset({"short_var_declaration", "var_spec"})
    UPDATE_TYPES = frozenset({"inc_statement", "dec_statement"})
    BODY_REQUIRED = frozenset({"func_literal"})
    ALLOCATOR_CALLS = frozenset({"make", "new"})

    STRING_TYPES = frozenset({"interpreted_string_literal", "raw_string_literal"})
    NUMBER_TYPES = frozenset({"int_literal", "float_literal"})
    ARG_LIST_TYPES = frozenset({"argument_list"})
    MULTI_TARGET_TYPES = frozenset({"expression_list"})
    MEMBER_FIELDS = {"selector_expression": ("operand", "field")}
    SUBSCRIPT_FIELDS = {"index_expression": "operand"}

    def classify_call(self, node, source: bytes) -> NodeKind:
        callee, receiver, args = self.call_parts(node)
        if callee is not None and receiver is None and self.callee_leaf(callee, source) in _COLLECTION_BUILTINS:
            if self.arg_nodes(args):
                return NodeKind.COLLECTION_OP
        return super().classify_call(node, source)

    def collection_op_attrs(self, node, source: bytes) -> dict:
        attrs = self.call_attrs(node, source)
        callee, receiver, args = self.call_parts(node)
        if receiver is None:
            values = self.arg_nodes(args)
            first, rest = values[0], values[1:]
            attrs.update(
                receiver=self.text(first, source),
                receiver_root=self.root_name(first, source),
                receiver_names=self.names(first, source),
                args=tuple(self.text(a, source) for a in rest),
                arg_names=self.names_of(rest, source),
                arg_count=len(rest),
                arg_literal_kinds=tuple(self.literal_kind(a) for a in rest),
            )
        return attrs

    def _literal_kind_of(self, node) -> str:
        literal_type = self.field(node, "type")
        if literal_type is None:
            return "object"
        if literal_type.type in _LIST_TYPES:
            return "list"
        if literal_type.type == "map_type":
            return "dict"
        return "object"

    def allocation_attrs(self, node, source: bytes) -> dict:
        attrs = super().allocation_attrs(node, source)
        if node.type == "composite_literal":
            kind = self._literal_kind_of(node)
            body = self.field(node, "body")
            attrs.update(constructor=kind, literal_kind=kind, value_kind=kind, empty=not (body and self.named(body)))
        return attrs

    def value_kind(self, node, source: bytes) -> str:
        node = self.unwrap(node)
        if node is not None and node.type == "composite_literal":
            return self._literal_kind_of(node)
        return super().value_kind(node, source)

    def is_constant_iterable(self, node, source: bytes) -> bool:
        node = self.unwrap(node)
        if node is not None and node.type == "composite_literal":
            return self._literal_kind_of(node) == "list"
        return super().is_constant_iterable(node, source)

    def is_method(self, node) -> bool:
        return node.type == "method_declaration"

    def parameters(self, node, source: bytes) -> list[tuple[str, str]]:
        params = self.field(node, "parameters")
        if params is None:
            return []
        out = []
        for decl in self.named(params):
            type_text = self.text(self.field(decl, "type"), source)
            for name in self.fields(decl, "name"):
                out.append((self.text(name, source), type_text))
        return out

    def receiver_name(self, node, source: bytes) -> str:
        receiver = self.field(node, "receiver")
        if receiver is None:
            return ""
        names = [self.text(n, source) for decl in self.named(receiver) for n in self.fields(decl, "name")]
        return names[0] if names else ""

    # -- loops ------------------------------------------------------------

    def _header(self, node):
        for child in self.named(node):
            if child.type in ("for_clause", "range_clause"):
                return child
        return None

    def _bare_condition(self, node):
        body = self.field(node, "body")
        for child in self.named(node):
            if body is not None and (child.start_byte, child.end_byte) == (body.start_byte, body.end_byte):
                continue
            if child.type not in ("for_clause", "range_clause"):
                return child
        return None

    def loop_once_nodes(self, node) -> list:
        header = self._header(node)
        if header is None:
            return []
        if header.type == "range_clause":
            return [self.field(header, "right")]
        return [self.field(header, "initializer")]

    def loop_attrs(self, node, source: bytes) -> dict:
        header = self._header(node)
        if header is not None and header.type == "range_clause":
            return self.build_loop_attrs(
                node,
                source,
                loop_kind="for-each",
                iter_vars=self.names(self.field(header, "left"), source),
                iterable=self.field(header, "right"),
            )
        if header is not None:
            init = self.field(header, "initializer")
            values = []
            if init is not None and init.type == "short_var_declaration":
                values = [self.unwrap(v) for v in self.named(self.field(init, "right"))] if self.field(init, "right") else []
            return self.build_loop_attrs(
                node,
                source,
                loop_kind="for",
                iter_vars=self.names(self.field(init, "left"), source) if init is not None else (),
                condition=self.field(header, "condition"),
                update=self.field(header, "update"),
                init_literal=bool(values) and all(v.type in self.NUMBER_TYPES for v in values),
            )
        return self.build_loop_attrs(node, source, loop_kind="while", condition=self._bare_condition(node))
