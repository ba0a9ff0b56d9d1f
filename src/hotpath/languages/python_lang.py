from __future__ import annotations

from hotpath.isg import NodeKind

from .base import SyntaxAdapter

_COMPREHENSIONS = {
    "list_comprehension": "list",
    "set_comprehension": "set",
    "dictionary_comprehension": "dict",
    "generator_expression": "other",
}


class PythonAdapter(SyntaxAdapter):
    """Python adapter (tree-sitter-python)."""

    language = "python"
    grammar = "python"
    extensions = (".py", ".pyi")

    CLASS_TYPES = frozenset({"class_definition"})
    FUNCTION_TYPES = frozenset({"function_definition"})
    CLOSURE_TYPES = frozenset({"lambda"})
    LOOP_TYPES = {
        "for_statement": "for-each",
        "while_statement": "while",
        **{t: "comprehension" for t in _COMPREHENSIONS},
    }
    CALL_TYPES = frozenset({"call"})
    LITERAL_ALLOCATIONS = {"list": "list", "dictionary": "dict", "set": "set", "tuple": "tuple"}
    CONDITIONAL_TYPES = frozenset({"if_statement", "elif_clause", "conditional_expression"})
    ASSIGNMENT_TYPES = frozenset({"assignment", "augmented_assignment", "named_expression"})
    AWAIT_TYPES = frozenset({"await"})
    BODY_REQUIRED = frozenset({"function_definition"})
    ALLOCATOR_CALLS = frozenset(
        {"list", "dict", "set", "tuple", "frozenset", "bytearray", "deque", "defaultdict", "OrderedDict", "Counter"}
    )

    STRING_TYPES = frozenset({"string", "concatenated_string"})
    NUMBER_TYPES = frozenset({"integer", "float"})
    SPREAD_TYPES = frozenset({"list_splat", "dictionary_splat"})
    BINARY_TYPES = frozenset({"binary_operator"})
    COMPARISON_TYPES = frozenset({"comparison_operator"})
    ARG_LIST_TYPES = frozenset({"argument_list"})
    MULTI_TARGET_TYPES = frozenset({"pattern_list", "tuple_pattern", "expression_list"})
    MEMBER_FIELDS = {"attribute": ("object", "attribute")}
    SUBSCRIPT_FIELDS = {"subscript": "value"}
    SKIP_FIELDS = {"keyword_argument": ("name",)}
    BINDING_FIELDS = {"assignment": ("left", "right")}

    def classify_extra(self, node, source: bytes) -> NodeKind | None:
        if node.type == "comparison_operator" and self._membership_operands(node) is not None:
            return NodeKind.COLLECTION_OP
        if node.type == "delete_statement":
            return NodeKind.COLLECTION_OP
        return None

    def _membership_operands(self, node):
        children = list(node.children)
        for index, child in enumerate(children):
            if not child.is_named and child.type in ("in", "not in"):
                left = [c for c in children[:index] if c.is_named]
                right = [c for c in children[index + 1 :] if c.is_named]
                if left and right:
                    return left[-1], child.type, right[0]
        return None

    def collection_op_attrs(self, node, source: bytes) -> dict:
        if node.type == "comparison_operator":
            left, operator, right = self._membership_operands(node)
            return self._operator_op("in", operator, right, [left], source)
        if node.type == "delete_statement":
            targets = self.named(node)
            target = self.unwrap(targets[0]) if targets else None
            container = target
            if target is not None and target.type in self.SUBSCRIPT_FIELDS:
                container = self.field(target, self.SUBSCRIPT_FIELDS[target.type])
            return self._operator_op("delete", "del", container, [], source)
        return self.call_attrs(node, source)

    def _operator_op(self, callee: str, operator: str, receiver, args: list, source: bytes) -> dict:
        return {
            "callee": callee,
            "qualified": callee,
            "receiver": self.text(receiver, source),
            "receiver_root": self.root_name(receiver, source),
            "receiver_names": self.names(receiver, source),
            "receiver_callee": "",
            "arg_count": len(args),
            "args": tuple(self.text(a, source) for a in args),
            "arg_names": self.names_of(args, source),
            "arg_literal_kinds": tuple(self.literal_kind(a) for a in args),
            "arg_callees": (),
            "awaited": False,
            "has_closure_arg": False,
            "iterates": False,
            "operator": operator,
        }

    def arg_value(self, arg):
        if arg.type == "keyword_argument":
            return self.field(arg, "value") or arg
        return arg

    def extra_value_kind(self, node, source: bytes) -> str:
        return _COMPREHENSIONS.get(node.type, "other")

    # -- loops ------------------------------------------------------------

    def _clauses(self, node) -> list:
        return [c for c in node.children if c.type == "for_in_clause"]

    def loop_once_nodes(self, node) -> list:
        if node.type == "for_statement":
            return [self.field(node, "right")]
        if node.type in _COMPREHENSIONS:
            clauses = self._clauses(node)
            return [self.field(clauses[0], "right")] if clauses else []
        return []

    def is_constant_iterable(self, node, source: bytes) -> bool:
        node = self.unwrap(node)
        if node is not None and node.type == "call":
            callee, receiver, args = self.call_parts(node)
            if receiver is None and self.callee_leaf(callee, source) == "range":
                values = self.arg_nodes(args)
                return bool(values) and all(self._is_int_literal(v) for v in values)
        return super().is_constant_iterable(node, source)

    def _is_int_literal(self, node) -> bool:
        node = self.unwrap(node)
        if node.type == "unary_operator":
            operand = self.named(node)
            return bool(operand) and operand[-1].type in self.NUMBER_TYPES
        return node.type in self.NUMBER_TYPES

    def range_bound_names(self, node, source: bytes) -> tuple[str, ...]:
        node = self.unwrap(node)
        if node is not None and node.type == "call":
            callee, receiver, args = self.call_parts(node)
            if receiver is None and self.callee_leaf(callee, source) == "range":
                values = self.arg_nodes(args)
                if all(self.unwrap(v).type in self.IDENT_TYPES or self._is_int_literal(v) for v in values):
                    return self.names_of(values, source)
        return ()

    def loop_attrs(self, node, source: bytes) -> dict:
        if node.type == "for_statement":
            return self.build_loop_attrs(
                node,
                source,
                loop_kind="for-each",
                iter_vars=self.names(self.field(node, "left"), source),
                iterable=self.field(node, "right"),
            )
        if node.type == "while_statement":
            return self.build_loop_attrs(node, source, loop_kind="while", condition=self.field(node, "condition"))
        clauses = self._clauses(node)
        iter_vars: tuple[str, ...] = ()
        for clause in clauses:
            iter_vars += self.names(self.field(clause, "left"), source)
        return self.build_loop_attrs(
            node,
            source,
            loop_kind="comprehension",
            iter_vars=iter_vars,
            iterable=self.field(clauses[0], "right") if clauses else None,
            levels=max(1, len(clauses)),
            constant_levels=sum(1 for c in clauses if self.is_constant_iterable(self.field(c, "right"), source)),
        )

    # -- functions --------------------------------------------------------

    def decorators(self, node, source: bytes) -> tuple[str, ...]:
        parent = getattr(node, "parent", None)
        if parent is None or parent.type != "decorated_definition":
            return ()
        names = []
        for child in parent.children:
            if child.type != "decorator":
                continue
            expr = self.named(child)
            if not expr:
                continue
            target = expr[0]
            if target.type == "call":
                target = self.call_parts(target)[0]
            names.append(self.callee_leaf(target, source) or self.text(target, source))
        return tuple(names)

    def is_method(self, node) -> bool:
        parent = getattr(node, "parent", None)
        if parent is not None and parent.type == "decorated_definition":
            parent = getattr(parent, "parent", None)
        if parent is None or parent.type != "block":
            return False
        owner = getattr(parent, "parent", None)
        return owner is not None and owner.type == "class_definition"

    def conditional_attrs(self, node, source: bytes) -> dict:
        if node.type != "conditional_expression":
            return super().conditional_attrs(node, source)
        parts = self.named(node)
        condition = parts[1] if len(parts) >= 3 else None
        return {
            "condition": self.text(condition, source),
            "condition_names": self.names(condition, source),
            "compare_ops": self.compare_ops(condition, source) if condition is not None else (),
            "lookup_container": self.lookup_container(condition, source),
            "guard_returns": False,
        }
