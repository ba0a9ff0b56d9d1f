"""Syntax model adapter base: concrete syntax tree -> ISG.

An adapter is a mapping table (grammar node type -> :class:`NodeKind`) plus
attribute extractors. Subclasses fill the tables and override the handful of
extractors where their grammar differs; adding a language means adding one
subclass and registering it in :mod:`hotpath.languages.registry`.

Input trees are duck-typed tree-sitter trees: anything with ``root_node``, or
a node exposing ``type``, ``children``, ``is_named``, ``child_by_field_name``,
``start_point``, ``end_point``, ``start_byte`` and ``end_byte``.
"""

from __future__ import annotations

import itertools
from types import MappingProxyType

from hotpath.exit_codes import MalformedTree
from hotpath.isg import ISG, ISGNode, NodeKind, Span

# ── Language-neutral vocabularies ─────────────────────────────────────

# Method names that operate on a collection receiver.
COLLECTION_METHODS = frozenset(
    {
        # growth
        "append",
        "extend",
        "insert",
        "push",
        "unshift",
        "add",
        "addAll",
        "put",
        "putAll",
        "set",
        "appendleft",
        "setdefault",
        "update",
        "offer",
        "enqueue",
        # removal
        "pop",
        "popleft",
        "popitem",
        "shift",
        "splice",
        "remove",
        "removeAt",
        "discard",
        "clear",
        "delete",
        "poll",
        # scans and lookups
        "index",
        "indexOf",
        "lastIndexOf",
        "includes",
        "contains",
        "containsKey",
        "containsValue",
        "count",
        "find",
        "findIndex",
        "findLast",
        "some",
        "every",
        "has",
        # iteration and copies
        "forEach",
        "map",
        "filter",
        "reduce",
        "reduceRight",
        "flatMap",
        "sort",
        "slice",
        "concat",
        "copy",
    }
)

# Collection methods that invoke a closure argument once per element.
ITERATION_METHODS = frozenset(
    {
        "forEach",
        "map",
        "filter",
        "reduce",
        "reduceRight",
        "flatMap",
        "find",
        "findIndex",
        "findLast",
        "some",
        "every",
    }
)

# Calls that only adapt how an iterable is walked; the collection is their argument.
WRAPPER_FUNCTIONS = frozenset({"enumerate", "zip", "reversed", "sorted", "list", "tuple", "iter", "set"})
WRAPPER_QUALIFIED = frozenset({"Object.keys", "Object.values", "Object.entries", "Array.from"})
# Methods that expose a view of their receiver.
WRAPPER_METHODS = frozenset({"items", "values", "keys", "entries", "entrySet", "keySet", "iterator", "stream"})

# Calls whose presence in a condition means "look this up in a container".
LOOKUP_METHODS = frozenset({"has", "get", "containsKey", "contains", "hasOwnProperty", "__contains__", "includes"})

LIST_CALLEES = frozenset(
    {
        "list",
        "sorted",
        "split",
        "splitlines",
        "readlines",
        "Array",
        "slice",
        "concat",
        "map",
        "filter",
        "flatMap",
        "asList",
        "toList",
        "toArray",
        "ArrayList",
        "LinkedList",
    }
)
LIST_QUALIFIED = frozenset({"List.of", "Arrays.asList", "Array.from", "Array.of"})
SET_CALLEES = frozenset({"set", "frozenset", "Set", "HashSet", "TreeSet", "LinkedHashSet", "toSet"})
DICT_CALLEES = frozenset(
    {"dict", "defaultdict", "OrderedDict", "Counter", "Map", "HashMap", "TreeMap", "LinkedHashMap", "WeakMap", "fromEntries", "toMap"}
)
DEQUE_CALLEES = frozenset({"deque", "ArrayDeque"})
STRING_CALLEES = frozenset(
    {"str", "String", "join", "format", "toString", "repr", "strip", "lower", "upper", "Sprintf", "trim", "replace"}
)

COMPARE_TOKENS = frozenset(
    {"==", "===", "!=", "!==", "<", ">", "<=", ">=", "in", "not in", "is", "is not", "instanceof"}
)
RELATIONAL_TOKENS = frozenset({"<", ">", "<=", ">=", "!="})


def _key(node) -> tuple:
    return (node.start_byte, node.end_byte, node.type)


class _Pending:
    """A classified node waiting for its lowered children."""

    __slots__ = ("node_id", "kind", "node", "attrs", "out", "once", "children")

    def __init__(self, node_id: int, kind: NodeKind, node, attrs: dict, out: list[ISGNode]):
        self.node_id = node_id
        self.kind = kind
        self.node = node
        self.attrs = attrs
        self.out = out
        self.once: list[ISGNode] = []
        self.children: list[ISGNode] = []


class SyntaxAdapter:
    """Translate one language's syntax trees into the ISG."""

    language: str = ""
    grammar: str = ""
    extensions: tuple[str, ...] = ()

    # ── Mapping tables ────────────────────────────────────────────────
    CLASS_TYPES: frozenset[str] = frozenset()
    FUNCTION_TYPES: frozenset[str] = frozenset()
    CLOSURE_TYPES: frozenset[str] = frozenset()
    LOOP_TYPES: dict[str, str] = {}
    CALL_TYPES: frozenset[str] = frozenset()
    NEW_TYPES: frozenset[str] = frozenset()
    LITERAL_ALLOCATIONS: dict[str, str] = {}
    CONDITIONAL_TYPES: frozenset[str] = frozenset()
    ASSIGNMENT_TYPES: frozenset[str] = frozenset()
    DECLARATION_TYPES: frozenset[str] = frozenset()
    # ``i++``/``i--``: mapped to assignments of the operand.
    UPDATE_TYPES: frozenset[str] = frozenset()
    RETURN_TYPES: frozenset[str] = frozenset({"return_statement"})
    AWAIT_TYPES: frozenset[str] = frozenset()
    COMMENT_TYPES: frozenset[str] = frozenset({"comment", "line_comment", "block_comment"})

    # Functions whose grammar always carries a body; a missing one is malformed.
    BODY_REQUIRED: frozenset[str] = frozenset()
    # Calls like list()/make() that allocate rather than call user code.
    ALLOCATOR_CALLS: frozenset[str] = frozenset()

    # ── Expression vocabulary ─────────────────────────────────────────
    IDENT_TYPES: frozenset[str] = frozenset({"identifier"})
    NAME_LEAF_TYPES: frozenset[str] = frozenset({"identifier", "property_identifier", "field_identifier", "type_identifier"})
    THIS_TYPES: frozenset[str] = frozenset()
    STRING_TYPES: frozenset[str] = frozenset({"string"})
    NUMBER_TYPES: frozenset[str] = frozenset({"integer", "float", "number"})
    REGEX_TYPES: frozenset[str] = frozenset()
    SPREAD_TYPES: frozenset[str] = frozenset()
    PAREN_TYPES: frozenset[str] = frozenset({"parenthesized_expression"})
    BINARY_TYPES: frozenset[str] = frozenset({"binary_expression"})
    COMPARISON_TYPES: frozenset[str] = frozenset({"binary_expression"})
    ARG_LIST_TYPES: frozenset[str] = frozenset({"argument_list", "arguments"})
    MULTI_TARGET_TYPES: frozenset[str] = frozenset()
    # member type -> (object field, member-name field)
    MEMBER_FIELDS: dict[str, tuple[str, str]] = {}
    # subscript type -> container field
    SUBSCRIPT_FIELDS: dict[str, str] = {}
    # node type -> fields whose identifiers are not variable references
    SKIP_FIELDS: dict[str, tuple[str, ...]] = {}
    # call type -> (callee field, arguments field)
    CALL_FIELDS: dict[str, tuple[str, str]] = {}
    # node types that bind a closure to a name -> field holding the name
    BINDING_FIELDS: dict[str, tuple[str, str]] = {}

    # ── Entry point ───────────────────────────────────────────────────

    def adapt(self, tree, source: bytes | str) -> ISG:
        """Translate ``tree`` (over ``source``) into an ISG.

        Raises :class:`MalformedTree` when the tree has no root or violates
        the structural expectations of the grammar.
        """
        if isinstance(source, str):
            source = source.encode("utf-8")
        root = getattr(tree, "root_node", tree)
        if root is None:
            raise MalformedTree("tree has no root node")
        self._check(root)
        counter = itertools.count()
        root_id = next(counter)
        children = self._lower(root, source, counter)
        module = ISGNode(
            id=root_id,
            kind=NodeKind.MODULE,
            span=self.span(root),
            children=tuple(children),
            attrs=MappingProxyType({"name": "<module>"}),
            ts_type=root.type,
        )
        return ISG(self.language, module, source)

    # ── Tree walk ─────────────────────────────────────────────────────

    def _check(self, node) -> None:
        if node.type == "ERROR" or getattr(node, "is_error", False):
            raise MalformedTree("syntax error", node.type, self.line(node))
        if getattr(node, "is_missing", False):
            raise MalformedTree("missing token", node.type, self.line(node))

    def _lower(self, root, source: bytes, counter) -> list[ISGNode]:
        """Lower the children of ``root`` depth-first, ids in preorder.

        The walk keeps its own stack: grammar trees nest one level per
        operator, so a long ``a + b + ...`` chain is as deep as it is wide.
        """
        top: list[ISGNode] = []
        stack: list = [(child, frozenset(), top) for child in reversed(root.children)]
        while stack:
            task = stack.pop()
            if isinstance(task, _Pending):
                task.out.append(self._finish(task))
                continue
            node, skip, out = task
            self._check(node)
            if node.type in self.COMMENT_TYPES or _key(node) in skip:
                continue
            kind = self.classify(node, source)
            if kind is None:
                stack.extend((child, skip, out) for child in reversed(node.children))
                continue

            pending = _Pending(next(counter), kind, node, self.attributes(kind, node, source), out)
            stack.append(pending)
            if kind is NodeKind.LOOP:
                # Header parts evaluated once come first, then the rest of the loop.
                once_nodes = [n for n in self.loop_once_nodes(node) if n is not None]
                inner_skip = skip | {_key(n) for n in once_nodes}
                stack.extend((child, inner_skip, pending.children) for child in reversed(node.children))
                stack.extend((n, skip, pending.once) for n in reversed(once_nodes))
            else:
                stack.extend((child, skip, pending.children) for child in reversed(node.children))
        return top

    def _finish(self, pending: "_Pending") -> ISGNode:
        if pending.kind is NodeKind.LOOP:
            pending.attrs["once_count"] = len(pending.once)
        return ISGNode(
            id=pending.node_id,
            kind=pending.kind,
            span=self.span(pending.node),
            children=tuple(pending.once + pending.children),
            attrs=MappingProxyType(pending.attrs),
            ts_type=pending.node.type,
        )

    def classify(self, node, source: bytes) -> NodeKind | None:
        """Map a grammar node to an ISG kind, or None to collapse it."""
        t = node.type
        if t in self.FUNCTION_TYPES:
            return NodeKind.FUNCTION
        if t in self.CLOSURE_TYPES:
            return NodeKind.FUNCTION if self.binding_name(node, source) else NodeKind.CLOSURE
        if t in self.CLASS_TYPES:
            return NodeKind.CLASS
        if t in self.LOOP_TYPES:
            return NodeKind.LOOP
        if t in self.CALL_TYPES:
            return self.classify_call(node, source)
        if t in self.NEW_TYPES or t in self.LITERAL_ALLOCATIONS:
            return NodeKind.ALLOCATION
        if t in self.CONDITIONAL_TYPES:
            return NodeKind.CONDITIONAL
        if t in self.ASSIGNMENT_TYPES or t in self.UPDATE_TYPES:
            return NodeKind.ASSIGNMENT
        if t in self.RETURN_TYPES:
            return NodeKind.RETURN
        return self.classify_extra(node, source)

    def classify_call(self, node, source: bytes) -> NodeKind:
        callee, receiver, _ = self.call_parts(node)
        if callee is None:
            raise MalformedTree("call without callee", node.type, self.line(node))
        leaf = self.callee_leaf(callee, source)
        if receiver is None and leaf in self.ALLOCATOR_CALLS:
            return NodeKind.ALLOCATION
        if receiver is not None and leaf in COLLECTION_METHODS:
            return NodeKind.COLLECTION_OP
        return NodeKind.CALL

    def classify_extra(self, node, source: bytes) -> NodeKind | None:
        return None

    def attributes(self, kind: NodeKind, node, source: bytes) -> dict:
        extractor = getattr(self, f"{kind.value}_attrs")
        return extractor(node, source)

    def loop_once_nodes(self, node) -> list:
        """Grammar nodes of a loop that are evaluated once, not per iteration."""
        return []

    # ── Node helpers ──────────────────────────────────────────────────

    def text(self, node, source: bytes) -> str:
        if node is None:
            return ""
        return source[node.start_byte : node.end_byte].decode("utf-8", errors="replace")

    def field(self, node, name: str):
        if node is None:
            return None
        return node.child_by_field_name(name)

    def fields(self, node, name: str) -> list:
        getter = getattr(node, "children_by_field_name", None)
        if getter is not None:
            return list(getter(name))
        single = self.field(node, name)
        return [single] if single is not None else []

    def named(self, node) -> list:
        return [c for c in node.children if c.is_named and c.type not in self.COMMENT_TYPES]

    def line(self, node) -> int:
        return node.start_point[0] + 1

    def span(self, node) -> Span:
        return Span(
            node.start_point[0] + 1,
            node.start_point[1],
            node.end_point[0] + 1,
            node.end_point[1],
            node.start_byte,
            node.end_byte,
        )

    def unwrap(self, node):
        while node is not None and node.type in self.PAREN_TYPES:
            inner = self.named(node)
            if not inner:
                break
            node = inner[0]
        return node

    def contains_type(self, node, types) -> bool:
        if node is None:
            return False
        stack = [node]
        while stack:
            current = stack.pop()
            if current.type in types:
                return True
            stack.extend(current.children)
        return False

    def find_all(self, node, types, *, stop=frozenset()) -> list:
        """Descendants (inclusive) of the given types, preorder."""
        out = []
        if node is None:
            return out
        stack = [node]
        while stack:
            current = stack.pop()
            if current.type in types:
                out.append(current)
            if current is not node and current.type in stop:
                continue
            stack.extend(reversed(current.children))
        return out

    # ── Names ─────────────────────────────────────────────────────────

    def names(self, node, source: bytes) -> tuple[str, ...]:
        """Variable names referenced under ``node`` (member names excluded)."""
        out: list[str] = []
        if node is not None:
            self._collect_names(node, source, out)
        return tuple(dict.fromkeys(out))

    def names_of(self, nodes, source: bytes) -> tuple[str, ...]:
        out: list[str] = []
        for node in nodes:
            if node is not None:
                self._collect_names(node, source, out)
        return tuple(dict.fromkeys(out))

    def _collect_names(self, node, source: bytes, out: list[str]) -> None:
        stack = [node]
        while stack:
            current = stack.pop()
            t = current.type
            if t in self.IDENT_TYPES or t in self.THIS_TYPES:
                out.append(self.text(current, source))
                continue
            skipped = set()
            for field_name in self.SKIP_FIELDS.get(t, ()):
                for child in self.fields(current, field_name):
                    skipped.add(_key(child))
            member = self.MEMBER_FIELDS.get(t)
            if member is not None:
                for child in self.fields(current, member[1]):
                    skipped.add(_key(child))
            stack.extend(child for child in reversed(current.children) if _key(child) not in skipped)

    def root_name(self, node, source: bytes) -> str:
        """The variable a (possibly dotted or indexed) expression starts from."""
        node = self.unwrap(node)
        if node is None:
            return ""
        t = node.type
        if t in self.IDENT_TYPES or t in self.THIS_TYPES:
            return self.text(node, source)
        member = self.MEMBER_FIELDS.get(t)
        if member is not None:
            return self.root_name(self.field(node, member[0]), source)
        container = self.SUBSCRIPT_FIELDS.get(t)
        if container is not None:
            return self.root_name(self.field(node, container), source)
        if t in self.CALL_TYPES:
            callee, receiver, _ = self.call_parts(node)
            return self.root_name(receiver if receiver is not None else callee, source)
        return ""

    def qualified(self, node, source: bytes) -> str:
        """Dotted name of an expression (``a.b.c``), or '' when not name-like."""
        node = self.unwrap(node)
        if node is None:
            return ""
        t = node.type
        if t in self.NAME_LEAF_TYPES or t in self.THIS_TYPES:
            return self.text(node, source)
        member = self.MEMBER_FIELDS.get(t)
        if member is not None:
            left = self.qualified(self.field(node, member[0]), source)
            right = self.text(self.field(node, member[1]), source)
            return f"{left}.{right}" if left and right else right or left
        container = self.SUBSCRIPT_FIELDS.get(t)
        if container is not None:
            return self.qualified(self.field(node, container), source)
        if t in self.CALL_TYPES:
            return self.call_qualified(node, source)
        return ""

    # ── Calls ─────────────────────────────────────────────────────────

    def call_parts(self, node):
        """Return ``(callee, receiver, arguments)`` grammar nodes of a call."""
        callee_field, args_field = self.CALL_FIELDS.get(node.type, ("function", "arguments"))
        callee = self.field(node, callee_field)
        args = self.field(node, args_field)
        receiver = None
        unwrapped = self.unwrap(callee)
        if unwrapped is not None:
            member = self.MEMBER_FIELDS.get(unwrapped.type)
            if member is not None:
                receiver = self.field(unwrapped, member[0])
        return callee, receiver, args

    def callee_leaf(self, callee, source: bytes) -> str:
        callee = self.unwrap(callee)
        if callee is None:
            return ""
        if callee.type in self.NAME_LEAF_TYPES:
            return self.text(callee, source)
        member = self.MEMBER_FIELDS.get(callee.type)
        if member is not None:
            return self.text(self.field(callee, member[1]), source)
        return ""

    def call_qualified(self, node, source: bytes) -> str:
        callee, receiver, _ = self.call_parts(node)
        leaf = self.callee_leaf(callee, source)
        if receiver is not None:
            prefix = self.qualified(receiver, source)
            return f"{prefix}.{leaf}" if prefix else leaf
        return self.qualified(callee, source) or leaf

    def arg_nodes(self, args) -> list:
        if args is None:
            return []
        if args.type in self.ARG_LIST_TYPES:
            return self.named(args)
        return [args]

    def arg_value(self, arg):
        """The value part of a keyword argument; the argument itself otherwise."""
        return arg

    def literal_kind(self, node) -> str:
        node = self.unwrap(self.arg_value(node))
        if node is None:
            return "other"
        if node.type in self.STRING_TYPES:
            return "string"
        if node.type in self.NUMBER_TYPES:
            return "number"
        if node.type in self.REGEX_TYPES:
            return "regex"
        return "other"

    def calls_in(self, node, source: bytes) -> tuple[str, ...]:
        """Qualified names of calls under ``node`` (inclusive), outermost first."""
        found = self.find_all(node, self.CALL_TYPES, stop=self.FUNCTION_TYPES | self.CLOSURE_TYPES)
        return tuple(q for q in (self.call_qualified(c, source) for c in found) if q)

    def is_awaited(self, node) -> bool:
        parent = getattr(node, "parent", None)
        while parent is not None and parent.type in self.PAREN_TYPES:
            parent = getattr(parent, "parent", None)
        return parent is not None and parent.type in self.AWAIT_TYPES

    def call_attrs(self, node, source: bytes) -> dict:
        callee, receiver, args = self.call_parts(node)
        if callee is None:
            raise MalformedTree("call without callee", node.type, self.line(node))
        leaf = self.callee_leaf(callee, source)
        arg_nodes = self.arg_nodes(args)
        receiver_callee = ""
        inner = self.unwrap(receiver)
        if inner is not None and inner.type in self.CALL_TYPES:
            receiver_callee = self.callee_leaf(self.call_parts(inner)[0], source)
        has_closure = any(self.unwrap(self.arg_value(a)).type in self.CLOSURE_TYPES for a in arg_nodes)
        arg_callees = tuple(
            self.call_qualified(self.unwrap(a), source)
            for a in arg_nodes
            if self.unwrap(a).type in self.CALL_TYPES
        )
        return {
            "callee": leaf,
            "qualified": self.call_qualified(node, source),
            "receiver": self.text(receiver, source),
            "receiver_root": self.root_name(receiver, source) if receiver is not None else "",
            "receiver_names": self.names(receiver, source),
            "receiver_callee": receiver_callee,
            "arg_count": len(arg_nodes),
            "args": tuple(self.text(a, source) for a in arg_nodes),
            "arg_names": self.names_of(arg_nodes, source),
            "arg_literal_kinds": tuple(self.literal_kind(a) for a in arg_nodes),
            "arg_callees": arg_callees,
            "awaited": self.is_awaited(node),
            "has_closure_arg": has_closure,
            "iterates": has_closure and leaf in ITERATION_METHODS,
            "operator": "",
        }

    def collection_op_attrs(self, node, source: bytes) -> dict:
        return self.call_attrs(node, source)

    # ── Allocations ───────────────────────────────────────────────────

    def allocation_attrs(self, node, source: bytes) -> dict:
        t = node.type
        if t in self.LITERAL_ALLOCATIONS:
            literal = self.LITERAL_ALLOCATIONS[t]
            return {
                "constructor": literal,
                "literal_kind": literal,
                "value_kind": self.value_kind(node, source),
                "arg_names": self.names(node, source),
                "empty": not self.named(node),
            }
        if t in self.CALL_TYPES:
            callee, _, args = self.call_parts(node)
            constructor = self.callee_leaf(callee, source)
        else:
            constructor = self.constructor_name(node, source)
            args = self.field(node, "arguments")
        return {
            "constructor": constructor,
            "literal_kind": "new",
            "value_kind": self.value_kind(node, source),
            "arg_names": self.names_of(self.arg_nodes(args), source),
            "empty": not self.arg_nodes(args),
        }

    def constructor_name(self, node, source: bytes) -> str:
        ctor = self.field(node, "constructor") or self.field(node, "type")
        name = self.text(ctor, source)
        return name.split("<", 1)[0].split("(", 1)[0].strip()

    def value_kind(self, node, source: bytes) -> str:
        """Coarse type of an expression: string, number, list, dict, set, call or other."""
        node = self.unwrap(node)
        if node is None:
            return "other"
        if node.type in self.AWAIT_TYPES:
            inner = self.named(node)
            return self.value_kind(inner[0], source) if inner else "other"
        t = node.type
        if t in self.STRING_TYPES:
            return "string"
        if t in self.NUMBER_TYPES:
            return "number"
        if t in self.LITERAL_ALLOCATIONS:
            literal = self.LITERAL_ALLOCATIONS[t]
            return {"array": "list", "object": "dict"}.get(literal, literal)
        if t in self.NEW_TYPES:
            return self._constructor_kind(self.constructor_name(node, source), "", [])
        if t in self.CALL_TYPES:
            callee, _, args = self.call_parts(node)
            leaf = self.callee_leaf(callee, source)
            arg_texts = [self.text(a, source) for a in self.arg_nodes(args)]
            return self._constructor_kind(leaf, self.call_qualified(node, source), arg_texts, default="call")
        if t in self.BINARY_TYPES and self.contains_type(node, self.STRING_TYPES):
            return "string"
        return self.extra_value_kind(node, source)

    def extra_value_kind(self, node, source: bytes) -> str:
        return "other"

    def _constructor_kind(self, leaf: str, qualified: str, arg_texts: list[str], default: str = "other") -> str:
        if qualified == "Set.of" or leaf in SET_CALLEES:
            return "set"
        if qualified == "Map.of" or leaf in DICT_CALLEES:
            return "dict"
        if leaf in DEQUE_CALLEES:
            return "deque"
        if leaf == "make" and arg_texts:
            if arg_texts[0].startswith("map["):
                return "dict"
            if arg_texts[0].startswith("[]"):
                return "list"
        if qualified in LIST_QUALIFIED or leaf in LIST_CALLEES:
            return "list"
        if leaf in STRING_CALLEES or leaf in ("StringBuilder", "StringBuffer"):
            return "string"
        return default

    # ── Functions and closures ────────────────────────────────────────

    def binding_name(self, node, source: bytes) -> str:
        """Name a closure is bound to (``const f = () => ...``), or ''."""
        parent = getattr(node, "parent", None)
        while parent is not None and parent.type in self.PAREN_TYPES:
            parent = getattr(parent, "parent", None)
        if parent is None:
            return ""
        fields = self.BINDING_FIELDS.get(parent.type)
        if fields is None:
            return ""
        name_field, value_field = fields
        value = self.unwrap(self.field(parent, value_field))
        if value is None or _key(value) != _key(node):
            return ""
        target = self.field(parent, name_field)
        if target is None:
            return ""
        leaf = self.callee_leaf(target, source)
        return leaf or ""

    def parameters(self, node, source: bytes) -> list[tuple[str, str]]:
        """``(name, type annotation)`` pairs of a function or closure."""
        params = self.field(node, "parameters") or self.field(node, "parameter")
        if params is None:
            return []
        if params.type in self.IDENT_TYPES:
            return [(self.text(params, source), "")]
        out = []
        for param in self.named(params):
            name = self.param_name(param, source)
            if name:
                out.append((name, self.param_type(param, source)))
        return out

    def param_name(self, param, source: bytes) -> str:
        if param.type in self.IDENT_TYPES:
            return self.text(param, source)
        for field_name in ("name", "pattern", "left"):
            target = self.field(param, field_name)
            if target is not None:
                return self.param_name(target, source)
        for child in param.children:
            if child.type in self.IDENT_TYPES:
                return self.text(child, source)
        return ""

    def param_type(self, param, source: bytes) -> str:
        annotation = self.field(param, "type")
        return self.text(annotation, source).lstrip(":").strip()

    def decorators(self, node, source: bytes) -> tuple[str, ...]:
        return ()

    def is_method(self, node) -> bool:
        return False

    def receiver_name(self, node, source: bytes) -> str:
        """Name bound to the receiver of a method with an explicit receiver (Go)."""
        return ""

    def function_attrs(self, node, source: bytes) -> dict:
        if node.type in self.BODY_REQUIRED and self.field(node, "body") is None:
            raise MalformedTree("function without a body", node.type, self.line(node))
        name = self.text(self.field(node, "name"), source) or self.binding_name(node, source)
        is_method = self.is_method(node)
        params = self.parameters(node, source)
        if is_method and params and params[0][0] in ("self", "cls"):
            params = params[1:]
        return {
            "name": name,
            "params": tuple(p for p, _ in params),
            "param_count": len(params),
            "param_types": MappingProxyType({p: t for p, t in params if t}),
            "decorators": self.decorators(node, source),
            "is_method": is_method,
            "receiver_name": self.receiver_name(node, source),
        }

    def closure_attrs(self, node, source: bytes) -> dict:
        return {
            "name": "",
            "params": tuple(p for p, _ in self.parameters(node, source)),
        }

    def class_attrs(self, node, source: bytes) -> dict:
        return {"name": self.text(self.field(node, "name"), source)}

    def return_attrs(self, node, source: bytes) -> dict:
        values = self.named(node)
        return {"value": self.text(values[0], source) if values else ""}

    # ── Loops ─────────────────────────────────────────────────────────

    def loop_attrs(self, node, source: bytes) -> dict:
        raise NotImplementedError

    def require_body(self, node):
        body = self.field(node, "body")
        if body is None:
            raise MalformedTree("loop without a body", node.type, self.line(node))
        return body

    def is_constant_iterable(self, node, source: bytes) -> bool:
        node = self.unwrap(node)
        if node is None:
            return False
        if node.type in self.STRING_TYPES:
            return True
        literal = self.LITERAL_ALLOCATIONS.get(node.type)
        if literal in ("list", "array", "set", "tuple"):
            return not any(c.type in self.SPREAD_TYPES for c in node.children)
        return False

    def range_bound_names(self, node, source: bytes) -> tuple[str, ...]:
        return ()

    def iterable_root(self, node, source: bytes) -> str:
        node = self.unwrap(node)
        if node is None:
            return ""
        if node.type in self.CALL_TYPES:
            callee, receiver, args = self.call_parts(node)
            leaf = self.callee_leaf(callee, source)
            arg_nodes = self.arg_nodes(args)
            if receiver is None and leaf in WRAPPER_FUNCTIONS and arg_nodes:
                return self.iterable_root(arg_nodes[0], source)
            if self.call_qualified(node, source) in WRAPPER_QUALIFIED and arg_nodes:
                return self.iterable_root(arg_nodes[0], source)
            if receiver is not None and leaf in WRAPPER_METHODS:
                return self.iterable_root(receiver, source)
            return ""
        return self.root_name(node, source)

    def iterable_call(self, node, source: bytes):
        """The call producing an iterable, looking through wrappers."""
        node = self.unwrap(node)
        if node is None or node.type not in self.CALL_TYPES:
            return None
        callee, receiver, args = self.call_parts(node)
        leaf = self.callee_leaf(callee, source)
        arg_nodes = self.arg_nodes(args)
        if receiver is None and leaf in WRAPPER_FUNCTIONS and arg_nodes:
            return self.iterable_call(arg_nodes[0], source)
        if receiver is not None and leaf in WRAPPER_METHODS:
            return self.iterable_call(receiver, source)
        return node

    def compares_literal(self, node, source: bytes) -> bool:
        """True when a relational comparison under ``node`` has a numeric literal operand."""
        for cmp in self.find_all(node, self.COMPARISON_TYPES):
            tokens = {c.type for c in cmp.children if not c.is_named}
            if tokens & RELATIONAL_TOKENS and any(self.unwrap(c).type in self.NUMBER_TYPES for c in self.named(cmp)):
                return True
        return False

    def compare_ops(self, node, source: bytes) -> tuple[str, ...]:
        ops: list[str] = []
        for cmp in self.find_all(node, self.COMPARISON_TYPES):
            ops.extend(c.type for c in cmp.children if not c.is_named and c.type in COMPARE_TOKENS)
        for call in self.find_all(node, self.CALL_TYPES):
            if self.callee_leaf(self.call_parts(call)[0], source) in ("equals", "Equals", "equal"):
                ops.append("equals")
        return tuple(dict.fromkeys(ops))

    def build_loop_attrs(
        self,
        node,
        source: bytes,
        *,
        loop_kind: str,
        iter_vars: tuple[str, ...] = (),
        iterable=None,
        condition=None,
        update=None,
        init_literal: bool = False,
        levels: int = 1,
        constant_levels: int = 0,
    ) -> dict:
        self.require_body(node)
        call = self.iterable_call(iterable, source) if iterable is not None else None
        iterable_callee = ""
        iterable_receiver = ""
        if call is not None:
            callee, receiver, _ = self.call_parts(call)
            iterable_callee = self.callee_leaf(callee, source)
            iterable_receiver = self.text(receiver, source)
        condition_names = self.names(condition, source)
        compares_literal = condition is not None and self.compares_literal(condition, source)
        if iterable is not None:
            bound_constant = self.is_constant_iterable(iterable, source)
            bound_names = self.range_bound_names(iterable, source)
        else:
            bound_constant = loop_kind == "for" and init_literal and compares_literal
            bound_names = tuple(n for n in condition_names if n not in iter_vars)
        return {
            "loop_kind": loop_kind,
            "iter_vars": tuple(iter_vars),
            "iterable": self.text(iterable, source),
            "iterable_names": self.names(iterable, source),
            "iterable_root": self.iterable_root(iterable, source),
            "iterable_callee": iterable_callee,
            "iterable_receiver": iterable_receiver,
            "iterable_calls": self.calls_in(iterable, source) if iterable is not None else (),
            "condition": self.text(condition, source),
            "condition_names": condition_names,
            "compares_literal": compares_literal,
            "update": self.text(update, source),
            "bound_constant": bound_constant,
            "bound_names": bound_names,
            "levels": levels,
            "constant_levels": constant_levels,
        }

    # ── Conditionals ──────────────────────────────────────────────────

    def conditional_attrs(self, node, source: bytes) -> dict:
        condition = self.field(node, "condition")
        initializer = self.field(node, "initializer")
        consequence = self.field(node, "consequence")
        lookup = self.lookup_container(condition, source) or self.lookup_container(initializer, source)
        return {
            "condition": self.text(condition, source),
            "condition_names": self.names_of([initializer, condition], source),
            "compare_ops": self.compare_ops(condition, source) if condition is not None else (),
            "lookup_container": lookup,
            "guard_returns": self.contains_type(consequence, self.RETURN_TYPES),
        }

    def lookup_container(self, node, source: bytes) -> str:
        """Name of the map or set a condition consults, or ''."""
        if node is None:
            return ""
        for cmp in self.find_all(node, self.COMPARISON_TYPES):
            children = list(cmp.children)
            for index, child in enumerate(children):
                if not child.is_named and child.type in ("in", "not in"):
                    right = [c for c in children[index + 1 :] if c.is_named]
                    if right:
                        return self.root_name(right[0], source)
        for call in self.find_all(node, self.CALL_TYPES):
            callee, receiver, _ = self.call_parts(call)
            if receiver is not None and self.callee_leaf(callee, source) in LOOKUP_METHODS:
                return self.root_name(receiver, source)
        for sub in self.find_all(node, frozenset(self.SUBSCRIPT_FIELDS)):
            return self.root_name(sub, source)
        return ""

    # ── Assignments ───────────────────────────────────────────────────

    def assignment_parts(self, node):
        """Return ``(target, operator text, value)`` grammar nodes of an assignment."""
        if node.type in self.UPDATE_TYPES:
            operand = self.field(node, "argument")
            if operand is None:
                named = self.named(node)
                operand = named[0] if named else None
            operator = next((c for c in node.children if c.type in ("++", "--")), None)
            return operand, operator, None
        left = self.field(node, "left") or self.field(node, "name")
        right = self.field(node, "right") or self.field(node, "value")
        operator = self.field(node, "operator")
        return left, operator, right

    def assignment_attrs(self, node, source: bytes) -> dict:
        left, operator, right = self.assignment_parts(node)
        op_text = self.text(operator, source) if operator is not None else "="
        left = self.unwrap(left)
        if left is not None and left.type in self.MULTI_TARGET_TYPES:
            target_nodes = self.named(left)
        else:
            target_nodes = [left] if left is not None else []
        if right is not None and right.type in self.MULTI_TARGET_TYPES:
            values = self.named(right)
            if len(values) == 1:
                right = values[0]
        subscript_of = ""
        for target in target_nodes:
            container = self.SUBSCRIPT_FIELDS.get(target.type)
            if container is not None:
                subscript_of = self.root_name(self.field(target, container), source)
                break
        value = self.unwrap(right)
        value_callee = ""
        if value is not None and value.type in self.CALL_TYPES:
            value_callee = self.callee_leaf(self.call_parts(value)[0], source)
        spreads = self.find_all(value, self.SPREAD_TYPES)
        list_literals = {t for t, kind in self.LITERAL_ALLOCATIONS.items() if kind in ("list", "array")}
        return {
            "targets": tuple(self.text(t, source) for t in target_nodes),
            "target_roots": tuple(self.root_name(t, source) for t in target_nodes),
            "operator": op_text,
            "value": self.text(right, source),
            "value_kind": self.value_kind(right, source),
            "value_names": self.names(right, source),
            "value_callee": value_callee,
            "value_calls": self.calls_in(right, source) if right is not None else (),
            "value_is_concat": self._is_concat(value, source),
            "value_has_string": self.contains_type(right, self.STRING_TYPES),
            "value_has_list": self.contains_type(right, list_literals),
            "value_spreads": self.names_of(spreads, source),
            "subscript_of": subscript_of,
            "declaration": node.type in self.DECLARATION_TYPES,
        }

    def _is_concat(self, node, source: bytes) -> bool:
        if node is None or node.type not in self.BINARY_TYPES:
            return False
        operator = self.field(node, "operator")
        if operator is not None:
            return self.text(operator, source) == "+"
        return any(not c.is_named and c.type == "+" for c in node.children)
