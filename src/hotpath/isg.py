"""Intermediate Structural Graph (ISG).

The ISG is the language-neutral tree every analysis runs on. Syntax adapters
in :mod:`hotpath.languages` translate a concrete syntax tree into one ISG per
request; rules and the complexity estimator only ever read it.

Node ids are preorder indexes, so ``isg.node(i)`` is a list lookup and every
id is unique within one ISG. Loop nodes list the children evaluated once
(the iterable of a for-each, the initializer of a C-style loop) before the
children evaluated per iteration; ``attrs["once_count"]`` says how many.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Iterable, Iterator, Mapping

if TYPE_CHECKING:
    from hotpath.severity import Severity


class NodeKind(str, Enum):
    MODULE = "module"
    CLASS = "class"
    FUNCTION = "function"
    LOOP = "loop"
    CALL = "call"
    COLLECTION_OP = "collection_op"
    ALLOCATION = "allocation"
    CLOSURE = "closure"
    CONDITIONAL = "conditional"
    ASSIGNMENT = "assignment"
    RETURN = "return"


# Kinds that open a new scope for complexity and hot-path purposes.
SCOPE_KINDS = frozenset({NodeKind.FUNCTION})
# Kinds that stop the upward search for enclosing loops.
LOOP_BARRIERS = frozenset({NodeKind.FUNCTION, NodeKind.CLASS, NodeKind.MODULE})


@dataclass(frozen=True, order=True)
class Span:
    """Source region: 1-based lines, 0-based columns."""

    start_line: int
    start_col: int
    end_line: int
    end_col: int
    start_byte: int = field(default=0, compare=False)
    end_byte: int = field(default=0, compare=False)

    @property
    def start(self) -> tuple[int, int]:
        return (self.start_line, self.start_col)

    @property
    def end(self) -> tuple[int, int]:
        return (self.end_line, self.end_col)

    def contains(self, other: "Span") -> bool:
        return self.start <= other.start and other.end <= self.end

    def overlaps(self, other: "Span") -> bool:
        return self.start < other.end and other.start < self.end

    @property
    def lines(self) -> str:
        if self.start_line == self.end_line:
            return str(self.start_line)
        return f"{self.start_line}-{self.end_line}"

    def to_dict(self) -> dict:
        return {
            "start_line": self.start_line,
            "start_col": self.start_col,
            "end_line": self.end_line,
            "end_col": self.end_col,
        }


@dataclass(frozen=True, eq=False)
class ISGNode:
    id: int
    kind: NodeKind
    span: Span
    children: tuple["ISGNode", ...] = ()
    attrs: Mapping[str, object] = field(default_factory=dict)
    ts_type: str = ""

    def attr(self, key: str, default=None):
        return self.attrs.get(key, default)

    @property
    def once_children(self) -> tuple["ISGNode", ...]:
        return self.children[: self.attrs.get("once_count", 0)]

    @property
    def body_children(self) -> tuple["ISGNode", ...]:
        return self.children[self.attrs.get("once_count", 0) :]

    @property
    def iterates(self) -> bool:
        """True for loops and for collection ops that call a closure per element."""
        if self.kind is NodeKind.LOOP:
            return True
        return self.kind is NodeKind.COLLECTION_OP and bool(self.attrs.get("iterates"))

    def __repr__(self) -> str:
        return f"ISGNode(id={self.id}, kind={self.kind.value}, ts_type={self.ts_type!r}, lines={self.span.lines})"


@dataclass(frozen=True)
class Scope:
    """A function/method body or the module, excluding nested function bodies."""

    id: int
    name: str
    kind: str
    root: ISGNode
    span: Span
    param_count: int = 0
    nesting_depth: int = 0
    parent_id: int | None = None

    @property
    def is_module(self) -> bool:
        return self.kind == "module"


class ISG:
    """An immutable tree of :class:`ISGNode` with parent and scope indexes."""

    def __init__(self, language: str, root: ISGNode, source: bytes = b""):
        self.language = language
        self.root = root
        self.source = source
        self._nodes: list[ISGNode] = []
        self._parent: dict[int, int] = {}
        stack = [root]
        while stack:
            node = stack.pop()
            self._nodes.append(node)
            for child in reversed(node.children):
                self._parent[child.id] = node.id
                stack.append(child)
        self._nodes.sort(key=lambda n: n.id)
        for index, node in enumerate(self._nodes):
            if node.id != index:
                raise ValueError(f"ISG node ids must be preorder indexes (got {node.id} at {index})")
        self._scopes: list[Scope] | None = None
        self._scope_of: dict[int, int] = {}
        self._scope_index: dict[int, Scope] = {}

    # -- structure ----------------------------------------------------------

    @property
    def nodes(self) -> tuple[ISGNode, ...]:
        return tuple(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    def node(self, node_id: int) -> ISGNode:
        return self._nodes[node_id]

    def parent(self, node: ISGNode) -> ISGNode | None:
        pid = self._parent.get(node.id)
        return None if pid is None else self._nodes[pid]

    def ancestors(self, node: ISGNode) -> Iterator[ISGNode]:
        """Yield ancestors nearest first."""
        current = self.parent(node)
        while current is not None:
            yield current
            current = self.parent(current)

    def walk(self, kinds: Iterable[NodeKind] | None = None) -> Iterator[ISGNode]:
        """Yield nodes in preorder, optionally filtered by kind."""
        wanted = frozenset(kinds) if kinds is not None else None
        for node in self._nodes:
            if wanted is None or node.kind in wanted:
                yield node

    def descendants(
        self,
        node: ISGNode,
        kinds: Iterable[NodeKind] | None = None,
        *,
        stop_at_scopes: bool = False,
    ) -> Iterator[ISGNode]:
        """Yield strict descendants of ``node`` in preorder."""
        wanted = frozenset(kinds) if kinds is not None else None
        stack = list(reversed(node.children))
        while stack:
            current = stack.pop()
            if wanted is None or current.kind in wanted:
                yield current
            if stop_at_scopes and current.kind in SCOPE_KINDS:
                continue
            stack.extend(reversed(current.children))

    def text(self, target: ISGNode | Span) -> str:
        span = target.span if isinstance(target, ISGNode) else target
        return self.source[span.start_byte : span.end_byte].decode("utf-8", errors="replace")

    def in_bounds(self, span: Span) -> bool:
        return self.root.span.contains(span)

    # -- loops --------------------------------------------------------------

    def enclosing_loops(self, node: ISGNode) -> list[ISGNode]:
        """Loop-like ancestors whose per-iteration part contains ``node``.

        Nearest first. The search stops at the enclosing function, so a
        function defined inside a loop is not considered to run in it. The
        iterable of a for-each and the receiver of ``items.map(...)`` are
        evaluated once and do not count as inside the loop.
        """
        loops: list[ISGNode] = []
        prev = node
        for anc in self.ancestors(node):
            if anc.kind in LOOP_BARRIERS:
                break
            if anc.kind is NodeKind.LOOP:
                if prev not in anc.once_children:
                    loops.append(anc)
            elif anc.iterates and prev.kind is NodeKind.CLOSURE:
                loops.append(anc)
            prev = anc
        return loops

    # -- scopes -------------------------------------------------------------

    def scopes(self) -> list[Scope]:
        """Module scope first, then function scopes in preorder."""
        if self._scopes is None:
            self._build_scopes()
        return list(self._scopes)

    def scope(self, scope_id: int) -> Scope:
        if self._scopes is None:
            self._build_scopes()
        return self._scope_index[scope_id]

    def scope_of(self, node: ISGNode) -> Scope:
        """The scope a node belongs to; a function node belongs to its own scope."""
        if self._scopes is None:
            self._build_scopes()
        return self.scope(self._scope_of[node.id])

    def scope_nodes(self, scope: Scope, kinds: Iterable[NodeKind] | None = None) -> Iterator[ISGNode]:
        """Nodes of a scope, excluding nested function subtrees."""
        wanted = frozenset(kinds) if kinds is not None else None
        stack = list(reversed(scope.root.children))
        while stack:
            current = stack.pop()
            if current.kind in SCOPE_KINDS:
                continue
            if wanted is None or current.kind in wanted:
                yield current
            stack.extend(reversed(current.children))

    def _build_scopes(self) -> None:
        module = Scope(
            id=self.root.id,
            name="<module>",
            kind="module",
            root=self.root,
            span=self.root.span,
        )
        scopes = [module]
        scope_of: dict[int, int] = {}
        stack: list[tuple[ISGNode, int, int]] = [(self.root, module.id, 0)]
        while stack:
            node, owner, depth = stack.pop()
            if node.kind in SCOPE_KINDS:
                scopes.append(
                    Scope(
                        id=node.id,
                        name=str(node.attrs.get("name") or "<anonymous>"),
                        kind="function",
                        root=node,
                        span=node.span,
                        param_count=int(node.attrs.get("param_count", 0)),
                        nesting_depth=depth,
                        parent_id=owner,
                    )
                )
                owner = node.id
                depth += 1
            scope_of[node.id] = owner
            for child in reversed(node.children):
                stack.append((child, owner, depth))
        scopes[1:] = sorted(scopes[1:], key=lambda s: s.id)
        self._scopes = scopes
        self._scope_index = {s.id: s for s in scopes}
        self._scope_of = scope_of


@dataclass(frozen=True)
class Capture:
    """A named piece of matched source text."""

    text: str
    span: Span

    def to_dict(self) -> dict:
        return {"text": self.text, **self.span.to_dict()}


@dataclass(frozen=True, eq=False)
class Match:
    """One rule firing on one ISG node."""

    rule_id: str
    category: str
    node_id: int
    scope_id: int
    span: Span
    captures: Mapping[str, Capture]
    modifiers: tuple[str, ...]
    severity: "Severity"

    def capture_texts(self) -> dict[str, str]:
        return {name: cap.text for name, cap in self.captures.items()}
