"""Structural predicates shared by rules, the estimator and the aggregator.

Everything here is a pure function of the ISG. Name tracking is
intra-scope and flow-insensitive: an identifier's "origin" is whatever the
scope assigns to it, falling back to module-level assignments.
"""

from __future__ import annotations

from hotpath.callgraph import SELF_RECEIVERS
from hotpath.isg import ISG, ISGNode, NodeKind, Scope, Span

CALL_KINDS = (NodeKind.CALL, NodeKind.COLLECTION_OP)

# ── Data access vocabulary ────────────────────────────────────────────
# Leaves that fetch from a database, service or network on their own.
_FETCH_LEAVES = frozenset(
    {
        "query",
        "execute",
        "executemany",
        "executequery",
        "fetch",
        "fetchall",
        "fetchone",
        "fetchmany",
        "findone",
        "findall",
        "findmany",
        "findunique",
        "findfirst",
        "findbyid",
        "find_by",
        "findby",
        "filter_by",
        "get_object_or_404",
        "urlopen",
        "raw",
        "scalars",
        "request",
        "queryforobject",
        "queryforlist",
        "pluck",
    }
)
_FETCH_PREFIXES = ("fetch", "query", "find_by", "findby", "get_by", "load_by")
_NOT_FETCH = frozenset({"queryselector", "queryselectorall"})
# Generic leaves that only fetch when called on a data-access receiver.
_WEAK_LEAVES = frozenset(
    {"get", "load", "find", "read", "retrieve", "lookup", "all", "filter", "exclude", "first", "where", "post", "list"}
)
_WEAK_PREFIXES = ("get", "load", "list", "read", "retrieve")
_DATA_RECEIVERS = frozenset(
    {
        "db",
        "database",
        "session",
        "objects",
        "queryset",
        "repository",
        "repo",
        "dao",
        "client",
        "api",
        "http",
        "requests",
        "axios",
        "cursor",
        "conn",
        "connection",
        "prisma",
        "knex",
        "sequelize",
        "entitymanager",
        "em",
        "jdbc",
        "jdbctemplate",
        "redis",
        "mongo",
        "httpclient",
    }
)
_DATA_SUFFIXES = ("repository", "repo", "dao", "client", "session", "service", "api", "db")


def _receiver_parts(qualified: str) -> list[str]:
    return [p.lower().rstrip("()") for p in qualified.split(".")[:-1] if p]


def is_data_receiver(qualified: str) -> bool:
    """True when a dotted call name goes through a database/service/HTTP handle."""
    for part in _receiver_parts(qualified):
        if part in _DATA_RECEIVERS or part.endswith(_DATA_SUFFIXES):
            return True
    return False


def fetch_strength(node: ISGNode) -> str | None:
    """``"strong"``, ``"weak"`` or None for a call node.

    Strong: a data-access leaf (``query``, ``findMany``...) or a generic
    leaf (``get``, ``filter``...) on a data-access receiver. Weak: a generic
    leaf anywhere else, unless it takes a callback.
    """
    if node.kind not in CALL_KINDS or node.attrs.get("operator"):
        return None
    low = str(node.attrs.get("callee", "")).lower()
    if not low or low in _NOT_FETCH:
        return None
    if low in _FETCH_LEAVES or low.startswith(_FETCH_PREFIXES):
        return "strong"
    if low not in _WEAK_LEAVES and not low.startswith(_WEAK_PREFIXES):
        return None
    if is_data_receiver(str(node.attrs.get("qualified", ""))):
        return "strong"
    if node.attrs.get("has_closure_arg"):
        return None
    return "weak"

# File and network I/O that is costly whatever the receiver.
FILE_IO_CALLS = frozenset(
    {
        "open",
        "readFile",
        "readFileSync",
        "writeFile",
        "writeFileSync",
        "appendFileSync",
        "read_text",
        "write_text",
        "read_bytes",
        "write_bytes",
        "urlopen",
        "readAllLines",
        "readString",
    }
)
FILE_IO_QUALIFIED = frozenset(
    {
        "Files.lines",
        "os.ReadFile",
        "os.Open",
        "os.WriteFile",
        "ioutil.ReadFile",
        "http.Get",
        "http.Post",
        "requests.get",
        "requests.post",
    }
)


def is_io_call(node: ISGNode) -> bool:
    """File/network I/O or a strong data fetch."""
    if node.kind not in CALL_KINDS or node.attrs.get("operator"):
        return False
    if node.attrs.get("qualified") in FILE_IO_QUALIFIED or node.attrs.get("callee") in FILE_IO_CALLS:
        return True
    return fetch_strength(node) == "strong"


# ── Loops ─────────────────────────────────────────────────────────────


def loop_vars(isg: ISG, loop: ISGNode) -> tuple[str, ...]:
    """Names bound per iteration: loop variables or closure parameters."""
    if loop.kind is NodeKind.LOOP:
        return tuple(v for v in loop.attrs.get("iter_vars", ()) if v != "_")
    names: list[str] = []
    for child in loop.children:
        if child.kind is NodeKind.CLOSURE:
            names.extend(child.attrs.get("params", ()))
    return tuple(names)


def loop_iterable(loop: ISGNode) -> tuple[str, str]:
    """``(text, root name)`` of what a loop iterates."""
    if loop.kind is NodeKind.LOOP:
        return str(loop.attrs.get("iterable", "")), str(loop.attrs.get("iterable_root", ""))
    return str(loop.attrs.get("receiver", "")), str(loop.attrs.get("receiver_root", ""))


def loop_label(isg: ISG, loop: ISGNode) -> str:
    text, _ = loop_iterable(loop)
    if text:
        return text
    return str(loop.attrs.get("condition", "")) or isg.text(loop).split("\n", 1)[0]


def is_counting_loop(loop: ISGNode) -> bool:
    """Loops that walk a collection or a counter, as opposed to polling loops."""
    if loop.kind is not NodeKind.LOOP:
        return True
    return loop.attrs.get("loop_kind") in ("for", "for-each", "comprehension")


def source_calls(isg: ISG, loop: ISGNode) -> list[ISGNode]:
    """Call nodes evaluated once to produce what the loop iterates."""
    if loop.kind is NodeKind.LOOP:
        roots = list(loop.once_children)
    else:
        roots = [c for c in loop.children if c.kind is not NodeKind.CLOSURE]
    calls: list[ISGNode] = []
    for root in roots:
        if root.kind in CALL_KINDS:
            calls.append(root)
        calls.extend(isg.descendants(root, CALL_KINDS, stop_at_scopes=True))
    return calls


def rebinds(isg: ISG, region: ISGNode, name: str) -> bool:
    """True when ``region`` binds ``name`` to a value that does not derive from it."""
    for a in isg.descendants(region, (NodeKind.ASSIGNMENT,), stop_at_scopes=True):
        if name in a.attrs.get("targets", ()) and a.attrs.get("operator") == "=":
            if name not in a.attrs.get("value_names", ()):
                return True
    return False


def invariant_in(isg: ISG, loop: ISGNode, name: str) -> bool:
    """``name`` is neither a per-iteration variable of ``loop`` nor re-bound inside it."""
    if not name:
        return False
    root = name.split(".", 1)[0]
    if root in loop_vars(isg, loop):
        return False
    if loop.kind is not NodeKind.LOOP:
        return not rebinds(isg, loop, name)
    for child in loop.body_children:
        if name in child.attrs.get("targets", ()) and child.attrs.get("operator") == "=":
            if name not in child.attrs.get("value_names", ()):
                return False
        if rebinds(isg, child, name):
            return False
    return True


def depends_on(node: ISGNode, names, *, receiver: bool = True) -> bool:
    """True when a node's arguments (or receiver, or assigned value) reference any of ``names``."""
    names = set(names)
    if not names:
        return False
    used = set(node.attrs.get("arg_names", ()))
    if receiver:
        used |= set(node.attrs.get("receiver_names", ()))
    if node.kind is NodeKind.ASSIGNMENT:
        used |= set(node.attrs.get("value_names", ()))
    return bool(used & names)


def fetched_origin(isg: ISG, loop: ISGNode) -> tuple[str, ISGNode] | None:
    """Where a loop's data comes from, when that is a fetch.

    Returns ``(strength, call node)`` for an iterable produced by a
    fetch-like call, directly or through a name assigned earlier in the
    scope; None otherwise.
    """
    best: tuple[str, ISGNode] | None = None
    for call in source_calls(isg, loop):
        strength = fetch_strength(call)
        if strength == "strong":
            return strength, call
        if strength and best is None:
            best = (strength, call)
    if best is not None:
        return best

    _, root = loop_iterable(loop)
    if not root or root in SELF_RECEIVERS:
        return None
    scope = isg.scope_of(loop)
    assignment = last_assignment(isg, scope, root, before=loop.span)
    if assignment is None:
        return None
    for call in isg.descendants(assignment, CALL_KINDS, stop_at_scopes=True):
        strength = fetch_strength(call)
        if strength == "strong":
            return strength, call
        if strength and best is None:
            best = (strength, call)
    return best


# ── Assignments and origins ───────────────────────────────────────────


def assignments_to(isg: ISG, scope: Scope, name: str) -> list[ISGNode]:
    """Assignments in ``scope`` whose target is exactly ``name``."""
    return [a for a in isg.scope_nodes(scope, (NodeKind.ASSIGNMENT,)) if name in a.attrs.get("targets", ())]


def last_assignment(isg: ISG, scope: Scope, name: str, before: Span) -> ISGNode | None:
    """Latest assignment to ``name`` ending before ``before``, falling back to module level."""
    for candidate_scope in _lookup_scopes(isg, scope):
        found = [a for a in assignments_to(isg, candidate_scope, name) if a.span.end <= before.start]
        if found:
            return max(found, key=lambda a: a.span.start)
    return None


def _lookup_scopes(isg: ISG, scope: Scope) -> list[Scope]:
    scopes = [scope]
    module = isg.scopes()[0]
    if not scope.is_module:
        scopes.append(module)
    return scopes


_ANNOTATION_KINDS = (
    ("list", ("list", "List", "[]", "Array", "Sequence", "ArrayList", "LinkedList", "Iterable")),
    ("set", ("set", "Set", "frozenset", "HashSet")),
    ("dict", ("dict", "Dict", "Map", "Record", "Mapping", "HashMap")),
    ("deque", ("deque", "Deque")),
    ("string", ("str", "string", "String")),
)


def _annotation_kind(annotation: str) -> str | None:
    head = annotation.strip()
    for kind, markers in _ANNOTATION_KINDS:
        for marker in markers:
            if head.startswith(marker) or (marker == "[]" and marker in head):
                return kind
    return None


def origin_kinds(isg: ISG, node: ISGNode, name: str) -> set[str]:
    """Coarse kinds (list, set, dict, string...) ``name`` is bound to near ``node``."""
    if not name:
        return set()
    scope = isg.scope_of(node)
    kinds: set[str] = set()
    if "." in name and name.split(".", 1)[0] in SELF_RECEIVERS:
        region = _class_of(isg, node) or isg.root
        for a in isg.descendants(region, (NodeKind.ASSIGNMENT,)):
            if name in a.attrs.get("targets", ()) and a.attrs.get("operator") == "=":
                kinds.add(str(a.attrs.get("value_kind")))
        return kinds
    for candidate_scope in _lookup_scopes(isg, scope):
        for a in assignments_to(isg, candidate_scope, name):
            if a.attrs.get("operator") == "=":
                kinds.add(str(a.attrs.get("value_kind")))
        if not candidate_scope.is_module:
            annotation = candidate_scope.root.attrs.get("param_types", {}).get(name)
            if annotation:
                kind = _annotation_kind(str(annotation))
                if kind:
                    kinds.add(kind)
        if kinds:
            break
    return kinds


def _class_of(isg: ISG, node: ISGNode) -> ISGNode | None:
    for anc in isg.ancestors(node):
        if anc.kind is NodeKind.CLASS:
            return anc
    return None


def initialized_outside(isg: ISG, loop: ISGNode, name: str) -> bool:
    """``name`` is bound before ``loop`` in its scope (or is a parameter) and not re-bound inside it."""
    scope = isg.scope_of(loop)
    if not scope.is_module and name in scope.root.attrs.get("params", ()):
        outside = True
    else:
        outside = last_assignment(isg, scope, name, before=loop.span) is not None
    return outside and not rebinds(isg, loop, name)


def is_module_constant(isg: ISG, name: str) -> bool:
    """A module-level name bound exactly once, to a numeric literal."""
    module = isg.scopes()[0]
    bound = assignments_to(isg, module, name)
    if len(bound) != 1:
        return False
    return bound[0].attrs.get("value_kind") == "number" and bound[0].attrs.get("operator") == "="


def is_persistent(isg: ISG, node: ISGNode, receiver: str, root: str) -> ISGNode | None:
    """Region holding a long-lived structure, or None.

    Module-level names live in the whole unit; ``self.x``/``this.x`` live
    in their class. Locals are not persistent.
    """
    if not receiver:
        return None
    if "." in receiver and root in SELF_RECEIVERS:
        return _class_of(isg, node) or isg.root
    if receiver != root:
        return None
    scope = isg.scope_of(node)
    if scope.is_module:
        return None
    if root in scope.root.attrs.get("params", ()) or assignments_to(isg, scope, root):
        return None
    if assignments_to(isg, isg.scopes()[0], root):
        return isg.root
    return None
