"""The built-in anti-pattern catalog.

Every predicate confirms two things structurally before it fires: that the
node sits on a repeated path (inside a loop, or in a hot scope) and that
the operation there is costly. Caller hints only adjust severity or admit a
weakly evidenced origin; they never fire a rule on their own.
"""

from __future__ import annotations

from hotpath.callgraph import SELF_RECEIVERS
from hotpath.isg import ISGNode, NodeKind
from hotpath.severity import Severity

from .context import RuleContext
from .helpers import (
    assignments_to,
    depends_on,
    fetch_strength,
    fetched_origin,
    initialized_outside,
    invariant_in,
    is_counting_loop,
    is_io_call,
    is_persistent,
    last_assignment,
    loop_iterable,
    loop_label,
    loop_vars,
    origin_kinds,
)
from .registry import Hit, RuleRegistry, rule

CATALOG = RuleRegistry()

ALL_CALLS = (NodeKind.CALL, NodeKind.COLLECTION_OP)
_SCRIPTING = ("python", "javascript", "typescript")
_JS = ("javascript", "typescript")


def _first_var(isg, loop: ISGNode) -> str:
    names = loop_vars(isg, loop)
    return names[0] if names else ""


def _loop_captures(ctx: RuleContext, loop: ISGNode) -> dict:
    return {
        "loop_var": (_first_var(ctx.isg, loop), loop),
        "collection": (loop_label(ctx.isg, loop), loop),
    }


def _first_arg(node: ISGNode, index: int = 0) -> str:
    args = node.attrs.get("args", ())
    return str(args[index]) if len(args) > index else ""


def _target(node: ISGNode) -> str:
    targets = node.attrs.get("targets", ())
    return str(targets[0]) if len(targets) == 1 else ""


def _origin_name(node: ISGNode) -> str:
    """Name a receiver's binding is tracked under: ``self.x`` stays dotted."""
    receiver = str(node.attrs.get("receiver", ""))
    root = str(node.attrs.get("receiver_root", ""))
    if root in SELF_RECEIVERS and receiver.count(".") == 1:
        return receiver
    return root if receiver == root else ""


# ── I/O ───────────────────────────────────────────────────────────────


@rule(
    CATALOG,
    id="n-plus-one-query",
    title="N+1 query pattern",
    category="io",
    targets=ALL_CALLS,
    severity=Severity.CRITICAL,
    template="batch-fetch",
    remediation="Fetch the related rows for all items in one batched query before the loop, then look them up.",
    message="`{call}` runs once per element of `{collection}`, which was itself fetched",
)
def n_plus_one(node: ISGNode, ctx: RuleContext):
    """A data fetch per element of a collection that was itself fetched."""
    if fetch_strength(node) != "strong":
        return None
    for loop in ctx.loops(node):
        names = loop_vars(ctx.isg, loop)
        if not depends_on(node, names):
            continue
        origin = fetched_origin(ctx.isg, loop)
        if origin is None or origin[1] is node:
            continue
        text, root = loop_iterable(loop)
        large = ctx.hints.is_large(root, text)
        if origin[0] == "weak":
            if not large:
                continue
            modifiers = ("weak_origin", "large_input")
        else:
            modifiers = ("large_input",) if large else ()
        return Hit(
            node,
            captures={
                "call": node,
                "callee": (str(node.attrs.get("qualified", "")), node),
                "source_call": origin[1],
                **_loop_captures(ctx, loop),
            },
            modifiers=modifiers,
        )
    return None


@rule(
    CATALOG,
    id="io-in-loop",
    title="I/O inside a loop",
    category="io",
    targets=ALL_CALLS,
    severity=Severity.HIGH,
    template="hoist-io",
    remediation="Move the I/O out of the loop: read or fetch everything once, or batch the requests.",
    message="`{call}` performs I/O on every iteration over `{collection}`",
)
def io_in_loop(node: ISGNode, ctx: RuleContext):
    """File, network or database access repeated per loop iteration."""
    if not is_io_call(node):
        return None
    for loop in ctx.loops(node):
        if not is_counting_loop(loop):
            continue
        if depends_on(node, loop_vars(ctx.isg, loop)):
            return Hit(node, captures={"call": node, **_loop_captures(ctx, loop)})
    return None


# ── Collections ───────────────────────────────────────────────────────

# Scans that are linear on every sequence type they exist on.
_SEQUENCE_SCANS = frozenset({"index", "indexOf", "lastIndexOf", "includes"})
# Searches driven by a callback.
_CALLBACK_SCANS = frozenset({"find", "findIndex", "findLast", "some", "every"})
# Scans that are constant time on sets and maps.
_AMBIGUOUS_SCANS = frozenset({"in", "contains", "count"})


@rule(
    CATALOG,
    id="collection-scan-in-loop",
    title="Linear search inside a loop",
    category="collections",
    targets=(NodeKind.COLLECTION_OP,),
    severity=Severity.HIGH,
    template="index-lookup",
    remediation="Build a set or dict from the searched collection once, before the loop, and look items up in it.",
    message="`{call}` scans `{collection}` on every iteration",
)
def collection_scan(node: ISGNode, ctx: RuleContext):
    """A linear membership test or search on a loop-invariant list."""
    leaf = node.attrs.get("callee")
    if leaf in _CALLBACK_SCANS:
        if not node.attrs.get("has_closure_arg"):
            return None
    elif leaf not in _SEQUENCE_SCANS and leaf not in _AMBIGUOUS_SCANS:
        return None
    name = _origin_name(node)
    if not name:
        return None
    loops = ctx.loops(node)
    if not loops:
        return None
    iteration_vars = {v for loop in loops for v in loop_vars(ctx.isg, loop)}
    if not depends_on(node, iteration_vars, receiver=False):
        return None
    if not all(invariant_in(ctx.isg, loop, name) for loop in loops):
        return None
    kinds = origin_kinds(ctx.isg, node, name)
    if leaf in _AMBIGUOUS_SCANS:
        if kinds != {"list"}:
            return None
    elif kinds & {"set", "dict", "string", "deque"}:
        return None
    modifiers = ("large_input",) if ctx.hints.is_large(name) else ()
    return Hit(
        node,
        captures={
            "call": node,
            "collection": (str(node.attrs.get("receiver", "")), node),
            "item": (_first_arg(node), node),
            "loop_var": (_first_var(ctx.isg, loops[0]), loops[0]),
        },
        modifiers=modifiers,
    )


_COPY_CALLEES = frozenset({"concat", "slice", "copy", "list", "toList", "clone"})


@rule(
    CATALOG,
    id="collection-copy-in-loop",
    title="Collection copied on every iteration",
    category="collections",
    targets=(NodeKind.ASSIGNMENT,),
    severity=Severity.MEDIUM,
    template="append-in-place",
    remediation="Append to the collection in place instead of rebuilding it each time.",
    message="`{target}` is rebuilt from a full copy of itself on every iteration",
)
def collection_copy(node: ISGNode, ctx: RuleContext):
    """Re-assigning a collection from a copy of itself inside a loop."""
    target = _target(node)
    if not target or node.attrs.get("operator") != "=":
        return None
    if target not in node.attrs.get("value_names", ()):
        return None
    loops = ctx.loops(node)
    if not loops or not initialized_outside(ctx.isg, loops[0], target):
        return None
    kinds = origin_kinds(ctx.isg, node, target)
    if "string" in kinds or node.attrs.get("value_has_string"):
        return None
    copies = False
    if target in node.attrs.get("value_spreads", ()):
        copies = True
    elif node.attrs.get("value_callee") in _COPY_CALLEES:
        copies = any(q.startswith(f"{target}.") for q in node.attrs.get("value_calls", ()))
    elif node.attrs.get("value_is_concat"):
        copies = bool(node.attrs.get("value_has_list")) or kinds == {"list"}
    if not copies:
        return None
    return Hit(
        node,
        captures={
            "target": (target, node),
            "value": (str(node.attrs.get("value", "")), node),
            **_loop_captures(ctx, loops[0]),
        },
    )


_FRONT_OPS = frozenset({"unshift", "shift"})
# leaf -> argument count of the index form
_INDEXED_FRONT_OPS = {"insert": 2, "add": 2, "pop": 1, "remove": 1, "removeAt": 1}
_LINKED_MARKERS = ("deque", "LinkedList", "ArrayDeque", "list.New")


@rule(
    CATALOG,
    id="front-insert-in-loop",
    title="Insert or remove at the front of a list inside a loop",
    category="collections",
    targets=(NodeKind.COLLECTION_OP,),
    severity=Severity.MEDIUM,
    template="use-deque",
    remediation="Use a double-ended queue, or append and reverse once after the loop.",
    message="`{call}` shifts every element of `{collection}` on each iteration",
)
def front_insert(node: ISGNode, ctx: RuleContext):
    """Operations at index 0 of an array-backed list, repeated in a loop."""
    leaf = node.attrs.get("callee")
    if leaf in _FRONT_OPS:
        item = _first_arg(node)
    elif _INDEXED_FRONT_OPS.get(leaf) == node.attrs.get("arg_count") and _first_arg(node).strip() == "0":
        if leaf in ("remove", "removeAt") and ctx.language != "java":
            return None
        item = _first_arg(node, 1)
    else:
        return None
    if not ctx.loops(node):
        return None
    name = _origin_name(node)
    receiver = str(node.attrs.get("receiver", ""))
    scope = ctx.scope_of(node)
    bindings = assignments_to(ctx.isg, scope, name) if name else []
    if any(marker in str(a.attrs.get("value", "")) for a in bindings for marker in _LINKED_MARKERS):
        return None
    if not scope.is_module:
        annotation = str(scope.root.attrs.get("param_types", {}).get(name, ""))
        if any(marker in annotation for marker in _LINKED_MARKERS):
            return None
    if name and origin_kinds(ctx.isg, node, name) & {"set", "dict", "deque"}:
        return None
    return Hit(
        node,
        captures={
            "call": node,
            "collection": (receiver, node),
            "item": (item, node),
        },
    )


_APPENDS = frozenset({"append", "push"})


@rule(
    CATALOG,
    id="manual-map-append",
    title="Loop that only appends a transformed element",
    category="collections",
    targets=(NodeKind.LOOP,),
    severity=Severity.LOW,
    languages=_SCRIPTING,
    template="comprehension",
    remediation="Build the list with a comprehension or map() instead of appending in a loop.",
    message="the loop over `{collection}` only appends to `{target}`",
)
def manual_map_append(node: ISGNode, ctx: RuleContext):
    """A for-each loop whose body is a single append to an empty list."""
    if node.attrs.get("loop_kind") != "for-each":
        return None
    body = node.body_children
    if len(body) != 1 or body[0].kind is not NodeKind.COLLECTION_OP:
        return None
    op = body[0]
    if op.attrs.get("callee") not in _APPENDS or op.attrs.get("arg_count") != 1:
        return None
    target = str(op.attrs.get("receiver", ""))
    if not target or target != op.attrs.get("receiver_root"):
        return None
    names = loop_vars(ctx.isg, node)
    if not names or not depends_on(op, names) or target in names:
        return None
    if set(op.attrs.get("receiver_names", ())) & set(names):
        return None
    init = last_assignment(ctx.isg, ctx.scope_of(node), target, before=node.span)
    if init is None or init.attrs.get("value_kind") != "list":
        return None
    if str(init.attrs.get("value", "")).replace(" ", "") not in ("[]", "list()", "newArray()", "Array()"):
        return None
    return Hit(
        node,
        captures={
            "target": (target, op),
            "item": (_first_arg(op), op),
            "var": (names[0] if len(names) == 1 else ", ".join(names), node),
            "collection": (str(node.attrs.get("iterable", "")), node),
        },
    )


# ── Algorithmic ───────────────────────────────────────────────────────

_EQUALITY = frozenset({"==", "===", "equals", "is"})


@rule(
    CATALOG,
    id="nested-loop-join",
    title="Nested-loop join",
    category="algorithmic",
    targets=(NodeKind.LOOP,),
    severity=Severity.HIGH,
    template="hash-join",
    remediation="Index the inner collection by its join key in a dict once, then look matches up per outer element.",
    message="every element of `{outer}` is compared against every element of `{inner}`",
)
def nested_loop_join(node: ISGNode, ctx: RuleContext):
    """Two independent nested loops matched on an equality condition."""
    if node.attrs.get("bound_constant") or node.attrs.get("loop_kind") not in ("for-each", "for"):
        return None
    loops = ctx.loops(node)
    if not loops:
        return None
    outer = loops[0]
    outer_vars = set(loop_vars(ctx.isg, outer))
    inner_vars = set(loop_vars(ctx.isg, node))
    if not outer_vars or not inner_vars:
        return None
    if set(node.attrs.get("iterable_names", ())) & outer_vars:
        return None
    inner_root = str(node.attrs.get("iterable_root", ""))
    if inner_root and not invariant_in(ctx.isg, outer, inner_root):
        return None
    if node.attrs.get("loop_kind") == "for" and set(node.attrs.get("bound_names", ())) & outer_vars:
        return None
    for cond in ctx.isg.descendants(node, (NodeKind.CONDITIONAL,), stop_at_scopes=True):
        if not set(cond.attrs.get("compare_ops", ())) & _EQUALITY:
            continue
        names = set(cond.attrs.get("condition_names", ()))
        if names & outer_vars and names & inner_vars:
            return Hit(
                node,
                captures={
                    "outer": (loop_label(ctx.isg, outer), outer),
                    "inner": (loop_label(ctx.isg, node), node),
                    "outer_var": (_first_var(ctx.isg, outer), outer),
                    "inner_var": (_first_var(ctx.isg, node), node),
                    "condition": cond,
                },
                span_node=outer,
            )
    return None


# ── Ordering ──────────────────────────────────────────────────────────

_SORT_METHODS = frozenset({"sort", "sort_values", "sort_index"})
_SORT_FUNCTIONS = frozenset({"sorted"})
_SORT_QUALIFIED = frozenset(
    {"Arrays.sort", "Collections.sort", "sort.Slice", "sort.SliceStable", "sort.Strings", "sort.Ints", "sort.Sort", "slices.Sort"}
)


def _sort_target(node: ISGNode) -> str:
    leaf = node.attrs.get("callee")
    qualified = node.attrs.get("qualified")
    if qualified in _SORT_QUALIFIED or (leaf in _SORT_FUNCTIONS and not node.attrs.get("receiver")):
        return _first_arg(node)
    if leaf in _SORT_METHODS and node.attrs.get("receiver"):
        return str(node.attrs.get("receiver"))
    return ""


@rule(
    CATALOG,
    id="sort-in-loop",
    title="Sorting inside a loop",
    category="ordering",
    targets=ALL_CALLS,
    severity=Severity.HIGH,
    template="sort-once",
    remediation="Sort once after the loop, or keep the collection ordered with bisect/a heap as items arrive.",
    message="`{target}` is re-sorted on every iteration",
)
def sort_in_loop(node: ISGNode, ctx: RuleContext):
    """Sorting a loop-invariant collection on each iteration."""
    target = _sort_target(node)
    if not target or not target.replace(".", "").replace("_", "").isalnum():
        return None
    loops = ctx.loops(node)
    if not loops or not invariant_in(ctx.isg, loops[0], target):
        return None
    return Hit(node, captures={"call": node, "target": (target, node), **_loop_captures(ctx, loops[0])})


# ── Strings ───────────────────────────────────────────────────────────

_STRING_ANNOTATIONS = frozenset({"str", "string", "String"})


def _initializer(ctx: RuleContext, scope, target: str, loop: ISGNode) -> ISGNode | None:
    """Latest binding of ``target`` before ``loop`` that does not derive from itself."""
    init = last_assignment(ctx.isg, scope, target, before=loop.span)
    while init is not None and (init.attrs.get("operator") != "=" or target in init.attrs.get("value_names", ())):
        init = last_assignment(ctx.isg, scope, target, before=init.span)
    return init


def _string_typed(ctx: RuleContext, node: ISGNode, loop: ISGNode, target: str) -> bool:
    scope = ctx.scope_of(node)
    init = _initializer(ctx, scope, target, loop)
    if init is not None:
        kind = init.attrs.get("value_kind")
        if kind == "string":
            return True
        if kind in ("number", "list", "dict", "set", "deque"):
            return False
        return bool(node.attrs.get("value_has_string"))
    if scope.is_module:
        return False
    annotation = str(scope.root.attrs.get("param_types", {}).get(target, "")).strip()
    return annotation in _STRING_ANNOTATIONS


@rule(
    CATALOG,
    id="string-concat-in-loop",
    title="String concatenation in loop",
    category="string",
    targets=(NodeKind.ASSIGNMENT,),
    severity=Severity.MEDIUM,
    template="join-parts",
    remediation="Collect the pieces in a list and join them once after the loop (or use a string builder).",
    message="`{target}` is rebuilt by concatenation on every iteration",
)
def string_concat(node: ISGNode, ctx: RuleContext):
    """A string accumulated with ``+``/``+=`` across loop iterations."""
    target = _target(node)
    if not target:
        return None
    operator = node.attrs.get("operator")
    if operator == "+=":
        piece = str(node.attrs.get("value", ""))
    elif operator == "=" and node.attrs.get("value_is_concat") and target in node.attrs.get("value_names", ()):
        value = str(node.attrs.get("value", ""))
        head = value.split("+", 1)
        if head[0].strip() != target:
            return None
        piece = head[1].strip()
    else:
        return None
    loops = ctx.loops(node)
    if not loops or not initialized_outside(ctx.isg, loops[0], target):
        return None
    if not _string_typed(ctx, node, loops[0], target):
        return None
    return Hit(
        node,
        captures={
            "target": (target, node),
            "piece": (piece, node),
            **_loop_captures(ctx, loops[0]),
        },
    )


# ── Regular expressions ───────────────────────────────────────────────

_REGEX_COMPILE = frozenset({"re.compile", "regex.compile", "Pattern.compile", "regexp.MustCompile", "regexp.Compile"})
_REGEX_CONVENIENCE = frozenset(
    {
        "re.match",
        "re.search",
        "re.findall",
        "re.finditer",
        "re.sub",
        "re.subn",
        "re.split",
        "re.fullmatch",
        "regexp.MatchString",
        "Pattern.matches",
    }
)


@rule(
    CATALOG,
    id="regex-in-loop",
    title="Regular expression compiled inside a loop",
    category="regex",
    targets=(NodeKind.CALL, NodeKind.ALLOCATION),
    severity=Severity.HIGH,
    template="precompile-regex",
    remediation="Compile the pattern once outside the loop and reuse the compiled object.",
    message="the pattern {pattern} is compiled on every iteration",
)
def regex_in_loop(node: ISGNode, ctx: RuleContext):
    """A loop-invariant pattern compiled (or matched by string) per iteration."""
    modifiers: tuple[str, ...] = ()
    if node.kind is NodeKind.ALLOCATION:
        if node.attrs.get("constructor") != "RegExp":
            return None
        pattern_names = node.attrs.get("arg_names", ())
        pattern = ctx.text(node)
        inner = pattern[pattern.find("(") + 1 : pattern.rfind(")")] if "(" in pattern else ""
        pattern = inner.split(",", 1)[0].strip()
    else:
        qualified = node.attrs.get("qualified")
        if qualified in _REGEX_CONVENIENCE:
            modifiers = ("match_call",)
        elif qualified not in _REGEX_COMPILE:
            return None
        pattern = _first_arg(node)
        kinds = node.attrs.get("arg_literal_kinds", ())
        pattern_names = () if kinds and kinds[0] == "string" else tuple(node.attrs.get("arg_names", ())[:1])
    if not pattern:
        return None
    loops = ctx.loops(node)
    if not loops:
        return None
    if not all(invariant_in(ctx.isg, loop, name) for loop in loops for name in pattern_names):
        return None
    return Hit(node, captures={"call": node, "pattern": (pattern, node), **_loop_captures(ctx, loops[0])}, modifiers=modifiers)


# ── Memory ────────────────────────────────────────────────────────────

_DEEP_COPY_QUALIFIED = frozenset(
    {"copy.deepcopy", "structuredClone", "_.cloneDeep", "lodash.cloneDeep", "cloneDeep", "SerializationUtils.clone", "deepcopy"}
)


def _json_clone_argument(ctx: RuleContext, node: ISGNode) -> ISGNode | None:
    if node.attrs.get("qualified") != "JSON.parse" or "JSON.stringify" not in node.attrs.get("arg_callees", ()):
        return None
    for inner in ctx.isg.descendants(node, (NodeKind.CALL,), stop_at_scopes=True):
        if inner.attrs.get("qualified") == "JSON.stringify":
            return inner
    return None


@rule(
    CATALOG,
    id="deep-clone-in-hot-path",
    title="Deep copy in a loop or hot function",
    category="memory",
    targets=(NodeKind.CALL,),
    severity=Severity.HIGH,
    template="shallow-copy",
    remediation="Copy only what is mutated (a shallow copy or an immutable structure) instead of deep-copying.",
    message="`{call}` deep-copies `{value}` on a hot path",
)
def deep_clone(node: ISGNode, ctx: RuleContext):
    """Deep copies inside a loop or a structurally hot function."""
    json_source = _json_clone_argument(ctx, node)
    if json_source is None and node.attrs.get("qualified") not in _DEEP_COPY_QUALIFIED:
        return None
    loops = ctx.loops(node)
    reasons = ctx.hot_reasons(ctx.scope_of(node))
    structural = [r for r in reasons if r != "caller hint"]
    if not loops and not structural:
        return None
    value = _first_arg(json_source if json_source is not None else node)
    modifiers = ("hot_scope",) if "caller hint" in reasons else ()
    return Hit(node, captures={"call": node, "value": (value, node)}, modifiers=modifiers)


@rule(
    CATALOG,
    id="json-deep-clone",
    title="Deep clone through JSON round-trip",
    category="memory",
    targets=(NodeKind.CALL,),
    severity=Severity.LOW,
    languages=_JS,
    template="structured-clone",
    remediation="Use structuredClone(), which is faster and keeps Dates, Maps and Sets intact.",
    message="`{call}` clones `{value}` by serializing it to JSON and back",
)
def json_deep_clone(node: ISGNode, ctx: RuleContext):
    """``JSON.parse(JSON.stringify(x))`` used as a deep copy."""
    source = _json_clone_argument(ctx, node)
    if source is None:
        return None
    return Hit(node, captures={"call": node, "value": (_first_arg(source), source)})


_GROWTH = frozenset({"append", "push", "add", "put", "appendleft", "extend", "setdefault", "offer", "unshift", "set"})
_DRAIN = frozenset(
    {"pop", "popleft", "popitem", "shift", "clear", "remove", "discard", "delete", "splice", "poll", "removeAt", "truncate"}
)
_BOUNDED_MARKERS = ("maxlen", "LRU", "lru", "Bounded")


def _growth_receiver(node: ISGNode) -> tuple[str, str]:
    if node.kind is NodeKind.ASSIGNMENT:
        container = str(node.attrs.get("subscript_of", ""))
        if not container:
            return "", ""
        target = _target(node)
        receiver = target.split("[", 1)[0]
        return receiver, receiver.split(".", 1)[0]
    if node.attrs.get("callee") not in _GROWTH:
        return "", ""
    return str(node.attrs.get("receiver", "")), str(node.attrs.get("receiver_root", ""))


def _has_size_check(ctx: RuleContext, region: ISGNode, receiver: str) -> bool:
    probes = (f"len({receiver})", f"{receiver}.length", f"{receiver}.size", f"len({receiver}.")
    for cond in ctx.isg.descendants(region, (NodeKind.CONDITIONAL, NodeKind.LOOP)):
        text = str(cond.attrs.get("condition", ""))
        if any(p in text for p in probes):
            return True
    return False


def _drained(ctx: RuleContext, region: ISGNode, receiver: str, root: str) -> bool:
    resets = 0
    for other in ctx.isg.descendants(region, (NodeKind.COLLECTION_OP, NodeKind.CALL, NodeKind.ASSIGNMENT)):
        if other.kind is NodeKind.ASSIGNMENT:
            if receiver in other.attrs.get("targets", ()) and other.attrs.get("operator") == "=":
                resets += 1
            continue
        if other.attrs.get("receiver") == receiver and other.attrs.get("callee") in _DRAIN:
            return True
        if receiver != root and receiver in other.attrs.get("args", ()):
            return True
        if receiver == root and root in other.attrs.get("args", ()):
            return True
    return resets > 1


@rule(
    CATALOG,
    id="unbounded-growth",
    title="Unbounded growth of a long-lived collection",
    category="memory",
    targets=(NodeKind.COLLECTION_OP, NodeKind.ASSIGNMENT),
    severity=Severity.MEDIUM,
    template="bounded-cache",
    remediation="Bound the collection (evict, cap its size, or use an LRU cache) or clear it when its data is consumed.",
    message="`{collection}` only ever grows; nothing removes entries or resets it",
)
def unbounded_growth(node: ISGNode, ctx: RuleContext):
    """Module- or instance-level collections that are appended to but never drained."""
    receiver, root = _growth_receiver(node)
    if not receiver or ctx.scope_of(node).is_module:
        return None
    region = is_persistent(ctx.isg, node, receiver, root)
    if region is None:
        return None
    kinds = origin_kinds(ctx.isg, node, receiver)
    if not kinds or not kinds <= {"list", "dict", "set", "deque"}:
        return None
    for binding in ctx.isg.descendants(region, (NodeKind.ASSIGNMENT,)):
        if receiver in binding.attrs.get("targets", ()):
            if any(m in str(binding.attrs.get("value", "")) for m in _BOUNDED_MARKERS):
                return None
    if _drained(ctx, region, receiver, root) or _has_size_check(ctx, region, receiver):
        return None
    sites = [s for s in ctx.isg.descendants(region, (NodeKind.COLLECTION_OP, NodeKind.ASSIGNMENT)) if _growth_receiver(s)[0] == receiver]
    sites = [s for s in sites if not ctx.scope_of(s).is_module]
    if not sites or sites[0] is not node:
        return None
    modifiers = ("large_input",) if ctx.hints.is_large(receiver) else ()
    item = _first_arg(node) if node.kind is not NodeKind.ASSIGNMENT else str(node.attrs.get("value", ""))
    return Hit(node, captures={"collection": (receiver, node), "item": (item, node)}, modifiers=modifiers)


# ── Chained iteration ─────────────────────────────────────────────────

_CHAIN_HEADS = frozenset({"map", "filter"})
_CHAIN_TAILS = frozenset({"map", "filter", "forEach", "reduce", "flatMap", "some", "every", "find"})


@rule(
    CATALOG,
    id="chained-map-filter",
    title="Chained array passes",
    category="collections",
    targets=(NodeKind.COLLECTION_OP,),
    severity=Severity.LOW,
    languages=_JS,
    template="single-pass",
    remediation="Fold the chained callbacks into a single pass (one loop or one reduce).",
    message="`{collection}.{first}(...).{second}(...)` walks the array twice and allocates an intermediate copy",
)
def chained_map_filter(node: ISGNode, ctx: RuleContext):
    """``xs.map(f).filter(g)``-style chains that walk the data more than once."""
    leaf = node.attrs.get("callee")
    head = node.attrs.get("receiver_callee")
    if leaf not in _CHAIN_TAILS or head not in _CHAIN_HEADS or not node.attrs.get("has_closure_arg"):
        return None
    for child in node.children:
        if child.kind is NodeKind.COLLECTION_OP and child.attrs.get("callee") == head and child.attrs.get("has_closure_arg"):
            return Hit(
                node,
                captures={
                    "collection": (str(child.attrs.get("receiver", "")), child),
                    "first": (str(head), child),
                    "second": (str(leaf), node),
                    "first_fn": (_first_arg(child), child),
                    "second_fn": (_first_arg(node), node),
                },
            )
    return None


# ── Dataframes ────────────────────────────────────────────────────────


@rule(
    CATALOG,
    id="dataframe-row-iteration",
    title="Row-by-row DataFrame iteration",
    category="dataframe",
    targets=(NodeKind.LOOP, NodeKind.CALL, NodeKind.COLLECTION_OP),
    severity=Severity.MEDIUM,
    languages=("python",),
    template="vectorize",
    remediation="Express the computation as vectorized column operations instead of iterating rows.",
    message="`{frame}` is processed one row at a time",
)
def dataframe_rows(node: ISGNode, ctx: RuleContext):
    """``iterrows``/``itertuples`` loops and ``apply(axis=1)``."""
    if node.kind is NodeKind.LOOP:
        if node.attrs.get("iterable_callee") not in ("iterrows", "itertuples"):
            return None
        return Hit(node, captures={"frame": (str(node.attrs.get("iterable_receiver", "")), node)})
    if node.attrs.get("callee") != "apply" or not node.attrs.get("receiver"):
        return None
    args = [a.replace(" ", "") for a in node.attrs.get("args", ())]
    if not any(a in ("axis=1", "axis='columns'", 'axis="columns"') for a in args):
        return None
    return Hit(node, captures={"frame": (str(node.attrs.get("receiver")), node)})


# ── Concurrency ───────────────────────────────────────────────────────

_SLEEP_QUALIFIED = frozenset({"time.sleep", "Thread.sleep", "time.Sleep", "asyncio.sleep", "TimeUnit.SECONDS.sleep"})


def _is_sleep(node: ISGNode) -> bool:
    if node.attrs.get("qualified") in _SLEEP_QUALIFIED:
        return True
    return node.attrs.get("callee") in ("sleep", "delay") and not node.attrs.get("receiver")


@rule(
    CATALOG,
    id="sleep-in-loop",
    title="Polling loop with sleep",
    category="concurrency",
    targets=(NodeKind.CALL,),
    severity=Severity.MEDIUM,
    template="event-wait",
    remediation="Wait on an event, condition or future instead of polling with sleep.",
    message="`{call}` polls inside a `{loop_kind}` loop",
)
def sleep_in_loop(node: ISGNode, ctx: RuleContext):
    """Sleeping inside a condition-driven loop."""
    if not _is_sleep(node):
        return None
    for loop in ctx.loops(node):
        kind = loop.attrs.get("loop_kind")
        if loop.kind is NodeKind.LOOP and kind in ("while", "do-while"):
            return Hit(node, captures={"call": node, "loop_kind": (str(kind), loop), "duration": (_first_arg(node), node)})
    return None


@rule(
    CATALOG,
    id="await-in-loop",
    title="Sequential await inside a loop",
    category="concurrency",
    targets=ALL_CALLS,
    severity=Severity.MEDIUM,
    languages=_SCRIPTING,
    template="gather",
    remediation="Start the awaits together (asyncio.gather / Promise.all) instead of awaiting each in turn.",
    message="`{call}` is awaited one element of `{collection}` at a time",
)
def await_in_loop(node: ISGNode, ctx: RuleContext):
    """Independent awaits serialized by a for loop."""
    if not node.attrs.get("awaited") or _is_sleep(node):
        return None
    for loop in ctx.loops(node):
        if loop.kind is not NodeKind.LOOP:
            return None
        if loop.attrs.get("loop_kind") not in ("for", "for-each"):
            continue
        if depends_on(node, loop_vars(ctx.isg, loop)):
            return Hit(node, captures={"call": node, **_loop_captures(ctx, loop)})
    return None


CATALOG.freeze()
