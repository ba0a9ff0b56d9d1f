"""Structural complexity estimation per scope.

Costs are computed per leaf-reaching path as ``(degree, log factors)``:
nesting multiplies (degrees add), sequence takes the maximum. Loop bounds
are judged statically; anything that cannot be tied to a bound the ISG
shows makes the scope ``indeterminate`` rather than guessed.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from hotpath.budget import Budget
from hotpath.callgraph import CallGraph, calls_own_unit
from hotpath.exit_codes import AnalysisTimeout
from hotpath.isg import ISG, ISGNode, NodeKind, Scope
from hotpath.rules.helpers import CALL_KINDS, assignments_to, is_module_constant, last_assignment, loop_label

from .model import ComplexityClass, ComplexityResult

# Decorators/annotations that memoize a function.
MEMO_DECORATORS = frozenset({"cache", "lru_cache", "cached", "memoize", "memoized", "memo", "Cacheable", "cached_property"})
# Collection calls that store into a memo container.
_MEMO_WRITES = frozenset({"set", "put", "add", "setdefault", "update", "putIfAbsent", "computeIfAbsent"})

_HALVING_OPERATORS = frozenset({"//=", "/=", ">>=", ">>>=", "*=", "<<="})
_HALVING_VALUE = re.compile(r"(//|/|>>>?|\*)\s*2\b|>>>?\s*1\b")

_POLYNOMIAL_CLASSES = frozenset(
    {ComplexityClass.LINEAR, ComplexityClass.LINEARITHMIC, ComplexityClass.QUADRATIC, ComplexityClass.POLYNOMIAL}
)

# Testability penalties.
TESTABILITY_START = 10
MAX_PARAMS = 4
FREE_CONDITIONALS = 5
MAX_CONDITIONAL_PENALTY = 3
CLASS_PENALTIES = {
    ComplexityClass.LINEARITHMIC: 1,
    ComplexityClass.QUADRATIC: 2,
    ComplexityClass.POLYNOMIAL: 2,
    ComplexityClass.EXPONENTIAL: 3,
    ComplexityClass.INDETERMINATE: 2,
}


@dataclass(frozen=True)
class _Cost:
    degree: int = 0
    logs: int = 0
    loops: tuple[int, ...] = ()

    @property
    def key(self) -> tuple[int, int]:
        return (self.degree, self.logs)


_ZERO = _Cost()


def _max(costs) -> _Cost:
    best = _ZERO
    for cost in costs:
        if cost.key > best.key:
            best = cost
    return best


@dataclass
class ComplexityEstimate:
    results: list[ComplexityResult]
    partial: bool = False

    def for_scope(self, scope_id: int) -> ComplexityResult | None:
        for result in self.results:
            if result.scope_id == scope_id:
                return result
        return None


class _ScopeWalker:
    """Computes the loop cost of one scope."""

    def __init__(self, isg: ISG, scope: Scope):
        self.isg = isg
        self.scope = scope
        self.unbounded: list[ISGNode] = []
        self.amortized: list[ISGNode] = []

    def run(self) -> _Cost:
        return _max(self.cost(child, ()) for child in self.scope.root.children)

    def cost(self, node: ISGNode, enclosing: tuple[ISGNode, ...]) -> _Cost:
        if node.kind is NodeKind.FUNCTION:
            return _ZERO
        if node.kind is NodeKind.LOOP:
            once = [self.cost(c, enclosing) for c in node.once_children]
            body = _max(self.cost(c, enclosing + (node,)) for c in node.body_children)
            degree, logs = self.factor(node, enclosing)
            return _max(once + [self._nest(node, degree, logs, body)])
        if node.iterates:
            once = [self.cost(c, enclosing) for c in node.children if c.kind is not NodeKind.CLOSURE]
            body = _max(
                self.cost(c, enclosing + (node,)) for c in node.children if c.kind is NodeKind.CLOSURE
            )
            return _max(once + [self._nest(node, 1, 0, body)])
        return _max(self.cost(c, enclosing) for c in node.children)

    @staticmethod
    def _nest(node: ISGNode, degree: int, logs: int, body: _Cost) -> _Cost:
        if not degree and not logs:
            return body
        return _Cost(body.degree + degree, body.logs + logs, (node.id,) + body.loops)

    # -- loop bounds ------------------------------------------------------

    def factor(self, loop: ISGNode, enclosing: tuple[ISGNode, ...]) -> tuple[int, int]:
        attrs = loop.attrs
        kind = attrs.get("loop_kind")
        if kind == "comprehension":
            return max(0, int(attrs.get("levels", 1)) - int(attrs.get("constant_levels", 0))), 0
        if self._constant(loop):
            return 0, 0
        if kind in ("while", "do-while") or (kind == "for" and not attrs.get("update") and not attrs.get("iter_vars")):
            names = set(attrs.get("condition_names", ()))
            updated = self._updated(loop) & names
            if not updated:
                self.unbounded.append(loop)
                return 0, 0
            if self._halving(loop, updated):
                return 0, 1
            if self._amortized(loop, updated, enclosing):
                self.amortized.append(loop)
                return 0, 0
            return 1, 0
        if kind == "for" and self._halving(loop, set(attrs.get("iter_vars", ()))):
            return 0, 1
        return 1, 0

    def _constant(self, loop: ISGNode) -> bool:
        attrs = loop.attrs
        if attrs.get("bound_constant"):
            return True
        kind = attrs.get("loop_kind")
        bound_names = attrs.get("bound_names", ())
        if kind == "for-each" and bound_names and all(is_module_constant(self.isg, n) for n in bound_names):
            return True
        if kind == "for" and bound_names and all(is_module_constant(self.isg, n) for n in bound_names):
            return True
        if kind == "for-each" and self._constant_collection(attrs):
            return True
        if kind in ("while", "do-while") and attrs.get("compares_literal"):
            return self._counts_to_literal(loop)
        return False

    def _constant_collection(self, attrs) -> bool:
        """``for x in COLORS`` where COLORS is a module-level literal without names."""
        iterable = str(attrs.get("iterable", ""))
        if not iterable or iterable != attrs.get("iterable_root"):
            return False
        module = self.isg.scopes()[0]
        bound = assignments_to(self.isg, module, iterable)
        if len(bound) != 1:
            return False
        a = bound[0].attrs
        return (
            a.get("operator") == "="
            and a.get("value_kind") in ("list", "set", "dict", "tuple", "other")
            and str(a.get("value", "")).lstrip()[:1] in ("[", "(", "{")
            and not a.get("value_names")
            and not a.get("value_calls")
        )

    def _counts_to_literal(self, loop: ISGNode) -> bool:
        """``while i < 10`` where ``i`` starts from a number and only steps."""
        names = set(loop.attrs.get("condition_names", ()))
        if not names:
            return False
        for name in names:
            init = last_assignment(self.isg, self.scope, name, before=loop.span)
            if init is None or init.attrs.get("value_kind") != "number":
                return False
            for a in self.isg.descendants(loop, (NodeKind.ASSIGNMENT,), stop_at_scopes=True):
                if name in a.attrs.get("targets", ()) and a.attrs.get("operator") not in ("+=", "-=", "++", "--"):
                    return False
        return True

    def _updated(self, loop: ISGNode) -> set[str]:
        """Names a loop's body can change: assignment targets and mutated receivers."""
        names: set[str] = set()
        for node in self.isg.descendants(loop, (NodeKind.ASSIGNMENT, *CALL_KINDS), stop_at_scopes=True):
            if node.kind is NodeKind.ASSIGNMENT:
                names.update(node.attrs.get("target_roots", ()))
                names.update(node.attrs.get("targets", ()))
                if node.attrs.get("subscript_of"):
                    names.add(str(node.attrs["subscript_of"]))
            elif node.attrs.get("receiver_root"):
                names.add(str(node.attrs["receiver_root"]))
            elif not node.attrs.get("receiver"):
                names.update(node.attrs.get("arg_names", ()))
        names.update(re.findall(r"[A-Za-z_]\w*", str(loop.attrs.get("update", ""))))
        return names

    def _halving(self, loop: ISGNode, names: set[str]) -> bool:
        update = str(loop.attrs.get("update", ""))
        if update and any(op in update for op in _HALVING_OPERATORS):
            return True
        if update and _HALVING_VALUE.search(update):
            return True
        midpoints: set[str] = set()
        assignments = list(self.isg.descendants(loop, (NodeKind.ASSIGNMENT,), stop_at_scopes=True))
        for a in assignments:
            targets = set(a.attrs.get("targets", ()))
            if a.attrs.get("operator") in _HALVING_OPERATORS and targets & names:
                return True
            value = str(a.attrs.get("value", ""))
            if _HALVING_VALUE.search(value):
                if targets & names:
                    return True
                if set(a.attrs.get("value_names", ())) & names:
                    midpoints |= targets
        if not midpoints:
            return False
        for a in assignments:
            if set(a.attrs.get("targets", ())) & names and set(a.attrs.get("value_names", ())) & midpoints:
                return True
        return False

    def _amortized(self, loop: ISGNode, updated: set[str], enclosing: tuple[ISGNode, ...]) -> bool:
        """An inner while whose cursor persists across the outer loop (two pointers)."""
        outer = next((e for e in reversed(enclosing) if e.kind is NodeKind.LOOP), None)
        if outer is None:
            return False
        inner_ids = {loop.id} | {n.id for n in self.isg.descendants(loop)}
        for name in updated:
            outside = last_assignment(self.isg, self.scope, name, before=outer.span)
            if outside is None and name not in self.scope.root.attrs.get("params", ()):
                return False
            if name in outer.attrs.get("iter_vars", ()):
                return False
            for a in self.isg.descendants(outer, (NodeKind.ASSIGNMENT,), stop_at_scopes=True):
                if a.id in inner_ids or name not in a.attrs.get("targets", ()):
                    continue
                if a.attrs.get("operator") == "=" and name not in a.attrs.get("value_names", ()):
                    return False
        return True


# ── Recursion ─────────────────────────────────────────────────────────


def self_calls(isg: ISG, scope: Scope) -> list[ISGNode]:
    """Calls from a function to itself, by name (through self/this for methods)."""
    if scope.is_module:
        return []
    return [
        call
        for call in isg.scope_nodes(scope, CALL_KINDS)
        if call.attrs.get("callee") == scope.name and calls_own_unit(call, scope)
    ]


def memo_evidence(isg: ISG, scope: Scope, calls: list[ISGNode]) -> str:
    """How a recursive function memoizes, or '' when it does not."""
    decorators = set(scope.root.attrs.get("decorators", ()))
    hit = decorators & MEMO_DECORATORS
    if hit:
        return f"@{sorted(hit)[0]}"
    first_call = min(c.span.start for c in calls)
    for cond in isg.scope_nodes(scope, (NodeKind.CONDITIONAL,)):
        container = str(cond.attrs.get("lookup_container", ""))
        if not container or not cond.attrs.get("guard_returns"):
            continue
        if cond.span.start >= first_call:
            continue
        if _writes(isg, scope, container):
            return f"lookup in {container}"
    return ""


def _writes(isg: ISG, scope: Scope, container: str) -> bool:
    for node in isg.scope_nodes(scope, (NodeKind.ASSIGNMENT, NodeKind.COLLECTION_OP, NodeKind.CALL)):
        if node.kind is NodeKind.ASSIGNMENT:
            if node.attrs.get("subscript_of") == container or any(
                str(t).startswith(f"{container}[") for t in node.attrs.get("targets", ())
            ):
                return True
        elif node.attrs.get("callee") in _MEMO_WRITES:
            if node.attrs.get("receiver") == container or node.attrs.get("receiver_root") == container:
                return True
    return False


def _structural(isg: ISG, calls: list[ISGNode]) -> str:
    """Iterable text when every self-call walks a collection attribute of its input."""
    label = ""
    for call in calls:
        loops = isg.enclosing_loops(call)
        if not loops:
            return ""
        loop = loops[0]
        if loop.kind is NodeKind.LOOP:
            iterable = str(loop.attrs.get("iterable", ""))
            names = set(loop.attrs.get("iter_vars", ()))
        else:
            iterable = str(loop.attrs.get("receiver", ""))
            names = {p for c in loop.children if c.kind is NodeKind.CLOSURE for p in c.attrs.get("params", ())}
        if "." not in iterable and "[" not in iterable:
            return ""
        if not set(call.attrs.get("arg_names", ())) & names:
            return ""
        label = label or iterable
    return label


# ── Scoring ───────────────────────────────────────────────────────────


def testability(isg: ISG, scope: Scope, complexity: ComplexityClass) -> int:
    """1-10 score; higher is easier to test."""
    score = TESTABILITY_START
    score -= scope.nesting_depth
    if scope.param_count > MAX_PARAMS:
        score -= 1
    conditionals = sum(1 for _ in isg.scope_nodes(scope, (NodeKind.CONDITIONAL,)))
    score -= min(MAX_CONDITIONAL_PENALTY, max(0, conditionals - FREE_CONDITIONALS))
    score -= CLASS_PENALTIES.get(complexity, 0)
    return max(1, min(10, score))


def estimate_scope(isg: ISG, scope: Scope, call_graph: CallGraph | None = None) -> ComplexityResult:
    """Estimate the complexity class of one scope."""
    walker = _ScopeWalker(isg, scope)
    cost = walker.run()
    calls = self_calls(isg, scope)
    recursion = "none"
    complexity = ComplexityClass.from_degree(cost.degree, cost.logs > 0)
    degree = cost.degree
    log_factor = cost.logs > 0 and cost.degree <= 1
    contributors = cost.loops
    outer = isg.node(cost.loops[0]) if cost.loops else None

    reason = ""
    if cost.degree >= 2:
        reason = f"nested loop at lines {outer.span.lines}"
    elif cost.degree == 1:
        what = "loop with a halving inner loop" if log_factor else "loop"
        reason = f"{what} at lines {outer.span.lines}"
    elif cost.logs:
        reason = f"halving loop at lines {outer.span.lines}"
    if walker.amortized and cost.degree >= 1:
        reason += f" (inner loop at lines {walker.amortized[0].span.lines} is amortized)"

    if call_graph is not None and call_graph.in_cycle(scope.id):
        recursion = "mutual"
        complexity = ComplexityClass.INDETERMINATE
        reason = "mutual recursion: " + ", ".join(call_graph.cycle_of(scope.id))
    elif calls:
        structure = _structural(isg, calls)
        in_loop = any(isg.enclosing_loops(c) for c in calls)
        sites = ", ".join(str(c.span.start_line) for c in calls)
        contributors = tuple(c.id for c in calls)
        if structure:
            recursion = "structural"
            complexity, degree, log_factor = ComplexityClass.LINEAR, 1, False
            reason = f"structural recursion over {structure}"
        elif len(calls) >= 2 or in_loop:
            memo = memo_evidence(isg, scope, calls)
            if memo:
                recursion = "memoized"
                degree = max(cost.degree, 1)
                complexity = ComplexityClass.from_degree(degree)
                log_factor = False
                reason = f"memoized recursion ({memo})"
            else:
                recursion = "branching"
                complexity = ComplexityClass.EXPONENTIAL
                reason = f"branching recursion at lines {sites}"
        elif cost.degree or cost.logs:
            recursion = "linear"
            complexity = ComplexityClass.INDETERMINATE
            reason = f"recursion at line {sites} combined with loops"
        else:
            recursion = "linear"
            complexity, degree, log_factor = ComplexityClass.LINEAR, 1, False
            reason = f"recursive call at line {sites}"

    if walker.unbounded and complexity is not ComplexityClass.EXPONENTIAL:
        loop = walker.unbounded[0]
        complexity = ComplexityClass.INDETERMINATE
        contributors = tuple(n.id for n in walker.unbounded)
        reason = f"loop at lines {loop.span.lines} has no bound tied to its body ({loop_label(isg, loop)})"

    return ComplexityResult(
        scope_id=scope.id,
        scope_name=scope.name,
        span=scope.span,
        complexity=complexity,
        degree=degree if complexity in _POLYNOMIAL_CLASSES else 0,
        log_factor=log_factor,
        contributors=tuple(contributors),
        reason=reason,
        recursion=recursion,
        testability=testability(isg, scope, complexity),
    )


def estimate_all(isg: ISG, budget: Budget | None = None, *, call_graph: CallGraph | None = None) -> ComplexityEstimate:
    """Estimate every scope, module first. Stops early (``partial``) when the budget runs out."""
    budget = budget or Budget()
    call_graph = call_graph or CallGraph(isg)
    estimate = ComplexityEstimate(results=[])
    for scope in isg.scopes():
        try:
            budget.check("complexity")
        except AnalysisTimeout:
            estimate.partial = True
            break
        estimate.results.append(estimate_scope(isg, scope, call_graph))
    return estimate
