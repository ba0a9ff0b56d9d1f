"""Intra-unit call graph over function scopes, built with networkx."""

from __future__ import annotations

from collections import Counter

import networkx as nx

from hotpath.isg import ISG, ISGNode, NodeKind, Scope

# Receivers through which a method calls its own class.
SELF_RECEIVERS = frozenset({"self", "this", "cls"})


def calls_own_unit(call: ISGNode, caller: Scope) -> bool:
    """Whether ``call`` can only mean a function defined in this unit.

    Bare calls and calls through self/this/cls qualify, as do calls through
    the caller's own receiver (Go methods). ``cache.save(k)`` does not.
    """
    receiver = call.attrs.get("receiver", "")
    if not receiver or receiver in SELF_RECEIVERS:
        return True
    own = "" if caller.is_module else caller.root.attrs.get("receiver_name", "")
    return bool(own) and receiver == own


class CallGraph:
    """Directed graph: caller scope id -> callee scope id.

    Calls are resolved by callee name against the functions defined in the
    same unit, and only when the receiver points back into the unit (see
    :func:`calls_own_unit`). Call sites at module level count towards
    fan-in but add no edge.
    """

    def __init__(self, isg: ISG):
        self.isg = isg
        self.graph = nx.DiGraph()
        self._fan_in: Counter[int] = Counter()
        self._in_loop: set[int] = set()

        by_name: dict[str, list[int]] = {}
        for scope in isg.scopes():
            if scope.is_module:
                continue
            self.graph.add_node(scope.id, name=scope.name)
            by_name.setdefault(scope.name, []).append(scope.id)

        for call in isg.walk((NodeKind.CALL, NodeKind.COLLECTION_OP)):
            targets = by_name.get(str(call.attrs.get("callee", "")))
            if not targets:
                continue
            caller = isg.scope_of(call)
            if not calls_own_unit(call, caller):
                continue
            in_loop = bool(isg.enclosing_loops(call))
            for target in targets:
                if target == caller.id:
                    continue
                self._fan_in[target] += 1
                if in_loop:
                    self._in_loop.add(target)
                if not caller.is_module:
                    if self.graph.has_edge(caller.id, target):
                        self.graph[caller.id][target]["sites"] += 1
                    else:
                        self.graph.add_edge(caller.id, target, sites=1)

        self._cycles: dict[int, tuple[str, ...]] = {}
        for component in nx.strongly_connected_components(self.graph):
            if len(component) < 2:
                continue
            names = tuple(sorted(self.graph.nodes[n]["name"] for n in component))
            for member in component:
                self._cycles[member] = names

    def fan_in(self, scope_id: int) -> int:
        """Number of call sites elsewhere in the unit that target this scope."""
        return self._fan_in.get(scope_id, 0)

    def called_in_loop(self, scope_id: int) -> bool:
        return scope_id in self._in_loop

    def in_cycle(self, scope_id: int) -> bool:
        return scope_id in self._cycles

    def cycle_of(self, scope_id: int) -> tuple[str, ...]:
        """Names of the functions in this scope's mutual-recursion cycle."""
        return self._cycles.get(scope_id, ())
