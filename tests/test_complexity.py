"""Tests for the structural complexity estimator."""

from __future__ import annotations

from conftest import parse_isg

from hotpath.budget import Budget
from hotpath.complexity import ComplexityClass, estimate_all, notation, self_calls


def _result(source, name, language="python"):
    isg = parse_isg(source, language)
    estimate = estimate_all(isg)
    for result in estimate.results:
        if result.scope_name == name:
            return result
    raise AssertionError(f"no scope named {name!r}; have {[r.scope_name for r in estimate.results]}")


class TestComplexityClass:
    def test_from_degree(self):
        assert ComplexityClass.from_degree(0) is ComplexityClass.CONSTANT
        assert ComplexityClass.from_degree(0, log_factor=True) is ComplexityClass.LOGARITHMIC
        assert ComplexityClass.from_degree(1) is ComplexityClass.LINEAR
        assert ComplexityClass.from_degree(1, log_factor=True) is ComplexityClass.LINEARITHMIC
        assert ComplexityClass.from_degree(2) is ComplexityClass.QUADRATIC
        assert ComplexityClass.from_degree(5) is ComplexityClass.POLYNOMIAL

    def test_ranks_are_ordered(self):
        ranks = [c.rank for c in ComplexityClass]
        assert ranks == sorted(ranks)
        assert ComplexityClass.INDETERMINATE.rank > ComplexityClass.EXPONENTIAL.rank

    def test_notation(self):
        assert notation(ComplexityClass.QUADRATIC) == "O(n²)"
        assert notation(ComplexityClass.POLYNOMIAL, 4) == "O(n⁴)"
        assert notation(ComplexityClass.EXPONENTIAL) == "O(2ⁿ)"
        assert notation(ComplexityClass.LINEARITHMIC) == "O(n log n)"
        assert notation(ComplexityClass.INDETERMINATE) == "indeterminate"


class TestLoops:
    def test_no_loops_is_constant(self):
        result = _result(
            """
            def inc(a):
                return a + 1
            """,
            "inc",
        )
        assert result.complexity is ComplexityClass.CONSTANT
        assert result.annotation == "O(1)"
        assert result.contributors == ()

    def test_sequential_loops_stay_linear(self):
        result = _result(
            """
            def twice(xs):
                for x in xs:
                    print(x)
                for y in xs:
                    print(y)
            """,
            "twice",
        )
        assert result.complexity is ComplexityClass.LINEAR
        assert result.degree == 1
        assert result.reason.startswith("loop at lines 2-")

    def test_nested_loops_are_quadratic(self):
        result = _result(
            """
            def pairs(xs, ys):
                for x in xs:
                    for y in ys:
                        print(x, y)
            """,
            "pairs",
        )
        assert result.complexity is ComplexityClass.QUADRATIC
        assert result.notation == "O(n²)"
        assert result.annotation == "O(n²) — nested loop at lines 2-4"
        assert len(result.contributors) == 2

    def test_triple_nesting_is_polynomial(self):
        result = _result(
            """
            def triples(xs, ys, zs):
                for a in xs:
                    for b in ys:
                        for c in zs:
                            print(a, b, c)
            """,
            "triples",
        )
        assert result.complexity is ComplexityClass.POLYNOMIAL
        assert result.degree == 3
        assert result.notation == "O(n³)"

    def test_constant_range_is_constant(self):
        result = _result(
            """
            def retry(op):
                for attempt in range(10):
                    op(attempt)
            """,
            "retry",
        )
        assert result.complexity is ComplexityClass.CONSTANT

    def test_constant_inner_loop_does_not_add_a_degree(self):
        result = _result(
            """
            def grid(rows):
                for row in rows:
                    for k in range(3):
                        print(row, k)
            """,
            "grid",
        )
        assert result.complexity is ComplexityClass.LINEAR

    def test_comprehension_levels(self):
        result = _result(
            """
            def product(xs, ys):
                return [(x, y) for x in xs for y in ys]
            """,
            "product",
        )
        assert result.complexity is ComplexityClass.QUADRATIC

    def test_module_scope_is_estimated(self):
        isg = parse_isg(
            """
            for x in items:
                print(x)
            """
        )
        estimate = estimate_all(isg)
        module = estimate.results[0]
        assert module.scope_name == "<module>"
        assert module.complexity is ComplexityClass.LINEAR
        assert estimate.for_scope(module.scope_id) is module

    def test_java_nested_enhanced_for(self):
        result = _result(
            """
            class Pairs {
                int count(int[] xs, int[] ys) {
                    int n = 0;
                    for (int x : xs) {
                        for (int y : ys) {
                            n += x * y;
                        }
                    }
                    return n;
                }
            }
            """,
            "count",
            language="java",
        )
        assert result.complexity is ComplexityClass.QUADRATIC


class TestLoopBounds:
    def test_binary_search_is_logarithmic(self):
        result = _result(
            """
            def search(xs, target):
                lo, hi = 0, len(xs) - 1
                while lo <= hi:
                    mid = (lo + hi) // 2
                    if xs[mid] == target:
                        return mid
                    if xs[mid] < target:
                        lo = mid + 1
                    else:
                        hi = mid - 1
                return -1
            """,
            "search",
        )
        assert result.complexity is ComplexityClass.LOGARITHMIC
        assert result.reason.startswith("halving loop")

    def test_two_pointer_inner_loop_is_amortized(self):
        result = _result(
            """
            def window(xs, limit):
                j = 0
                best = 0
                for i in range(len(xs)):
                    while j < len(xs) and xs[j] - xs[i] < limit:
                        j += 1
                    best = max(best, j - i)
                return best
            """,
            "window",
        )
        assert result.complexity is ComplexityClass.LINEAR
        assert "amortized" in result.reason

    def test_polling_loop_with_updated_condition(self):
        result = _result(
            """
            import time

            def wait_ready(job):
                while not job.done():
                    time.sleep(1)
            """,
            "wait_ready",
        )
        assert result.complexity is ComplexityClass.LINEAR

    def test_unbounded_while_is_indeterminate(self):
        result = _result(
            """
            def serve(queue):
                while True:
                    handle(queue)
            """,
            "serve",
        )
        assert result.complexity is ComplexityClass.INDETERMINATE
        assert "has no bound" in result.reason
        assert result.degree == 0

    def test_bare_go_for_is_indeterminate(self):
        result = _result(
            """
            package main

            func spin() {
            \tfor {
            \t\tpoll()
            \t}
            }
            """,
            "spin",
            language="go",
        )
        assert result.complexity is ComplexityClass.INDETERMINATE


class TestRecursion:
    def test_branching_recursion_is_exponential(self):
        result = _result(
            """
            def fib(n):
                if n < 2:
                    return n
                return fib(n - 1) + fib(n - 2)
            """,
            "fib",
        )
        assert result.complexity is ComplexityClass.EXPONENTIAL
        assert result.recursion == "branching"
        assert result.notation == "O(2ⁿ)"
        assert result.testability == 7
        assert result.reason == "branching recursion at lines 4, 4"

    def test_memoized_by_decorator(self):
        result = _result(
            """
            from functools import lru_cache

            @lru_cache(maxsize=None)
            def fib(n):
                if n < 2:
                    return n
                return fib(n - 1) + fib(n - 2)
            """,
            "fib",
        )
        assert result.complexity is ComplexityClass.LINEAR
        assert result.recursion == "memoized"
        assert result.reason == "memoized recursion (@lru_cache)"

    def test_memoized_by_guarded_lookup(self):
        result = _result(
            """
            def fib(n, memo):
                if n in memo:
                    return memo[n]
                result = fib(n - 1, memo) + fib(n - 2, memo)
                memo[n] = result
                return result
            """,
            "fib",
        )
        assert result.recursion == "memoized"
        assert result.complexity is ComplexityClass.LINEAR
        assert result.reason == "memoized recursion (lookup in memo)"

    def test_lookup_without_a_write_is_not_memoization(self):
        result = _result(
            """
            def fib(n, seeds):
                if n in seeds:
                    return seeds[n]
                return fib(n - 1, seeds) + fib(n - 2, seeds)
            """,
            "fib",
        )
        assert result.recursion == "branching"

    def test_linear_recursion(self):
        result = _result(
            """
            def count(n):
                if n == 0:
                    return 0
                return 1 + count(n - 1)
            """,
            "count",
        )
        assert result.complexity is ComplexityClass.LINEAR
        assert result.recursion == "linear"

    def test_structural_recursion_over_children(self):
        result = _result(
            """
            def walk(node):
                visit(node)
                for child in node.children:
                    walk(child)
            """,
            "walk",
        )
        assert result.complexity is ComplexityClass.LINEAR
        assert result.recursion == "structural"
        assert result.reason == "structural recursion over node.children"

    def test_mutual_recursion_is_indeterminate(self):
        source = """
            def is_even(n):
                if n == 0:
                    return True
                return is_odd(n - 1)

            def is_odd(n):
                if n == 0:
                    return False
                return is_even(n - 1)
            """
        for name in ("is_even", "is_odd"):
            result = _result(source, name)
            assert result.complexity is ComplexityClass.INDETERMINATE
            assert result.recursion == "mutual"
            assert result.reason == "mutual recursion: is_even, is_odd"

    def test_same_names_on_other_objects_stay_constant(self):
        source = """
            def load(key):
                return cache.save(key)

            def save(key):
                return db.load(key)
            """
        for name in ("load", "save"):
            result = _result(source, name)
            assert result.recursion == "none"
            assert result.complexity is ComplexityClass.CONSTANT

    def test_method_recursion_through_self(self):
        source = """
            class Tree:
                def size(self, node):
                    if node is None:
                        return 0
                    return 1 + self.size(node.left) + self.size(node.right)
            """
        isg = parse_isg(source)
        scope = next(s for s in isg.scopes() if s.name == "size")
        assert len(self_calls(isg, scope)) == 2
        assert _result(source, "size").complexity is ComplexityClass.EXPONENTIAL

    def test_call_on_another_receiver_is_not_recursion(self):
        source = """
            class Proxy:
                def fetch(self, key):
                    return self.backend.fetch(key)
            """
        result = _result(source, "fetch")
        assert result.recursion == "none"
        assert result.complexity is ComplexityClass.CONSTANT


class TestTestability:
    def test_simple_function_scores_ten(self):
        assert _result("def f(a):\n    return a\n", "f").testability == 10

    def test_many_parameters(self):
        assert _result("def f(a, b, c, d, e):\n    return a\n", "f").testability == 9

    def test_nested_function(self):
        result = _result(
            """
            def outer():
                def inner(a):
                    return a
                return inner
            """,
            "inner",
        )
        assert result.testability == 9

    def test_many_conditionals(self):
        branches = "".join(f"    if x == {k}:\n        return {k}\n" for k in range(7))
        assert _result(f"def pick(x):\n{branches}    return -1\n", "pick").testability == 8

    def test_quadratic_penalty(self):
        result = _result(
            """
            def pairs(xs, ys):
                for x in xs:
                    for y in ys:
                        print(x, y)
            """,
            "pairs",
        )
        assert result.testability == 8


class TestEstimateAll:
    def test_results_follow_scope_order(self):
        isg = parse_isg(
            """
            def a():
                pass

            def b():
                pass
            """
        )
        names = [r.scope_name for r in estimate_all(isg).results]
        assert names == ["<module>", "a", "b"]

    def test_expired_budget_is_partial(self):
        ticks = iter([0.0])
        budget = Budget(1.0, clock=lambda: next(ticks, 50.0))
        estimate = estimate_all(parse_isg("def a():\n    pass\n"), budget)
        assert estimate.partial
        assert estimate.results == []

    def test_to_dict(self):
        d = _result("def f(xs):\n    for x in xs:\n        print(x)\n", "f").to_dict()
        assert d["scope"] == "f"
        assert d["complexity"] == "O(n)"
        assert d["notation"] == "O(n)"
        assert d["recursion"] == "none"
        assert d["span"]["start_line"] == 1
