"""Tests for the rule registry, the rule engine and the built-in catalog."""

from __future__ import annotations

import inspect

import pytest

from conftest import parse_isg

from hotpath.budget import Budget
from hotpath.config import EngineConfig
from hotpath.hints import AnalysisHints
from hotpath.isg import NodeKind
from hotpath.rules import Hit, Rule, RuleRegistry, default_registry, evaluate_rules, rule
from hotpath.rules import catalog
from hotpath.severity import MODIFIER_WEIGHTS, Severity


def _matches(source, language="python", **kwargs):
    isg = parse_isg(source, language)
    return evaluate_rules(isg, language, **kwargs).matches


def _by_rule(matches, rule_id):
    return [m for m in matches if m.rule_id == rule_id]


# ===========================================================================
# Registry
# ===========================================================================


class TestRegistry:
    def test_catalog_size_and_ids(self):
        registry = default_registry()
        assert len(registry) == 17
        assert "n-plus-one-query" in registry
        assert [r.id for r in registry.rules()] == sorted(r.id for r in registry.rules())

    def test_catalog_is_frozen(self):
        registry = default_registry()
        assert registry.frozen
        with pytest.raises(RuntimeError):
            registry.register(registry.get("sort-in-loop"))

    def test_duplicate_ids_are_rejected(self):
        registry = RuleRegistry()
        registry.register(default_registry().get("sort-in-loop"))
        with pytest.raises(ValueError):
            registry.register(default_registry().get("sort-in-loop"))

    def test_default_severities(self):
        registry = default_registry()
        assert registry.get("n-plus-one-query").severity is Severity.CRITICAL
        assert registry.get("io-in-loop").severity is Severity.HIGH
        assert registry.get("string-concat-in-loop").severity is Severity.MEDIUM
        assert registry.get("manual-map-append").severity is Severity.LOW

    def test_scenario_titles(self):
        registry = default_registry()
        assert registry.get("n-plus-one-query").title == "N+1 query pattern"
        assert registry.get("string-concat-in-loop").title.lower() == "string concatenation in loop"

    def test_every_weighted_modifier_is_emitted(self):
        source = inspect.getsource(catalog)
        for name in MODIFIER_WEIGHTS:
            assert f'"{name}"' in source, name

    def test_language_restricted_rules(self):
        registry = default_registry()
        java = {r.id for r in registry.rules_for("java")}
        assert "manual-map-append" not in java
        assert "json-deep-clone" not in java
        assert "dataframe-row-iteration" not in java
        assert "await-in-loop" not in java
        assert "n-plus-one-query" in java
        python = {r.id for r in registry.rules_for("python")}
        assert "dataframe-row-iteration" in python
        assert "chained-map-filter" not in python

    def test_enabled_and_disabled_lists(self):
        registry = default_registry()
        only = registry.rules_for("python", enabled={"sort-in-loop", "io-in-loop"}, disabled={"io-in-loop"})
        assert [r.id for r in only] == ["sort-in-loop"]

    def test_rule_decorator_uses_docstring(self):
        registry = RuleRegistry()

        @rule(registry, id="demo", title="Demo", category="test", targets=(NodeKind.CALL,), severity=Severity.LOW)
        def demo(node, ctx):
            """First line becomes the description.

            The rest does not.
            """
            return None

        registered = registry.get("demo")
        assert registered.description == "First line becomes the description."
        assert registered.template_key == "demo"
        assert registered.applies_to("go")

    def test_render_message_falls_back_to_title(self):
        rule_def = default_registry().get("sort-in-loop")
        assert rule_def.render_message({"target": "xs"}) == "`xs` is re-sorted on every iteration"
        assert rule_def.render_message({}) == rule_def.title

    def test_to_dict(self):
        d = default_registry().get("dataframe-row-iteration").to_dict()
        assert d["severity"] == "Medium"
        assert d["languages"] == ["python"]
        assert "loop" in d["targets"]


# ===========================================================================
# Engine
# ===========================================================================


def _registry_with(*rules: Rule, include=()) -> RuleRegistry:
    registry = RuleRegistry()
    for rule_id in include:
        registry.register(default_registry().get(rule_id))
    for r in rules:
        registry.register(r)
    return registry.freeze()


def _raising(node, ctx):
    raise RuntimeError("boom")


_BROKEN = Rule(
    id="broken",
    title="Always raises",
    category="test",
    target_kinds=frozenset({NodeKind.ASSIGNMENT}),
    predicate=_raising,
    severity=Severity.LOW,
)

CONCAT = """
def render(rows):
    out = ""
    for row in rows:
        out = out + str(row)
    return out
"""


class TestEngine:
    def test_failing_predicate_is_isolated(self):
        isg = parse_isg(CONCAT)
        registry = _registry_with(_BROKEN, include=("string-concat-in-loop",))
        result = evaluate_rules(isg, "python", registry=registry)
        assert [m.rule_id for m in result.matches] == ["string-concat-in-loop"]
        assert result.failures
        assert all(f["rule_id"] == "broken" for f in result.failures)
        assert all(f["error"] == "RuntimeError: boom" for f in result.failures)
        assert result.rules_executed == 2
        assert not result.partial

    def test_span_outside_the_tree_is_discarded(self):
        isg = parse_isg("x = 1\n")
        bigger = parse_isg("x = 1\ny = 2\nz = 3\n")

        def escape(node, ctx):
            return Hit(node, span_node=bigger.root)

        registry = RuleRegistry()
        registry.register(
            Rule(
                id="escape",
                title="Escapes",
                category="test",
                target_kinds=frozenset({NodeKind.ASSIGNMENT}),
                predicate=escape,
                severity=Severity.LOW,
            )
        )
        result = evaluate_rules(isg, "python", registry=registry)
        assert result.matches == []
        assert result.failures[0]["error"] == "match span outside the syntax tree"

    def test_expired_budget_marks_partial(self):
        ticks = iter([0.0])
        budget = Budget(1.0, clock=lambda: next(ticks, 100.0))
        result = evaluate_rules(parse_isg(CONCAT), "python", budget=budget)
        assert result.partial
        assert result.matches == []
        assert result.rules_executed == 0

    def test_disabled_rules_are_skipped(self):
        config = EngineConfig(disabled_rules=frozenset({"string-concat-in-loop"}))
        assert _matches(CONCAT, config=config) == []

    def test_matches_are_ordered(self):
        matches = _matches(
            """
            def f(rows, items):
                out = ""
                for row in rows:
                    out += str(row)
                    items.sort()
            """
        )
        keys = [(m.span, m.rule_id) for m in matches]
        assert keys == sorted(keys)
        assert {m.rule_id for m in matches} == {"string-concat-in-loop", "sort-in-loop"}


# ===========================================================================
# Catalog scenarios
# ===========================================================================


N_PLUS_ONE = """
def load_orders(db):
    users = db.query("SELECT * FROM users")
    for user in users:
        orders = db.query("SELECT * FROM orders WHERE user_id = ?", user.id)
        print(orders)
"""


class TestIORules:
    def test_n_plus_one(self):
        matches = _matches(N_PLUS_ONE)
        (hit,) = _by_rule(matches, "n-plus-one-query")
        assert hit.severity is Severity.CRITICAL
        assert hit.span.start_line == 4
        assert hit.captures["loop_var"].text == "user"
        assert hit.captures["collection"].text == "users"
        assert hit.captures["source_call"].text == 'db.query("SELECT * FROM users")'

    def test_io_in_loop_fires_on_the_same_call(self):
        matches = _matches(N_PLUS_ONE)
        (io,) = _by_rule(matches, "io-in-loop")
        (n1,) = _by_rule(matches, "n-plus-one-query")
        assert io.span == n1.span

    def test_fetch_outside_a_loop_is_not_flagged(self):
        matches = _matches(
            """
            def load(db, user):
                return db.query("SELECT * FROM orders WHERE user_id = ?", user.id)
            """
        )
        assert matches == []

    def test_weak_origin_needs_the_large_hint(self):
        source = """
            def sync(store):
                items = store.get_all()
                for item in items:
                    store.query(item.id)
            """
        assert _by_rule(_matches(source), "n-plus-one-query") == []
        hinted = _matches(source, hints=AnalysisHints(large_collections=frozenset({"items"})))
        (hit,) = _by_rule(hinted, "n-plus-one-query")
        assert hit.modifiers == ("large_input", "weak_origin")
        assert hit.severity is Severity.CRITICAL

    def test_n_plus_one_in_javascript(self):
        matches = _matches(
            """
            async function load(db) {
              const users = await db.query("select * from users");
              for (const user of users) {
                const orders = await db.query("select * from orders where id = ?", [user.id]);
              }
            }
            """,
            language="javascript",
        )
        assert len(_by_rule(matches, "n-plus-one-query")) == 1
        assert len(_by_rule(matches, "await-in-loop")) == 1


class TestCollectionRules:
    def test_membership_scan_on_a_list(self):
        source = """
            def common(a, b: list):
                out = []
                for x in a:
                    if x in b:
                        out.append(x)
                return out
            """
        (hit,) = _by_rule(_matches(source), "collection-scan-in-loop")
        assert hit.severity is Severity.HIGH
        assert hit.captures["collection"].text == "b"
        assert hit.captures["item"].text == "x"

    def test_large_hint_raises_severity(self):
        source = """
            def common(a, b: list):
                for x in a:
                    if x in b:
                        print(x)
            """
        hints = AnalysisHints(large_collections=frozenset({"b"}))
        (hit,) = _by_rule(_matches(source, hints=hints), "collection-scan-in-loop")
        assert hit.severity is Severity.CRITICAL

    def test_membership_on_a_set_is_fine(self):
        source = """
            def common(a, b):
                seen = set(b)
                for x in a:
                    if x in seen:
                        print(x)
            """
        assert _by_rule(_matches(source), "collection-scan-in-loop") == []

    def test_copy_in_loop(self):
        source = """
            def collect(xs):
                acc = []
                for x in xs:
                    acc = acc + [x]
                return acc
            """
        matches = _matches(source)
        (hit,) = _by_rule(matches, "collection-copy-in-loop")
        assert hit.captures["target"].text == "acc"
        assert _by_rule(matches, "string-concat-in-loop") == []

    def test_front_insert(self):
        source = """
            def reverse(xs):
                out = []
                for x in xs:
                    out.insert(0, x)
                return out
            """
        (hit,) = _by_rule(_matches(source), "front-insert-in-loop")
        assert hit.severity is Severity.MEDIUM
        assert hit.captures["item"].text == "x"

    def test_front_insert_on_a_deque_is_fine(self):
        source = """
            from collections import deque

            def reverse(xs):
                out = deque()
                for x in xs:
                    out.appendleft(x)
                    out.insert(0, x)
                return out
            """
        assert _by_rule(_matches(source), "front-insert-in-loop") == []

    def test_manual_map_append(self):
        source = """
            def names(users):
                out = []
                for u in users:
                    out.append(u.name)
                return out
            """
        (hit,) = _by_rule(_matches(source), "manual-map-append")
        assert hit.severity is Severity.LOW
        assert hit.captures["item"].text == "u.name"

    def test_language_restricted_rule_does_not_fire_elsewhere(self):
        source = """
            def names(users):
                out = []
                for u in users:
                    out.append(u.name)
                return out
            """
        isg = parse_isg(source)
        java = evaluate_rules(isg, "java").matches
        assert _by_rule(java, "manual-map-append") == []

    def test_chained_map_filter(self):
        matches = _matches(
            "const out = items.map((x) => x * 2).filter((x) => x > 0);\n",
            language="javascript",
        )
        (hit,) = _by_rule(matches, "chained-map-filter")
        assert hit.captures["collection"].text == "items"
        assert hit.captures["first"].text == "map"
        assert hit.captures["second"].text == "filter"


class TestAlgorithmicRules:
    def test_nested_loop_join(self):
        source = """
            def match(orders, customers):
                pairs = []
                for o in orders:
                    for c in customers:
                        if o.customer_id == c.id:
                            pairs.append((o, c))
                return pairs
            """
        isg = parse_isg(source)
        (hit,) = _by_rule(evaluate_rules(isg, "python").matches, "nested-loop-join")
        outer = next(isg.walk((NodeKind.LOOP,)))
        assert hit.span == outer.span
        assert hit.captures["outer"].text == "orders"
        assert hit.captures["inner"].text == "customers"

    def test_dependent_inner_loop_is_not_a_join(self):
        source = """
            def flatten(groups):
                for g in groups:
                    for item in g.items:
                        if item == g.head:
                            print(item)
            """
        assert _by_rule(_matches(source), "nested-loop-join") == []

    def test_sort_in_loop(self):
        source = """
            def top(items, extra):
                for e in extra:
                    items.append(e)
                    items.sort()
            """
        (hit,) = _by_rule(_matches(source), "sort-in-loop")
        assert hit.captures["target"].text == "items"
        assert hit.severity is Severity.HIGH


class TestStringAndRegexRules:
    def test_string_concat_reassignment(self):
        (hit,) = _by_rule(_matches(CONCAT), "string-concat-in-loop")
        assert hit.severity is Severity.MEDIUM
        assert hit.captures["target"].text == "out"
        assert hit.captures["piece"].text == "str(row)"

    def test_numeric_accumulator_is_not_a_string(self):
        source = """
            def total(rows):
                acc = 0
                for row in rows:
                    acc += row.amount
                return acc
            """
        assert _by_rule(_matches(source), "string-concat-in-loop") == []

    def test_regex_match_call_is_one_step_lower(self):
        source = """
            import re

            def grep(lines):
                for line in lines:
                    if re.match(r"[0-9]+", line):
                        print(line)
            """
        (hit,) = _by_rule(_matches(source), "regex-in-loop")
        assert hit.modifiers == ("match_call",)
        assert hit.severity is Severity.MEDIUM

    def test_regex_compile_in_loop(self):
        source = """
            import re

            def grep(lines):
                for line in lines:
                    pattern = re.compile("[0-9]+")
                    print(pattern.search(line))
            """
        (hit,) = _by_rule(_matches(source), "regex-in-loop")
        assert hit.severity is Severity.HIGH
        assert hit.captures["pattern"].text == '"[0-9]+"'


class TestMemoryRules:
    DEEPCOPY = """
        import copy

        def snapshot(state):
            return copy.deepcopy(state)

        def run(states):
            for s in states:
                snapshot(s)
        """

    def test_deep_copy_in_function_called_from_a_loop(self):
        (hit,) = _by_rule(_matches(self.DEEPCOPY), "deep-clone-in-hot-path")
        assert hit.severity is Severity.HIGH
        assert hit.captures["value"].text == "state"

    def test_hot_hint_raises_a_structurally_hot_deep_copy(self):
        hints = AnalysisHints(hot_scopes=frozenset({"snapshot"}))
        (hit,) = _by_rule(_matches(self.DEEPCOPY, hints=hints), "deep-clone-in-hot-path")
        assert hit.severity is Severity.CRITICAL

    def test_fan_in_makes_a_function_hot(self):
        source = """
            import copy

            def update(cfg):
                return copy.deepcopy(cfg)

            def apply(x, y, z):
                update(x)
                update(y)
                update(z)
            """
        (hit,) = _by_rule(_matches(source), "deep-clone-in-hot-path")
        assert hit.captures["value"].text == "cfg"

    def test_same_named_methods_elsewhere_do_not_make_it_hot(self):
        source = """
            import copy

            def update(cfg):
                return copy.deepcopy(cfg)

            def apply(a, b, c, x):
                a.update(x)
                b.update(x)
                c.update(x)
            """
        assert _by_rule(_matches(source), "deep-clone-in-hot-path") == []

    def test_hint_alone_never_fires(self):
        source = """
            import copy

            def snapshot(state):
                return copy.deepcopy(state)
            """
        hints = AnalysisHints(hot_scopes=frozenset({"snapshot"}))
        assert _by_rule(_matches(source, hints=hints), "deep-clone-in-hot-path") == []

    def test_json_deep_clone(self):
        matches = _matches("const copy = JSON.parse(JSON.stringify(state));\n", language="javascript")
        (hit,) = _by_rule(matches, "json-deep-clone")
        assert hit.captures["value"].text == "state"

    def test_unbounded_growth(self):
        source = """
            _seen = []

            def track(event):
                _seen.append(event)
            """
        (hit,) = _by_rule(_matches(source), "unbounded-growth")
        assert hit.captures["collection"].text == "_seen"

    def test_drained_collection_is_fine(self):
        source = """
            _seen = []

            def track(event):
                _seen.append(event)

            def flush():
                _seen.clear()
            """
        assert _by_rule(_matches(source), "unbounded-growth") == []


class TestDataframeAndConcurrencyRules:
    ITERROWS = """
        def score(df):
            for _, row in df.iterrows():
                print(row)
        """

    def test_iterrows(self):
        (hit,) = _by_rule(_matches(self.ITERROWS), "dataframe-row-iteration")
        assert hit.captures["frame"].text == "df"

    def test_iterrows_rule_is_python_only(self):
        isg = parse_isg(self.ITERROWS)
        assert _by_rule(evaluate_rules(isg, "javascript").matches, "dataframe-row-iteration") == []

    def test_apply_axis_one(self):
        source = "totals = df.apply(lambda r: r.a + r.b, axis=1)\n"
        (hit,) = _by_rule(_matches(source), "dataframe-row-iteration")
        assert hit.captures["frame"].text == "df"

    def test_sleep_in_polling_loop(self):
        source = """
            import time

            def wait_ready(job):
                while not job.done():
                    time.sleep(1)
            """
        (hit,) = _by_rule(_matches(source), "sleep-in-loop")
        assert hit.captures["loop_kind"].text == "while"
        assert hit.captures["duration"].text == "1"

    def test_await_in_loop(self):
        source = """
            async def load_all(client, ids):
                results = []
                for i in ids:
                    results.append(await client.fetch(i))
                return results
            """
        (hit,) = _by_rule(_matches(source), "await-in-loop")
        assert hit.severity is Severity.MEDIUM
        assert hit.captures["loop_var"].text == "i"
