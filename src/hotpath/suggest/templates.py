"""Before/after fix snippets keyed by (template key, language).

Placeholders are ``string.Template`` names and are filled only from a
finding's captures. A fix never names things on its own: a new local is
built from a captured plain identifier (``${loop_var}_rows``), and anything
else the fix leaves open is written as ``...``.
"""

from __future__ import annotations

from dataclasses import dataclass

_LANG_ALIASES = {
    "typescript": "javascript",
}


@dataclass(frozen=True)
class SnippetTemplate:
    before: str
    after: str


_TEMPLATES: dict[tuple[str, str], SnippetTemplate] = {
    # ── I/O ──
    ("batch-fetch", "python"): SnippetTemplate(
        "for $loop_var in $collection:\n    $call",
        "# $collection came from $source_call; fetch what $callee needs for all of it at once\n"
        "${loop_var}_rows = {...}  # key -> row, from one batched query (WHERE key IN (...))\n"
        "for $loop_var in $collection:\n"
        "    ${loop_var}_rows.get(...)  # instead of $call",
    ),
    ("batch-fetch", "javascript"): SnippetTemplate(
        "for (const $loop_var of $collection) {\n  $call;\n}",
        "// $collection came from $source_call; fetch what $callee needs for all of it at once\n"
        "const ${loop_var}Rows = new Map(); // key -> row, from one batched query (WHERE key IN (...))\n"
        "for (const $loop_var of $collection) {\n"
        "  ${loop_var}Rows.get(/* key of $loop_var */);\n"
        "}",
    ),
    ("batch-fetch", "java"): SnippetTemplate(
        "for (var $loop_var : $collection) {\n    $call;\n}",
        "// $collection came from $source_call; fetch what $callee needs for all of it at once\n"
        "Map<Object, Object> ${loop_var}Rows = new HashMap<>(); // one batched query: WHERE key IN (...)\n"
        "for (var $loop_var : $collection) {\n"
        "    ${loop_var}Rows.get(/* key of $loop_var */);\n"
        "}",
    ),
    ("batch-fetch", "go"): SnippetTemplate(
        "for _, $loop_var := range $collection {\n\t$call\n}",
        "// $collection came from $source_call; fetch what $callee needs for all of it at once\n"
        "${loop_var}Rows := map[any]any{} // filled by one batched query: WHERE key IN (...)\n"
        "for _, $loop_var := range $collection {\n"
        "\t_ = ${loop_var}Rows[ /* key of $loop_var */ ]\n"
        "}",
    ),
    ("hoist-io", "python"): SnippetTemplate(
        "for $loop_var in $collection:\n    $call",
        "# read or request everything the loop needs once, before the loop\n"
        "for $loop_var in $collection:\n"
        "    ...  # use the preloaded data instead of $call",
    ),
    ("hoist-io", "javascript"): SnippetTemplate(
        "for (const $loop_var of $collection) {\n  $call;\n}",
        "// load everything the loop needs once, before the loop\n"
        "for (const $loop_var of $collection) {\n"
        "  // use the preloaded data instead of $call\n"
        "}",
    ),
    ("hoist-io", "java"): SnippetTemplate(
        "for (var $loop_var : $collection) {\n    $call;\n}",
        "// load everything the loop needs once, before the loop\n"
        "for (var $loop_var : $collection) {\n"
        "    // use the preloaded data instead of $call\n"
        "}",
    ),
    ("hoist-io", "go"): SnippetTemplate(
        "for _, $loop_var := range $collection {\n\t$call\n}",
        "// load everything the loop needs once, before the loop\n"
        "for _, $loop_var := range $collection {\n"
        "\t// use the preloaded data instead of $call\n"
        "}",
    ),
    ("gather", "python"): SnippetTemplate(
        "for $loop_var in $collection:\n    await $call",
        "# results come back in the order of $collection\n"
        "await asyncio.gather(*($call for $loop_var in $collection))",
    ),
    ("gather", "javascript"): SnippetTemplate(
        "for (const $loop_var of $collection) {\n  await $call;\n}",
        "// results come back in the order of $collection\n"
        "await Promise.all($collection.map(($loop_var) => $call));",
    ),
    # ── Lookups ──
    ("index-lookup", "python"): SnippetTemplate(
        "for $loop_var in ...:\n    $call",
        "${loop_var}_seen = set($collection)  # once, before the loop; a dict of positions when the index matters\n"
        "for $loop_var in ...:\n"
        "    $item in ${loop_var}_seen",
    ),
    ("index-lookup", "javascript"): SnippetTemplate(
        "for (const $loop_var of ...) {\n  $call;\n}",
        "// once, before the loop; a Map from key to element when the index matters\n"
        "const ${loop_var}Seen = new Set($collection);\n"
        "for (const $loop_var of ...) {\n"
        "  ${loop_var}Seen.has($item);\n"
        "}",
    ),
    ("index-lookup", "java"): SnippetTemplate(
        "for (var $loop_var : ...) {\n    $call;\n}",
        "// once, before the loop; a HashMap from key to position when the index matters\n"
        "Set<Object> ${loop_var}Seen = new HashSet<>($collection);\n"
        "for (var $loop_var : ...) {\n"
        "    ${loop_var}Seen.contains($item);\n"
        "}",
    ),
    ("hash-join", "python"): SnippetTemplate(
        "for $outer_var in $outer:\n    for $inner_var in $inner:\n        if $condition:\n            ...",
        "${inner_var}_by_key = {}\n"
        "for $inner_var in $inner:\n"
        "    ${inner_var}_by_key.setdefault(..., []).append($inner_var)  # key: the $inner_var side of $condition\n"
        "for $outer_var in $outer:\n"
        "    for $inner_var in ${inner_var}_by_key.get(..., ()):  # key: the $outer_var side\n"
        "        ...",
    ),
    ("hash-join", "javascript"): SnippetTemplate(
        "for (const $outer_var of $outer) {\n  for (const $inner_var of $inner) {\n    if ($condition) { ... }\n  }\n}",
        "const ${inner_var}ByKey = new Map();\n"
        "for (const $inner_var of $inner) {\n"
        "  // key: the $inner_var side of $condition\n"
        "  ${inner_var}ByKey.set(/* key */ $inner_var, $inner_var);\n"
        "}\n"
        "for (const $outer_var of $outer) {\n"
        "  ${inner_var}ByKey.get(/* the $outer_var side */ $outer_var);\n"
        "}",
    ),
    ("hash-join", "java"): SnippetTemplate(
        "for (var $outer_var : $outer) {\n    for (var $inner_var : $inner) {\n        if ($condition) { ... }\n    }\n}",
        "Map<Object, Object> ${inner_var}ByKey = new HashMap<>();\n"
        "for (var $inner_var : $inner) {\n"
        "    ${inner_var}ByKey.put(/* the $inner_var side of $condition */ $inner_var, $inner_var);\n"
        "}\n"
        "for (var $outer_var : $outer) {\n"
        "    ${inner_var}ByKey.get(/* the $outer_var side */ $outer_var);\n"
        "}",
    ),
    ("hash-join", "go"): SnippetTemplate(
        "for _, $outer_var := range $outer {\n\tfor _, $inner_var := range $inner {\n\t\tif $condition { ... }\n\t}\n}",
        "${inner_var}ByKey := map[any]any{}\n"
        "for _, $inner_var := range $inner {\n"
        "\t${inner_var}ByKey[ /* the $inner_var side of $condition */ $inner_var] = $inner_var\n"
        "}\n"
        "for _, $outer_var := range $outer {\n"
        "\t_ = ${inner_var}ByKey[ /* the $outer_var side */ $outer_var]\n"
        "}",
    ),
    # ── Allocation ──
    ("append-in-place", "python"): SnippetTemplate(
        "for $loop_var in $collection:\n    $target = $value",
        "for $loop_var in $collection:\n    $target.append(...)  # or .extend(...) / .update(...) in place",
    ),
    ("append-in-place", "javascript"): SnippetTemplate(
        "for (const $loop_var of $collection) {\n  $target = $value;\n}",
        "for (const $loop_var of $collection) {\n  $target.push(...); // mutate in place instead of copying\n}",
    ),
    ("use-deque", "python"): SnippetTemplate(
        "$call",
        "from collections import deque\n$collection = deque($collection)\n$collection.appendleft(...)  # or popleft(), both O(1)",
    ),
    ("use-deque", "javascript"): SnippetTemplate(
        "$call",
        "// push to the end and reverse once after the loop, or keep a head index\n$collection.push(...);",
    ),
    ("use-deque", "java"): SnippetTemplate(
        "$call",
        "// declare $collection as a Deque\n$collection = new ArrayDeque<>($collection);\n$collection.addFirst(...); // or pollFirst(), both O(1)",
    ),
    ("comprehension", "python"): SnippetTemplate(
        "$target = []\nfor $var in $collection:\n    $target.append($item)",
        "$target = [$item for $var in $collection]",
    ),
    ("comprehension", "javascript"): SnippetTemplate(
        "const $target = [];\nfor (const $var of $collection) {\n  $target.push($item);\n}",
        "const $target = $collection.map(($var) => $item);",
    ),
    ("shallow-copy", "python"): SnippetTemplate(
        "$call",
        "copy.copy($value)  # or copy only the fields that are mutated",
    ),
    ("shallow-copy", "javascript"): SnippetTemplate(
        "$call",
        "({ ...$value }) // or copy only the fields that are mutated",
    ),
    ("structured-clone", "javascript"): SnippetTemplate(
        "$call",
        "structuredClone($value)",
    ),
    ("bounded-cache", "python"): SnippetTemplate(
        "$collection.append($item)",
        "from collections import deque\n$collection = deque(maxlen=1024)  # or functools.lru_cache for memo tables\n$collection.append($item)",
    ),
    ("bounded-cache", "javascript"): SnippetTemplate(
        "$collection.push($item);",
        "$collection.push($item);\nif ($collection.length > 1024) $collection.shift(); // or evict from a Map in insertion order",
    ),
    ("bounded-cache", "java"): SnippetTemplate(
        "$collection.add($item);",
        "// LinkedHashMap with removeEldestEntry, or a Caffeine/Guava cache with maximumSize\n$collection.add($item);",
    ),
    ("bounded-cache", "go"): SnippetTemplate(
        "$collection = append($collection, $item)",
        "$collection = append($collection, $item)\nif len($collection) > 1024 {\n\t$collection = $collection[1:]\n}",
    ),
    ("single-pass", "javascript"): SnippetTemplate(
        "$collection.$first($first_fn).$second($second_fn)",
        "// one pass: apply $first_fn, then $second_fn, to each element\n$collection.reduce(..., [])",
    ),
    # ── Ordering, strings, regex ──
    ("sort-once", "python"): SnippetTemplate(
        "for $loop_var in $collection:\n    ...\n    $call",
        "for $loop_var in $collection:\n    ...  # bisect.insort($target, ...) keeps it ordered\n$call  # sort once after the loop",
    ),
    ("sort-once", "javascript"): SnippetTemplate(
        "for (const $loop_var of $collection) {\n  $call;\n}",
        "for (const $loop_var of $collection) {\n  // collect into $target only\n}\n$call; // sort once after the loop",
    ),
    ("sort-once", "java"): SnippetTemplate(
        "for (var $loop_var : $collection) {\n    $call;\n}",
        "for (var $loop_var : $collection) {\n    // collect into $target only\n}\n$call; // sort once, or use a TreeSet/PriorityQueue",
    ),
    ("sort-once", "go"): SnippetTemplate(
        "for _, $loop_var := range $collection {\n\t$call\n}",
        "for _, $loop_var := range $collection {\n\t// collect into $target only\n}\n$call // sort once after the loop",
    ),
    ("join-parts", "python"): SnippetTemplate(
        "for $loop_var in $collection:\n    $target += $piece",
        "$target += \"\".join($piece for $loop_var in $collection)",
    ),
    ("join-parts", "javascript"): SnippetTemplate(
        "for (const $loop_var of $collection) {\n  $target += $piece;\n}",
        "$target += Array.from($collection, ($loop_var) => $piece).join(\"\");",
    ),
    ("join-parts", "java"): SnippetTemplate(
        "for (var $loop_var : $collection) {\n    $target += $piece;\n}",
        "StringBuilder ${loop_var}Parts = new StringBuilder($target);\n"
        "for (var $loop_var : $collection) {\n    ${loop_var}Parts.append($piece);\n}\n"
        "$target = ${loop_var}Parts.toString();",
    ),
    ("join-parts", "go"): SnippetTemplate(
        "for _, $loop_var := range $collection {\n\t$target += $piece\n}",
        "var ${loop_var}Parts strings.Builder\n"
        "${loop_var}Parts.WriteString($target)\n"
        "for _, $loop_var := range $collection {\n\t${loop_var}Parts.WriteString($piece)\n}\n"
        "$target = ${loop_var}Parts.String()",
    ),
    ("precompile-regex", "python"): SnippetTemplate(
        "for $loop_var in $collection:\n    $call",
        "${loop_var}_pattern = re.compile($pattern)\n"
        "for $loop_var in $collection:\n"
        "    ${loop_var}_pattern.search(...)  # instead of $call",
    ),
    ("precompile-regex", "javascript"): SnippetTemplate(
        "for (const $loop_var of $collection) {\n  $call;\n}",
        "const ${loop_var}Pattern = new RegExp($pattern);\n"
        "for (const $loop_var of $collection) {\n"
        "  ${loop_var}Pattern.test(...); // instead of $call\n"
        "}",
    ),
    ("precompile-regex", "java"): SnippetTemplate(
        "for (var $loop_var : $collection) {\n    $call;\n}",
        "Pattern ${loop_var}Pattern = Pattern.compile($pattern);\n"
        "for (var $loop_var : $collection) {\n"
        "    ${loop_var}Pattern.matcher(...); // instead of $call\n"
        "}",
    ),
    ("precompile-regex", "go"): SnippetTemplate(
        "for _, $loop_var := range $collection {\n\t$call\n}",
        "${loop_var}Pattern := regexp.MustCompile($pattern)\n"
        "for _, $loop_var := range $collection {\n"
        "\t${loop_var}Pattern.MatchString(...) // instead of $call\n"
        "}",
    ),
    # ── Data frames, waiting, recursion ──
    ("vectorize", "python"): SnippetTemplate(
        "for ... in $frame.iterrows():\n    ...",
        "# express the per-row computation as column operations, e.g.\n"
        "$frame[\"a\"] * $frame[\"b\"]  # one vectorized expression instead of one per row",
    ),
    ("event-wait", "python"): SnippetTemplate(
        "$loop_kind ...:\n    $call",
        "# share one Event with the producer, which calls set() instead of being polled\n"
        "threading.Event().wait(timeout=$duration)",
    ),
    ("event-wait", "javascript"): SnippetTemplate(
        "$loop_kind (...) {\n  $call;\n}",
        "// a promise the producer resolves, instead of polling every $duration with $call\nawait ...;",
    ),
    ("event-wait", "java"): SnippetTemplate(
        "$loop_kind (...) {\n    $call;\n}",
        "// share the latch with the producer, which calls countDown()\n"
        "new CountDownLatch(1).await($duration, TimeUnit.MILLISECONDS);",
    ),
    ("event-wait", "go"): SnippetTemplate(
        "$loop_kind ... {\n\t$call\n}",
        "select {\ncase <-...: // a channel the producer closes\ncase <-time.After($duration):\n}",
    ),
    ("memoize", "python"): SnippetTemplate(
        "def $function(...):\n    ...",
        "@functools.lru_cache(maxsize=None)\ndef $function(...):\n    ...",
    ),
    ("memoize", "javascript"): SnippetTemplate(
        "function $function(...) {\n  ...\n}",
        "const ${function}Memo = new Map();\n"
        "function $function(...) {\n"
        "  if (${function}Memo.has(...)) return ${function}Memo.get(...);\n"
        "  ...\n"
        "  ${function}Memo.set(..., ...);\n"
        "}",
    ),
    ("memoize", "java"): SnippetTemplate(
        "... $function(...) { ... }",
        "private final Map<Object, Object> ${function}Memo = new HashMap<>();\n\n"
        "... $function(...) {\n"
        "    if (${function}Memo.containsKey(...)) return ${function}Memo.get(...);\n"
        "    ...\n"
        "}",
    ),
    ("memoize", "go"): SnippetTemplate(
        "func $function(...) ... { ... }",
        "${function}Memo := map[any]any{}\n"
        "// look the arguments up in ${function}Memo at the top of $function; store the result before returning",
    ),
}


def _norm_language(language: str | None) -> str:
    if not language:
        return ""
    norm = language.lower().strip()
    return _LANG_ALIASES.get(norm, norm)


def get_template(key: str, language: str | None) -> SnippetTemplate | None:
    """Return the snippet template for a key and language, if one exists."""
    return _TEMPLATES.get((key, _norm_language(language)))


def template_keys() -> set[str]:
    return {key for key, _ in _TEMPLATES}


def languages_for(key: str) -> list[str]:
    return sorted(lang for k, lang in _TEMPLATES if k == key)
