"""Rule definitions and the frozen rule registry."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Iterable, Mapping

from hotpath.isg import ISGNode, NodeKind
from hotpath.severity import Severity

if TYPE_CHECKING:
    from .context import RuleContext


@dataclass(frozen=True)
class Hit:
    """What a predicate returns when it fires.

    ``captures`` values may be strings (spanning the matched node), ISG
    nodes, or ``(text, node)`` pairs. ``span_node`` widens or narrows the
    reported span to another node of the same ISG.
    """

    node: ISGNode
    captures: Mapping[str, object] = field(default_factory=dict)
    modifiers: tuple[str, ...] = ()
    span_node: ISGNode | None = None


Predicate = Callable[[ISGNode, "RuleContext"], "Hit | Iterable[Hit] | None"]


@dataclass(frozen=True)
class Rule:
    id: str
    title: str
    category: str
    target_kinds: frozenset[NodeKind]
    predicate: Predicate
    severity: Severity
    languages: frozenset[str] = frozenset()
    template_key: str = ""
    description: str = ""
    remediation: str = ""
    message: str = ""

    def applies_to(self, language: str) -> bool:
        return not self.languages or language in self.languages

    def render_message(self, captures: Mapping[str, str]) -> str:
        if not self.message:
            return self.title
        try:
            return self.message.format_map(captures)
        except (KeyError, IndexError, ValueError):
            return self.title

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "category": self.category,
            "severity": self.severity.label,
            "languages": sorted(self.languages),
            "targets": sorted(k.value for k in self.target_kinds),
            "description": self.description,
            "remediation": self.remediation,
        }


class RuleRegistry:
    """Rules keyed by id. Populated once at import, then frozen."""

    def __init__(self):
        self._rules: dict[str, Rule] = {}
        self._frozen = False

    def register(self, rule: Rule) -> Rule:
        if self._frozen:
            raise RuntimeError(f"rule registry is frozen; cannot register {rule.id!r}")
        if rule.id in self._rules:
            raise ValueError(f"duplicate rule id {rule.id!r}")
        self._rules[rule.id] = rule
        return rule

    def freeze(self) -> "RuleRegistry":
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, rule_id: str) -> bool:
        return rule_id in self._rules

    def get(self, rule_id: str) -> Rule:
        return self._rules[rule_id]

    def rules(self) -> list[Rule]:
        return [self._rules[k] for k in sorted(self._rules)]

    def rules_for(
        self,
        language: str,
        *,
        enabled: Iterable[str] = (),
        disabled: Iterable[str] = (),
    ) -> list[Rule]:
        """Rules applicable to ``language``, honoring enable/disable lists."""
        enabled = set(enabled)
        disabled = set(disabled)
        out = []
        for rule in self.rules():
            if enabled and rule.id not in enabled:
                continue
            if rule.id in disabled:
                continue
            if rule.applies_to(language):
                out.append(rule)
        return out


def rule(
    registry: RuleRegistry,
    *,
    id: str,
    title: str,
    category: str,
    targets: Iterable[NodeKind],
    severity: Severity,
    languages: Iterable[str] = (),
    template: str | None = None,
    description: str = "",
    remediation: str = "",
    message: str = "",
):
    """Decorator registering a predicate as a rule."""

    def decorator(fn: Predicate) -> Predicate:
        registry.register(
            Rule(
                id=id,
                title=title,
                category=category,
                target_kinds=frozenset(targets),
                predicate=fn,
                severity=severity,
                languages=frozenset(languages),
                template_key=template or id,
                description=description or (fn.__doc__ or "").strip().split("\n")[0],
                remediation=remediation,
                message=message,
            )
        )
        return fn

    return decorator


def default_registry() -> RuleRegistry:
    """The built-in, frozen rule catalog."""
    from .catalog import CATALOG

    return CATALOG
