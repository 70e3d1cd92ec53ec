"""Immutable rule catalog with per-request overlays."""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from aip_reviewer.domain.models import RuleCategory
from aip_reviewer.rules.base import Rule


class RuleCatalog:
    """Ordered, read-only collection of rules with lookup by id, category and AIP.

    ``with_rules`` returns a new catalog that presents the current rules
    followed by the extra ones; the receiver is never modified, so a shared
    base catalog can be extended per request without cross-request leaks.
    """

    __slots__ = ("_by_id", "_rules")

    def __init__(self, rules: Iterable[Rule] = ()) -> None:
        ordered = tuple(rules)
        by_id: dict[str, Rule] = {}
        for item in ordered:
            if not isinstance(item, Rule):
                raise TypeError(f"expected Rule, got {type(item).__name__}")
            if item.id in by_id:
                raise ValueError(f"duplicate rule id {item.id!r}")
            by_id[item.id] = item
        self._rules = ordered
        self._by_id = by_id

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._by_id

    def get_all(self) -> tuple[Rule, ...]:
        return self._rules

    def get_by_category(self, categories: Iterable[RuleCategory | str] | RuleCategory | str) -> tuple[Rule, ...]:
        if isinstance(categories, str):
            categories = (categories,)
        wanted: set[RuleCategory] = set()
        for category in categories:
            try:
                wanted.add(RuleCategory(category))
            except ValueError:
                continue
        return tuple(item for item in self._rules if item.category in wanted)

    def get_by_aip(self, number: int) -> tuple[Rule, ...]:
        if isinstance(number, bool) or not isinstance(number, int):
            return ()
        return tuple(item for item in self._rules if item.aip_number == number)

    def get_by_id(self, rule_id: str) -> Rule | None:
        return self._by_id.get(rule_id)

    def rule_ids(self) -> tuple[str, ...]:
        return tuple(item.id for item in self._rules)

    def with_rules(self, extra: Iterable[Rule]) -> RuleCatalog:
        extra_rules = tuple(extra)
        if not extra_rules:
            return self
        return RuleCatalog((*self._rules, *extra_rules))


__all__ = ["RuleCatalog"]
