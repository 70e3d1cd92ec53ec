"""Rule definition, per-rule context and the ``@rule`` declaration decorator."""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

from aip_reviewer.domain.models import (
    Finding,
    FixDescriptor,
    JSONValue,
    RuleCategory,
    Severity,
)

if TYPE_CHECKING:
    from aip_reviewer.document.adapter import OpenAPIDocument

RuleCheck = Callable[["OpenAPIDocument", "RuleContext"], Iterable[Finding]]

_RULE_ID_RE: Final[re.Pattern[str]] = re.compile(r"^[A-Za-z0-9._-]+/[A-Za-z0-9._-]+$")
_AIP_NUMBER_RE: Final[re.Pattern[str]] = re.compile(r"(\d+)")


@dataclass(frozen=True, slots=True)
class Rule:
    """Immutable rule definition; ``check`` must not mutate the document."""

    id: str
    name: str
    category: RuleCategory
    severity: Severity
    description: str
    check: RuleCheck
    aip_reference: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.id, str) or not _RULE_ID_RE.match(self.id):
            raise ValueError(f"Rule.id: expected '<group>/<name>', got {self.id!r}")
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValueError(f"Rule.name: must not be empty ({self.id})")
        object.__setattr__(self, "category", RuleCategory(self.category))
        object.__setattr__(self, "severity", Severity(self.severity))
        if not callable(self.check):
            raise ValueError(f"Rule.check: must be callable ({self.id})")

    @property
    def aip_number(self) -> int | None:
        if self.aip_reference is None:
            return None
        match = _AIP_NUMBER_RE.search(self.aip_reference)
        return int(match.group(1)) if match else None

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category.value,
            "severity": self.severity.value,
            "aipReference": self.aip_reference,
            "description": self.description,
        }


@dataclass(frozen=True, slots=True)
class RuleContext:
    """Handed to each check; stamps rule identity onto the findings it creates."""

    rule: Rule
    document: OpenAPIDocument

    def finding(
        self,
        *,
        path: str,
        message: str,
        suggestion: str | None = None,
        json_path: str | None = None,
        fix: FixDescriptor | None = None,
        context: Mapping[str, JSONValue] | None = None,
    ) -> Finding:
        return Finding(
            rule_id=self.rule.id,
            severity=self.rule.severity,
            category=self.rule.category,
            path=path,
            message=message,
            aip_reference=self.rule.aip_reference,
            suggestion=suggestion,
            json_path=json_path,
            fix=fix,
            context=dict(context or {}),
        )


def rule(
    rule_id: str,
    *,
    name: str,
    category: RuleCategory,
    severity: Severity,
    description: str,
    aip: str | None = None,
) -> Callable[[RuleCheck], Rule]:
    """Declare a check function as a ``Rule``."""

    def decorator(check: RuleCheck) -> Rule:
        return Rule(
            id=rule_id,
            name=name,
            category=category,
            severity=severity,
            description=description,
            check=check,
            aip_reference=aip,
        )

    return decorator


__all__ = ["Rule", "RuleCheck", "RuleContext", "rule"]
