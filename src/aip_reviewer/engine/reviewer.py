"""
aip-reviewer — review engine.

File: src/aip_reviewer/engine/reviewer.py
Purpose: Select the active rule subset and run it against one document.

Selection order is fixed: the full catalog, narrowed to the union of the
requested categories (when any are given), minus skipped rule ids, followed
by any custom rules. Custom rules are never filtered. Each rule runs in
isolation; a rule that raises is logged with its id and contributes nothing.
Strict mode promotes warnings to errors after every rule has run, and the
summary is always computed from the promoted findings.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from aip_reviewer import __version__
from aip_reviewer.document.adapter import OpenAPIDocument
from aip_reviewer.domain.models import (
    Finding,
    ReviewMetadata,
    ReviewResult,
    ReviewSummary,
    RuleCategory,
)
from aip_reviewer.observability.logging import get_logger
from aip_reviewer.rules import DEFAULT_CATALOG
from aip_reviewer.rules.base import Rule, RuleContext
from aip_reviewer.rules.catalog import RuleCatalog

DEFAULT_SOURCE_LABEL = "<inline>"


@dataclass(frozen=True, slots=True)
class ReviewConfig:
    """Per-request review options."""

    strict: bool = False
    categories: tuple[RuleCategory, ...] = ()
    skip_rules: frozenset[str] = frozenset()
    custom_rules: tuple[Rule, ...] = ()

    def __post_init__(self) -> None:
        categories: list[RuleCategory] = []
        for item in self.categories:
            try:
                categories.append(RuleCategory(item))
            except ValueError as exc:
                raise ValueError(f"ReviewConfig.categories: unknown category {item!r}") from exc
        object.__setattr__(self, "categories", tuple(categories))
        object.__setattr__(self, "skip_rules", frozenset(self.skip_rules))
        object.__setattr__(self, "custom_rules", tuple(self.custom_rules))
        for item in self.custom_rules:
            if not isinstance(item, Rule):
                raise TypeError(f"ReviewConfig.custom_rules: expected Rule, got {type(item).__name__}")


@dataclass(frozen=True, slots=True)
class RuleOutcome:
    """Result of one rule invocation: findings, or the error that stopped it."""

    rule_id: str
    findings: tuple[Finding, ...] = ()
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(slots=True)
class Reviewer:
    config: ReviewConfig = field(default_factory=ReviewConfig)
    catalog: RuleCatalog = DEFAULT_CATALOG
    logger: Any = None
    _rules: tuple[Rule, ...] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.logger is None:
            self.logger = get_logger(__name__)
        self._rules = select_rules(self.catalog, self.config)

    @property
    def rules(self) -> tuple[Rule, ...]:
        return self._rules

    def review(
        self,
        document: OpenAPIDocument | Mapping[str, Any],
        source_label: str = DEFAULT_SOURCE_LABEL,
    ) -> ReviewResult:
        model = document if isinstance(document, OpenAPIDocument) else OpenAPIDocument(document)

        findings: list[Finding] = []
        for item in self._rules:
            outcome = self.run_rule(item, model)
            findings.extend(outcome.findings)

        if self.config.strict:
            findings = [finding.promoted() for finding in findings]

        summary = ReviewSummary.from_findings(findings)
        self.logger.info(
            "review_completed",
            document_source=source_label,
            rules_applied=len(self._rules),
            findings=summary.total,
            errors=summary.errors,
            warnings=summary.warnings,
            suggestions=summary.suggestions,
            strict=self.config.strict,
        )
        return ReviewResult(
            document_source=source_label,
            title=model.title,
            version=model.version,
            findings=tuple(findings),
            summary=summary,
            metadata=ReviewMetadata(
                reviewed_at=datetime.now(UTC).isoformat().replace("+00:00", "Z"),
                engine_version=__version__,
                rules_applied=tuple(item.id for item in self._rules),
            ),
        )

    def run_rule(self, item: Rule, document: OpenAPIDocument) -> RuleOutcome:
        context = RuleContext(rule=item, document=document)
        try:
            produced = tuple(item.check(document, context))
            for finding in produced:
                if not isinstance(finding, Finding):
                    raise TypeError(f"rule produced {type(finding).__name__}, expected Finding")
        except Exception as exc:  # noqa: BLE001
            self.logger.warning(
                "rule_check_failed",
                rule_id=item.id,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            return RuleOutcome(rule_id=item.id, error=f"{type(exc).__name__}: {exc}")
        return RuleOutcome(rule_id=item.id, findings=produced)


def select_rules(catalog: RuleCatalog, config: ReviewConfig) -> tuple[Rule, ...]:
    selected: Iterable[Rule] = catalog.get_all()
    if config.categories:
        selected = catalog.get_by_category(config.categories)
    if config.skip_rules:
        selected = [item for item in selected if item.id not in config.skip_rules]
    return (*selected, *config.custom_rules)


def review_document(
    document: OpenAPIDocument | Mapping[str, Any],
    source_label: str = DEFAULT_SOURCE_LABEL,
    config: ReviewConfig | None = None,
) -> ReviewResult:
    return Reviewer(config if config is not None else ReviewConfig()).review(document, source_label)


__all__ = [
    "DEFAULT_SOURCE_LABEL",
    "ReviewConfig",
    "Reviewer",
    "RuleOutcome",
    "review_document",
    "select_rules",
]
