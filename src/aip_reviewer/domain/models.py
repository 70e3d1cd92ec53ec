"""Dataclass domain models for findings, fixes and review results.

Every model validates its fields on construction and round-trips through
``to_dict``/``from_dict`` using the camelCase keys of the wire format.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import Final, NoReturn, TypeVar

JSONScalar = str | int | float | bool | None
JSONValue = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]

TEnum = TypeVar("TEnum", bound=StrEnum)

_MAX_TEXT: Final[int] = 8192


class Severity(StrEnum):
    ERROR = "error"
    WARNING = "warning"
    SUGGESTION = "suggestion"


class RuleCategory(StrEnum):
    NAMING = "naming"
    STANDARD_METHODS = "standard-methods"
    ERRORS = "errors"
    PAGINATION = "pagination"
    FILTERING = "filtering"
    LRO = "lro"
    IDEMPOTENCY = "idempotency"
    VERSIONING = "versioning"
    SECURITY = "security"


class ChangeOperation(StrEnum):
    RENAME_KEY = "rename-key"
    SET = "set"
    ADD = "add"
    REMOVE = "remove"
    MERGE = "merge"


class _Unset:
    """Marker for a ``SpecChange`` that carries no value."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Final = _Unset()


def _fail(path: str, message: str) -> NoReturn:
    raise ValueError(f"{path}: {message}")


def _as_str(value: object, path: str, *, allow_empty: bool = False, max_len: int = _MAX_TEXT) -> str:
    if not isinstance(value, str):
        _fail(path, f"expected string, got {type(value).__name__}")
    if not allow_empty and not value.strip():
        _fail(path, "must not be empty")
    if len(value) > max_len:
        _fail(path, f"longer than {max_len} characters")
    return value


def _as_optional_str(value: object, path: str) -> str | None:
    if value is None:
        return None
    return _as_str(value, path)


def _as_enum(enum_type: type[TEnum], value: object, path: str) -> TEnum:
    if isinstance(value, enum_type):
        return value
    try:
        return enum_type(value)
    except ValueError:
        allowed = ", ".join(item.value for item in enum_type)
        _fail(path, f"invalid value {value!r}; expected one of: {allowed}")


def _as_count(value: object, path: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        _fail(path, "expected non-negative integer")
    return value


def _expect_mapping(value: object, path: str) -> Mapping[str, object]:
    if not isinstance(value, Mapping):
        _fail(path, f"expected object, got {type(value).__name__}")
    return value


@dataclass(frozen=True, slots=True)
class SpecChange:
    """One primitive mutation addressed by a JSONPath-like expression."""

    operation: ChangeOperation
    path: str
    from_key: str | None = None
    to_key: str | None = None
    value: object = UNSET

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "operation", _as_enum(ChangeOperation, self.operation, "SpecChange.operation")
        )
        object.__setattr__(self, "path", _as_str(self.path, "SpecChange.path"))
        object.__setattr__(self, "from_key", _as_optional_str(self.from_key, "SpecChange.from"))
        object.__setattr__(self, "to_key", _as_optional_str(self.to_key, "SpecChange.to"))
        if self.operation is ChangeOperation.RENAME_KEY and (
            self.from_key is None or self.to_key is None
        ):
            _fail("SpecChange", "rename-key requires both 'from' and 'to'")

    @property
    def has_value(self) -> bool:
        return self.value is not UNSET

    @classmethod
    def from_dict(cls, payload: Mapping[str, object]) -> SpecChange:
        parsed = _expect_mapping(payload, "SpecChange")
        return cls(
            operation=_as_enum(ChangeOperation, parsed.get("operation"), "SpecChange.operation"),
            path=_as_str(parsed.get("path"), "SpecChange.path"),
            from_key=_as_optional_str(parsed.get("from"), "SpecChange.from"),
            to_key=_as_optional_str(parsed.get("to"), "SpecChange.to"),
            value=parsed["value"] if "value" in parsed else UNSET,
        )

    def to_dict(self) -> dict[str, JSONValue]:
        payload: dict[str, JSONValue] = {"operation": self.operation.value, "path": self.path}
        if self.from_key is not None:
            payload["from"] = self.from_key
        if self.to_key is not None:
            payload["to"] = self.to_key
        if self.has_value:
            payload["value"] = self.value  # type: ignore[assignment]
        return payload


@dataclass(frozen=True, slots=True)
class FixDescriptor:
    """Structured, machine-applicable correction attached to a finding."""

    type: str
    json_path: str
    changes: tuple[SpecChange, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "type", _as_str(self.type, "FixDescriptor.type"))
        object.__setattr__(self, "json_path", _as_str(self.json_path, "FixDescriptor.jsonPath"))
        changes = tuple(self.changes)
        for index, change in enumerate(changes):
            if not isinstance(change, SpecChange):
                _fail(f"FixDescriptor.changes[{index}]", "expected SpecChange")
        object.__setattr__(self, "changes", changes)

    @classmethod
    def from_dict(cls, payload: Mapping[str, object]) -> FixDescriptor:
        parsed = _expect_mapping(payload, "FixDescriptor")
        raw_changes = parsed.get("changes", parsed.get("specChanges", ()))
        if not isinstance(raw_changes, Sequence) or isinstance(raw_changes, str):
            _fail("FixDescriptor.changes", "expected array")
        return cls(
            type=_as_str(parsed.get("type"), "FixDescriptor.type"),
            json_path=_as_str(parsed.get("jsonPath"), "FixDescriptor.jsonPath"),
            changes=tuple(
                SpecChange.from_dict(_expect_mapping(item, f"FixDescriptor.changes[{index}]"))
                for index, item in enumerate(raw_changes)
            ),
        )

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "type": self.type,
            "jsonPath": self.json_path,
            "changes": [change.to_dict() for change in self.changes],
        }


@dataclass(frozen=True, slots=True)
class Finding:
    """One reported rule violation."""

    rule_id: str
    severity: Severity
    category: RuleCategory
    path: str
    message: str
    aip_reference: str | None = None
    suggestion: str | None = None
    json_path: str | None = None
    fix: FixDescriptor | None = None
    context: dict[str, JSONValue] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "rule_id", _as_str(self.rule_id, "Finding.ruleId", max_len=256))
        object.__setattr__(self, "severity", _as_enum(Severity, self.severity, "Finding.severity"))
        object.__setattr__(
            self, "category", _as_enum(RuleCategory, self.category, "Finding.category")
        )
        object.__setattr__(self, "path", _as_str(self.path, "Finding.path"))
        object.__setattr__(self, "message", _as_str(self.message, "Finding.message"))
        object.__setattr__(
            self, "aip_reference", _as_optional_str(self.aip_reference, "Finding.aipReference")
        )
        object.__setattr__(
            self, "suggestion", _as_optional_str(self.suggestion, "Finding.suggestion")
        )
        object.__setattr__(self, "json_path", _as_optional_str(self.json_path, "Finding.jsonPath"))
        if self.fix is not None and not isinstance(self.fix, FixDescriptor):
            _fail("Finding.fix", "expected FixDescriptor")
        object.__setattr__(self, "context", dict(_expect_mapping(self.context, "Finding.context")))

    def promoted(self) -> Finding:
        """Return the strict-mode form of this finding (warning becomes error)."""

        if self.severity is Severity.WARNING:
            return replace(self, severity=Severity.ERROR)
        return self

    @classmethod
    def from_dict(cls, payload: Mapping[str, object]) -> Finding:
        parsed = _expect_mapping(payload, "Finding")
        raw_fix = parsed.get("fix")
        raw_context = parsed.get("context") or {}
        return cls(
            rule_id=_as_str(parsed.get("ruleId"), "Finding.ruleId"),
            severity=_as_enum(Severity, parsed.get("severity"), "Finding.severity"),
            category=_as_enum(RuleCategory, parsed.get("category"), "Finding.category"),
            path=_as_str(parsed.get("path"), "Finding.path"),
            message=_as_str(parsed.get("message"), "Finding.message"),
            aip_reference=_as_optional_str(
                parsed.get("aipReference", parsed.get("aip")), "Finding.aipReference"
            ),
            suggestion=_as_optional_str(parsed.get("suggestion"), "Finding.suggestion"),
            json_path=_as_optional_str(parsed.get("jsonPath"), "Finding.jsonPath"),
            fix=None if raw_fix is None else FixDescriptor.from_dict(_expect_mapping(raw_fix, "Finding.fix")),
            context=dict(_expect_mapping(raw_context, "Finding.context")),
        )

    def to_dict(self) -> dict[str, JSONValue]:
        payload: dict[str, JSONValue] = {
            "ruleId": self.rule_id,
            "severity": self.severity.value,
            "category": self.category.value,
            "path": self.path,
            "message": self.message,
        }
        if self.aip_reference is not None:
            payload["aipReference"] = self.aip_reference
        if self.suggestion is not None:
            payload["suggestion"] = self.suggestion
        if self.json_path is not None:
            payload["jsonPath"] = self.json_path
        if self.fix is not None:
            payload["fix"] = self.fix.to_dict()
        if self.context:
            payload["context"] = dict(self.context)
        return payload


@dataclass(frozen=True, slots=True)
class ReviewSummary:
    """Counts of findings partitioned by severity and by category."""

    errors: int
    warnings: int
    suggestions: int
    by_category: dict[str, int]

    def __post_init__(self) -> None:
        object.__setattr__(self, "errors", _as_count(self.errors, "summary.errors"))
        object.__setattr__(self, "warnings", _as_count(self.warnings, "summary.warnings"))
        object.__setattr__(self, "suggestions", _as_count(self.suggestions, "summary.suggestions"))
        counts = {category.value: 0 for category in RuleCategory}
        for key, value in _expect_mapping(self.by_category, "summary.byCategory").items():
            name = _as_enum(RuleCategory, key, "summary.byCategory").value
            counts[name] = _as_count(value, f"summary.byCategory.{name}")
        object.__setattr__(self, "by_category", counts)

    @property
    def total(self) -> int:
        return self.errors + self.warnings + self.suggestions

    @classmethod
    def from_findings(cls, findings: Iterable[Finding]) -> ReviewSummary:
        by_severity = {severity: 0 for severity in Severity}
        by_category = {category.value: 0 for category in RuleCategory}
        for finding in findings:
            by_severity[finding.severity] += 1
            by_category[finding.category.value] += 1
        return cls(
            errors=by_severity[Severity.ERROR],
            warnings=by_severity[Severity.WARNING],
            suggestions=by_severity[Severity.SUGGESTION],
            by_category=by_category,
        )

    @classmethod
    def from_dict(cls, payload: Mapping[str, object]) -> ReviewSummary:
        parsed = _expect_mapping(payload, "summary")
        return cls(
            errors=_as_count(parsed.get("errors"), "summary.errors"),
            warnings=_as_count(parsed.get("warnings"), "summary.warnings"),
            suggestions=_as_count(parsed.get("suggestions"), "summary.suggestions"),
            by_category=dict(_expect_mapping(parsed.get("byCategory", {}), "summary.byCategory")),
        )

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "errors": self.errors,
            "warnings": self.warnings,
            "suggestions": self.suggestions,
            "byCategory": dict(self.by_category),
        }


@dataclass(frozen=True, slots=True)
class ReviewMetadata:
    reviewed_at: str
    engine_version: str
    rules_applied: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "reviewed_at", _as_str(self.reviewed_at, "metadata.reviewedAt"))
        object.__setattr__(
            self, "engine_version", _as_str(self.engine_version, "metadata.engineVersion")
        )
        object.__setattr__(
            self,
            "rules_applied",
            tuple(
                _as_str(item, f"metadata.rulesApplied[{index}]")
                for index, item in enumerate(self.rules_applied)
            ),
        )

    @classmethod
    def from_dict(cls, payload: Mapping[str, object]) -> ReviewMetadata:
        parsed = _expect_mapping(payload, "metadata")
        rules = parsed.get("rulesApplied", ())
        if not isinstance(rules, Sequence) or isinstance(rules, str):
            _fail("metadata.rulesApplied", "expected array")
        return cls(
            reviewed_at=_as_str(parsed.get("reviewedAt"), "metadata.reviewedAt"),
            engine_version=_as_str(
                parsed.get("engineVersion", parsed.get("reviewerVersion")), "metadata.engineVersion"
            ),
            rules_applied=tuple(rules),
        )

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "reviewedAt": self.reviewed_at,
            "engineVersion": self.engine_version,
            "rulesApplied": list(self.rules_applied),
        }


@dataclass(frozen=True, slots=True)
class ReviewResult:
    """Immutable outcome of one review."""

    document_source: str
    findings: tuple[Finding, ...]
    summary: ReviewSummary
    metadata: ReviewMetadata
    title: str | None = None
    version: str | None = None
    stored: Mapping[str, JSONValue] | None = None

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "document_source", _as_str(self.document_source, "ReviewResult.documentSource")
        )
        findings = tuple(self.findings)
        for index, finding in enumerate(findings):
            if not isinstance(finding, Finding):
                _fail(f"ReviewResult.findings[{index}]", "expected Finding")
        object.__setattr__(self, "findings", findings)
        if self.summary.total != len(findings):
            _fail("ReviewResult.summary", "severity counts do not match findings")

    def findings_for_category(self, category: RuleCategory | str) -> tuple[Finding, ...]:
        wanted = _as_enum(RuleCategory, category, "category")
        return tuple(item for item in self.findings if item.category is wanted)

    @classmethod
    def from_dict(cls, payload: Mapping[str, object]) -> ReviewResult:
        parsed = _expect_mapping(payload, "ReviewResult")
        raw_findings = parsed.get("findings", ())
        if not isinstance(raw_findings, Sequence) or isinstance(raw_findings, str):
            _fail("ReviewResult.findings", "expected array")
        return cls(
            document_source=_as_str(
                parsed.get("documentSource", parsed.get("specPath")), "ReviewResult.documentSource"
            ),
            title=_as_optional_str(parsed.get("title"), "ReviewResult.title"),
            version=_as_optional_str(parsed.get("version"), "ReviewResult.version"),
            findings=tuple(
                Finding.from_dict(_expect_mapping(item, f"findings[{index}]"))
                for index, item in enumerate(raw_findings)
            ),
            summary=ReviewSummary.from_dict(_expect_mapping(parsed.get("summary"), "summary")),
            metadata=ReviewMetadata.from_dict(_expect_mapping(parsed.get("metadata"), "metadata")),
            stored=(
                None if parsed.get("stored") is None else dict(_expect_mapping(parsed.get("stored"), "stored"))
            ),
        )

    def to_dict(self) -> dict[str, JSONValue]:
        payload: dict[str, JSONValue] = {"documentSource": self.document_source}
        if self.title is not None:
            payload["title"] = self.title
        if self.version is not None:
            payload["version"] = self.version
        payload["findings"] = [finding.to_dict() for finding in self.findings]
        payload["summary"] = self.summary.to_dict()
        payload["metadata"] = self.metadata.to_dict()
        if self.stored is not None:
            payload["stored"] = dict(self.stored)
        return payload

    def to_json(self, *, indent: int | None = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)


__all__ = [
    "UNSET",
    "ChangeOperation",
    "FixDescriptor",
    "Finding",
    "JSONScalar",
    "JSONValue",
    "ReviewMetadata",
    "ReviewResult",
    "ReviewSummary",
    "RuleCategory",
    "Severity",
    "SpecChange",
]
