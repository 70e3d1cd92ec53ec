from __future__ import annotations

import pytest

from aip_reviewer.domain.models import (
    UNSET,
    ChangeOperation,
    Finding,
    FixDescriptor,
    ReviewMetadata,
    ReviewResult,
    ReviewSummary,
    RuleCategory,
    Severity,
    SpecChange,
)

pytestmark = pytest.mark.unit


def _finding(severity: Severity = Severity.WARNING, **extra: object) -> Finding:
    return Finding(
        rule_id="aip131/get-no-body",
        severity=severity,
        category=RuleCategory.STANDARD_METHODS,
        path="GET /books",
        message="GET must not carry a body.",
        **extra,  # type: ignore[arg-type]
    )


def test_enums_accept_wire_strings() -> None:
    finding = Finding(
        rule_id="x/y",
        severity="error",  # type: ignore[arg-type]
        category="lro",  # type: ignore[arg-type]
        path="/",
        message="m",
    )
    assert finding.severity is Severity.ERROR
    assert finding.category is RuleCategory.LRO


@pytest.mark.parametrize(
    "payload",
    [
        {"ruleId": "", "severity": "error", "category": "naming", "path": "/", "message": "m"},
        {"ruleId": "a", "severity": "fatal", "category": "naming", "path": "/", "message": "m"},
        {"ruleId": "a", "severity": "error", "category": "style", "path": "/", "message": "m"},
        {"ruleId": "a", "severity": "error", "category": "naming", "path": "/", "message": 3},
        {"ruleId": "a", "severity": "error", "category": "naming", "path": "/", "message": "m", "fix": []},
    ],
)
def test_invalid_findings_are_rejected(payload: dict[str, object]) -> None:
    with pytest.raises(ValueError):
        Finding.from_dict(payload)


def test_rename_key_requires_both_keys() -> None:
    with pytest.raises(ValueError, match="rename-key"):
        SpecChange(ChangeOperation.RENAME_KEY, "$.paths", from_key="/a")


def test_spec_change_value_presence_survives_the_wire() -> None:
    removal = SpecChange(ChangeOperation.REMOVE, "$.a")
    assert removal.value is UNSET
    assert removal.to_dict() == {"operation": "remove", "path": "$.a"}

    null_set = SpecChange.from_dict({"operation": "set", "path": "$.a", "value": None})
    assert null_set.has_value
    assert null_set.value is None

    valueless = SpecChange(ChangeOperation.SET, "$.a")
    assert valueless.to_dict() == {"operation": "set", "path": "$.a"}
    assert not SpecChange.from_dict(valueless.to_dict()).has_value

    rename = SpecChange.from_dict({"operation": "rename-key", "path": "$.paths", "from": "/a", "to": "/b"})
    assert rename.to_dict() == {"operation": "rename-key", "path": "$.paths", "from": "/a", "to": "/b"}


def test_fix_descriptor_accepts_legacy_change_key() -> None:
    fix = FixDescriptor.from_dict(
        {"type": "remove-body", "jsonPath": "$.x", "specChanges": [{"operation": "remove", "path": "$.x"}]}
    )
    assert fix.changes == (SpecChange(ChangeOperation.REMOVE, "$.x"),)


def test_promotion_only_touches_warnings() -> None:
    assert _finding().promoted().severity is Severity.ERROR
    suggestion = _finding(Severity.SUGGESTION)
    assert suggestion.promoted() is suggestion


def test_finding_wire_format_omits_absent_fields() -> None:
    assert _finding().to_dict() == {
        "ruleId": "aip131/get-no-body",
        "severity": "warning",
        "category": "standard-methods",
        "path": "GET /books",
        "message": "GET must not carry a body.",
    }
    legacy = Finding.from_dict({**_finding().to_dict(), "aip": "AIP-131"})
    assert legacy.aip_reference == "AIP-131"


def test_summary_covers_every_category() -> None:
    summary = ReviewSummary.from_findings([_finding(), _finding(Severity.ERROR)])
    assert summary.total == 2
    assert set(summary.by_category) == {category.value for category in RuleCategory}
    assert summary.by_category["standard-methods"] == 2
    with pytest.raises(ValueError):
        ReviewSummary(errors=-1, warnings=0, suggestions=0, by_category={})


def test_result_rejects_mismatched_summary() -> None:
    with pytest.raises(ValueError, match="do not match"):
        ReviewResult(
            document_source="x.json",
            findings=(_finding(),),
            summary=ReviewSummary(errors=0, warnings=0, suggestions=0, by_category={}),
            metadata=ReviewMetadata(reviewed_at="now", engine_version="1.0.0"),
        )


def test_result_round_trip_and_category_lookup() -> None:
    findings = (_finding(fix=FixDescriptor("remove-body", "$.x", (SpecChange(ChangeOperation.REMOVE, "$.x"),))),)
    result = ReviewResult(
        document_source="x.json",
        findings=findings,
        summary=ReviewSummary.from_findings(findings),
        metadata=ReviewMetadata(reviewed_at="now", engine_version="1.0.0", rules_applied=("aip131/get-no-body",)),
    )
    assert ReviewResult.from_dict(result.to_dict()) == result
    assert "stored" not in result.to_dict()
    reference = {"id": "abc", "expiresAt": "2026-01-01T00:00:00Z"}
    assert ReviewResult.from_dict({**result.to_dict(), "stored": reference}).stored == reference
    assert result.findings_for_category("standard-methods") == findings
    assert result.findings_for_category(RuleCategory.NAMING) == ()
    assert '"documentSource": "x.json"' in result.to_json()
