from __future__ import annotations

from collections.abc import Iterator

import pytest

from aip_reviewer.document.adapter import OpenAPIDocument
from aip_reviewer.domain.models import Finding, RuleCategory, Severity
from aip_reviewer.rules import DEFAULT_CATALOG, RuleCatalog, RuleContext, rule

pytestmark = pytest.mark.unit

EXPECTED_RULE_IDS = (
    "aip122/plural-resources",
    "aip122/no-verbs-in-path",
    "aip122/consistent-casing",
    "aip140/field-casing",
    "aip131/get-no-body",
    "aip135/delete-no-body",
    "aip134/prefer-patch",
    "aip136/custom-method-syntax",
    "aip193/error-responses",
    "aip193/error-schema",
    "aip158/list-paginated",
    "aip158/next-page-token",
    "aip160/filter-parameter",
    "aip132/order-by",
    "aip151/operation-response",
    "aip155/request-id",
    "aip185/major-version",
    "aip185/no-minor-version",
    "security/schemes-defined",
    "security/mutations-secured",
)


@rule(
    "custom/always",
    name="Always reports",
    category=RuleCategory.NAMING,
    severity=Severity.WARNING,
    description="Test rule.",
)
def _always(document: OpenAPIDocument, context: RuleContext) -> Iterator[Finding]:
    yield context.finding(path="/", message="always")


def test_default_catalog_lists_rules_in_registration_order() -> None:
    assert DEFAULT_CATALOG.rule_ids() == EXPECTED_RULE_IDS
    assert len(DEFAULT_CATALOG) == len(EXPECTED_RULE_IDS)


def test_every_aip_rule_reference_matches_its_id() -> None:
    for item in DEFAULT_CATALOG:
        if item.id.startswith("aip"):
            assert item.aip_reference == f"AIP-{item.aip_number}"
            assert item.id.startswith(f"aip{item.aip_number}/")
        else:
            assert item.aip_reference is None
            assert item.aip_number is None


def test_get_by_category_preserves_catalog_order_and_ignores_unknown() -> None:
    rules = DEFAULT_CATALOG.get_by_category(["pagination", "naming", "nonsense"])
    assert [item.id for item in rules] == [
        "aip122/plural-resources",
        "aip122/no-verbs-in-path",
        "aip122/consistent-casing",
        "aip140/field-casing",
        "aip158/list-paginated",
        "aip158/next-page-token",
    ]
    assert DEFAULT_CATALOG.get_by_category("nonsense") == ()
    assert [item.id for item in DEFAULT_CATALOG.get_by_category(RuleCategory.LRO)] == [
        "aip151/operation-response"
    ]


def test_get_by_aip_and_id() -> None:
    assert [item.id for item in DEFAULT_CATALOG.get_by_aip(193)] == [
        "aip193/error-responses",
        "aip193/error-schema",
    ]
    assert DEFAULT_CATALOG.get_by_aip(9999) == ()
    assert DEFAULT_CATALOG.get_by_aip(True) == ()  # type: ignore[arg-type]
    found = DEFAULT_CATALOG.get_by_id("aip158/list-paginated")
    assert found is not None and found.severity is Severity.WARNING
    assert DEFAULT_CATALOG.get_by_id("missing/rule") is None
    assert "aip131/get-no-body" in DEFAULT_CATALOG


def test_with_rules_returns_an_overlay_without_touching_the_base() -> None:
    overlay = DEFAULT_CATALOG.with_rules([_always])
    assert overlay.rule_ids()[-1] == "custom/always"
    assert "custom/always" not in DEFAULT_CATALOG
    assert DEFAULT_CATALOG.with_rules([]) is DEFAULT_CATALOG


def test_duplicate_ids_are_rejected() -> None:
    with pytest.raises(ValueError, match="duplicate"):
        RuleCatalog([_always, _always])
    with pytest.raises(TypeError):
        RuleCatalog(["not a rule"])  # type: ignore[list-item]


def test_rule_declaration_validates_fields() -> None:
    with pytest.raises(ValueError):
        rule("no-slash", name="x", category=RuleCategory.NAMING, severity=Severity.ERROR, description="")(
            lambda document, context: ()
        )
    with pytest.raises(ValueError):
        rule("a/b", name="x", category="bogus", severity=Severity.ERROR, description="")(  # type: ignore[arg-type]
            lambda document, context: ()
        )


def test_rule_metadata_serializes() -> None:
    item = DEFAULT_CATALOG.get_by_id("aip122/plural-resources")
    assert item is not None
    assert item.to_dict() == {
        "id": "aip122/plural-resources",
        "name": "Plural resource names",
        "category": "naming",
        "severity": "error",
        "aipReference": "AIP-122",
        "description": item.description,
    }


def test_context_stamps_rule_identity_on_findings() -> None:
    document = OpenAPIDocument({})
    (finding,) = list(_always.check(document, RuleContext(rule=_always, document=document)))
    assert finding.rule_id == "custom/always"
    assert finding.severity is Severity.WARNING
    assert finding.category is RuleCategory.NAMING
    assert finding.aip_reference is None
