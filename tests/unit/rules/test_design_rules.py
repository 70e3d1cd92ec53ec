from __future__ import annotations

from typing import Any

import pytest

from aip_reviewer.document.adapter import OpenAPIDocument
from aip_reviewer.domain.models import ChangeOperation, Finding, Severity
from aip_reviewer.engine.fixer import apply_fixes
from aip_reviewer.rules import DEFAULT_CATALOG, RuleContext
from aip_reviewer.rules.errors import AIP193_ERROR_SCHEMA
from tests.documents import base_document, unpaginated_list_document

pytestmark = pytest.mark.unit


def _run(rule_id: str, document: dict[str, Any]) -> list[Finding]:
    item = DEFAULT_CATALOG.get_by_id(rule_id)
    assert item is not None
    model = OpenAPIDocument(document)
    return list(item.check(model, RuleContext(rule=item, document=model)))


def _json(schema: dict[str, Any]) -> dict[str, Any]:
    return {"description": "OK", "content": {"application/json": {"schema": schema}}}


# errors


def test_missing_error_responses_get_a_default_response_fix() -> None:
    document = base_document(
        {"/books": {"get": {"responses": {"200": {"description": "OK"}}}, "post": {}}},
    )
    document["components"]["schemas"] = {}
    findings = _run("aip193/error-responses", document)
    assert [finding.path for finding in findings] == ["GET /books", "POST /books"]

    add, create = (finding.fix.changes[0] for finding in findings if finding.fix is not None)
    assert add.operation is ChangeOperation.ADD
    assert add.path == "$.paths['/books'].get.responses.default"
    assert add.value["content"]["application/json"]["schema"] == AIP193_ERROR_SCHEMA
    assert create.operation is ChangeOperation.SET
    assert create.path == "$.paths['/books'].post.responses"

    fixed = apply_fixes(document, findings).document
    assert _run("aip193/error-responses", fixed) == []


def test_default_error_response_reuses_error_component() -> None:
    document = base_document({"/books": {"get": {"responses": {"200": {"description": "OK"}}}}})
    (finding,) = _run("aip193/error-responses", document)
    assert finding.fix is not None
    value = finding.fix.changes[0].value
    assert value["content"]["application/json"]["schema"] == {"$ref": "#/components/schemas/Error"}


def test_documented_error_statuses_satisfy_the_rule() -> None:
    document = base_document(
        {
            "/a": {"get": {"responses": {"404": {"description": "Missing"}}}},
            "/b": {"get": {"responses": {"default": {"description": "Error"}}}},
            "/c": {"get": {"responses": {"503": {"description": "Down"}}}},
        }
    )
    assert _run("aip193/error-responses", document) == []


def test_error_schema_without_code_and_message_is_suggested_once() -> None:
    bad = {"$ref": "#/components/schemas/Problem"}
    document = base_document(
        {
            "/a": {"get": {"responses": {"400": _json(bad)}}},
            "/b": {"get": {"responses": {"400": _json(bad), "500": _json({"$ref": "#/components/schemas/Error"})}}},
            "/c": {
                "get": {
                    "responses": {"default": _json({"type": "object", "properties": {"code": {}, "message": {}}})}
                }
            },
        },
        Problem={"type": "object", "properties": {"title": {"type": "string"}}},
    )
    (finding,) = _run("aip193/error-schema", document)
    assert finding.severity is Severity.SUGGESTION
    assert finding.json_path == "$.components.schemas.Problem"
    assert finding.context == {"status": "400", "schema": "Problem"}


# pagination and filtering


def test_unpaginated_list_gets_both_parameters() -> None:
    document = unpaginated_list_document()
    (finding,) = _run("aip158/list-paginated", document)
    assert finding.context == {"missing": ["page_size", "page_token"]}
    assert finding.fix is not None
    (change,) = finding.fix.changes
    assert change.operation is ChangeOperation.SET
    assert change.path == "$.paths['/books'].get.parameters"

    fixed = apply_fixes(document, [finding]).document
    assert [item["name"] for item in fixed["paths"]["/books"]["get"]["parameters"]] == ["page_size", "page_token"]
    assert _run("aip158/list-paginated", fixed) == []


def test_partial_pagination_appends_only_the_missing_parameter() -> None:
    document = unpaginated_list_document()
    document["paths"]["/books"]["get"]["parameters"] = [{"name": "pageSize", "in": "query"}]
    (finding,) = _run("aip158/list-paginated", document)
    assert finding.context == {"missing": ["page_token"]}
    assert finding.fix is not None
    (change,) = finding.fix.changes
    assert change.operation is ChangeOperation.ADD
    assert change.path == "$.paths['/books'].get.parameters[1]"


def test_repeated_pagination_fix_is_rejected_not_duplicated() -> None:
    document = unpaginated_list_document()
    document["paths"]["/books"]["get"]["parameters"] = [{"name": "filter", "in": "query"}]
    findings = _run("aip158/list-paginated", document)

    once = apply_fixes(document, findings)
    twice = apply_fixes(once.document, findings)

    assert once.errors == ()
    names = [item["name"] for item in twice.document["paths"]["/books"]["get"]["parameters"]]
    assert names == ["filter", "page_size", "page_token"]
    assert twice.summary == {"applied": 0, "failed": 1, "skipped": 0}
    assert all("already present" in str(error["message"]) for error in twice.errors)


def test_item_endpoints_and_version_roots_are_not_list_methods() -> None:
    document = base_document(
        {
            "/v1": {"get": {"responses": {"200": _json({"type": "array"})}}},
            "/books/{id}": {"get": {"responses": {"200": {"description": "OK"}}}},
            "/health": {"get": {"responses": {"200": _json({"type": "object", "properties": {"ok": {}}})}}},
        }
    )
    assert _run("aip158/list-paginated", document) == []
    assert _run("aip160/filter-parameter", document) == []


def test_missing_next_page_token_is_set_on_the_response_schema() -> None:
    document = base_document(
        {
            "/books": {"get": {"responses": {"200": _json({"$ref": "#/components/schemas/ListBooksResponse"})}}},
            "/books/{id}": {"get": {"responses": {}}},
        },
        ListBooksResponse={"type": "object", "properties": {"books": {"type": "array"}}},
    )
    (finding,) = _run("aip158/next-page-token", document)
    assert finding.fix is not None
    assert finding.fix.changes[0].path == "$.components.schemas.ListBooksResponse.properties.next_page_token"

    fixed = apply_fixes(document, [finding]).document
    assert _run("aip158/next-page-token", fixed) == []


def test_bare_array_list_response_has_no_token_fix() -> None:
    document = base_document({"/books": {"get": {"responses": {"200": _json({"type": "array"})}}}})
    (finding,) = _run("aip158/next-page-token", document)
    assert finding.fix is None


def test_filter_parameter_is_added_to_list_methods() -> None:
    document = unpaginated_list_document()
    (finding,) = _run("aip160/filter-parameter", document)
    fixed = apply_fixes(document, [finding]).document
    assert fixed["paths"]["/books"]["get"]["parameters"][0]["name"] == "filter"
    assert _run("aip160/filter-parameter", fixed) == []


def test_nonstandard_sort_parameter_is_renamed_to_order_by() -> None:
    document = base_document(
        {"/books": {"get": {"parameters": [{"name": "sortBy", "in": "query"}], "responses": {}}}}
    )
    (finding,) = _run("aip132/order-by", document)
    assert finding.context == {"parameter": "sortBy"}
    fixed = apply_fixes(document, [finding]).document
    assert fixed["paths"]["/books"]["get"]["parameters"][0]["name"] == "order_by"
    assert _run("aip132/order-by", fixed) == []


def test_shared_sort_parameter_is_reported_once() -> None:
    document = base_document(
        {
            "/books": {"get": {"parameters": [{"$ref": "#/components/parameters/Sort"}], "responses": {}}},
            "/authors": {"get": {"parameters": [{"$ref": "#/components/parameters/Sort"}], "responses": {}}},
        }
    )
    document["components"]["parameters"] = {"Sort": {"name": "sort", "in": "query"}}
    (finding,) = _run("aip132/order-by", document)
    assert finding.json_path == "$.components.parameters.Sort"


# lro, idempotency


def test_accepted_response_without_operation_schema() -> None:
    document = base_document({"/exports": {"post": {"responses": {"202": {"description": "Accepted"}}}}})
    (finding,) = _run("aip151/operation-response", document)
    assert finding.fix is not None
    fixed = apply_fixes(document, [finding]).document
    schema = fixed["paths"]["/exports"]["post"]["responses"]["202"]["content"]["application/json"]["schema"]
    assert {"name", "done"} <= set(schema["properties"])
    assert _run("aip151/operation-response", fixed) == []


def test_accepted_response_with_incomplete_schema_has_no_fix() -> None:
    document = base_document(
        {"/exports": {"post": {"responses": {"202": _json({"type": "object", "properties": {"name": {}}})}}}}
    )
    (finding,) = _run("aip151/operation-response", document)
    assert finding.fix is None


def test_create_without_request_id_gets_parameter() -> None:
    document = base_document(
        {
            "/books": {"post": {"responses": {}}},
            "/authors": {"post": {"parameters": [{"name": "Idempotency-Key", "in": "header"}], "responses": {}}},
            "/books/{id}:archive": {"post": {"responses": {}}},
        }
    )
    (finding,) = _run("aip155/request-id", document)
    assert finding.path == "POST /books"
    fixed = apply_fixes(document, [finding]).document
    assert fixed["paths"]["/books"]["post"]["parameters"][0]["name"] == "request_id"


# versioning, security


def test_major_version_is_required_somewhere() -> None:
    document = base_document({"/books": {}})
    document["servers"] = [{"url": "https://api.example.com"}]
    (finding,) = _run("aip185/major-version", document)
    assert finding.path == "/"

    document["paths"] = {"/v2/books": {}}
    assert _run("aip185/major-version", document) == []


def test_minor_versions_in_paths_and_servers() -> None:
    document = base_document({"/v1.1/books": {}, "/v1/authors": {}})
    document["servers"] = [{"url": "https://api.example.com/api/v2.0"}]
    findings = _run("aip185/no-minor-version", document)
    assert [finding.path for finding in findings] == ["/v1.1/books", "https://api.example.com/api/v2.0"]
    assert findings[1].context["segment"] == "v2.0"


def test_missing_security_schemes() -> None:
    document = base_document({"/books": {"get": {}}})
    assert _run("security/schemes-defined", document) == []
    del document["components"]["securitySchemes"]
    (finding,) = _run("security/schemes-defined", document)
    assert finding.aip_reference is None


def test_mutations_require_security() -> None:
    document = base_document(
        {
            "/books": {"get": {}, "post": {}},
            "/books/{id}": {"delete": {"security": []}, "patch": {"security": [{"bearer": []}]}},
        }
    )
    assert [finding.path for finding in _run("security/mutations-secured", document)] == ["DELETE /books/{id}"]

    document["security"] = []
    assert [finding.path for finding in _run("security/mutations-secured", document)] == [
        "POST /books",
        "DELETE /books/{id}",
    ]
