from __future__ import annotations

from typing import Any

import pytest

from aip_reviewer.document.adapter import (
    ContentType,
    OpenAPIDocument,
    content_type_for_location,
    decode_document,
    parse_document,
)
from aip_reviewer.errors import DocumentParseError

pytestmark = pytest.mark.unit

_YAML = """
openapi: 3.0.3
info:
  title: Pets
  version: 2
paths:
  /pets:
    get:
      responses:
        200:
          description: OK
"""


def test_content_type_follows_extension() -> None:
    assert content_type_for_location("spec.yaml") is ContentType.YAML
    assert content_type_for_location("https://x.test/spec.YML?rev=2") is ContentType.YAML
    assert content_type_for_location("spec.json") is ContentType.JSON
    assert content_type_for_location("inline-spec.json") is ContentType.JSON


def test_yaml_status_codes_are_normalized_to_strings() -> None:
    document = parse_document(_YAML, ContentType.YAML)
    assert document["paths"]["/pets"]["get"]["responses"] == {"200": {"description": "OK"}}


def test_yaml_and_json_sources_produce_the_same_model() -> None:
    from_yaml = parse_document(_YAML, "yaml")
    from_json = parse_document(
        '{"openapi": "3.0.3", "info": {"title": "Pets", "version": 2},'
        ' "paths": {"/pets": {"get": {"responses": {"200": {"description": "OK"}}}}}}',
        "json",
    )
    assert from_yaml == from_json


def test_decode_tolerates_byte_order_mark() -> None:
    data = '\ufeff{"openapi": "3.1.0"}'.encode()
    assert decode_document(data, ContentType.JSON) == {"openapi": "3.1.0"}


def test_decode_accepts_memoryview() -> None:
    assert decode_document(memoryview(b'{"a": 1}'), "json") == {"a": 1}


@pytest.mark.parametrize(
    ("payload", "content_type"),
    [
        (b"{not json", ContentType.JSON),
        (b"[1, 2, 3]", ContentType.JSON),
        (b"key: [unclosed", ContentType.YAML),
        (b"just a scalar", ContentType.YAML),
        (b"\xff\xfe\x00", ContentType.JSON),
    ],
)
def test_decode_failures_raise_parse_error(payload: bytes, content_type: ContentType) -> None:
    with pytest.raises(DocumentParseError):
        decode_document(payload, content_type)


def _document() -> dict[str, Any]:
    return {
        "info": {"title": "Shop", "version": 3},
        "servers": [{"url": "https://shop.test/v1"}, "bogus"],
        "paths": {
            "/orders": {
                "parameters": [{"$ref": "#/components/parameters/PageSize"}],
                "post": {"responses": {}},
                "get": {
                    "parameters": [
                        {"name": "page_size", "in": "query", "description": "override"},
                        {"name": "filter", "in": "query"},
                    ],
                    "responses": {"200": {"$ref": "#/components/responses/OrderList"}},
                },
                "x-internal": True,
            },
            "/orders/{order_id}": {"get": {"responses": {}}},
            "/broken": "not a path item",
        },
        "components": {
            "parameters": {"PageSize": {"name": "page_size", "in": "query"}},
            "responses": {
                "OrderList": {
                    "description": "OK",
                    "content": {"application/json": {"schema": {"$ref": "#/components/schemas/OrderList"}}},
                }
            },
            "schemas": {
                "OrderList": {"type": "object", "properties": {"orders": {"type": "array"}}},
                "Loop": {"$ref": "#/components/schemas/Loop"},
            },
        },
    }


def test_info_and_servers_accessors() -> None:
    document = OpenAPIDocument(_document())
    assert document.title == "Shop"
    assert document.version == "3"
    assert document.servers == [{"url": "https://shop.test/v1"}]
    assert "/broken" not in document.paths


def test_operations_follow_fixed_method_order() -> None:
    document = OpenAPIDocument(_document())
    labels = [operation.label for operation in document.operations()]
    assert labels == ["GET /orders", "POST /orders", "GET /orders/{order_id}"]


def test_operation_level_parameters_override_path_level() -> None:
    document = OpenAPIDocument(_document())
    operation = next(document.operations())
    parameters = {item.name: item for item in document.parameters(operation)}

    assert parameters["page_size"].level == "operation"
    assert parameters["page_size"].definition["description"] == "override"
    assert parameters["page_size"].json_path == "$.paths['/orders'].get.parameters[0]"
    assert parameters["filter"].json_path == "$.paths['/orders'].get.parameters[1]"


def test_referenced_parameter_is_located_at_its_definition() -> None:
    document = OpenAPIDocument(_document())
    post = [operation for operation in document.operations() if operation.method == "post"][0]
    (parameter,) = document.parameters(post)
    assert parameter.level == "path"
    assert parameter.json_path == "$.components.parameters.PageSize"
    assert document.has_parameter(post, ("page_size", "pageSize"), "query")
    assert not document.has_parameter(post, ("page_size",), "header")


def test_response_schema_follows_references() -> None:
    document = OpenAPIDocument(_document())
    operation = next(document.operations())
    site = document.response_schema(operation, "200")

    assert site is not None
    assert site.json_path == "$.components.schemas.OrderList"
    assert site.component == "OrderList"
    assert site.is_object
    assert "orders" in site.properties


def test_cyclic_and_dangling_references_resolve_to_none() -> None:
    document = OpenAPIDocument(_document())
    assert document.resolve({"$ref": "#/components/schemas/Loop"}) is None
    assert document.resolve({"$ref": "#/components/schemas/Missing"}) is None
    assert document.resolve({"$ref": "other.yaml#/Pet"}) is None


def test_singleton_paths_have_no_id_child() -> None:
    document = OpenAPIDocument(
        {"paths": {"/users": {}, "/users/{id}": {}, "/config": {}, "/users/{id}/profile": {}}}
    )
    assert document.singleton_paths() == {"/config", "/users/{id}/profile"}


def test_adapter_does_not_mutate_the_wrapped_mapping() -> None:
    raw = _document()
    snapshot = repr(raw)
    document = OpenAPIDocument(raw)
    list(document.operations())
    for operation in document.operations():
        document.parameters(operation)
        document.response_schema(operation, "200")
    document.singleton_paths()
    assert repr(raw) == snapshot


def test_non_mapping_root_is_rejected() -> None:
    with pytest.raises(DocumentParseError):
        OpenAPIDocument(["not", "a", "mapping"])  # type: ignore[arg-type]
