"""Document model adapter: parsing, traversal, path grammar and JSONPath addresses."""

from aip_reviewer.document.adapter import (
    HTTP_METHODS,
    ContentType,
    OpenAPIDocument,
    OperationView,
    ParameterView,
    SchemaSite,
    content_type_for_location,
    decode_document,
    parse_document,
)
from aip_reviewer.document.jsonpath import format_json_path, parse_json_path

__all__ = [
    "HTTP_METHODS",
    "ContentType",
    "OpenAPIDocument",
    "OperationView",
    "ParameterView",
    "SchemaSite",
    "content_type_for_location",
    "decode_document",
    "format_json_path",
    "parse_document",
    "parse_json_path",
]
