"""Error model rules (AIP-193)."""

from __future__ import annotations

import copy
from collections.abc import Iterator, Mapping
from typing import Any, Final

from aip_reviewer.document import jsonpath
from aip_reviewer.document.adapter import OpenAPIDocument, OperationView
from aip_reviewer.domain.models import (
    ChangeOperation,
    Finding,
    FixDescriptor,
    JSONValue,
    RuleCategory,
    Severity,
    SpecChange,
)
from aip_reviewer.rules.base import Rule, RuleContext, rule

_REQUIRED_ERROR_FIELDS: Final[tuple[str, ...]] = ("code", "message")

AIP193_ERROR_SCHEMA: Final[dict[str, JSONValue]] = {
    "type": "object",
    "properties": {
        "error": {
            "type": "object",
            "required": ["code", "message"],
            "properties": {
                "code": {"type": "integer", "format": "int32"},
                "message": {"type": "string"},
                "status": {"type": "string"},
                "details": {"type": "array", "items": {"type": "object"}},
            },
        }
    },
}


def is_error_status(status: str) -> bool:
    return status == "default" or (len(status) == 3 and status[0] in "45")


def _error_component(document: OpenAPIDocument) -> str | None:
    for name in document.schemas():
        if "error" in name.lower() or name.lower() in {"status", "problem"}:
            return name
    return None


def _default_error_response(document: OpenAPIDocument) -> dict[str, JSONValue]:
    component = _error_component(document)
    if component is not None:
        schema: dict[str, JSONValue] = {
            "$ref": "#/components/schemas/" + component.replace("~", "~0").replace("/", "~1")
        }
    else:
        schema = copy.deepcopy(AIP193_ERROR_SCHEMA)
    return {
        "description": "An error response following the AIP-193 error model.",
        "content": {"application/json": {"schema": schema}},
    }


def _has_error_fields(schema: Mapping[str, Any], document: OpenAPIDocument) -> bool:
    properties = schema.get("properties")
    if not isinstance(properties, Mapping):
        return False
    if all(name in properties for name in _REQUIRED_ERROR_FIELDS):
        return True
    nested = document.resolve(properties.get("error"))
    if isinstance(nested, Mapping):
        inner = nested.get("properties")
        return isinstance(inner, Mapping) and all(name in inner for name in _REQUIRED_ERROR_FIELDS)
    return False


def _error_response_fix(document: OpenAPIDocument, operation: OperationView) -> FixDescriptor:
    responses_path = jsonpath.responses_json_path(operation.path, operation.method)
    value = _default_error_response(document)
    if isinstance(operation.operation.get("responses"), Mapping):
        change = SpecChange(
            operation=ChangeOperation.ADD,
            path=jsonpath.extend_json_path(responses_path, "default"),
            value=value,
        )
    else:
        change = SpecChange(operation=ChangeOperation.SET, path=responses_path, value={"default": value})
    return FixDescriptor(type="add-error-response", json_path=responses_path, changes=(change,))


@rule(
    "aip193/error-responses",
    name="Error responses documented",
    category=RuleCategory.ERRORS,
    severity=Severity.WARNING,
    description="Every operation should document its error responses (4xx, 5xx or default).",
    aip="AIP-193",
)
def error_responses(document: OpenAPIDocument, context: RuleContext) -> Iterator[Finding]:
    for operation in document.operations():
        if any(is_error_status(status) for status in operation.responses):
            continue
        yield context.finding(
            path=operation.label,
            message="Operation does not document any error response.",
            suggestion="Add a 'default' response using the standard error schema",
            json_path=jsonpath.responses_json_path(operation.path, operation.method),
            fix=_error_response_fix(document, operation),
        )


@rule(
    "aip193/error-schema",
    name="Error schema shape",
    category=RuleCategory.ERRORS,
    severity=Severity.SUGGESTION,
    description="Error response bodies should carry at least 'code' and 'message'.",
    aip="AIP-193",
)
def error_schema(document: OpenAPIDocument, context: RuleContext) -> Iterator[Finding]:
    seen: set[str] = set()
    for operation in document.operations():
        for status in operation.responses:
            if not is_error_status(status):
                continue
            site = document.response_schema(operation, status)
            if site is None or site.json_path in seen:
                continue
            seen.add(site.json_path)
            if _has_error_fields(site.schema, document):
                continue
            yield context.finding(
                path=operation.label,
                message=f"Error response '{status}' has no 'code' and 'message' fields.",
                suggestion="Use the AIP-193 error model: {error: {code, message, status, details}}",
                json_path=site.json_path,
                context={"status": status, "schema": site.component},
            )


RULES: Final[tuple[Rule, ...]] = (error_responses, error_schema)

__all__ = ["AIP193_ERROR_SCHEMA", "RULES", "is_error_status"]
