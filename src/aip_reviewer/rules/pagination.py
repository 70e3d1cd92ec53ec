"""List pagination rules (AIP-158)."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Final

from aip_reviewer.document import jsonpath
from aip_reviewer.document.adapter import OpenAPIDocument, OperationView, SchemaSite
from aip_reviewer.document.paths import is_collection_endpoint, is_version_prefix, split_segments
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

PAGE_SIZE_NAMES: Final[tuple[str, ...]] = ("page_size", "pageSize")
PAGE_TOKEN_NAMES: Final[tuple[str, ...]] = ("page_token", "pageToken")
NEXT_PAGE_TOKEN_NAMES: Final[tuple[str, ...]] = ("next_page_token", "nextPageToken")

PAGE_SIZE_PARAMETER: Final[dict[str, JSONValue]] = {
    "name": "page_size",
    "in": "query",
    "description": "Maximum number of results to return.",
    "required": False,
    "schema": {"type": "integer", "format": "int32", "minimum": 0},
}
PAGE_TOKEN_PARAMETER: Final[dict[str, JSONValue]] = {
    "name": "page_token",
    "in": "query",
    "description": "Token from a previous response to retrieve the next page.",
    "required": False,
    "schema": {"type": "string"},
}
NEXT_PAGE_TOKEN_PROPERTY: Final[dict[str, JSONValue]] = {
    "type": "string",
    "description": "Token to retrieve the next page; empty when there are no more results.",
}


def _is_collection_schema(site: SchemaSite | None, document: OpenAPIDocument) -> bool:
    if site is None:
        return False
    if site.schema.get("type") == "array":
        return True
    for value in site.properties.values():
        resolved = document.resolve(value)
        if isinstance(resolved, Mapping) and resolved.get("type") == "array":
            return True
    return False


def list_operations(document: OpenAPIDocument) -> Iterator[OperationView]:
    """GET operations on collection endpoints (standard List methods)."""

    paths = list(document.paths)
    for operation in document.operations():
        if operation.method != "get" or not is_collection_endpoint(operation.path):
            continue
        segments = split_segments(operation.path)
        if is_version_prefix(segments[-1]):
            continue
        has_item_child = any(other.startswith(operation.path.rstrip("/") + "/{") for other in paths)
        if has_item_child or _is_collection_schema(document.response_schema(operation, "200"), document):
            yield operation


def add_parameters_changes(
    operation: OperationView, parameters: list[dict[str, JSONValue]]
) -> tuple[SpecChange, ...]:
    """Changes that append ``parameters`` to the operation's own parameter list."""

    target = jsonpath.parameters_json_path(operation.path, operation.method)
    existing = operation.operation.get("parameters")
    if not isinstance(existing, list):
        return (SpecChange(operation=ChangeOperation.SET, path=target, value=parameters),)
    return tuple(
        SpecChange(
            operation=ChangeOperation.ADD,
            path=jsonpath.extend_json_path(target, len(existing) + offset),
            value=parameter,
        )
        for offset, parameter in enumerate(parameters)
    )


@rule(
    "aip158/list-paginated",
    name="List methods are paginated",
    category=RuleCategory.PAGINATION,
    severity=Severity.WARNING,
    description="List methods must accept page_size and page_token.",
    aip="AIP-158",
)
def list_paginated(document: OpenAPIDocument, context: RuleContext) -> Iterator[Finding]:
    for operation in list_operations(document):
        missing: list[dict[str, JSONValue]] = []
        if not document.has_parameter(operation, PAGE_SIZE_NAMES, "query"):
            missing.append(dict(PAGE_SIZE_PARAMETER))
        if not document.has_parameter(operation, PAGE_TOKEN_NAMES, "query"):
            missing.append(dict(PAGE_TOKEN_PARAMETER))
        if not missing:
            continue
        names = [str(parameter["name"]) for parameter in missing]
        yield context.finding(
            path=operation.label,
            message=f"List method is missing pagination parameters: {', '.join(names)}.",
            suggestion="Add page_size and page_token query parameters",
            json_path=operation.json_path,
            fix=FixDescriptor(
                type="add-pagination-parameters",
                json_path=jsonpath.parameters_json_path(operation.path, operation.method),
                changes=add_parameters_changes(operation, missing),
            ),
            context={"missing": names},
        )


@rule(
    "aip158/next-page-token",
    name="List responses return next_page_token",
    category=RuleCategory.PAGINATION,
    severity=Severity.WARNING,
    description="List responses must include a next_page_token field.",
    aip="AIP-158",
)
def next_page_token(document: OpenAPIDocument, context: RuleContext) -> Iterator[Finding]:
    seen: set[str] = set()
    for operation in list_operations(document):
        site = document.response_schema(operation, "200")
        if site is None or site.json_path in seen:
            continue
        seen.add(site.json_path)
        if any(name in site.properties for name in NEXT_PAGE_TOKEN_NAMES):
            continue

        fix = None
        if site.is_object:
            target = jsonpath.extend_json_path(site.json_path, "properties", "next_page_token")
            fix = FixDescriptor(
                type="add-next-page-token",
                json_path=site.json_path,
                changes=(
                    SpecChange(
                        operation=ChangeOperation.SET,
                        path=target,
                        value=dict(NEXT_PAGE_TOKEN_PROPERTY),
                    ),
                ),
            )
        yield context.finding(
            path=operation.label,
            message="List response does not include next_page_token.",
            suggestion=(
                "Add a next_page_token string property"
                if fix is not None
                else "Wrap the array in an object with the items and a next_page_token"
            ),
            json_path=site.json_path,
            fix=fix,
        )


RULES: Final[tuple[Rule, ...]] = (list_paginated, next_page_token)

__all__ = [
    "NEXT_PAGE_TOKEN_NAMES",
    "PAGE_SIZE_NAMES",
    "PAGE_TOKEN_NAMES",
    "RULES",
    "add_parameters_changes",
    "list_operations",
]
