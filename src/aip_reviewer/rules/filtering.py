"""Filtering and ordering rules (AIP-160, AIP-132)."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Final

from aip_reviewer.document import jsonpath
from aip_reviewer.document.adapter import OpenAPIDocument
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
from aip_reviewer.rules.pagination import add_parameters_changes, list_operations

NONSTANDARD_ORDER_NAMES: Final[tuple[str, ...]] = ("sort", "sort_by", "sortBy", "orderBy", "order")

FILTER_PARAMETER: Final[dict[str, JSONValue]] = {
    "name": "filter",
    "in": "query",
    "description": "Filter expression following AIP-160 syntax.",
    "required": False,
    "schema": {"type": "string"},
}


@rule(
    "aip160/filter-parameter",
    name="List methods accept filter",
    category=RuleCategory.FILTERING,
    severity=Severity.SUGGESTION,
    description="List methods should accept a 'filter' string parameter.",
    aip="AIP-160",
)
def filter_parameter(document: OpenAPIDocument, context: RuleContext) -> Iterator[Finding]:
    for operation in list_operations(document):
        if document.has_parameter(operation, ("filter",), "query"):
            continue
        yield context.finding(
            path=operation.label,
            message="List method does not accept a 'filter' parameter.",
            suggestion="Add a 'filter' query parameter using AIP-160 syntax",
            json_path=operation.json_path,
            fix=FixDescriptor(
                type="add-filter-parameter",
                json_path=jsonpath.parameters_json_path(operation.path, operation.method),
                changes=add_parameters_changes(operation, [dict(FILTER_PARAMETER)]),
            ),
        )


@rule(
    "aip132/order-by",
    name="Ordering uses order_by",
    category=RuleCategory.FILTERING,
    severity=Severity.SUGGESTION,
    description="Sort order is requested with an 'order_by' parameter.",
    aip="AIP-132",
)
def order_by(document: OpenAPIDocument, context: RuleContext) -> Iterator[Finding]:
    seen: set[str] = set()
    for operation in document.operations():
        if operation.method != "get":
            continue
        for parameter in document.parameters(operation):
            if not parameter.matches(NONSTANDARD_ORDER_NAMES, "query"):
                continue
            if parameter.json_path in seen:
                continue
            seen.add(parameter.json_path)
            target = jsonpath.extend_json_path(parameter.json_path, "name")
            yield context.finding(
                path=operation.label,
                message=f"Parameter '{parameter.name}' should be named 'order_by'.",
                suggestion="Rename the parameter to 'order_by'",
                json_path=parameter.json_path,
                fix=FixDescriptor(
                    type="rename-parameter",
                    json_path=parameter.json_path,
                    changes=(SpecChange(operation=ChangeOperation.SET, path=target, value="order_by"),),
                ),
                context={"parameter": parameter.name},
            )


RULES: Final[tuple[Rule, ...]] = (filter_parameter, order_by)

__all__ = ["RULES"]
