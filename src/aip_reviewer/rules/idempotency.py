"""Request idempotency rules (AIP-155)."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Final

from aip_reviewer.document import jsonpath
from aip_reviewer.document.adapter import OpenAPIDocument
from aip_reviewer.document.paths import is_collection_endpoint
from aip_reviewer.domain.models import (
    Finding,
    FixDescriptor,
    JSONValue,
    RuleCategory,
    Severity,
)
from aip_reviewer.rules.base import Rule, RuleContext, rule
from aip_reviewer.rules.pagination import add_parameters_changes

REQUEST_ID_NAMES: Final[tuple[str, ...]] = ("request_id", "requestId")
IDEMPOTENCY_HEADERS: Final[tuple[str, ...]] = ("Idempotency-Key", "idempotency-key", "X-Idempotency-Key")

REQUEST_ID_PARAMETER: Final[dict[str, JSONValue]] = {
    "name": "request_id",
    "in": "query",
    "description": "Unique identifier (UUID4) that makes the request idempotent.",
    "required": False,
    "schema": {"type": "string", "format": "uuid"},
}


@rule(
    "aip155/request-id",
    name="Create accepts request_id",
    category=RuleCategory.IDEMPOTENCY,
    severity=Severity.SUGGESTION,
    description="Create methods should accept a request_id so retries are idempotent.",
    aip="AIP-155",
)
def request_id(document: OpenAPIDocument, context: RuleContext) -> Iterator[Finding]:
    for operation in document.operations():
        if operation.method != "post" or not is_collection_endpoint(operation.path):
            continue
        if document.has_parameter(operation, REQUEST_ID_NAMES):
            continue
        if document.has_parameter(operation, IDEMPOTENCY_HEADERS, "header"):
            continue
        yield context.finding(
            path=operation.label,
            message="Create method does not accept a request_id for idempotent retries.",
            suggestion="Add a 'request_id' query parameter",
            json_path=operation.json_path,
            fix=FixDescriptor(
                type="add-request-id",
                json_path=jsonpath.parameters_json_path(operation.path, operation.method),
                changes=add_parameters_changes(operation, [dict(REQUEST_ID_PARAMETER)]),
            ),
        )


RULES: Final[tuple[Rule, ...]] = (request_id,)

__all__ = ["RULES"]
