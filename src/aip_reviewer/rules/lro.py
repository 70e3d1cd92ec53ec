"""Long-running operation rules (AIP-151)."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
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

OPERATION_SCHEMA: Final[dict[str, JSONValue]] = {
    "type": "object",
    "required": ["name", "done"],
    "properties": {
        "name": {"type": "string", "description": "Server-assigned operation name."},
        "done": {"type": "boolean", "description": "True once the operation has completed."},
        "metadata": {"type": "object"},
        "response": {"type": "object"},
        "error": {"type": "object"},
    },
}


@rule(
    "aip151/operation-response",
    name="Long-running operations return an Operation",
    category=RuleCategory.LRO,
    severity=Severity.WARNING,
    description="202 Accepted responses should return an Operation resource with 'name' and 'done'.",
    aip="AIP-151",
)
def operation_response(document: OpenAPIDocument, context: RuleContext) -> Iterator[Finding]:
    for operation in document.operations():
        raw = operation.responses.get("202")
        if raw is None:
            continue
        site = document.response_schema(operation, "202")
        if site is not None and all(name in site.properties for name in ("name", "done")):
            continue

        fix = None
        if site is None and isinstance(raw, Mapping) and "$ref" not in raw:
            target = jsonpath.extend_json_path(
                jsonpath.response_json_path(operation.path, operation.method, "202"),
                "content",
                "application/json",
                "schema",
            )
            fix = FixDescriptor(
                type="set-operation-schema",
                json_path=target,
                changes=(SpecChange(operation=ChangeOperation.SET, path=target, value=dict(OPERATION_SCHEMA)),),
            )
        yield context.finding(
            path=operation.label,
            message="202 response does not return an Operation with 'name' and 'done'.",
            suggestion="Return an Operation resource that clients can poll",
            json_path=jsonpath.response_json_path(operation.path, operation.method, "202"),
            fix=fix,
        )


RULES: Final[tuple[Rule, ...]] = (operation_response,)

__all__ = ["OPERATION_SCHEMA", "RULES"]
