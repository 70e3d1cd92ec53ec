"""Standard and custom method rules (AIP-131, AIP-134, AIP-135, AIP-136)."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Final

from aip_reviewer.document import jsonpath
from aip_reviewer.document.adapter import OpenAPIDocument, OperationView
from aip_reviewer.document.naming import CUSTOM_METHOD_VERBS
from aip_reviewer.document.paths import is_path_parameter, parent_path, split_segments
from aip_reviewer.domain.models import (
    ChangeOperation,
    Finding,
    FixDescriptor,
    RuleCategory,
    Severity,
    SpecChange,
)
from aip_reviewer.rules.base import Rule, RuleContext, rule


def _remove_body_fix(operation: OperationView) -> FixDescriptor:
    target = jsonpath.request_body_json_path(operation.path, operation.method)
    return FixDescriptor(
        type="remove-request-body",
        json_path=target,
        changes=(SpecChange(operation=ChangeOperation.REMOVE, path=target),),
    )


@rule(
    "aip131/get-no-body",
    name="GET has no request body",
    category=RuleCategory.STANDARD_METHODS,
    severity=Severity.ERROR,
    description="Get and List methods must not accept a request body.",
    aip="AIP-131",
)
def get_no_body(document: OpenAPIDocument, context: RuleContext) -> Iterator[Finding]:
    for operation in document.operations():
        if operation.method == "get" and operation.has_request_body:
            yield context.finding(
                path=operation.label,
                message="GET operations must not define a request body.",
                suggestion="Move the body fields to query parameters",
                json_path=jsonpath.request_body_json_path(operation.path, operation.method),
                fix=_remove_body_fix(operation),
            )


@rule(
    "aip135/delete-no-body",
    name="DELETE has no request body",
    category=RuleCategory.STANDARD_METHODS,
    severity=Severity.WARNING,
    description="Delete methods should not accept a request body.",
    aip="AIP-135",
)
def delete_no_body(document: OpenAPIDocument, context: RuleContext) -> Iterator[Finding]:
    for operation in document.operations():
        if operation.method == "delete" and operation.has_request_body:
            yield context.finding(
                path=operation.label,
                message="DELETE operations should not define a request body.",
                suggestion="Identify the resource through the path; use query parameters for options",
                json_path=jsonpath.request_body_json_path(operation.path, operation.method),
                fix=_remove_body_fix(operation),
            )


@rule(
    "aip134/prefer-patch",
    name="Prefer PATCH for updates",
    category=RuleCategory.STANDARD_METHODS,
    severity=Severity.SUGGESTION,
    description="Resources updated with PUT should also offer PATCH with a field mask.",
    aip="AIP-134",
)
def prefer_patch(document: OpenAPIDocument, context: RuleContext) -> Iterator[Finding]:
    for path, item in document.paths.items():
        segments = split_segments(path)
        if not segments or not is_path_parameter(segments[-1]):
            continue
        if "put" in item and "patch" not in item:
            yield context.finding(
                path=f"PUT {path}",
                message="Resource is updated with PUT but has no PATCH method.",
                suggestion="Add a PATCH operation that accepts an update mask",
                json_path=jsonpath.operation_json_path(path, "put"),
            )


@rule(
    "aip136/custom-method-syntax",
    name="Custom method syntax",
    category=RuleCategory.STANDARD_METHODS,
    severity=Severity.SUGGESTION,
    description="Custom methods are expressed as ':verb' suffixes, not as path segments.",
    aip="AIP-136",
)
def custom_method_syntax(document: OpenAPIDocument, context: RuleContext) -> Iterator[Finding]:
    paths = document.paths
    for path in paths:
        segments = split_segments(path)
        if len(segments) < 2:
            continue
        verb = segments[-1]
        if verb.lower() not in CUSTOM_METHOD_VERBS or not is_path_parameter(segments[-2]):
            continue
        if any(other.startswith(path.rstrip("/") + "/") for other in paths):
            continue
        target = f"{parent_path(path.rstrip('/'))}:{verb}"
        fix = None
        if target not in paths:
            fix = FixDescriptor(
                type="custom-method-syntax",
                json_path=jsonpath.paths_json_path(),
                changes=(
                    SpecChange(
                        operation=ChangeOperation.RENAME_KEY,
                        path=jsonpath.paths_json_path(),
                        from_key=path,
                        to_key=target,
                    ),
                ),
            )
        yield context.finding(
            path=path,
            message=f"Custom method '{verb}' should use the ':{verb}' suffix.",
            suggestion=f"Rename '{path}' to '{target}'",
            json_path=jsonpath.path_item_json_path(path),
            fix=fix,
            context={"verb": verb},
        )


RULES: Final[tuple[Rule, ...]] = (
    get_no_body,
    delete_no_body,
    prefer_patch,
    custom_method_syntax,
)

__all__ = ["RULES"]
