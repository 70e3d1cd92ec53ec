"""Authentication declaration rules."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Final

from aip_reviewer.document import jsonpath
from aip_reviewer.document.adapter import OpenAPIDocument
from aip_reviewer.domain.models import Finding, RuleCategory, Severity
from aip_reviewer.rules.base import Rule, RuleContext, rule

MUTATING_METHODS: Final[frozenset[str]] = frozenset({"post", "put", "patch", "delete"})


@rule(
    "security/schemes-defined",
    name="Security schemes defined",
    category=RuleCategory.SECURITY,
    severity=Severity.WARNING,
    description="The document should declare at least one security scheme.",
)
def schemes_defined(document: OpenAPIDocument, context: RuleContext) -> Iterator[Finding]:
    if not document.paths or document.security_schemes():
        return
    yield context.finding(
        path="#/components/securitySchemes",
        message="No security schemes are defined.",
        suggestion="Declare the authentication mechanism under components.securitySchemes",
        json_path=jsonpath.join_json_path("components"),
    )


@rule(
    "security/mutations-secured",
    name="Mutations require authentication",
    category=RuleCategory.SECURITY,
    severity=Severity.WARNING,
    description="Operations that modify state should require authentication.",
)
def mutations_secured(document: OpenAPIDocument, context: RuleContext) -> Iterator[Finding]:
    globally_secured = any(bool(requirement) for requirement in document.global_security or [])
    for operation in document.operations():
        if operation.method not in MUTATING_METHODS:
            continue
        local = operation.operation.get("security")
        if isinstance(local, list):
            # An explicit empty list opts the operation out of global security.
            secured = any(bool(requirement) for requirement in local)
        else:
            secured = globally_secured
        if secured:
            continue
        yield context.finding(
            path=operation.label,
            message="Mutating operation does not require authentication.",
            suggestion="Apply a security requirement globally or on this operation",
            json_path=operation.json_path,
        )


RULES: Final[tuple[Rule, ...]] = (schemes_defined, mutations_secured)

__all__ = ["MUTATING_METHODS", "RULES"]
