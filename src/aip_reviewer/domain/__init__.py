"""Value types exchanged between the rule catalog, reviewer, fixer and workers."""

from aip_reviewer.domain.models import (
    UNSET,
    ChangeOperation,
    Finding,
    FixDescriptor,
    JSONScalar,
    JSONValue,
    ReviewMetadata,
    ReviewResult,
    ReviewSummary,
    RuleCategory,
    Severity,
    SpecChange,
)

__all__ = [
    "UNSET",
    "ChangeOperation",
    "Finding",
    "FixDescriptor",
    "JSONScalar",
    "JSONValue",
    "ReviewMetadata",
    "ReviewResult",
    "ReviewSummary",
    "RuleCategory",
    "Severity",
    "SpecChange",
]
