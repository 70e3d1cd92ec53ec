"""Review engine, structural fixer and result formatters."""

from aip_reviewer.engine.fixer import (
    ChangeResult,
    ChangeStatus,
    FixOutcome,
    FixResult,
    FixStatus,
    SpecFixer,
    apply_fixes,
)
from aip_reviewer.engine.formatters import OutputFormat, format_result
from aip_reviewer.engine.reviewer import ReviewConfig, Reviewer, RuleOutcome, review_document

__all__ = [
    "ChangeResult",
    "ChangeStatus",
    "FixOutcome",
    "FixResult",
    "FixStatus",
    "OutputFormat",
    "ReviewConfig",
    "Reviewer",
    "RuleOutcome",
    "SpecFixer",
    "apply_fixes",
    "format_result",
    "review_document",
]
