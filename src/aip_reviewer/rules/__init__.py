"""Built-in AIP rule catalog.

``DEFAULT_CATALOG`` is assembled once at import time from the per-category
rule modules and is never modified afterwards.
"""

from aip_reviewer.rules import (
    errors,
    filtering,
    idempotency,
    lro,
    naming,
    pagination,
    security,
    standard_methods,
    versioning,
)
from aip_reviewer.rules.base import Rule, RuleCheck, RuleContext, rule
from aip_reviewer.rules.catalog import RuleCatalog

DEFAULT_CATALOG = RuleCatalog(
    (
        *naming.RULES,
        *standard_methods.RULES,
        *errors.RULES,
        *pagination.RULES,
        *filtering.RULES,
        *lro.RULES,
        *idempotency.RULES,
        *versioning.RULES,
        *security.RULES,
    )
)

__all__ = [
    "DEFAULT_CATALOG",
    "Rule",
    "RuleCatalog",
    "RuleCheck",
    "RuleContext",
    "rule",
]
