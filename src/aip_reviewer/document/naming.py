"""Grammar heuristics for resource names (AIP-122, AIP-136)."""

from __future__ import annotations

from collections.abc import Collection
from typing import Final

from aip_reviewer.document.paths import parent_path

CUSTOM_METHOD_VERBS: Final[frozenset[str]] = frozenset(
    {
        "validate",
        "verify",
        "check",
        "test",
        "export",
        "import",
        "download",
        "upload",
        "clear",
        "reset",
        "restore",
        "backup",
        "start",
        "stop",
        "pause",
        "resume",
        "enable",
        "disable",
        "toggle",
        "send",
        "publish",
        "notify",
        "archive",
        "unarchive",
        "approve",
        "reject",
        "cancel",
        "encrypt",
        "decrypt",
        "hash",
        "sync",
        "refresh",
        "reload",
        "train",
        "predict",
    }
)

# Nouns that start with a verb prefix, plus verb/noun homographs.
NOUN_EXCEPTIONS: Final[frozenset[str]] = frozenset(
    {
        "address",
        "addresses",
        "addendum",
        "addenda",
        "addition",
        "additions",
        "checklist",
        "checklists",
        "checkout",
        "checkouts",
        "checkup",
        "checkups",
        "checksum",
        "checksums",
        "checkpoint",
        "checkpoints",
        "process",
        "processes",
        "runtime",
        "runtimes",
        "runbook",
        "runbooks",
        "sender",
        "senders",
        "submission",
        "submissions",
        "update",
        "updates",
        "search",
        "searches",
        "download",
        "downloads",
        "upload",
        "uploads",
        "listing",
        "listings",
        "insert",
        "inserts",
        "edit",
        "edits",
        "fetch",
        "fetches",
        "getaway",
        "document",
        "documents",
    }
)

VERB_PREFIXES: Final[tuple[str, ...]] = (
    "get",
    "fetch",
    "retrieve",
    "list",
    "create",
    "add",
    "insert",
    "update",
    "modify",
    "edit",
    "delete",
    "remove",
    "destroy",
    "find",
    "search",
    "check",
    "validate",
    "process",
    "execute",
    "run",
    "do",
    "perform",
    "send",
    "submit",
)

# Words that do not end in "s" but are not countable collection names.
SINGULAR_EXCEPTIONS: Final[frozenset[str]] = frozenset(
    {
        "status",
        "address",
        "metadata",
        "info",
        "health",
        "auth",
        "config",
        "settings",
        "data",
        "media",
        "analytics",
        "news",
        "series",
        "software",
        "hardware",
        "firmware",
        "api",
        "graphql",
        "grpc",
        "oauth",
        "oidc",
        "index",
        "matrix",
        "vertex",
        "ping",
        "proxy",
        "registry",
        "wizard",
        "people",
        "children",
        "feedback",
        "search",
        "me",
    }
)

_IRREGULAR_PLURALS: Final[dict[str, str]] = {
    "person": "people",
    "child": "children",
    "man": "men",
    "woman": "women",
    "mouse": "mice",
    "goose": "geese",
    "foot": "feet",
    "tooth": "teeth",
}


def is_custom_method(segment: str, path: str, singletons: Collection[str] = ()) -> bool:
    """True when ``segment`` reads as an action rather than a resource."""

    if ":" in segment:
        return True

    lowered = segment.lower()
    if "-" in lowered and lowered.split("-", 1)[0] in CUSTOM_METHOD_VERBS:
        return True

    if lowered in CUSTOM_METHOD_VERBS:
        parent = parent_path(path)
        if parent in singletons:
            return True
        if "{" in parent:
            return True

    return False


def looks_like_verb(word: str) -> bool:
    lowered = word.lower()
    if lowered in NOUN_EXCEPTIONS:
        return False
    return any(lowered.startswith(prefix) and len(lowered) > len(prefix) for prefix in VERB_PREFIXES)


def is_singular(word: str) -> bool:
    lowered = word.lower()
    if lowered in SINGULAR_EXCEPTIONS:
        return False
    if lowered in _IRREGULAR_PLURALS.values():
        return False
    return not lowered.endswith("s")


def pluralize(word: str) -> str:
    """Best-effort English plural that keeps the original casing of the stem."""

    lowered = word.lower()
    irregular = _IRREGULAR_PLURALS.get(lowered)
    if irregular is not None:
        return word[0] + irregular[1:] if word[:1].isupper() else irregular

    # Pluralize the last word of compound names (order-items, orderItem).
    for separator in ("-", "_"):
        if separator in word:
            head, _, tail = word.rpartition(separator)
            return f"{head}{separator}{pluralize(tail)}"

    if lowered.endswith("y") and len(lowered) > 1 and lowered[-2] not in "aeiou":
        return word[:-1] + "ies"
    if lowered.endswith(("s", "x", "z", "ch", "sh")):
        return word + "es"
    return word + "s"


__all__ = [
    "CUSTOM_METHOD_VERBS",
    "NOUN_EXCEPTIONS",
    "SINGULAR_EXCEPTIONS",
    "VERB_PREFIXES",
    "is_custom_method",
    "looks_like_verb",
    "is_singular",
    "pluralize",
]
