"""URL path helpers shared by the naming, pagination and versioning rules."""

from __future__ import annotations

import re
from typing import Final, Literal

CasingStyle = Literal["snake_case", "kebab-case", "camelCase", "PascalCase", "lowercase"]

VERSION_PATTERNS: Final[tuple[re.Pattern[str], ...]] = (
    re.compile(r"^v\d+$"),
    re.compile(r"^v\d+\.\d+$"),
    re.compile(r"^api$"),
)
MAJOR_VERSION_PATTERN: Final[re.Pattern[str]] = re.compile(r"^v\d+(?:(?:alpha|beta)\d*)?$")
MINOR_VERSION_PATTERN: Final[re.Pattern[str]] = re.compile(r"^v\d+\.\d+(?:\.\d+)?$")


def split_segments(path: str) -> list[str]:
    return [segment for segment in path.split("/") if segment]


def is_path_parameter(segment: str) -> bool:
    return segment.startswith("{") and segment.endswith("}")


def has_custom_method_suffix(segment: str) -> bool:
    return ":" in segment


def resource_segments(path: str) -> list[str]:
    """Segments that name resources: no ``{params}`` and no ``:custom`` verbs."""

    return [
        segment
        for segment in split_segments(path)
        if not segment.startswith("{") and not has_custom_method_suffix(segment)
    ]


def is_version_prefix(segment: str) -> bool:
    lowered = segment.lower()
    return any(pattern.match(lowered) for pattern in VERSION_PATTERNS)


def is_collection_endpoint(path: str) -> bool:
    """True when the last segment is neither a parameter nor a custom method."""

    segments = split_segments(path)
    if not segments:
        return False
    last = segments[-1]
    return not last.startswith("{") and not has_custom_method_suffix(last)


def detect_casing_style(word: str) -> CasingStyle:
    if "_" in word:
        return "snake_case"
    if "-" in word:
        return "kebab-case"
    if word[:1].islower() and any(char.isupper() for char in word):
        return "camelCase"
    if word[:1].isupper():
        return "PascalCase"
    return "lowercase"


def replace_segment(path: str, index: int, replacement: str) -> str:
    """Return ``path`` with its ``index``-th non-empty segment replaced."""

    segments = split_segments(path)
    segments[index] = replacement
    rendered = "/" + "/".join(segments)
    if path.endswith("/") and len(path) > 1:
        rendered += "/"
    return rendered


def parent_path(path: str) -> str:
    return path[: path.rfind("/")] if "/" in path else ""


__all__ = [
    "MAJOR_VERSION_PATTERN",
    "MINOR_VERSION_PATTERN",
    "VERSION_PATTERNS",
    "CasingStyle",
    "detect_casing_style",
    "has_custom_method_suffix",
    "is_collection_endpoint",
    "is_path_parameter",
    "is_version_prefix",
    "parent_path",
    "replace_segment",
    "resource_segments",
    "split_segments",
]
