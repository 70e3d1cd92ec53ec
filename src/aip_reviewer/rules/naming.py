"""Resource naming rules (AIP-122, AIP-140)."""

from __future__ import annotations

import re
from collections import Counter
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import Final

from aip_reviewer.document import jsonpath
from aip_reviewer.document.adapter import OpenAPIDocument
from aip_reviewer.document.naming import is_custom_method, is_singular, looks_like_verb, pluralize
from aip_reviewer.document.paths import (
    detect_casing_style,
    is_path_parameter,
    is_version_prefix,
    replace_segment,
    split_segments,
)
from aip_reviewer.domain.models import (
    ChangeOperation,
    Finding,
    FixDescriptor,
    RuleCategory,
    Severity,
    SpecChange,
)
from aip_reviewer.rules.base import Rule, RuleContext, rule

_SNAKE_CASE_RE: Final[re.Pattern[str]] = re.compile(r"^[a-z][a-z0-9]*(?:_[a-z0-9]+)*$")


@dataclass(slots=True)
class _PluralGroup:
    index: int
    segment: str
    plural: str
    prefix: tuple[str, ...]
    paths: list[str] = field(default_factory=list)


def _plural_groups(document: OpenAPIDocument) -> list[_PluralGroup]:
    paths = list(document.paths)
    singletons = document.singleton_paths()
    groups: dict[tuple[str, ...], _PluralGroup] = {}

    for path in paths:
        segments = split_segments(path)
        for index, segment in enumerate(segments):
            if is_path_parameter(segment) or ":" in segment or is_version_prefix(segment):
                continue
            prefix = tuple(segments[: index + 1])
            prefix_path = "/" + "/".join(prefix)
            if looks_like_verb(segment) or is_custom_method(segment, prefix_path, singletons):
                continue
            followed_by_id = index + 1 < len(segments) and is_path_parameter(segments[index + 1])
            has_item_child = index + 1 == len(segments) and any(
                other.startswith(prefix_path.rstrip("/") + "/{") for other in paths
            )
            if not (followed_by_id or has_item_child) or not is_singular(segment):
                continue
            if prefix not in groups:
                groups[prefix] = _PluralGroup(
                    index=index, segment=segment, plural=pluralize(segment), prefix=prefix
                )

    for group in groups.values():
        group.paths = [
            path for path in paths if tuple(split_segments(path)[: group.index + 1]) == group.prefix
        ]
    return list(groups.values())


@rule(
    "aip122/plural-resources",
    name="Plural resource names",
    category=RuleCategory.NAMING,
    severity=Severity.ERROR,
    description="Collection segments followed by a resource id must use the plural form.",
    aip="AIP-122",
)
def plural_resources(document: OpenAPIDocument, context: RuleContext) -> Iterator[Finding]:
    # Renames are computed against the keys left by earlier findings so that
    # applying every fix in order rewrites nested collections correctly.
    current = {path: path for path in document.paths}

    for group in _plural_groups(document):
        first_path = group.paths[0]
        locator = next(
            (operation.label for path in group.paths for operation in document.operations_for(path)),
            first_path,
        )
        renames = [
            (current[path], replace_segment(current[path], group.index, group.plural))
            for path in group.paths
        ]
        renamed_from = {old for old, _ in renames}
        untouched = set(current.values()) - renamed_from
        collides = any(new in untouched for _, new in renames)

        fix = None
        if not collides:
            fix = FixDescriptor(
                type="rename-path-segment",
                json_path=jsonpath.paths_json_path(),
                changes=tuple(
                    SpecChange(
                        operation=ChangeOperation.RENAME_KEY,
                        path=jsonpath.paths_json_path(),
                        from_key=old,
                        to_key=new,
                    )
                    for old, new in renames
                ),
            )
            for path, (_, new) in zip(group.paths, renames, strict=True):
                current[path] = new

        suggested = replace_segment(first_path, group.index, group.plural)
        yield context.finding(
            path=locator,
            message=(
                f"Resource collection '{group.segment}' should be plural; "
                f"use '{group.plural}' instead."
            ),
            suggestion=f"Rename '{first_path}' to '{suggested}'",
            json_path=jsonpath.path_item_json_path(first_path),
            fix=fix,
            context={
                "segment": group.segment,
                "plural": group.plural,
                "affectedPaths": list(group.paths),
            },
        )


@rule(
    "aip122/no-verbs-in-path",
    name="No verbs in resource paths",
    category=RuleCategory.NAMING,
    severity=Severity.ERROR,
    description="Resource paths name nouns; actions belong in the HTTP method or a custom method.",
    aip="AIP-122",
)
def no_verbs_in_path(document: OpenAPIDocument, context: RuleContext) -> Iterator[Finding]:
    singletons = document.singleton_paths()
    for path in document.paths:
        segments = split_segments(path)
        for index, segment in enumerate(segments):
            if is_path_parameter(segment) or ":" in segment or is_version_prefix(segment):
                continue
            prefix_path = "/" + "/".join(segments[: index + 1])
            if is_custom_method(segment, prefix_path, singletons):
                continue
            if looks_like_verb(segment):
                yield context.finding(
                    path=path,
                    message=f"Path segment '{segment}' looks like a verb.",
                    suggestion="Use a resource noun and express the action with the HTTP method",
                    json_path=jsonpath.path_item_json_path(path),
                    context={"segment": segment},
                )
                break


@rule(
    "aip122/consistent-casing",
    name="Consistent path casing",
    category=RuleCategory.NAMING,
    severity=Severity.WARNING,
    description="Multi-word path segments should share a single casing style.",
    aip="AIP-122",
)
def consistent_casing(document: OpenAPIDocument, context: RuleContext) -> Iterator[Finding]:
    styled: list[tuple[str, str, str]] = []
    for path in document.paths:
        for segment in split_segments(path):
            if is_path_parameter(segment) or ":" in segment or is_version_prefix(segment):
                continue
            style = detect_casing_style(segment)
            if style != "lowercase":
                styled.append((path, segment, style))
    if not styled:
        return

    counts = Counter(style for _, _, style in styled)
    # most_common keeps first-seen order among ties.
    dominant = counts.most_common(1)[0][0]
    reported: set[str] = set()
    for path, segment, style in styled:
        if style == dominant or path in reported:
            continue
        reported.add(path)
        yield context.finding(
            path=path,
            message=f"Segment '{segment}' uses {style} while most paths use {dominant}.",
            suggestion=f"Use {dominant} for multi-word path segments",
            json_path=jsonpath.path_item_json_path(path),
            context={"segment": segment, "style": style, "dominantStyle": dominant},
        )


@rule(
    "aip140/field-casing",
    name="Field names use lower_snake_case",
    category=RuleCategory.NAMING,
    severity=Severity.SUGGESTION,
    description="Schema property names should be lower_snake_case.",
    aip="AIP-140",
)
def field_casing(document: OpenAPIDocument, context: RuleContext) -> Iterator[Finding]:
    for name, schema in document.schemas().items():
        properties = schema.get("properties")
        if not isinstance(properties, Mapping):
            continue
        for prop in properties:
            if _SNAKE_CASE_RE.match(prop):
                continue
            yield context.finding(
                path=f"#/components/schemas/{name}",
                message=f"Field '{prop}' in schema '{name}' is not lower_snake_case.",
                suggestion="Rename the field to lower_snake_case",
                json_path=jsonpath.schema_property_json_path(name, prop),
                context={"schema": name, "field": prop},
            )


RULES: Final[tuple[Rule, ...]] = (
    plural_resources,
    no_verbs_in_path,
    consistent_casing,
    field_casing,
)

__all__ = ["RULES"]
