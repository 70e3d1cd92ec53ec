"""API versioning rules (AIP-185)."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Final

from aip_reviewer.document import jsonpath
from aip_reviewer.document.adapter import OpenAPIDocument
from aip_reviewer.document.paths import MAJOR_VERSION_PATTERN, MINOR_VERSION_PATTERN, split_segments
from aip_reviewer.domain.models import Finding, RuleCategory, Severity
from aip_reviewer.rules.base import Rule, RuleContext, rule


def _server_segments(document: OpenAPIDocument) -> Iterator[tuple[str, str]]:
    for server in document.servers:
        url = server.get("url")
        if not isinstance(url, str):
            continue
        path = url.split("://", 1)[-1]
        path = path.split("/", 1)[1] if "/" in path else ""
        for segment in split_segments(path):
            yield url, segment


@rule(
    "aip185/major-version",
    name="Major version in path",
    category=RuleCategory.VERSIONING,
    severity=Severity.WARNING,
    description="The API major version should appear in the path or server URL (e.g. /v1).",
    aip="AIP-185",
)
def major_version(document: OpenAPIDocument, context: RuleContext) -> Iterator[Finding]:
    paths = document.paths
    if not paths:
        return
    in_servers = any(MAJOR_VERSION_PATTERN.match(segment.lower()) for _, segment in _server_segments(document))
    in_paths = any(
        MAJOR_VERSION_PATTERN.match(segment.lower())
        for path in paths
        for segment in split_segments(path)[:1]
    )
    if in_servers or in_paths:
        return
    yield context.finding(
        path="/",
        message="No major version found in server URLs or path prefixes.",
        suggestion="Prefix paths or the server URL with the major version, e.g. '/v1'",
        json_path=jsonpath.paths_json_path(),
    )


@rule(
    "aip185/no-minor-version",
    name="No minor version in path",
    category=RuleCategory.VERSIONING,
    severity=Severity.WARNING,
    description="Only the major version belongs in the URL; minor versions are not exposed.",
    aip="AIP-185",
)
def no_minor_version(document: OpenAPIDocument, context: RuleContext) -> Iterator[Finding]:
    for path in document.paths:
        for segment in split_segments(path):
            if MINOR_VERSION_PATTERN.match(segment.lower()):
                yield context.finding(
                    path=path,
                    message=f"Path exposes the minor version '{segment}'.",
                    suggestion=f"Use only the major version, e.g. '{segment.split('.', 1)[0]}'",
                    json_path=jsonpath.path_item_json_path(path),
                    context={"segment": segment},
                )
                break
    for url, segment in _server_segments(document):
        if MINOR_VERSION_PATTERN.match(segment.lower()):
            yield context.finding(
                path=url,
                message=f"Server URL exposes the minor version '{segment}'.",
                suggestion=f"Use only the major version, e.g. '{segment.split('.', 1)[0]}'",
                context={"segment": segment, "server": url},
            )


RULES: Final[tuple[Rule, ...]] = (major_version, no_minor_version)

__all__ = ["RULES"]
