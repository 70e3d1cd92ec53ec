"""Render a ``ReviewResult`` as JSON, a console report, Markdown or SARIF.

Formatters are pure: they read the result and never reorder or alter its
findings or summary.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from enum import StrEnum
from typing import Final

from aip_reviewer import __version__
from aip_reviewer.domain.models import Finding, JSONValue, ReviewResult, Severity

SARIF_SCHEMA: Final[str] = "https://json.schemastore.org/sarif-2.1.0.json"
SARIF_VERSION: Final[str] = "2.1.0"

_SARIF_LEVELS: Final[dict[Severity, str]] = {
    Severity.ERROR: "error",
    Severity.WARNING: "warning",
    Severity.SUGGESTION: "note",
}
_ANSI: Final[dict[Severity, str]] = {
    Severity.ERROR: "\x1b[31m",
    Severity.WARNING: "\x1b[33m",
    Severity.SUGGESTION: "\x1b[36m",
}
_ANSI_BOLD: Final[str] = "\x1b[1m"
_ANSI_RESET: Final[str] = "\x1b[0m"
_SEVERITY_ORDER: Final[tuple[Severity, ...]] = (Severity.ERROR, Severity.WARNING, Severity.SUGGESTION)
_HEADINGS: Final[dict[Severity, str]] = {
    Severity.ERROR: "Errors",
    Severity.WARNING: "Warnings",
    Severity.SUGGESTION: "Suggestions",
}


class OutputFormat(StrEnum):
    JSON = "json"
    CONSOLE = "console"
    MARKDOWN = "markdown"
    SARIF = "sarif"


def format_json(result: ReviewResult, *, indent: int | None = 2) -> str:
    return result.to_json(indent=indent)


def _grouped(result: ReviewResult) -> list[tuple[Severity, list[Finding]]]:
    groups: list[tuple[Severity, list[Finding]]] = []
    for severity in _SEVERITY_ORDER:
        items = [finding for finding in result.findings if finding.severity is severity]
        if items:
            groups.append((severity, items))
    return groups


def format_console(result: ReviewResult, *, use_colors: bool = False) -> str:
    def paint(text: str, code: str) -> str:
        return f"{code}{text}{_ANSI_RESET}" if use_colors else text

    title = result.title or result.document_source
    lines = [paint(f"API review: {title}", _ANSI_BOLD)]
    if result.version:
        lines.append(f"Version: {result.version}")
    lines.append(f"Source: {result.document_source}")
    lines.append("")

    if not result.findings:
        lines.append("No findings.")
    for severity, items in _grouped(result):
        lines.append(paint(f"{_HEADINGS[severity]} ({len(items)})", _ANSI[severity]))
        for finding in items:
            reference = f" [{finding.aip_reference}]" if finding.aip_reference else ""
            lines.append(f"  {finding.path}: {finding.message}{reference}")
            lines.append(f"    rule: {finding.rule_id}")
            if finding.suggestion:
                lines.append(f"    suggestion: {finding.suggestion}")
        lines.append("")

    summary = result.summary
    lines.append(
        f"Summary: {summary.errors} error(s), {summary.warnings} warning(s), "
        f"{summary.suggestions} suggestion(s)"
    )
    return "\n".join(lines).rstrip() + "\n"


def _md_escape(text: str) -> str:
    return text.replace("|", "\\|").replace("\n", " ")


def format_markdown(result: ReviewResult) -> str:
    summary = result.summary
    lines = [f"# API Review: {result.title or result.document_source}", ""]
    if result.version:
        lines.append(f"**Version:** {result.version}  ")
    lines.append(f"**Source:** `{result.document_source}`  ")
    lines.append(f"**Reviewed at:** {result.metadata.reviewed_at}")
    lines.append("")
    lines.append("## Summary")
    lines.append("")
    lines.append("| Severity | Count |")
    lines.append("|----------|-------|")
    lines.append(f"| Errors | {summary.errors} |")
    lines.append(f"| Warnings | {summary.warnings} |")
    lines.append(f"| Suggestions | {summary.suggestions} |")

    categories = [(name, count) for name, count in summary.by_category.items() if count]
    if categories:
        lines.append("")
        lines.append("| Category | Count |")
        lines.append("|----------|-------|")
        lines.extend(f"| {name} | {count} |" for name, count in categories)

    for severity, items in _grouped(result):
        lines.append("")
        lines.append(f"## {_HEADINGS[severity]}")
        lines.append("")
        for finding in items:
            reference = f" ({finding.aip_reference})" if finding.aip_reference else ""
            lines.append(f"- **{_md_escape(finding.path)}**: {_md_escape(finding.message)}{reference}")
            if finding.suggestion:
                lines.append(f"  - Suggestion: {_md_escape(finding.suggestion)}")
    if not result.findings:
        lines.append("")
        lines.append("No findings.")
    return "\n".join(lines) + "\n"


def _sarif_result(finding: Finding, source: str) -> dict[str, JSONValue]:
    message = finding.message
    if finding.suggestion:
        message = f"{message} {finding.suggestion}"
    properties: dict[str, JSONValue] = {"category": finding.category.value, "path": finding.path}
    if finding.json_path is not None:
        properties["jsonPath"] = finding.json_path
    return {
        "ruleId": finding.rule_id,
        "level": _SARIF_LEVELS[finding.severity],
        "message": {"text": message},
        "locations": [
            {
                "physicalLocation": {"artifactLocation": {"uri": source}},
                "logicalLocations": [{"fullyQualifiedName": finding.path}],
            }
        ],
        "properties": properties,
    }


def format_sarif(result: ReviewResult, *, indent: int | None = 2) -> str:
    rules: dict[str, dict[str, JSONValue]] = {}
    for finding in result.findings:
        if finding.rule_id in rules:
            continue
        descriptor: dict[str, JSONValue] = {
            "id": finding.rule_id,
            "defaultConfiguration": {"level": _SARIF_LEVELS[finding.severity]},
        }
        if finding.aip_reference:
            number = finding.aip_reference.rsplit("-", 1)[-1]
            descriptor["helpUri"] = f"https://google.aip.dev/{number}"
        rules[finding.rule_id] = descriptor

    payload = {
        "$schema": SARIF_SCHEMA,
        "version": SARIF_VERSION,
        "runs": [
            {
                "tool": {
                    "driver": {
                        "name": "aip-reviewer",
                        "version": __version__,
                        "informationUri": "https://google.aip.dev/",
                        "rules": list(rules.values()),
                    }
                },
                "results": [_sarif_result(finding, result.document_source) for finding in result.findings],
            }
        ],
    }
    return json.dumps(payload, indent=indent, ensure_ascii=False)


_FORMATTERS: Final[dict[OutputFormat, Callable[[ReviewResult], str]]] = {
    OutputFormat.JSON: format_json,
    OutputFormat.CONSOLE: format_console,
    OutputFormat.MARKDOWN: format_markdown,
    OutputFormat.SARIF: format_sarif,
}


def format_result(result: ReviewResult, fmt: OutputFormat | str = OutputFormat.JSON) -> str:
    try:
        kind = OutputFormat(fmt)
    except ValueError as exc:
        raise ValueError(f"unknown output format {fmt!r}") from exc
    return _FORMATTERS[kind](result)


__all__ = [
    "OutputFormat",
    "format_console",
    "format_json",
    "format_markdown",
    "format_result",
    "format_sarif",
]
