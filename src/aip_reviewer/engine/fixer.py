"""
aip-reviewer — structural fixer.

File: src/aip_reviewer/engine/fixer.py
Purpose: Apply the change lists carried by findings to a copy of a document.

All findings of one batch share a single working copy, so later fixes see
the output of earlier ones and input order is significant. A change that
cannot be applied is recorded and the batch continues. The caller's document
is never mutated; dry runs execute the same pipeline against a scratch copy
and hand back the untouched document.
"""

from __future__ import annotations

import copy
from collections.abc import Iterable, Mapping, MutableMapping, Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from aip_reviewer.document.jsonpath import PathToken, format_json_path, parse_json_path
from aip_reviewer.domain.models import ChangeOperation, Finding, JSONValue, SpecChange
from aip_reviewer.errors import FixApplicationError, JsonPathError
from aip_reviewer.observability.logging import get_logger


class ChangeStatus(StrEnum):
    APPLIED = "applied"
    NOOP = "noop"
    FAILED = "failed"


class FixStatus(StrEnum):
    APPLIED = "applied"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True, slots=True)
class ChangeResult:
    index: int
    operation: ChangeOperation
    path: str
    status: ChangeStatus
    error: str | None = None

    def to_dict(self) -> dict[str, JSONValue]:
        payload: dict[str, JSONValue] = {
            "index": self.index,
            "operation": self.operation.value,
            "path": self.path,
            "status": self.status.value,
        }
        if self.error is not None:
            payload["error"] = self.error
        return payload


@dataclass(frozen=True, slots=True)
class FixResult:
    """Outcome for one finding of the batch."""

    finding_index: int
    rule_id: str
    path: str
    status: FixStatus
    changes: tuple[ChangeResult, ...] = ()
    reason: str | None = None

    def to_dict(self) -> dict[str, JSONValue]:
        payload: dict[str, JSONValue] = {
            "findingIndex": self.finding_index,
            "ruleId": self.rule_id,
            "path": self.path,
            "status": self.status.value,
            "changes": [change.to_dict() for change in self.changes],
        }
        if self.reason is not None:
            payload["reason"] = self.reason
        return payload


@dataclass(frozen=True, slots=True)
class FixOutcome:
    document: dict[str, Any]
    results: tuple[FixResult, ...]
    summary: dict[str, int]
    errors: tuple[dict[str, JSONValue], ...]

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "modifiedDocument": self.document,
            "results": [result.to_dict() for result in self.results],
            "summary": dict(self.summary),
            "errors": [dict(error) for error in self.errors],
        }


class SpecFixer:
    """Applies fix descriptors to a private working copy of one document."""

    def __init__(self, document: Mapping[str, Any], *, dry_run: bool = False, logger: Any = None) -> None:
        if not isinstance(document, Mapping):
            raise TypeError(f"document must be a mapping, got {type(document).__name__}")
        self._original: dict[str, Any] = copy.deepcopy(dict(document))
        self._working: dict[str, Any] = copy.deepcopy(self._original)
        self._dry_run = dry_run
        self._results: list[FixResult] = []
        self._errors: list[dict[str, JSONValue]] = []
        self._logger = logger if logger is not None else get_logger(__name__)

    @property
    def dry_run(self) -> bool:
        return self._dry_run

    @property
    def document(self) -> dict[str, Any]:
        """The modified document, or the untouched copy for a dry run."""

        return self._original if self._dry_run else self._working

    def apply_fixes(self, findings: Iterable[Finding]) -> list[FixResult]:
        batch: list[FixResult] = []
        for finding in findings:
            result = self._apply_finding(len(self._results), finding)
            self._results.append(result)
            batch.append(result)
        summary = self.get_summary()
        self._logger.info(
            "fixes_applied",
            dry_run=self._dry_run,
            applied=summary["applied"],
            skipped=summary["skipped"],
            failed=summary["failed"],
        )
        return batch

    def get_summary(self) -> dict[str, int]:
        counts = {status.value: 0 for status in FixStatus}
        for result in self._results:
            counts[result.status.value] += 1
        return counts

    def get_errors(self) -> list[dict[str, JSONValue]]:
        return [dict(error) for error in self._errors]

    def get_results(self) -> list[FixResult]:
        return list(self._results)

    def outcome(self) -> FixOutcome:
        return FixOutcome(
            document=self.document,
            results=tuple(self._results),
            summary=self.get_summary(),
            errors=tuple(self.get_errors()),
        )

    def _apply_finding(self, finding_index: int, finding: Finding) -> FixResult:
        if finding.fix is None or not finding.fix.changes:
            return FixResult(
                finding_index=finding_index,
                rule_id=finding.rule_id,
                path=finding.path,
                status=FixStatus.SKIPPED,
                reason="finding carries no fix",
            )

        changes: list[ChangeResult] = []
        for change_index, change in enumerate(finding.fix.changes):
            try:
                status = self._apply_change(change)
            except (FixApplicationError, JsonPathError) as exc:
                changes.append(
                    ChangeResult(
                        index=change_index,
                        operation=change.operation,
                        path=change.path,
                        status=ChangeStatus.FAILED,
                        error=str(exc),
                    )
                )
                self._errors.append(
                    {
                        "findingIndex": finding_index,
                        "ruleId": finding.rule_id,
                        "changeIndex": change_index,
                        "operation": change.operation.value,
                        "path": change.path,
                        "message": str(exc),
                    }
                )
                continue
            changes.append(
                ChangeResult(index=change_index, operation=change.operation, path=change.path, status=status)
            )

        failed = any(item.status is ChangeStatus.FAILED for item in changes)
        return FixResult(
            finding_index=finding_index,
            rule_id=finding.rule_id,
            path=finding.path,
            status=FixStatus.FAILED if failed else FixStatus.APPLIED,
            changes=tuple(changes),
        )

    def _apply_change(self, change: SpecChange) -> ChangeStatus:
        tokens = parse_json_path(change.path)
        operation = change.operation
        if operation is ChangeOperation.RENAME_KEY:
            return self._rename_key(tokens, change)
        if operation is ChangeOperation.REMOVE:
            return self._remove(tokens)
        if not change.has_value:
            raise FixApplicationError(f"{operation.value} requires a value")
        value = copy.deepcopy(change.value)
        if operation is ChangeOperation.SET:
            return self._set(tokens, value)
        if operation is ChangeOperation.ADD:
            return self._add(tokens, value)
        return self._merge(tokens, value)

    def _resolve(self, tokens: Sequence[PathToken]) -> Any:
        node: Any = self._working
        for depth, token in enumerate(tokens):
            if isinstance(node, MutableMapping) and isinstance(token, str) and token in node:
                node = node[token]
            elif isinstance(node, list) and isinstance(token, int) and 0 <= token < len(node):
                node = node[token]
            else:
                raise JsonPathError(f"path does not exist: {format_json_path(tokens[: depth + 1])}")
        return node

    def _rename_key(self, tokens: Sequence[PathToken], change: SpecChange) -> ChangeStatus:
        target = self._resolve(tokens)
        if not isinstance(target, MutableMapping):
            raise FixApplicationError(f"rename-key target is not a mapping: {change.path}")
        source, destination = change.from_key, change.to_key
        if source not in target:
            raise FixApplicationError(f"key {source!r} not found at {change.path}")
        if source == destination:
            return ChangeStatus.NOOP
        if destination in target:
            raise FixApplicationError(f"key {destination!r} already exists at {change.path}")
        renamed = {(destination if key == source else key): value for key, value in target.items()}
        target.clear()
        target.update(renamed)
        return ChangeStatus.APPLIED

    def _set(self, tokens: Sequence[PathToken], value: Any) -> ChangeStatus:
        if not tokens:
            raise FixApplicationError("cannot replace the document root")
        parent: Any = self._working
        for position, token in enumerate(tokens[:-1]):
            following = tokens[position + 1]
            parent = _child_container(parent, token, following, tokens[: position + 1])
        _assign(parent, tokens[-1], value, tokens)
        return ChangeStatus.APPLIED

    def _add(self, tokens: Sequence[PathToken], value: Any) -> ChangeStatus:
        if not tokens:
            raise FixApplicationError("cannot add at the document root")
        parent = self._resolve(tokens[:-1])
        last = tokens[-1]
        if isinstance(parent, MutableMapping):
            if not isinstance(last, str):
                raise FixApplicationError(f"mapping key must be a string: {format_json_path(tokens)}")
            if last in parent:
                raise FixApplicationError(f"key already exists: {format_json_path(tokens)}")
            parent[last] = value
            return ChangeStatus.APPLIED
        if isinstance(parent, list):
            if not isinstance(last, int) or not 0 <= last <= len(parent):
                raise FixApplicationError(f"index out of range: {format_json_path(tokens)}")
            if value in parent:
                raise FixApplicationError(f"value already present: {format_json_path(tokens[:-1])}")
            parent.insert(last, value)
            return ChangeStatus.APPLIED
        raise FixApplicationError(f"cannot add into a scalar: {format_json_path(tokens[:-1])}")

    def _remove(self, tokens: Sequence[PathToken]) -> ChangeStatus:
        if not tokens:
            raise FixApplicationError("cannot remove the document root")
        try:
            parent = self._resolve(tokens[:-1])
        except JsonPathError:
            return ChangeStatus.NOOP
        last = tokens[-1]
        if isinstance(parent, MutableMapping) and isinstance(last, str):
            if last not in parent:
                return ChangeStatus.NOOP
            del parent[last]
            return ChangeStatus.APPLIED
        if isinstance(parent, list) and isinstance(last, int):
            if not 0 <= last < len(parent):
                return ChangeStatus.NOOP
            del parent[last]
            return ChangeStatus.APPLIED
        return ChangeStatus.NOOP

    def _merge(self, tokens: Sequence[PathToken], value: Any) -> ChangeStatus:
        if not isinstance(value, Mapping):
            raise FixApplicationError(f"merge value must be a mapping, got {type(value).__name__}")
        target = self._resolve(tokens)
        if not isinstance(target, MutableMapping):
            raise FixApplicationError(f"merge target is not a mapping: {format_json_path(tokens)}")
        target.update(value)
        return ChangeStatus.APPLIED


def _child_container(parent: Any, token: PathToken, following: PathToken, walked: Sequence[PathToken]) -> Any:
    if isinstance(parent, MutableMapping) and isinstance(token, str):
        if token not in parent:
            parent[token] = [] if isinstance(following, int) else {}
        return parent[token]
    if isinstance(parent, list) and isinstance(token, int):
        if 0 <= token < len(parent):
            return parent[token]
        if token == len(parent):
            parent.append([] if isinstance(following, int) else {})
            return parent[token]
        raise FixApplicationError(f"index out of range: {format_json_path(walked)}")
    raise FixApplicationError(f"cannot descend into {format_json_path(walked)}")


def _assign(parent: Any, token: PathToken, value: Any, tokens: Sequence[PathToken]) -> None:
    if isinstance(parent, MutableMapping) and isinstance(token, str):
        parent[token] = value
    elif isinstance(parent, list) and isinstance(token, int):
        if 0 <= token < len(parent):
            parent[token] = value
        elif token == len(parent):
            parent.append(value)
        else:
            raise FixApplicationError(f"index out of range: {format_json_path(tokens)}")
    else:
        raise FixApplicationError(f"cannot set {format_json_path(tokens)}")


def apply_fixes(
    document: Mapping[str, Any],
    findings: Iterable[Finding],
    *,
    dry_run: bool = False,
) -> FixOutcome:
    fixer = SpecFixer(document, dry_run=dry_run)
    fixer.apply_fixes(findings)
    return fixer.outcome()


__all__ = [
    "ChangeResult",
    "ChangeStatus",
    "FixOutcome",
    "FixResult",
    "FixStatus",
    "SpecFixer",
    "apply_fixes",
]
