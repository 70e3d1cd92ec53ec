"""
aip-reviewer — tool surface.

File: src/aip_reviewer/service/tools.py
Purpose: Review, fix, rule listing and AIP lookup entry points over the worker pool.

Document bytes are read on the caller side and copied once into a shared
buffer; parsing and rule evaluation happen inside a pool worker. Failed
tasks surface as typed exceptions: ``DocumentParseError`` for documents
that cannot be parsed and ``TaskFailedError`` for everything else.
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import replace
from typing import Any

from aip_reviewer.config.loader import ReviewerSettings
from aip_reviewer.domain.models import Finding, JSONValue, ReviewResult, RuleCategory
from aip_reviewer.engine.reviewer import ReviewConfig
from aip_reviewer.errors import DocumentParseError, TaskFailedError
from aip_reviewer.observability.logging import correlation_scope, get_logger
from aip_reviewer.rules import DEFAULT_CATALOG, RuleCatalog
from aip_reviewer.service.aip_info import get_aip_info
from aip_reviewer.service.loader import DocumentRef, LoadedDocument, load_document_bytes, write_document
from aip_reviewer.service.storage import TempStorage
from aip_reviewer.workers.buffer import SharedSpecBuffer
from aip_reviewer.workers.pool import WorkerPool
from aip_reviewer.workers.tasks import ErrorKind, TaskResult, TaskType, WorkerTask


class ReviewTools:
    """Caller-facing operations; one instance is shared by all concurrent requests."""

    def __init__(
        self,
        pool: WorkerPool,
        storage: TempStorage | None = None,
        settings: ReviewerSettings | None = None,
        *,
        catalog: RuleCatalog = DEFAULT_CATALOG,
        logger: Any = None,
    ) -> None:
        self._pool = pool
        self._storage = storage
        self._settings = settings if settings is not None else ReviewerSettings()
        self._catalog = catalog
        self._logger = logger if logger is not None else get_logger(__name__)

    @property
    def settings(self) -> ReviewerSettings:
        return self._settings

    @property
    def storage(self) -> TempStorage | None:
        return self._storage

    async def review(
        self,
        ref: DocumentRef,
        *,
        categories: Iterable[RuleCategory | str] | None = None,
        skip_rules: Iterable[str] | None = None,
        strict: bool | None = None,
    ) -> ReviewResult:
        """Review the referenced document; unset options fall back to settings.

        With a store configured the result is persisted and ``stored`` carries
        its ``{id, expiresAt}`` reference.
        """

        config = ReviewConfig(
            strict=self._settings.strict if strict is None else strict,
            categories=tuple(self._settings.categories if categories is None else categories),
            skip_rules=frozenset(self._settings.skip_rules if skip_rules is None else skip_rules),
        )
        payload = {
            "strict": config.strict,
            "categories": [category.value for category in config.categories],
            "skipRules": sorted(config.skip_rules),
        }

        with correlation_scope(request_id=uuid.uuid4().hex):
            loaded = await self._load(ref)
            data = await self._run(TaskType.REVIEW, loaded, payload)
            result = ReviewResult.from_dict(data)
            if self._storage is not None:
                item = self._storage.store("review", result.to_dict())
                self._logger.info("review_stored", item_id=item.id, findings=result.summary.total)
                result = replace(result, stored=item.reference())
            return result

    async def apply_fixes(
        self,
        ref: DocumentRef,
        findings: Sequence[Finding | Mapping[str, Any]],
        *,
        dry_run: bool = False,
        write_back: bool = False,
    ) -> dict[str, Any]:
        """Apply the fixes carried by ``findings``.

        The result mirrors ``FixOutcome.to_dict()`` plus ``documentSource``,
        ``writtenTo`` and, when a store is configured, ``stored``. The modified
        document is written back only when ``write_back`` is set, the reference
        is a local path and this is not a dry run.
        """

        payload = {
            "findings": [item.to_dict() if isinstance(item, Finding) else dict(item) for item in findings],
            "dryRun": dry_run,
        }

        with correlation_scope(request_id=uuid.uuid4().hex):
            loaded = await self._load(ref)
            data = await self._run(TaskType.APPLY_FIXES, loaded, payload)
            data["writtenTo"] = None
            if write_back and ref.path and not dry_run:
                written = await asyncio.to_thread(write_document, data["modifiedDocument"], ref.path)
                data["writtenTo"] = str(written)
                self._logger.info("document_written", target=str(written))
            if self._storage is not None:
                item = self._storage.store("fix", dict(data))
                self._logger.info("fix_stored", item_id=item.id)
                data["stored"] = item.reference()
            return data

    def list_rules(self, aip: int | None = None, category: RuleCategory | str | None = None) -> dict[str, Any]:
        """List rule metadata; an AIP filter takes precedence over a category filter."""

        if aip is not None:
            rules = self._catalog.get_by_aip(aip)
        elif category:
            rules = self._catalog.get_by_category(category)
        else:
            rules = self._catalog.get_all()
        entries = [item.to_dict() for item in rules]
        return {"rules": entries, "count": len(entries)}

    def get_info(self, aip_number: int) -> dict[str, JSONValue]:
        info = get_aip_info(aip_number).to_dict()
        info["rules"] = [item.id for item in self._catalog.get_by_aip(aip_number)]
        return info

    async def _load(self, ref: DocumentRef) -> LoadedDocument:
        return await asyncio.to_thread(
            load_document_bytes,
            ref,
            timeout_seconds=self._settings.fetch_timeout_seconds,
            max_bytes=self._settings.max_document_bytes,
        )

    async def _run(self, task_type: TaskType, loaded: LoadedDocument, payload: Mapping[str, Any]) -> dict[str, Any]:
        buffer = SharedSpecBuffer.from_bytes(loaded.data)
        try:
            task = WorkerTask(
                type=task_type,
                buffer=buffer,
                content_type=loaded.content_type,
                source_label=loaded.source_label,
                payload=payload,
            )
        except Exception:
            buffer.release()
            raise
        return _unwrap(await self._pool.execute(task))


def _unwrap(result: TaskResult) -> dict[str, Any]:
    if result.success:
        return dict(result.data)
    message = result.error or "task failed"
    if result.error_kind is ErrorKind.PARSE:
        raise DocumentParseError(message)
    kind = result.error_kind.value if result.error_kind is not None else ErrorKind.TASK.value
    raise TaskFailedError(message, error_kind=kind)


__all__ = ["ReviewTools"]
