"""
aip-reviewer — worker process entry point.

File: src/aip_reviewer/workers/worker.py
Purpose: Serve review and apply-fixes tasks inside a pool process.

The worker attaches the caller's shared-memory segment, decodes and parses
the document locally, runs the reviewer or fixer and replies with a
JSON-safe mapping. Task-scoped failures become failed results; the loop
keeps serving until it reads the ``None`` sentinel or the pipe closes.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Mapping
from multiprocessing.connection import Connection
from typing import Any


from aip_reviewer.document.adapter import OpenAPIDocument, decode_document
from aip_reviewer.domain.models import Finding
from aip_reviewer.engine.fixer import SpecFixer
from aip_reviewer.engine.reviewer import ReviewConfig, Reviewer
from aip_reviewer.errors import DocumentParseError
from aip_reviewer.observability.logging import configure_logging, get_logger
from aip_reviewer.workers.buffer import attached_view
from aip_reviewer.workers.tasks import ErrorKind, TaskResult, TaskType

WorkerTarget = Callable[[Connection, str], None]

logger = get_logger(__name__)


def _review(document: dict[str, Any], payload: Mapping[str, Any], source_label: str) -> dict[str, Any]:
    config = ReviewConfig(
        strict=bool(payload.get("strict", False)),
        categories=tuple(payload.get("categories") or ()),
        skip_rules=frozenset(payload.get("skipRules") or ()),
    )
    return Reviewer(config).review(OpenAPIDocument(document), source_label).to_dict()


def _apply_fixes(document: dict[str, Any], payload: Mapping[str, Any], source_label: str) -> dict[str, Any]:
    findings = [Finding.from_dict(item) for item in payload.get("findings") or ()]
    fixer = SpecFixer(document, dry_run=bool(payload.get("dryRun", False)))
    fixer.apply_fixes(findings)
    data = fixer.outcome().to_dict()
    data["documentSource"] = source_label
    return data


_HANDLERS: dict[TaskType, Callable[[dict[str, Any], Mapping[str, Any], str], dict[str, Any]]] = {
    TaskType.REVIEW: _review,
    TaskType.APPLY_FIXES: _apply_fixes,
}


def run_task(message: Mapping[str, Any]) -> dict[str, Any]:
    """Execute one task message and return the reply message."""

    try:
        task_type = TaskType(message.get("type"))
    except ValueError:
        return TaskResult.failed(f"unknown task type {message.get('type')!r}", ErrorKind.TASK).to_message()

    buffer_ref = message.get("buffer")
    if not isinstance(buffer_ref, Mapping):
        return TaskResult.failed("task message carries no shared buffer", ErrorKind.TASK).to_message()

    try:
        with attached_view(str(buffer_ref["name"]), int(buffer_ref["size"])) as view:
            document = decode_document(view, message.get("contentType", "json"))
    except DocumentParseError as exc:
        return TaskResult.failed(f"Failed to parse document: {exc}", ErrorKind.PARSE).to_message()
    except (KeyError, ValueError, OSError) as exc:
        return TaskResult.failed(f"cannot read shared buffer: {exc}", ErrorKind.TASK).to_message()

    source_label = str(message.get("sourceLabel") or "<inline>")
    payload = message.get("payload") or {}
    try:
        data = _HANDLERS[task_type](document, payload, source_label)
    except Exception as exc:  # noqa: BLE001
        logger.warning("task_failed", task_type=task_type.value, error_type=type(exc).__name__, error=str(exc))
        return TaskResult.failed(f"{type(exc).__name__}: {exc}", ErrorKind.TASK).to_message()
    return TaskResult.ok(data).to_message()


def worker_main(conn: Connection, log_level: str = "WARNING") -> None:
    """Serve task messages from ``conn`` until the sentinel or end of file."""

    configure_logging(log_level)
    logger.debug("worker_started", pid=os.getpid())
    try:
        while True:
            try:
                message = conn.recv()
            except (EOFError, OSError):
                break
            if message is None:
                break
            reply = run_task(message)
            try:
                conn.send(reply)
            except OSError:
                break
    finally:
        conn.close()
        logger.debug("worker_stopped", pid=os.getpid())


__all__ = ["WorkerTarget", "run_task", "worker_main"]
