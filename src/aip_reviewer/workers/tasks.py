"""Task and result values exchanged between the pool and its worker processes."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from aip_reviewer.document.adapter import ContentType
from aip_reviewer.workers.buffer import SharedSpecBuffer


class TaskType(StrEnum):
    REVIEW = "review"
    APPLY_FIXES = "apply-fixes"


class ErrorKind(StrEnum):
    PARSE = "parse"
    TASK = "task"
    CRASH = "crash"
    CLOSED = "closed"


@dataclass(frozen=True, slots=True)
class WorkerTask:
    """One unit of work; the document travels in ``buffer``, options in ``payload``."""

    type: TaskType
    buffer: SharedSpecBuffer
    content_type: ContentType = ContentType.JSON
    source_label: str = "<inline>"
    payload: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "type", TaskType(self.type))
        object.__setattr__(self, "content_type", ContentType(self.content_type))

    def to_message(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "buffer": {"name": self.buffer.name, "size": self.buffer.size},
            "contentType": self.content_type.value,
            "sourceLabel": self.source_label,
            "payload": dict(self.payload),
        }


@dataclass(frozen=True, slots=True)
class TaskResult:
    success: bool
    data: Any = None
    error: str | None = None
    error_kind: ErrorKind | None = None

    @classmethod
    def ok(cls, data: Any) -> TaskResult:
        return cls(success=True, data=data)

    @classmethod
    def failed(cls, error: str, kind: ErrorKind | str) -> TaskResult:
        return cls(success=False, error=error, error_kind=ErrorKind(kind))

    @classmethod
    def from_message(cls, message: Mapping[str, Any]) -> TaskResult:
        if message.get("success"):
            return cls.ok(message.get("data"))
        return cls.failed(str(message.get("error") or "task failed"), message.get("errorKind") or ErrorKind.TASK)

    def to_message(self) -> dict[str, Any]:
        if self.success:
            return {"success": True, "data": self.data}
        return {
            "success": False,
            "error": self.error,
            "errorKind": self.error_kind.value if self.error_kind is not None else ErrorKind.TASK.value,
        }


__all__ = ["ErrorKind", "TaskResult", "TaskType", "WorkerTask"]
