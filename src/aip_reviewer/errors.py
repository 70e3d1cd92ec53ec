"""Exception hierarchy shared by the reviewer, fixer, worker pool and service layer."""

from __future__ import annotations


class AipReviewerError(Exception):
    """Base class for every error raised by ``aip_reviewer``."""


class DocumentNotFoundError(AipReviewerError):
    """Raised when a local document path does not exist."""

    def __init__(self, location: str) -> None:
        super().__init__(f"document not found: {location}")
        self.location = location


class DocumentFetchError(AipReviewerError):
    """Raised when a remote document cannot be fetched."""

    def __init__(self, location: str, reason: str) -> None:
        super().__init__(f"failed to fetch document from {location}: {reason}")
        self.location = location
        self.reason = reason


class DocumentParseError(AipReviewerError):
    """Raised when document bytes cannot be decoded into a mapping."""


class MissingDocumentReferenceError(AipReviewerError):
    """Raised when none of path, url or inline document is provided."""

    def __init__(self) -> None:
        super().__init__("one of path, url or inline document must be provided")


class UnknownAipError(AipReviewerError, LookupError):
    """Raised when ``get_info`` is asked about an AIP that is not catalogued."""


class JsonPathError(AipReviewerError, ValueError):
    """Raised when a JSONPath expression is malformed or cannot be resolved."""


class FixApplicationError(AipReviewerError):
    """Raised inside the fixer when one change cannot be applied."""


class TaskFailedError(AipReviewerError):
    """Raised by the tool surface when a worker task reports failure."""

    def __init__(self, message: str, *, error_kind: str = "task") -> None:
        super().__init__(message)
        self.error_kind = error_kind


class PoolClosedError(AipReviewerError, RuntimeError):
    """Raised when a task is submitted to a pool that has been closed."""


class ConfigLoadError(AipReviewerError, ValueError):
    """Raised when settings cannot be loaded or coerced."""


__all__ = [
    "AipReviewerError",
    "ConfigLoadError",
    "DocumentFetchError",
    "DocumentNotFoundError",
    "DocumentParseError",
    "FixApplicationError",
    "JsonPathError",
    "MissingDocumentReferenceError",
    "PoolClosedError",
    "TaskFailedError",
    "UnknownAipError",
]
