"""Load document bytes from a path, URL or inline mapping, and write documents back."""

from __future__ import annotations

import contextlib
import json
import os
import tempfile
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final
from urllib.parse import urlparse

import requests
import yaml

from aip_reviewer.document.adapter import ContentType, content_type_for_location
from aip_reviewer.errors import (
    DocumentFetchError,
    DocumentNotFoundError,
    MissingDocumentReferenceError,
)

INLINE_SOURCE_LABEL: Final[str] = "inline-spec.json"
DEFAULT_FETCH_TIMEOUT_SECONDS: Final[float] = 30.0
DEFAULT_MAX_DOCUMENT_BYTES: Final[int] = 10 * 1024 * 1024
_CHUNK_SIZE: Final[int] = 64 * 1024


@dataclass(frozen=True, slots=True)
class DocumentRef:
    """Where a document comes from; the first of path, url and inline that is set wins."""

    path: str | None = None
    url: str | None = None
    inline: Mapping[str, Any] | None = None

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> DocumentRef:
        return cls(
            path=payload.get("specPath") or payload.get("path"),
            url=payload.get("specUrl") or payload.get("url"),
            inline=payload.get("spec") or payload.get("inline"),
        )

    @property
    def is_empty(self) -> bool:
        return not self.path and not self.url and self.inline is None


@dataclass(frozen=True, slots=True)
class LoadedDocument:
    data: bytes
    content_type: ContentType
    source_label: str


def load_document_bytes(
    ref: DocumentRef,
    *,
    timeout_seconds: float = DEFAULT_FETCH_TIMEOUT_SECONDS,
    max_bytes: int = DEFAULT_MAX_DOCUMENT_BYTES,
    session: requests.Session | None = None,
) -> LoadedDocument:
    """Read the raw document bytes; parsing happens later, inside a worker."""

    if ref.path:
        return _load_path(ref.path, max_bytes)
    if ref.url:
        return _load_url(ref.url, timeout_seconds, max_bytes, session)
    if ref.inline is not None:
        if not isinstance(ref.inline, Mapping):
            raise MissingDocumentReferenceError()
        data = json.dumps(ref.inline, ensure_ascii=False).encode("utf-8")
        return LoadedDocument(data=data, content_type=ContentType.JSON, source_label=INLINE_SOURCE_LABEL)
    raise MissingDocumentReferenceError()


def _load_path(location: str, max_bytes: int) -> LoadedDocument:
    path = Path(location).expanduser()
    if not path.is_file():
        raise DocumentNotFoundError(location)
    try:
        size = path.stat().st_size
        if size > max_bytes:
            raise DocumentFetchError(location, f"document is {size} bytes, limit is {max_bytes}")
        data = path.read_bytes()
    except FileNotFoundError as exc:
        raise DocumentNotFoundError(location) from exc
    except OSError as exc:
        raise DocumentFetchError(location, str(exc)) from exc
    return LoadedDocument(data=data, content_type=content_type_for_location(location), source_label=location)


def _load_url(
    url: str,
    timeout_seconds: float,
    max_bytes: int,
    session: requests.Session | None,
) -> LoadedDocument:
    if urlparse(url).scheme not in {"http", "https"}:
        raise DocumentFetchError(url, "only http and https URLs are supported")

    client = session if session is not None else requests.Session()
    try:
        with client.get(url, timeout=timeout_seconds, stream=True) as response:
            response.raise_for_status()
            chunks: list[bytes] = []
            received = 0
            for chunk in response.iter_content(chunk_size=_CHUNK_SIZE):
                received += len(chunk)
                if received > max_bytes:
                    raise DocumentFetchError(url, f"response exceeds {max_bytes} bytes")
                chunks.append(chunk)
            header = response.headers.get("Content-Type", "")
    except requests.exceptions.HTTPError as exc:
        status = exc.response.status_code if exc.response is not None else "unknown"
        raise DocumentFetchError(url, f"HTTP {status}") from exc
    except requests.exceptions.Timeout as exc:
        raise DocumentFetchError(url, f"timed out after {timeout_seconds}s") from exc
    except requests.exceptions.RequestException as exc:
        raise DocumentFetchError(url, str(exc)) from exc
    finally:
        if session is None:
            client.close()

    content_type = ContentType.YAML if "yaml" in header.lower() else content_type_for_location(url)
    return LoadedDocument(data=b"".join(chunks), content_type=content_type, source_label=url)


def serialize_document(document: Mapping[str, Any], target: str | Path) -> str:
    if str(target).lower().endswith((".yaml", ".yml")):
        return yaml.safe_dump(dict(document), sort_keys=False, allow_unicode=True)
    return json.dumps(document, indent=2, ensure_ascii=False) + "\n"


def write_document(document: Mapping[str, Any], target: str | Path) -> Path:
    """Write ``document`` to ``target``: YAML for ``.yaml``/``.yml``, JSON otherwise.

    The text goes to a temp file beside ``target`` which is flushed, fsynced
    and moved over ``target`` with ``os.replace``; a failed write leaves the
    previous file intact.
    """

    path = Path(target).expanduser()
    _atomic_write_text(path, serialize_document(document, path))
    return path


def _atomic_write_text(target: Path, text: str) -> None:
    parent = target.parent.resolve(strict=True)
    fd, temp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=str(parent))
    temp_path = Path(temp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(text)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(temp_path, target)
    except Exception:
        with contextlib.suppress(OSError):
            temp_path.unlink(missing_ok=True)
        raise


__all__ = [
    "DEFAULT_FETCH_TIMEOUT_SECONDS",
    "DEFAULT_MAX_DOCUMENT_BYTES",
    "INLINE_SOURCE_LABEL",
    "DocumentRef",
    "LoadedDocument",
    "load_document_bytes",
    "serialize_document",
    "write_document",
]
