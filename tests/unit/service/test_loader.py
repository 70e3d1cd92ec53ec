from __future__ import annotations

import json
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest
import requests
import yaml

from aip_reviewer.document.adapter import ContentType
from aip_reviewer.errors import DocumentFetchError, DocumentNotFoundError, MissingDocumentReferenceError
from aip_reviewer.service.loader import (
    INLINE_SOURCE_LABEL,
    DocumentRef,
    load_document_bytes,
    serialize_document,
    write_document,
)

pytestmark = pytest.mark.unit


class _FakeResponse:
    def __init__(self, body: bytes, *, status: int = 200, content_type: str = "application/json") -> None:
        self._body = body
        self.status_code = status
        self.headers = {"Content-Type": content_type}

    def __enter__(self) -> _FakeResponse:
        return self

    def __exit__(self, *exc_info: object) -> None:
        return None

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} error", response=self)  # type: ignore[arg-type]

    def iter_content(self, chunk_size: int = 1) -> Iterator[bytes]:
        for start in range(0, len(self._body), chunk_size):
            yield self._body[start : start + chunk_size]


class _FakeSession:
    def __init__(self, response: _FakeResponse | None = None, error: Exception | None = None) -> None:
        self._response = response
        self._error = error
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def get(self, url: str, **kwargs: Any) -> _FakeResponse:
        self.calls.append((url, kwargs))
        if self._error is not None:
            raise self._error
        assert self._response is not None
        return self._response


def test_path_wins_over_url_and_inline(tmp_path: Path) -> None:
    spec = tmp_path / "library.yaml"
    spec.write_text("openapi: 3.0.3\n", encoding="utf-8")
    session = _FakeSession()
    loaded = load_document_bytes(
        DocumentRef(path=str(spec), url="https://x.test/a.json", inline={"a": 1}),
        session=session,  # type: ignore[arg-type]
    )
    assert loaded.data == b"openapi: 3.0.3\n"
    assert loaded.content_type is ContentType.YAML
    assert loaded.source_label == str(spec)
    assert session.calls == []


def test_missing_and_oversized_files(tmp_path: Path) -> None:
    with pytest.raises(DocumentNotFoundError):
        load_document_bytes(DocumentRef(path=str(tmp_path / "nope.json")))

    big = tmp_path / "big.json"
    big.write_bytes(b"{" + b" " * 64 + b"}")
    with pytest.raises(DocumentFetchError, match="limit is 10"):
        load_document_bytes(DocumentRef(path=str(big)), max_bytes=10)


def test_inline_documents_are_serialized_as_json() -> None:
    loaded = load_document_bytes(DocumentRef.from_dict({"spec": {"info": {"title": "Café"}}}))
    assert loaded.source_label == INLINE_SOURCE_LABEL
    assert loaded.content_type is ContentType.JSON
    assert json.loads(loaded.data) == {"info": {"title": "Café"}}


def test_empty_reference_is_rejected() -> None:
    ref = DocumentRef.from_dict({})
    assert ref.is_empty
    with pytest.raises(MissingDocumentReferenceError):
        load_document_bytes(ref)


def test_url_fetch_streams_with_timeout() -> None:
    session = _FakeSession(_FakeResponse(b"openapi: 3.1.0\n", content_type="application/x-yaml"))
    loaded = load_document_bytes(
        DocumentRef(url="https://api.example.com/openapi"),
        timeout_seconds=2.5,
        session=session,  # type: ignore[arg-type]
    )
    assert loaded.content_type is ContentType.YAML
    assert loaded.data == b"openapi: 3.1.0\n"
    assert loaded.source_label == "https://api.example.com/openapi"
    assert session.calls == [("https://api.example.com/openapi", {"timeout": 2.5, "stream": True})]


def test_url_content_type_falls_back_to_extension() -> None:
    session = _FakeSession(_FakeResponse(b"a: 1\n", content_type="text/plain"))
    loaded = load_document_bytes(DocumentRef(url="https://x.test/spec.yml"), session=session)  # type: ignore[arg-type]
    assert loaded.content_type is ContentType.YAML


@pytest.mark.parametrize(
    ("session", "match"),
    [
        (_FakeSession(_FakeResponse(b"", status=404)), "HTTP 404"),
        (_FakeSession(error=requests.exceptions.Timeout("slow")), "timed out after 30.0s"),
        (_FakeSession(error=requests.exceptions.ConnectionError("refused")), "refused"),
        (_FakeSession(_FakeResponse(b"x" * 100)), "exceeds 50 bytes"),
    ],
)
def test_url_failures_become_fetch_errors(session: _FakeSession, match: str) -> None:
    with pytest.raises(DocumentFetchError, match=match) as excinfo:
        ref = DocumentRef(url="https://x.test/a.json")
        load_document_bytes(ref, max_bytes=50, session=session)  # type: ignore[arg-type]
    assert excinfo.value.location == "https://x.test/a.json"


def test_non_http_urls_are_refused() -> None:
    with pytest.raises(DocumentFetchError, match="only http and https"):
        load_document_bytes(DocumentRef(url="file:///etc/passwd"))


def test_write_document_picks_format_from_extension(tmp_path: Path) -> None:
    document = {"openapi": "3.0.3", "paths": {"/users/{id}": {}}, "info": {"title": "Ünïcode"}}

    yaml_path = write_document(document, tmp_path / "out.yaml")
    text = yaml_path.read_text(encoding="utf-8")
    assert text.startswith("openapi: 3.0.3\n")
    assert "Ünïcode" in text
    assert yaml.safe_load(text) == document

    json_path = write_document(document, tmp_path / "out.json")
    assert json.loads(json_path.read_text(encoding="utf-8")) == document
    assert serialize_document(document, "x.json").endswith("}\n")


def test_failed_write_leaves_the_previous_file_intact(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    target = tmp_path / "library.json"
    target.write_text('{"openapi": "3.0.3"}', encoding="utf-8")

    def _fail_replace(source: Any, destination: Any) -> None:
        raise OSError("disk full")

    monkeypatch.setattr("aip_reviewer.service.loader.os.replace", _fail_replace)
    with pytest.raises(OSError, match="disk full"):
        write_document({"openapi": "3.1.0", "paths": {}}, target)

    assert target.read_text(encoding="utf-8") == '{"openapi": "3.0.3"}'
    assert [item.name for item in tmp_path.iterdir()] == ["library.json"]


def test_write_replaces_existing_content(tmp_path: Path) -> None:
    target = tmp_path / "library.yaml"
    target.write_text("x" * 4096, encoding="utf-8")
    write_document({"openapi": "3.0.3"}, target)
    assert yaml.safe_load(target.read_text(encoding="utf-8")) == {"openapi": "3.0.3"}
    assert [item.name for item in tmp_path.iterdir()] == ["library.yaml"]
