"""Loading, storage, AIP lookup and the tool surface built on the worker pool."""

from aip_reviewer.service.aip_info import AIP_INFO, AipInfo, get_aip_info
from aip_reviewer.service.loader import (
    INLINE_SOURCE_LABEL,
    DocumentRef,
    LoadedDocument,
    load_document_bytes,
    serialize_document,
    write_document,
)
from aip_reviewer.service.storage import StoredItem, TempStorage
from aip_reviewer.service.tools import ReviewTools

__all__ = [
    "AIP_INFO",
    "INLINE_SOURCE_LABEL",
    "AipInfo",
    "DocumentRef",
    "LoadedDocument",
    "ReviewTools",
    "StoredItem",
    "TempStorage",
    "get_aip_info",
    "load_document_bytes",
    "serialize_document",
    "write_document",
]
