"""Static summaries of the AIPs the bundled rules enforce."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Final

from aip_reviewer.domain.models import JSONValue
from aip_reviewer.errors import UnknownAipError

AIP_BASE_URL: Final[str] = "https://google.aip.dev"


@dataclass(frozen=True, slots=True)
class AipInfo:
    number: int
    title: str
    summary: str

    @property
    def url(self) -> str:
        return f"{AIP_BASE_URL}/{self.number}"

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "aip": self.number,
            "title": self.title,
            "summary": self.summary,
            "url": self.url,
        }


_ENTRIES: Final[tuple[AipInfo, ...]] = (
    AipInfo(
        122,
        "Resource names",
        "Collection identifiers are plural nouns in a consistent case; paths name resources, not actions.",
    ),
    AipInfo(131, "Standard methods: Get", "Get retrieves a single resource and carries no request body."),
    AipInfo(132, "Standard methods: List", "List returns a collection and accepts an order_by field for sorting."),
    AipInfo(
        134,
        "Standard methods: Update",
        "Update uses PATCH with a field mask rather than full replacement via PUT.",
    ),
    AipInfo(135, "Standard methods: Delete", "Delete removes a resource by name and carries no request body."),
    AipInfo(
        136,
        "Custom methods",
        "Operations that do not map to a standard method use the ':verb' suffix on the resource path.",
    ),
    AipInfo(140, "Field names", "Field names are lower_snake_case ASCII words."),
    AipInfo(
        151,
        "Long-running operations",
        "Methods that take significant time return an Operation resource with name and done fields.",
    ),
    AipInfo(155, "Request identification", "Non-idempotent creates accept a request_id so clients can retry safely."),
    AipInfo(158, "Pagination", "List methods accept page_size and page_token and return next_page_token."),
    AipInfo(160, "Filtering", "List methods accept a filter string using the common filter syntax."),
    AipInfo(
        185,
        "API versioning",
        "Versions are exposed as a major version (v1) in the path; minor versions are not exposed.",
    ),
    AipInfo(193, "Errors", "Errors use a consistent structure carrying code, message and details."),
)

AIP_INFO: Final = MappingProxyType({entry.number: entry for entry in _ENTRIES})


def get_aip_info(number: int) -> AipInfo:
    if isinstance(number, bool) or not isinstance(number, int):
        raise UnknownAipError(f"AIP number must be an integer, got {number!r}")
    try:
        return AIP_INFO[number]
    except KeyError as exc:
        known = ", ".join(str(item) for item in sorted(AIP_INFO))
        raise UnknownAipError(f"AIP-{number} is not catalogued (known: {known})") from exc


__all__ = ["AIP_BASE_URL", "AIP_INFO", "AipInfo", "get_aip_info"]
