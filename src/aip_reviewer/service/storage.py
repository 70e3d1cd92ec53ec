"""In-memory temporary storage for review and fix results with finite lifetimes."""

from __future__ import annotations

import threading
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from aip_reviewer.observability.logging import get_logger


@dataclass(frozen=True, slots=True)
class StoredItem:
    id: str
    kind: str
    value: Any
    created_at: float
    expires_at: float

    def expired(self, now: float) -> bool:
        return now >= self.expires_at

    def reference(self) -> dict[str, str]:
        """Compact handle returned to callers: ``{id, expiresAt}``."""

        expires = datetime.fromtimestamp(self.expires_at, tz=UTC)
        return {"id": self.id, "expiresAt": expires.isoformat(timespec="seconds").replace("+00:00", "Z")}


class TempStorage:
    """Thread-safe store whose items expire ``ttl_seconds`` after creation.

    Expired items behave exactly like missing ones. Every ``store`` purges
    expired items first, so a long-lived store stays bounded by its live set.
    """

    def __init__(self, ttl_seconds: float = 3600.0, *, clock: Callable[[], float] = time.time) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be > 0")
        self._ttl = float(ttl_seconds)
        self._clock = clock
        self._items: dict[str, StoredItem] = {}
        self._lock = threading.Lock()
        self._logger = get_logger(__name__)

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def store(self, kind: str, value: Any) -> StoredItem:
        self.purge_expired()
        now = self._clock()
        item = StoredItem(
            id=uuid.uuid4().hex,
            kind=kind,
            value=value,
            created_at=now,
            expires_at=now + self._ttl,
        )
        with self._lock:
            self._items[item.id] = item
        self._logger.debug("result_stored", item_id=item.id, kind=kind)
        return item

    def get(self, item_id: str) -> StoredItem | None:
        with self._lock:
            item = self._items.get(item_id)
            if item is None:
                return None
            if item.expired(self._clock()):
                del self._items[item_id]
                return None
            return item

    def list_all(self, kind: str | None = None) -> list[StoredItem]:
        now = self._clock()
        with self._lock:
            return [
                item
                for item in self._items.values()
                if not item.expired(now) and (kind is None or item.kind == kind)
            ]

    def purge_expired(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [item_id for item_id, item in self._items.items() if item.expired(now)]
            for item_id in expired:
                del self._items[item_id]
        if expired:
            self._logger.debug("storage_purged", count=len(expired))
        return len(expired)

    def __len__(self) -> int:
        return len(self.list_all())


__all__ = ["StoredItem", "TempStorage"]
