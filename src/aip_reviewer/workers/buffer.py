"""Shared-memory document buffers handed from the caller to a worker process.

The caller copies the document bytes into a named shared-memory segment
exactly once; only the segment name and length cross the process boundary,
and the worker decodes straight out of the mapped region.
"""

from __future__ import annotations

import sys
from collections.abc import Iterator
from contextlib import contextmanager
from multiprocessing import shared_memory


class SharedSpecBuffer:
    """Owner handle for one shared-memory segment holding document bytes.

    A buffer is claimed by exactly one task. Releasing closes and unlinks the
    segment; it is idempotent so the pool can release from ``finally`` blocks.
    """

    __slots__ = ("_claimed", "_released", "_segment", "_size")

    def __init__(self, segment: shared_memory.SharedMemory, size: int) -> None:
        self._segment = segment
        self._size = size
        self._claimed = False
        self._released = False

    @classmethod
    def from_bytes(cls, data: bytes | bytearray | memoryview) -> SharedSpecBuffer:
        with memoryview(data) as raw, raw.cast("B") as view:
            size = view.nbytes
            # Zero-length segments are rejected by the OS.
            segment = shared_memory.SharedMemory(create=True, size=max(size, 1))
            segment.buf[:size] = view
        return cls(segment, size)

    @property
    def name(self) -> str:
        return self._segment.name

    @property
    def size(self) -> int:
        return self._size

    @property
    def claimed(self) -> bool:
        return self._claimed

    @property
    def released(self) -> bool:
        return self._released

    def claim(self) -> None:
        if self._released:
            raise RuntimeError(f"shared buffer {self.name} has been released")
        if self._claimed:
            raise RuntimeError(f"shared buffer {self.name} is already claimed by another task")
        self._claimed = True

    def read_bytes(self) -> bytes:
        if self._released:
            raise RuntimeError(f"shared buffer {self.name} has been released")
        return bytes(self._segment.buf[: self._size])

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        self._segment.close()
        try:
            self._segment.unlink()
        except FileNotFoundError:
            pass

    def __enter__(self) -> SharedSpecBuffer:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()

    def __repr__(self) -> str:
        state = "released" if self._released else ("claimed" if self._claimed else "free")
        return f"SharedSpecBuffer(name={self._segment.name!r}, size={self._size}, {state})"


def _attach(name: str) -> shared_memory.SharedMemory:
    if sys.version_info >= (3, 13):
        # The creating process owns the segment's lifetime.
        return shared_memory.SharedMemory(name=name, track=False)
    # Spawned workers inherit the caller's resource tracker, which keeps one
    # entry per name; the owner's unlink clears it.
    return shared_memory.SharedMemory(name=name)


@contextmanager
def attached_view(name: str, size: int) -> Iterator[memoryview]:
    """Map an existing segment and yield a read-only view of its first ``size`` bytes."""

    segment = _attach(name)
    window = segment.buf[:size]
    view = window.toreadonly()
    try:
        yield view
    finally:
        view.release()
        window.release()
        segment.close()


__all__ = ["SharedSpecBuffer", "attached_view"]
