"""
aip-reviewer — bounded worker pool.

File: src/aip_reviewer/workers/pool.py
Purpose: Dispatch review and apply-fixes tasks to a fixed set of processes.

Each worker is a spawn-context process connected by one duplex pipe. A task
is handed to an idle worker immediately; when every worker is busy it waits
in a FIFO queue and is dispatched as soon as a worker frees up. A worker that
dies mid-task fails that task with ``error_kind="crash"`` and is replaced;
tasks are never retried. Shared document buffers are released when their
task settles, whatever the outcome.
"""

from __future__ import annotations

import asyncio
import multiprocessing
import os
from collections import deque
from contextlib import suppress
from dataclasses import dataclass
from multiprocessing.connection import Connection
from multiprocessing.process import BaseProcess
from types import TracebackType
from typing import Any, Final

from aip_reviewer.errors import PoolClosedError
from aip_reviewer.observability.logging import get_logger
from aip_reviewer.workers.tasks import ErrorKind, TaskResult, WorkerTask
from aip_reviewer.workers.worker import WorkerTarget, worker_main

_JOIN_TIMEOUT_SECONDS: Final[float] = 5.0


def default_pool_size() -> int:
    """One less than the CPUs available to this process, and at least one."""

    if hasattr(os, "sched_getaffinity"):
        available = len(os.sched_getaffinity(0))
    else:
        available = os.cpu_count() or 1
    return max(1, available - 1)


@dataclass(frozen=True, slots=True)
class PoolStats:
    total: int
    idle: int
    busy: int
    queued: int

    def to_dict(self) -> dict[str, int]:
        return {"total": self.total, "idle": self.idle, "busy": self.busy, "queued": self.queued}


class _Worker:
    __slots__ = ("busy", "conn", "process", "slot")

    def __init__(self, slot: int, process: BaseProcess, conn: Connection) -> None:
        self.slot = slot
        self.process = process
        self.conn = conn
        self.busy = False

    @property
    def alive(self) -> bool:
        return self.process.is_alive()


class WorkerPool:
    """Fixed-size process pool with FIFO back-pressure and crash replacement."""

    def __init__(
        self,
        size: int | None = None,
        *,
        target: WorkerTarget = worker_main,
        log_level: str = "WARNING",
        logger: Any = None,
    ) -> None:
        resolved = default_pool_size() if size is None else size
        if isinstance(resolved, bool) or not isinstance(resolved, int) or resolved <= 0:
            raise ValueError("size must be a positive integer")
        self._size = resolved
        self._target = target
        self._log_level = log_level
        self._logger = logger if logger is not None else get_logger(__name__)
        self._context = multiprocessing.get_context("spawn")
        self._workers: list[_Worker] = []
        self._waiters: deque[asyncio.Future[int | None]] = deque()
        self._started = False
        self._closed = False

    @property
    def size(self) -> int:
        return self._size

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> None:
        if self._closed:
            raise PoolClosedError("worker pool is closed")
        if self._started:
            return
        self._workers = [self._spawn(slot) for slot in range(self._size)]
        self._started = True
        self._logger.info("worker_pool_started", size=self._size)

    def stats(self) -> PoolStats:
        busy = sum(1 for worker in self._workers if worker.busy)
        queued = sum(1 for waiter in self._waiters if not waiter.done())
        return PoolStats(total=len(self._workers), idle=len(self._workers) - busy, busy=busy, queued=queued)

    async def execute(self, task: WorkerTask) -> TaskResult:
        """Run ``task`` on a worker and return its result; the task's buffer is always released."""

        if self._closed:
            if not task.buffer.claimed:
                task.buffer.release()
            raise PoolClosedError("worker pool is closed")
        task.buffer.claim()
        try:
            self.start()
            slot = await self._acquire(task)
            if slot is None:
                return TaskResult.failed("worker pool closed before the task was dispatched", ErrorKind.CLOSED)
            try:
                if not self._workers[slot].alive:
                    await self._replace(slot, "found_dead_while_idle")
                return await self._dispatch(slot, task)
            finally:
                self._release(slot)
        finally:
            task.buffer.release()

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_result(None)

        workers = list(self._workers)
        for worker in workers:
            with suppress(OSError):
                worker.conn.send(None)
        for worker in workers:
            await _stop(worker)
        self._logger.info("worker_pool_closed", size=self._size)

    async def __aenter__(self) -> WorkerPool:
        self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        await self.close()

    def _spawn(self, slot: int) -> _Worker:
        parent_conn, child_conn = self._context.Pipe(duplex=True)
        process = self._context.Process(
            target=self._target,
            args=(child_conn, self._log_level),
            name=f"aip-reviewer-worker-{slot}",
            daemon=True,
        )
        process.start()
        # The child holds its own copy of this end.
        child_conn.close()
        return _Worker(slot, process, parent_conn)

    async def _replace(self, slot: int, reason: str) -> None:
        """Reap the worker in ``slot`` and start a fresh one; the caller holds the slot."""

        old = self._workers[slot]
        if old.process.is_alive():
            old.process.terminate()
        await asyncio.to_thread(old.process.join, _JOIN_TIMEOUT_SECONDS)
        old.conn.close()
        exitcode = old.process.exitcode
        if self._closed:
            return
        fresh = await asyncio.to_thread(self._spawn, slot)
        fresh.busy = old.busy
        self._workers[slot] = fresh
        if self._closed:
            # close() ran while the replacement was starting.
            await _stop(fresh)
            return
        self._logger.warning("worker_replaced", slot=slot, reason=reason, exitcode=exitcode)

    async def _acquire(self, task: WorkerTask) -> int | None:
        if not any(not waiter.done() for waiter in self._waiters):
            for worker in self._workers:
                if worker.busy:
                    continue
                worker.busy = True
                return worker.slot

        waiter: asyncio.Future[int | None] = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        self._logger.debug("task_queued", task_type=task.type.value, queued=self.stats().queued)
        try:
            return await waiter
        except asyncio.CancelledError:
            if waiter.done() and not waiter.cancelled() and waiter.result() is not None:
                self._release(waiter.result())
            with suppress(ValueError):
                self._waiters.remove(waiter)
            raise

    def _release(self, slot: int) -> None:
        worker = self._workers[slot]
        worker.busy = False
        if self._closed:
            return
        while self._waiters:
            waiter = self._waiters.popleft()
            if waiter.done():
                continue
            worker.busy = True
            waiter.set_result(slot)
            return

    async def _dispatch(self, slot: int, task: WorkerTask) -> TaskResult:
        worker = self._workers[slot]
        self._logger.debug("task_dispatched", task_type=task.type.value, slot=slot, pid=worker.process.pid)
        try:
            worker.conn.send(task.to_message())
            reply = await asyncio.to_thread(worker.conn.recv)
        except asyncio.CancelledError:
            # The reply can no longer be paired with its request.
            await self._replace(slot, "dispatch_cancelled")
            raise
        except (EOFError, OSError) as exc:
            await self._replace(slot, "crashed")
            return TaskResult.failed(f"worker process exited unexpectedly: {exc!r}", ErrorKind.CRASH)

        result = TaskResult.from_message(reply) if isinstance(reply, dict) else TaskResult.failed(
            f"unexpected reply type {type(reply).__name__}", ErrorKind.TASK
        )
        self._logger.debug(
            "task_completed",
            task_type=task.type.value,
            slot=slot,
            success=result.success,
            error_kind=result.error_kind.value if result.error_kind else None,
        )
        return result


async def _stop(worker: _Worker) -> None:
    with suppress(OSError):
        worker.conn.send(None)
    await asyncio.to_thread(worker.process.join, _JOIN_TIMEOUT_SECONDS)
    if worker.process.is_alive():
        worker.process.terminate()
        await asyncio.to_thread(worker.process.join, _JOIN_TIMEOUT_SECONDS)
    worker.conn.close()


__all__ = ["PoolStats", "WorkerPool", "default_pool_size"]
