"""Process pool that reviews and fixes documents off the request path."""

from aip_reviewer.workers.buffer import SharedSpecBuffer
from aip_reviewer.workers.pool import PoolStats, WorkerPool, default_pool_size
from aip_reviewer.workers.tasks import ErrorKind, TaskResult, TaskType, WorkerTask
from aip_reviewer.workers.worker import run_task, worker_main

__all__ = [
    "ErrorKind",
    "PoolStats",
    "SharedSpecBuffer",
    "TaskResult",
    "TaskType",
    "WorkerPool",
    "WorkerTask",
    "default_pool_size",
    "run_task",
    "worker_main",
]
