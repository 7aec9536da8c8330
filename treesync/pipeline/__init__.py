"""Concurrency primitives for treesync.

- ClosableQueue: bounded blocking queue with an explicit end-of-stream
- WorkerPool: N threads draining a ClosableQueue through a handler
- ErrorSink: thread-safe append-only error collection for one run

Pipelines are shut down in stages: close the upstream queue, join the pool
that consumes it, then close the downstream queue.
"""

from .error_sink import ErrorSink
from .queues import ClosableQueue
from .worker_pool import WorkerPool

__all__ = ["ClosableQueue", "ErrorSink", "WorkerPool"]
