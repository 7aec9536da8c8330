"""Fixed-size pool of threads consuming a ClosableQueue.

Each worker pulls items until the queue is closed and drained. The pool
never leaves a producer blocked: after a cancellation or an unexpected
handler failure the workers keep draining the queue (handing items to
``on_skip`` instead of ``handler``) until the producer closes it.

Example:
    >>> pool = WorkerPool("hash", 4, jobs, handler=process)
    >>> pool.start()
    >>> ... produce into jobs, then jobs.close()
    >>> pool.join()
"""

import logging
import threading
from typing import Any, Callable, List, Optional

from .queues import ClosableQueue

logger = logging.getLogger(__name__)


class WorkerPool:
    """Runs ``handler`` over every item of a ClosableQueue on N threads.

    Attributes:
        name: Prefix used for thread names and log messages.
        worker_count: Number of worker threads.
    """

    def __init__(
        self,
        name: str,
        worker_count: int,
        source: ClosableQueue,
        handler: Callable[[Any], None],
        cancel_event: Optional[threading.Event] = None,
        on_skip: Optional[Callable[[Any], None]] = None,
    ) -> None:
        """Create a pool; call start() to launch the threads.

        Args:
            name: Prefix for thread names.
            worker_count: Number of workers (at least 1).
            source: Queue the workers consume.
            handler: Called once per item. Expected per-item failures must
                be handled inside it; anything it raises stops the pool.
            cancel_event: Run-scoped cancellation signal. Once set, the
                remaining items are drained without being handled. The
                pool also sets it when a handler raises.
            on_skip: Called for each item drained without handling.

        Raises:
            ValueError: If worker_count is below 1.
        """
        if worker_count < 1:
            raise ValueError(f"worker_count must be at least 1, got {worker_count}")
        self.name = name
        self.worker_count = worker_count
        self._source = source
        self._handler = handler
        self._cancel_event = cancel_event
        self._on_skip = on_skip
        self._threads: List[threading.Thread] = []
        self._failure: Optional[BaseException] = None
        self._failure_lock = threading.Lock()

    def start(self) -> None:
        """Launch the worker threads."""
        if self._threads:
            raise RuntimeError(f"{self.name} pool already started")
        for index in range(self.worker_count):
            thread = threading.Thread(
                target=self._run,
                name=f"{self.name}-{index}",
                daemon=True,
            )
            self._threads.append(thread)
            thread.start()
        logger.debug("Started %s pool with %d workers", self.name, self.worker_count)

    def join(self) -> None:
        """Wait for every worker to exit.

        Workers exit only once the source queue is closed and drained, so
        the producer must close it before (or concurrently with) this call.

        Raises:
            Exception: The first exception raised by ``handler``, if any.
        """
        for thread in self._threads:
            thread.join()
        logger.debug("%s pool drained", self.name)
        if self._failure is not None:
            raise self._failure

    @property
    def failed(self) -> bool:
        return self._failure is not None

    def _should_skip(self) -> bool:
        if self._failure is not None:
            return True
        return self._cancel_event is not None and self._cancel_event.is_set()

    def _run(self) -> None:
        for item in self._source:
            if self._should_skip():
                if self._on_skip is not None:
                    self._on_skip(item)
                continue
            try:
                self._handler(item)
            except Exception as exc:
                logger.exception("%s worker failed on %r", self.name, item)
                with self._failure_lock:
                    if self._failure is None:
                        self._failure = exc
                if self._cancel_event is not None:
                    self._cancel_event.set()
