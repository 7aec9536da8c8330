"""Bounded blocking queue with an explicit close.

The standard ``queue.Queue`` has no notion of "no more items", so every
consumer would need to agree on a sentinel count. ClosableQueue puts a
single sentinel on close; each consumer that sees it puts it back before
returning, so any number of consumers wake up and exit.

Example:
    >>> jobs = ClosableQueue(maxsize=8)
    >>> jobs.put("a"); jobs.close()
    >>> list(jobs)
    ['a']
"""

import threading
from queue import Queue
from typing import Any, Iterator

from treesync.exceptions import QueueClosedError


class ClosableQueue(Queue):
    """Queue whose iteration ends once the producer side has closed it.

    Producers block on ``put`` while the queue is full; consumers block in
    ``__iter__`` while it is empty. Items put before ``close`` are always
    delivered before the end-of-stream marker.
    """

    _SENTINEL = object()

    def __init__(self, maxsize: int = 0) -> None:
        super().__init__(maxsize)
        self._close_lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def put(self, item: Any, block: bool = True, timeout: Any = None) -> None:
        """Put an item on the queue.

        Raises:
            QueueClosedError: If the queue has already been closed.
        """
        if self._closed:
            raise QueueClosedError("put() on a closed queue")
        super().put(item, block, timeout)

    def close(self) -> None:
        """Signal that no more items will be put. Idempotent."""
        with self._close_lock:
            if self._closed:
                return
            self._closed = True
        super().put(self._SENTINEL)

    def __iter__(self) -> Iterator[Any]:
        while True:
            item = self.get()
            try:
                if item is self._SENTINEL:
                    # Hand the marker on to the next consumer
                    super().put(self._SENTINEL)
                    return
                yield item
            finally:
                self.task_done()
