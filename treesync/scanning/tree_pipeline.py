"""Scanner -> HashWorkerPool -> Aggregator pipeline for one tree.

Example:
    >>> pipeline = TreePipeline(root, TreeRole.SOURCE, ErrorSink(), hash_workers=8)
    >>> snapshot = pipeline.run()
    >>> print(f"{len(snapshot)} files, {snapshot.total_size} bytes")
"""

import logging
import threading
from pathlib import Path
from typing import Callable, Optional

from treesync.config import BUFFER_SIZE, DEFAULT_HASH_WORKERS, queue_capacity
from treesync.models import Snapshot, TreeRole
from treesync.pipeline import ClosableQueue, ErrorSink

from .aggregator import Aggregator
from .file_hasher import FileHasher, HashWorkerPool
from .tree_scanner import TreeScanner

logger = logging.getLogger(__name__)


class TreePipeline:
    """Builds a Snapshot of one tree using bounded concurrent hashing.

    Shutdown is staged so that nothing deadlocks and nothing is lost:
    the scanner closes the job queue when enumeration ends, the hash pool
    is joined once it has drained that queue, and only then is the result
    queue closed so the aggregator can finish.

    Attributes:
        root: Root directory of the tree.
        tree: Role of the tree.
    """

    def __init__(
        self,
        root: Path,
        tree: TreeRole,
        error_sink: ErrorSink,
        hash_workers: int = DEFAULT_HASH_WORKERS,
        hash_contents: bool = True,
        buffer_size: int = BUFFER_SIZE,
        cancel_event: Optional[threading.Event] = None,
        on_event: Optional[Callable[[str], None]] = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            root: Root directory; validate with TreeScanner.resolve_root().
            tree: Role recorded on every FileRecord.
            error_sink: Run-scoped sink for traversal and hash errors.
            hash_workers: Number of hashing threads.
            hash_contents: False to skip digests (size comparison mode).
            buffer_size: Read buffer size for hashing.
            cancel_event: Run-scoped cancellation signal.
            on_event: Optional callback for verbose progress messages.
        """
        self.root = Path(root)
        self.tree = tree
        self._error_sink = error_sink
        self._hash_workers = hash_workers
        self._hash_contents = hash_contents
        self._buffer_size = buffer_size
        self._cancel_event = cancel_event
        self._on_event = on_event

    def run(self) -> Snapshot:
        """Scan, hash and aggregate the tree.

        Returns:
            Snapshot of the tree. If the cancellation signal fired the
            snapshot may be partial; callers must check the signal.

        Raises:
            RootResolutionError: If the root cannot be opened.
        """
        capacity = queue_capacity(self._hash_workers)
        jobs = ClosableQueue(maxsize=capacity)
        results = ClosableQueue(maxsize=capacity)

        scanner = TreeScanner(
            self.root,
            self.tree,
            self._error_sink,
            cancel_event=self._cancel_event,
            on_event=self._on_event,
        )
        hash_pool = HashWorkerPool(
            self.root,
            jobs,
            results,
            self._error_sink,
            worker_count=self._hash_workers,
            hash_contents=self._hash_contents,
            hasher=FileHasher(self._buffer_size),
            cancel_event=self._cancel_event,
            on_event=self._on_event,
        )
        aggregator = Aggregator(self.tree, results, on_event=self._on_event)

        aggregator.start()
        hash_pool.start()
        try:
            scanner.scan_into(jobs)
        finally:
            try:
                hash_pool.join()
            finally:
                results.close()

        snapshot = aggregator.join()
        logger.debug("%s tree snapshot: %d files", self.tree.value, len(snapshot))
        return snapshot
