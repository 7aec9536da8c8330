"""Content hashing for scanned files.

This module provides the FileHasher class for computing SHA256 digests with
a fixed-size read buffer, and the HashWorkerPool that applies it to every
FileRecord flowing from the scanner to the aggregator.

Example:
    >>> from treesync.scanning import FileHasher
    >>> hasher = FileHasher()
    >>> digest = hasher.hash_file(Path("/path/to/file.txt"))
    >>> print(f"SHA256: {digest}")
"""

import hashlib
import logging
import threading
from pathlib import Path
from typing import Callable, Optional

from treesync.config import BUFFER_SIZE
from treesync.models import ErrorStage, FileRecord
from treesync.pipeline import ClosableQueue, ErrorSink, WorkerPool

logger = logging.getLogger(__name__)


class FileHasher:
    """Computes SHA256 digests of files.

    Files are read in chunks of ``buffer_size`` bytes, so memory use does
    not depend on file size.

    Attributes:
        buffer_size: Number of bytes read per chunk.
    """

    def __init__(self, buffer_size: int = BUFFER_SIZE) -> None:
        """Initialize the FileHasher.

        Args:
            buffer_size: Chunk size for streaming reads. Defaults to 64KB.
        """
        if buffer_size < 1:
            raise ValueError(f"buffer_size must be at least 1, got {buffer_size}")
        self.buffer_size = buffer_size

    def hash_file(self, file_path: Path) -> str:
        """Compute the SHA256 hex digest of a file.

        Args:
            file_path: Path to the file to hash. Symbolic links are followed.

        Returns:
            The SHA256 hex digest of the file contents.

        Raises:
            OSError: If the file cannot be opened or a read fails mid-stream.
                Callers decide whether this is fatal.
        """
        sha256_hash = hashlib.sha256()

        with open(file_path, "rb") as f:
            while True:
                chunk = f.read(self.buffer_size)
                if not chunk:
                    break
                sha256_hash.update(chunk)

        return sha256_hash.hexdigest()


class HashWorkerPool:
    """Bounded set of workers that attach digests to scanned records.

    Workers pull FileRecord items from the job queue and push enriched
    records to the result queue. A read failure never drops a record: it
    is forwarded marked FAILED and logged to the error sink, so the
    comparator can treat it as needing a copy.

    When ``hash_contents`` is False (size comparison mode) records are
    forwarded unchanged with their digest still PENDING.
    """

    def __init__(
        self,
        root: Path,
        jobs: ClosableQueue,
        results: ClosableQueue,
        error_sink: ErrorSink,
        worker_count: int,
        hash_contents: bool = True,
        hasher: Optional[FileHasher] = None,
        cancel_event: Optional[threading.Event] = None,
        on_event: Optional[Callable[[str], None]] = None,
    ) -> None:
        self._root = root
        self._results = results
        self._error_sink = error_sink
        self._hash_contents = hash_contents
        self._hasher = hasher if hasher is not None else FileHasher()
        self._on_event = on_event
        self._pool = WorkerPool(
            name="hash",
            worker_count=worker_count,
            source=jobs,
            handler=self._process,
            cancel_event=cancel_event,
        )

    @property
    def worker_count(self) -> int:
        return self._pool.worker_count

    def start(self) -> None:
        self._pool.start()

    def join(self) -> None:
        """Wait until the job queue is closed and every worker has exited."""
        self._pool.join()

    def _process(self, record: FileRecord) -> None:
        if not self._hash_contents:
            self._results.put(record)
            return

        try:
            digest = self._hasher.hash_file(self._root / record.relative_path)
        except OSError as e:
            self._error_sink.record(record.relative_path, ErrorStage.HASH, e, tree=record.tree)
            self._results.put(record.as_unhashed())
            return

        if self._on_event is not None:
            self._on_event(f"Hashed {record.tree.value}: {record.relative_path} ({digest[:16]})")
        self._results.put(record.with_digest(digest))
