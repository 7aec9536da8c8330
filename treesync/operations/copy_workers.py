"""
Copy phase for treesync.

This module contains the CopyWorkerPool, which materializes SyncAction items
into the destination tree on a bounded set of threads, and the DryRunSink,
which stands in for it when no filesystem changes are wanted.
"""

import errno
import logging
import os
import shutil
import stat
import tempfile
import threading
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from treesync.config import BUFFER_SIZE, DEFAULT_COPY_WORKERS, queue_capacity
from treesync.models import CopyOutcome, ErrorStage, SyncAction, TreeRole
from treesync.pipeline import ClosableQueue, ErrorSink, WorkerPool

logger = logging.getLogger(__name__)

# Affixes for in-progress copies; renamed over the target once complete
TEMP_PREFIX = ".treesync-"
TEMP_SUFFIX = ".tmp"


def directory_mode(file_mode: int) -> int:
    """Derive a directory mode from a source file's permission bits.

    Every read bit gains the matching search bit and the owner always gets
    full access, so a directory created for a 0o644 file is 0o755 and one
    created for a 0o600 file is 0o700.
    """
    return file_mode | 0o700 | ((file_mode & 0o444) >> 2)


def ensure_directory(path: Path, mode: int) -> None:
    """Create ``path`` and any missing parents with ``mode``.

    Safe to call from many threads at once: a directory that appears
    between the check and the mkdir counts as success.

    Raises:
        OSError: If a component exists but is not a directory, or cannot
            be created.
    """
    if path.is_dir():
        return
    ensure_directory(path.parent, mode)
    try:
        path.mkdir(mode=mode)
    except FileExistsError:
        if not path.is_dir():
            raise


class CopyWorkerPool:
    """
    Copies files from the source tree into the destination tree.

    Each worker pulls one SyncAction, creates the destination's parent
    directories, streams the bytes through a fixed-size buffer into a
    temporary sibling, applies the source permission bits and renames the
    result into place. A failure affects only its own file: it is recorded
    in the error sink and the worker moves on.
    """

    def __init__(
        self,
        source_root: Path,
        destination_root: Path,
        error_sink: ErrorSink,
        worker_count: int = DEFAULT_COPY_WORKERS,
        buffer_size: int = BUFFER_SIZE,
        cancel_event: Optional[threading.Event] = None,
        on_event: Optional[Callable[[str], None]] = None,
        progress_callback: Optional[Callable[[int], None]] = None,
    ) -> None:
        """
        Create a CopyWorkerPool.

        Parameters:
            source_root (Path): Root of the source tree.
            destination_root (Path): Root of the destination tree.
            error_sink (ErrorSink): Run-scoped sink for copy errors.
            worker_count (int): Number of copy threads.
            buffer_size (int): Bytes per read/write chunk.
            cancel_event (threading.Event): When set, remaining actions are drained without copying.
            on_event (Callable[[str], None]): Optional callback for verbose progress messages.
            progress_callback (Callable[[int], None]): Called with the number of finished actions after each one.
        """
        self.source_root = Path(source_root)
        self.destination_root = Path(destination_root)
        self.worker_count = worker_count
        self.buffer_size = buffer_size
        self._error_sink = error_sink
        self._cancel_event = cancel_event
        self._on_event = on_event
        self._progress_callback = progress_callback
        self._lock = threading.Lock()
        self._outcome = CopyOutcome()
        self._finished = 0

    def run(self, actions: Iterable[SyncAction]) -> CopyOutcome:
        """
        Copy every action and wait for all workers to finish.

        Parameters:
            actions (Iterable[SyncAction]): Files to copy.

        Returns:
            CopyOutcome: Actions grouped into copied, failed and pending (not attempted because of cancellation).
        """
        self._outcome = CopyOutcome()
        self._finished = 0
        queue = ClosableQueue(maxsize=queue_capacity(self.worker_count))
        pool = WorkerPool(
            name="copy",
            worker_count=self.worker_count,
            source=queue,
            handler=self._copy_action,
            cancel_event=self._cancel_event,
            on_skip=self._mark_pending,
        )

        pool.start()
        try:
            for action in actions:
                if self._cancel_event is not None and self._cancel_event.is_set():
                    self._mark_pending(action)
                    continue
                queue.put(action)
        finally:
            queue.close()
            pool.join()

        return self._outcome

    def copy_file(self, source: Path, dest: Path) -> None:
        """
        Copy one file, creating parent directories and preserving permission bits.

        The destination is written to a uniquely named temporary sibling and
        renamed over the target, so an interrupted copy never leaves a
        truncated file at ``dest``.

        Parameters:
            source (Path): File to read.
            dest (Path): File to create or replace.

        Raises:
            OSError: On any read, write, permission or disk-full failure.
        """
        source_stat = os.stat(source)
        mode = stat.S_IMODE(source_stat.st_mode)

        ensure_directory(dest.parent, directory_mode(mode))

        fd, temp_name = tempfile.mkstemp(dir=dest.parent, prefix=TEMP_PREFIX, suffix=TEMP_SUFFIX)
        temp_path = Path(temp_name)
        try:
            with os.fdopen(fd, "wb") as fdst, open(source, "rb") as fsrc:
                shutil.copyfileobj(fsrc, fdst, self.buffer_size)
            os.chmod(temp_path, mode)
            os.replace(temp_path, dest)
        except OSError:
            try:
                temp_path.unlink()
            except FileNotFoundError:
                pass
            raise

    def _copy_action(self, action: SyncAction) -> None:
        source = self.source_root / action.relative_path
        dest = self.destination_root / action.relative_path

        try:
            self.copy_file(source, dest)
        except OSError as e:
            if e.errno == errno.ENOSPC:
                logger.critical("Disk full while copying %s", action.relative_path)
            self._error_sink.record(action.relative_path, ErrorStage.COPY, e, tree=TreeRole.DESTINATION)
            self._finish(self._outcome.failed, action)
            return

        logger.debug("Copied %s (%d bytes)", action.relative_path, action.size)
        if self._on_event is not None:
            self._on_event(f"Copied to: {dest}")
        self._finish(self._outcome.copied, action)

    def _mark_pending(self, action: SyncAction) -> None:
        with self._lock:
            self._outcome.pending.append(action)

    def _finish(self, bucket: List[SyncAction], action: SyncAction) -> None:
        with self._lock:
            bucket.append(action)
            self._finished += 1
            finished = self._finished
        if self._progress_callback is not None:
            self._progress_callback(finished)


class DryRunSink:
    """
    Report-only replacement for CopyWorkerPool.

    Records every action in the outcome's manifest without touching the
    filesystem.
    """

    def __init__(self, on_event: Optional[Callable[[str], None]] = None) -> None:
        self._on_event = on_event

    def run(self, actions: Iterable[SyncAction]) -> CopyOutcome:
        outcome = CopyOutcome(dry_run=True)
        for action in actions:
            outcome.manifest.append(action)
            logger.debug("[DRY RUN] Would copy: %s (%d bytes)", action.relative_path, action.size)
            if self._on_event is not None:
                self._on_event(f"[DRY RUN] Would copy: {action.relative_path} (Size: {action.size} bytes)")
        return outcome
