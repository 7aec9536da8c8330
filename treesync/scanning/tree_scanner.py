"""Directory tree enumeration.

This module provides the TreeScanner class, which walks one tree and emits a
FileRecord for every regular file onto a bounded job queue.

Example:
    >>> from treesync.scanning import TreeScanner
    >>> root = TreeScanner.resolve_root(Path("/data/src"))
    >>> scanner = TreeScanner(root, TreeRole.SOURCE, ErrorSink())
    >>> for record in scanner.iter_records():
    ...     print(record.relative_path, record.size)
"""

import logging
import os
import stat
import threading
from pathlib import Path
from typing import Callable, Iterator, List, Optional

from treesync.exceptions import RootResolutionError
from treesync.models import ErrorStage, FileRecord, TreeRole
from treesync.pipeline import ClosableQueue, ErrorSink

logger = logging.getLogger(__name__)


class TreeScanner:
    """Enumerates regular files below a root directory.

    Directories are descended but never emitted. Symbolic links are leaf
    entries: a link to a regular file is emitted with the target's size and
    mode, a link to a directory is not followed, and a broken link is a
    traversal error. Traversal errors are recorded in the error sink and the
    walk continues; only failing to open the root itself is fatal.

    Attributes:
        root: Absolute path of the tree being scanned.
        tree: Role of the tree (source or destination).
    """

    def __init__(
        self,
        root: Path,
        tree: TreeRole,
        error_sink: ErrorSink,
        cancel_event: Optional[threading.Event] = None,
        on_event: Optional[Callable[[str], None]] = None,
    ) -> None:
        """Initialize the TreeScanner.

        Args:
            root: Root directory, ideally already checked with resolve_root().
            tree: Role recorded on every emitted FileRecord.
            error_sink: Sink for per-entry traversal errors.
            cancel_event: When set, enumeration stops at the next entry.
            on_event: Optional callback for verbose progress messages.
        """
        self.root = Path(root)
        self.tree = tree
        self._error_sink = error_sink
        self._cancel_event = cancel_event
        self._on_event = on_event

    @staticmethod
    def resolve_root(root: Path) -> Path:
        """Validate a tree root and return its absolute, resolved path.

        Args:
            root: Path to validate.

        Returns:
            The resolved absolute path.

        Raises:
            RootResolutionError: If the path does not exist, is not a
                directory, or cannot be listed.
        """
        try:
            resolved = Path(root).resolve()
        except (OSError, RuntimeError) as e:
            raise RootResolutionError(root, f"Cannot resolve path ({e})") from e

        if not resolved.exists():
            raise RootResolutionError(root, "Path does not exist")
        if not resolved.is_dir():
            raise RootResolutionError(root, "Path is not a directory")

        try:
            with os.scandir(resolved):
                pass
        except PermissionError as e:
            raise RootResolutionError(root, "Permission denied") from e
        except OSError as e:
            raise RootResolutionError(root, f"Cannot open directory ({e})") from e

        return resolved

    def scan_into(self, jobs: ClosableQueue) -> int:
        """Push every record onto ``jobs``, then close it.

        The queue is closed even when enumeration fails or is cancelled, so
        the consuming workers always terminate.

        Args:
            jobs: Bounded queue feeding the hash workers.

        Returns:
            Number of records emitted.
        """
        emitted = 0
        try:
            for record in self.iter_records():
                jobs.put(record)
                emitted += 1
        finally:
            jobs.close()
        logger.debug("Scanned %s tree %s: %d files", self.tree.value, self.root, emitted)
        return emitted

    def iter_records(self) -> Iterator[FileRecord]:
        """Lazily yield a FileRecord per regular file, in no particular order.

        Raises:
            RootResolutionError: If the root directory cannot be opened.
        """
        pending: List[Path] = [self.root]

        while pending:
            directory = pending.pop()
            try:
                with os.scandir(directory) as entries:
                    for entry in entries:
                        if self._cancelled():
                            logger.debug("Scan of %s cancelled", self.root)
                            pending.clear()
                            break
                        record = self._process_entry(entry, pending)
                        if record is not None:
                            yield record
            except OSError as e:
                if directory == self.root:
                    raise RootResolutionError(self.root, f"Cannot open directory ({e})") from e
                self._error_sink.record(self._relative(directory), ErrorStage.SCAN, e, tree=self.tree)

    def _process_entry(self, entry: os.DirEntry, pending: List[Path]) -> Optional[FileRecord]:
        relative_path = self._relative(entry.path)
        try:
            if entry.is_symlink():
                try:
                    stat_result = entry.stat(follow_symlinks=True)
                except FileNotFoundError:
                    self._error_sink.record(
                        relative_path, ErrorStage.SCAN, "Broken symbolic link", tree=self.tree
                    )
                    return None
                if stat.S_ISDIR(stat_result.st_mode):
                    logger.debug("Not following directory link: %s", entry.path)
                    return None
            elif entry.is_dir(follow_symlinks=False):
                pending.append(Path(entry.path))
                return None
            else:
                stat_result = entry.stat(follow_symlinks=False)
        except OSError as e:
            self._error_sink.record(relative_path, ErrorStage.SCAN, e, tree=self.tree)
            return None

        if not stat.S_ISREG(stat_result.st_mode):
            # Sockets, FIFOs and device nodes
            logger.debug("Skipping special file: %s", entry.path)
            return None

        if self._on_event is not None:
            self._on_event(
                f"Found {self.tree.value}: {relative_path} "
                f"({stat_result.st_size} bytes, {stat.filemode(stat_result.st_mode)})"
            )

        return FileRecord(
            relative_path=relative_path,
            size=stat_result.st_size,
            mode=stat.S_IMODE(stat_result.st_mode),
            tree=self.tree,
        )

    def _relative(self, path) -> str:
        relative = Path(path).relative_to(self.root).as_posix()
        return relative if relative != "." else ""

    def _cancelled(self) -> bool:
        return self._cancel_event is not None and self._cancel_event.is_set()
