"""Thread-safe, append-only collection of per-file errors for one run."""

import logging
import threading
from typing import List, Optional, Set, Union

from treesync.exceptions import SinkClosedError
from treesync.models import ErrorRecord, ErrorStage, TreeRole

logger = logging.getLogger(__name__)


class ErrorSink:
    """Collects ErrorRecord values from every pipeline stage.

    Any thread may call ``record`` until the sink is closed. ``drain``
    closes the sink and returns everything recorded, so late writers fail
    loudly instead of being silently dropped from the summary.

    Example:
        >>> sink = ErrorSink()
        >>> sink.record("a.txt", ErrorStage.HASH, OSError("EIO"))
        >>> [str(e) for e in sink.drain()]
        ['[hash] a.txt: EIO']
    """

    def __init__(self) -> None:
        self._records: List[ErrorRecord] = []
        self._lock = threading.Lock()
        self._closed = False

    def record(
        self,
        path: str,
        stage: ErrorStage,
        cause: Union[BaseException, str],
        tree: Optional[TreeRole] = None,
    ) -> ErrorRecord:
        """Append an error.

        Args:
            path: Relative path of the affected entry.
            stage: Pipeline stage that failed.
            cause: Exception or message describing the failure.
            tree: Tree the path belongs to.

        Returns:
            The stored ErrorRecord.

        Raises:
            SinkClosedError: If the sink has been closed.
        """
        error = ErrorRecord(path=path, stage=stage, cause=_describe(cause), tree=tree)
        with self._lock:
            if self._closed:
                raise SinkClosedError(f"Error recorded after close: {error}")
            self._records.append(error)
        logger.warning("%s", error)
        return error

    def close(self) -> None:
        with self._lock:
            self._closed = True

    def drain(self) -> List[ErrorRecord]:
        """Close the sink and return all recorded errors in arrival order."""
        with self._lock:
            self._closed = True
            return list(self._records)

    def failed_paths(self) -> Set[str]:
        """Distinct paths with at least one error."""
        with self._lock:
            return {error.path for error in self._records}

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


def _describe(cause: Union[BaseException, str]) -> str:
    if isinstance(cause, OSError) and cause.strerror:
        return cause.strerror
    return str(cause) or type(cause).__name__
