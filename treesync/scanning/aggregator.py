"""Fan-in of hashed records into a Snapshot."""

import logging
import threading
from typing import Callable, Dict, Optional

from treesync.models import FileRecord, Snapshot, TreeRole
from treesync.pipeline import ClosableQueue

logger = logging.getLogger(__name__)


class Aggregator:
    """Drains the result queue into one Snapshot on a background thread.

    The snapshot only exists once the result queue has been closed and
    fully drained, which in turn only happens after every hash worker has
    exited. ``join`` is therefore the completion signal for the whole tree.
    Duplicate paths are resolved last-write-wins.
    """

    def __init__(
        self,
        tree: TreeRole,
        results: ClosableQueue,
        on_event: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.tree = tree
        self._results = results
        self._on_event = on_event
        self._records: Dict[str, FileRecord] = {}
        self._snapshot: Optional[Snapshot] = None
        self._failure: Optional[BaseException] = None
        self._thread = threading.Thread(
            target=self._run, name=f"aggregate-{tree.value}", daemon=True
        )

    def start(self) -> None:
        self._thread.start()

    def join(self) -> Snapshot:
        """Block until the result queue is closed and drained.

        Returns:
            The finished Snapshot.

        Raises:
            Exception: Any error raised while aggregating.
        """
        self._thread.join()
        if self._failure is not None:
            raise self._failure
        assert self._snapshot is not None
        return self._snapshot

    def _run(self) -> None:
        for record in self._results:
            if self._failure is not None:
                continue
            try:
                self._add(record)
            except Exception as exc:
                # Keep draining so the hash workers never block on a full queue
                logger.exception("Aggregator for %s tree failed", self.tree.value)
                self._failure = exc

        if self._failure is None:
            self._snapshot = Snapshot(self.tree, self._records)
            if self._on_event is not None:
                self._on_event(f"Snapshot of {self.tree.value} complete: {len(self._snapshot)} files")

    def _add(self, record: FileRecord) -> None:
        if record.relative_path in self._records:
            logger.debug("Duplicate record for %s, keeping latest", record.relative_path)
        self._records[record.relative_path] = record
