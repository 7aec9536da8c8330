"""Snapshot comparison.

This module provides the Comparator class, which decides which source files
must be copied into the destination.

Decision rule per source path:
1. Absent from destination -> copy
2. Either side failed to hash -> copy (true state unknown)
3. Sizes differ -> copy
4. DIGEST mode only: digests differ -> copy

Destination-only paths are ignored; nothing is ever deleted.
"""

import logging
from typing import Callable, List, Optional

from treesync.models import CompareMode, FileRecord, HashState, Snapshot, SyncAction

logger = logging.getLogger(__name__)


class Comparator:
    """Diffs a source Snapshot against a destination Snapshot.

    The comparison has no side effects and never touches the filesystem.
    In SIZE mode files whose size is unchanged are assumed identical, which
    misses same-size edits; DIGEST mode closes that gap at the cost of
    reading every file.

    Example:
        >>> comparator = Comparator(CompareMode.DIGEST)
        >>> actions = comparator.compare(source_snapshot, destination_snapshot)
        >>> for action in actions:
        ...     print(action.relative_path, action.size)
    """

    def __init__(
        self,
        mode: CompareMode = CompareMode.DIGEST,
        on_event: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.mode = mode
        self._on_event = on_event

    def compare(self, source: Snapshot, destination: Snapshot) -> List[SyncAction]:
        """Build the list of files to copy.

        Args:
            source: Snapshot of the source tree.
            destination: Snapshot of the destination tree.

        Returns:
            SyncAction per new or changed source file, sorted by path.
        """
        actions: List[SyncAction] = []

        for relative_path in sorted(source):
            source_record = source[relative_path]
            destination_record = destination.get(relative_path)

            reason = self.change_reason(source_record, destination_record)
            if reason is None:
                continue

            actions.append(SyncAction(relative_path=relative_path, size=source_record.size))
            if self._on_event is not None:
                self._on_event(f"Scheduled for copy: {relative_path} ({reason})")

        if not actions and self._on_event is not None:
            self._on_event("No changes detected. Source and destination are in sync.")

        logger.debug(
            "Compared %d source files against %d destination files (%s): %d to copy",
            len(source), len(destination), self.mode.value, len(actions),
        )
        return actions

    def change_reason(
        self, source_record: FileRecord, destination_record: Optional[FileRecord]
    ) -> Optional[str]:
        """Explain why a source file needs copying.

        Args:
            source_record: Record from the source snapshot.
            destination_record: Record at the same path in the destination,
                or None if absent.

        Returns:
            Short reason string, or None if the file is unchanged.
        """
        if destination_record is None:
            return "new"

        if HashState.FAILED in (source_record.hash_state, destination_record.hash_state):
            return "unhashed"

        if source_record.size != destination_record.size:
            return "size changed"

        if self.mode is CompareMode.SIZE:
            return None

        if not (source_record.is_hashed and destination_record.is_hashed):
            # Digest requested but missing; cannot prove equality
            return "unhashed"

        if source_record.digest != destination_record.digest:
            return "content changed"

        return None
