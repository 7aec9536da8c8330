"""
Core data models for treesync.

This module contains the following types:
- FileRecord: One file's state within one tree
- Snapshot: Immutable path-keyed collection of FileRecord for one tree
- SyncAction: A file scheduled to be copied from source to destination
- ErrorRecord: A non-fatal per-file error with its stage and cause
- CopyOutcome: Results of the copy phase (or dry-run manifest)
- SyncSummary: Totals for one complete run

display_path renders a path (or any text holding one) for output streams.
"""

import os
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Dict, Iterator, List, Mapping, Optional

from .enums import CompareMode, ErrorStage, HashState, TreeRole


def display_path(text: str) -> str:
    """Escape bytes of a file name that are not valid UTF-8.

    Names read from a POSIX directory keep undecodable bytes as lone
    surrogates, which strict UTF-8 streams refuse to encode. Each such byte
    is shown as a ``\\xNN`` escape instead.
    """
    return os.fsencode(text).decode("utf-8", "backslashreplace")


@dataclass(frozen=True)
class FileRecord:
    """Represents one regular file within one tree at scan time."""
    relative_path: str                # POSIX-style, no leading separator
    size: int                         # Bytes
    mode: int                         # Permission bits (stat.S_IMODE)
    tree: TreeRole                    # Owning tree
    digest: Optional[str] = None      # SHA256 hex digest once hashed
    hash_state: HashState = HashState.PENDING

    def with_digest(self, digest: str) -> "FileRecord":
        """Return a copy of this record carrying a computed digest."""
        return replace(self, digest=digest, hash_state=HashState.HASHED)

    def as_unhashed(self) -> "FileRecord":
        """Return a copy of this record explicitly marked as failed to hash."""
        return replace(self, digest=None, hash_state=HashState.FAILED)

    @property
    def is_hashed(self) -> bool:
        return self.hash_state is HashState.HASHED


class Snapshot(Mapping[str, FileRecord]):
    """Read-only mapping of relative path to FileRecord for one tree.

    Built once by the Aggregator after every record has arrived. The
    underlying dict is copied and wrapped so later mutation of the input
    cannot leak into the snapshot.

    Example:
        >>> snapshot = Snapshot(TreeRole.SOURCE, {"a.txt": record})
        >>> snapshot["a.txt"].size
        10
    """

    def __init__(self, tree: TreeRole, records: Optional[Dict[str, FileRecord]] = None) -> None:
        self._tree = tree
        self._records: Mapping[str, FileRecord] = MappingProxyType(dict(records or {}))

    @property
    def tree(self) -> TreeRole:
        return self._tree

    def __getitem__(self, relative_path: str) -> FileRecord:
        return self._records[relative_path]

    def __iter__(self) -> Iterator[str]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        return f"Snapshot(tree={self._tree.value}, files={len(self._records)})"

    @property
    def total_size(self) -> int:
        """Total bytes across all records."""
        return sum(record.size for record in self._records.values())

    def unhashed_paths(self) -> List[str]:
        """Relative paths whose digest could not be computed, sorted."""
        return sorted(
            path for path, record in self._records.items()
            if record.hash_state is HashState.FAILED
        )


@dataclass(frozen=True)
class SyncAction:
    """A source file scheduled to be copied into the destination."""
    relative_path: str                # Key shared by both trees
    size: int                         # Source size in bytes


@dataclass(frozen=True)
class ErrorRecord:
    """A non-fatal error recorded during a run."""
    path: str                         # Relative path (or root path for tree-level errors)
    stage: ErrorStage                 # Where it happened
    cause: str                        # Human-readable cause
    tree: Optional[TreeRole] = None   # Tree the path belongs to, if known

    def __str__(self) -> str:
        where = f"{self.tree.value}:" if self.tree is not None else ""
        return display_path(f"[{self.stage.value}] {where}{self.path}: {self.cause}")


@dataclass
class CopyOutcome:
    """Results of materializing a list of SyncAction."""
    dry_run: bool = False
    copied: List[SyncAction] = field(default_factory=list)
    failed: List[SyncAction] = field(default_factory=list)
    pending: List[SyncAction] = field(default_factory=list)   # Skipped after cancellation
    manifest: List[SyncAction] = field(default_factory=list)  # Dry-run only


@dataclass
class SyncSummary:
    """Summary of one sync run returned by SyncOrchestrator."""
    dry_run: bool = False
    compare_mode: CompareMode = CompareMode.DIGEST
    source_files: int = 0             # Files in the source snapshot
    destination_files: int = 0        # Files in the destination snapshot
    files_copied: int = 0             # Successfully copied (0 in dry run)
    files_unchanged: int = 0          # Source files needing no copy
    files_failed: int = 0             # Distinct paths with at least one error
    files_pending: int = 0            # Actions abandoned after cancellation
    actions: List[SyncAction] = field(default_factory=list)
    errors: List[ErrorRecord] = field(default_factory=list)
    duration_seconds: float = 0.0
    cancelled: bool = False           # Run stopped early (interrupt or deadline)
    interrupted: bool = False         # Stopped by the user (Ctrl+C)
    timed_out: bool = False           # Stopped by the deadline

    @property
    def completed_with_errors(self) -> bool:
        return bool(self.errors)
