"""
Models package for treesync.

This package provides convenient imports for all data models:
- TreeRole, HashState, ErrorStage, CompareMode: Enums
- FileRecord: Per-file state within one tree
- Snapshot: Immutable path-keyed collection of FileRecord
- SyncAction: File scheduled for copy
- ErrorRecord: Non-fatal per-file error
- CopyOutcome: Copy phase results
- SyncSummary: Run totals
- display_path: Output-safe rendering of file names
"""

from .enums import CompareMode, ErrorStage, HashState, TreeRole
from .data_models import (
    CopyOutcome,
    ErrorRecord,
    FileRecord,
    Snapshot,
    SyncAction,
    SyncSummary,
    display_path,
)

__all__ = [
    "CompareMode",
    "ErrorStage",
    "HashState",
    "TreeRole",
    "CopyOutcome",
    "ErrorRecord",
    "FileRecord",
    "Snapshot",
    "SyncAction",
    "SyncSummary",
    "display_path",
]
