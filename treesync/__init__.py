"""treesync - one-way directory tree synchronization.

Scans a source and a destination tree concurrently, hashes file contents on
bounded worker pools, and copies only the files that are new or changed.
Destination-only files are never removed.
"""

__version__ = "1.0.0"

from .models import (
    CompareMode,
    ErrorRecord,
    ErrorStage,
    FileRecord,
    Snapshot,
    SyncAction,
    SyncSummary,
    TreeRole,
)

__all__ = [
    "__version__",
    "CompareMode",
    "ErrorRecord",
    "ErrorStage",
    "FileRecord",
    "Snapshot",
    "SyncAction",
    "SyncSummary",
    "TreeRole",
]


def main() -> None:
    """Entry point for the treesync CLI application.

    Imports and runs the Typer app from the treesync.cli module.
    """
    from treesync.cli import app
    app()
