"""Copy operations package for treesync.

This package provides the CopyWorkerPool for materializing a list of
SyncAction items into the destination tree, and the DryRunSink that records
the same actions without touching the filesystem.

Example:
    >>> from treesync.operations import CopyWorkerPool
    >>> pool = CopyWorkerPool(source_root, destination_root, ErrorSink(), worker_count=8)
    >>> outcome = pool.run(actions)
    >>> print(f"Copied: {len(outcome.copied)}, Failed: {len(outcome.failed)}")
"""

from .copy_workers import CopyWorkerPool, DryRunSink, directory_mode, ensure_directory

__all__ = ["CopyWorkerPool", "DryRunSink", "directory_mode", "ensure_directory"]
