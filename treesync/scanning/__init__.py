"""Tree scanning package for treesync.

This package turns a directory tree into a Snapshot:

- TreeScanner: Enumerates regular files onto a bounded job queue.
- FileHasher: Computes SHA256 digests with a fixed-size buffer.
- HashWorkerPool: Threads that attach digests to scanned records.
- Aggregator: Fan-in of hashed records into an immutable Snapshot.
- TreePipeline: Wires the three stages together with staged shutdown.

Example:
    >>> from treesync.scanning import TreePipeline, TreeScanner
    >>> from treesync.pipeline import ErrorSink
    >>> root = TreeScanner.resolve_root(Path("/data"))
    >>> snapshot = TreePipeline(root, TreeRole.SOURCE, ErrorSink()).run()
"""

from .aggregator import Aggregator
from .file_hasher import FileHasher, HashWorkerPool
from .tree_pipeline import TreePipeline
from .tree_scanner import TreeScanner

__all__ = ["Aggregator", "FileHasher", "HashWorkerPool", "TreePipeline", "TreeScanner"]
