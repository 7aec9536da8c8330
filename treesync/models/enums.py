"""
Enums shared by the sync pipeline.

- TreeRole: which side of the sync a record belongs to
- HashState: whether a record's content digest is known
- ErrorStage: pipeline stage in which a per-file error occurred
- CompareMode: comparison key used to decide whether a file changed
"""

from enum import Enum


class TreeRole(Enum):
    """Identifies the tree that owns a FileRecord."""
    SOURCE = "source"
    DESTINATION = "destination"


class HashState(Enum):
    """Digest state of a FileRecord."""
    PENDING = "pending"      # Not hashed (yet, or not requested in size mode)
    HASHED = "hashed"        # Digest computed successfully
    FAILED = "failed"        # Read failed mid-stream; true content unknown


class ErrorStage(Enum):
    """Pipeline stage that produced an ErrorRecord."""
    SCAN = "scan"            # Directory traversal / stat failure
    HASH = "hash"            # Read failure while computing a digest
    COPY = "copy"            # Failure while writing into the destination


class CompareMode(Enum):
    """Comparison key used by the Comparator.

    DIGEST catches same-size edits. SIZE skips hashing entirely and is
    fast but misses files whose size did not change.
    """
    DIGEST = "digest"
    SIZE = "size"
