"""Run configuration for treesync.

SyncConfig collects every knob the CLI exposes so the orchestrator can be
driven identically from the command line and from tests.

Example:
    >>> from treesync.config import SyncConfig
    >>> config = SyncConfig(source=Path("/data/src"), destination=Path("/data/dst"))
    >>> config.validate()
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from treesync.models import CompareMode

# Hashing is I/O bound, so oversubscribe the CPU count
DEFAULT_HASH_WORKERS = (os.cpu_count() or 1) * 4
DEFAULT_COPY_WORKERS = 10

# Queue capacity per worker; bounds memory regardless of tree size
QUEUE_CAPACITY_FACTOR = 4

# Buffer size for streaming reads and copies (64KB)
BUFFER_SIZE = 64 * 1024


def queue_capacity(worker_count: int) -> int:
    """Bounded queue size for a pool of ``worker_count`` workers."""
    return max(1, worker_count) * QUEUE_CAPACITY_FACTOR


@dataclass
class SyncConfig:
    """Configuration for one sync run."""
    source: Path
    destination: Optional[Path] = None
    dry_run: bool = False
    verbose: bool = False
    hash_workers: int = DEFAULT_HASH_WORKERS
    copy_workers: int = DEFAULT_COPY_WORKERS
    compare_mode: CompareMode = CompareMode.DIGEST
    timeout: Optional[float] = None   # Seconds; None means no deadline
    log_file: Optional[Path] = None
    buffer_size: int = BUFFER_SIZE

    def validate(self) -> None:
        """Check numeric settings.

        Raises:
            ValueError: If a worker count or buffer size is below 1, or the
                timeout is not positive.
        """
        if self.hash_workers < 1:
            raise ValueError(f"hash_workers must be at least 1, got {self.hash_workers}")
        if self.copy_workers < 1:
            raise ValueError(f"copy_workers must be at least 1, got {self.copy_workers}")
        if self.buffer_size < 1:
            raise ValueError(f"buffer_size must be at least 1, got {self.buffer_size}")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")
