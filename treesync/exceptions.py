"""Exception types raised by treesync.

Per-file problems never raise; they are recorded as ErrorRecord values in
the run's ErrorSink. Exceptions are reserved for conditions that stop a
run before it starts or misuse of the pipeline primitives.
"""


class TreeSyncError(Exception):
    """Base class for treesync errors."""


class RootResolutionError(TreeSyncError, ValueError):
    """A source or destination root is missing, not a directory, or unreadable."""

    def __init__(self, root, reason: str) -> None:
        self.root = root
        self.reason = reason
        super().__init__(f"{reason}: {root}")


class SinkClosedError(TreeSyncError):
    """An error was recorded after the ErrorSink was closed."""


class QueueClosedError(TreeSyncError):
    """An item was put on a ClosableQueue after it was closed."""
