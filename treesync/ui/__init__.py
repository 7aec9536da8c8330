"""Terminal UI package for treesync."""

from .sync_tui import SyncTUI

__all__ = ["SyncTUI"]
