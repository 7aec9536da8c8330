"""Workflow orchestration package for treesync.

This package contains orchestration components for sync runs:
- SyncLogger: Structured log file for a run.
- SyncOrchestrator: Central coordinator for scan, compare and copy phases.
"""

from treesync.orchestration.sync_logger import SyncLogger
from treesync.orchestration.sync_orchestrator import SyncOrchestrator

__all__ = ["SyncLogger", "SyncOrchestrator"]
