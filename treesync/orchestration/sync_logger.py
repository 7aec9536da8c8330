"""SyncLogger for writing a structured log of a sync run.

This module provides the SyncLogger class that writes a plain-text report with
sections for the header, scan phase, plan, copy phase and summary.
"""

import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional, TextIO

from treesync.models import CopyOutcome, Snapshot, SyncAction, SyncSummary, display_path


class SyncLogger:
    """Logger for sync runs with a structured output format.

    Usage:
        with SyncLogger(log_path, dry_run=True) as logger:
            logger.log_header(source, destination)
            logger.log_scan_phase(source_snapshot, destination_snapshot)
            logger.log_plan(actions)
            logger.log_copy_phase(outcome)
            logger.log_summary(summary)

    Attributes:
        SEPARATOR: The 65-character separator line used between sections.
    """

    SEPARATOR = "=" * 65

    def __init__(
        self,
        log_file_path: Path,
        dry_run: bool = False,
    ) -> None:
        """Initialize the SyncLogger.

        Args:
            log_file_path: Path of the log file to create or overwrite.
            dry_run: Whether this is a dry run (no actual changes made).

        Raises:
            OSError: If the log file path is not writable.
        """
        self._dry_run = dry_run
        self._start_timestamp = datetime.now()
        self._file_handle: Optional[TextIO] = None

        self._log_file_path = Path(log_file_path)

        self._validate_path()

    def _validate_path(self) -> None:
        """Validate that the log file path is writable.

        Raises:
            OSError: If the parent directory doesn't exist or is not writable.
        """
        parent = self._log_file_path.parent
        if not parent.exists():
            raise OSError(f"Parent directory does not exist: {parent}")
        if not parent.is_dir():
            raise OSError(f"Parent path is not a directory: {parent}")
        try:
            test_file = parent / f".treesync_test_{id(self)}"
            test_file.touch()
            test_file.unlink()
        except PermissionError:
            raise OSError(f"Permission denied: cannot write to {parent}")

    def __enter__(self) -> "SyncLogger":
        """Open the log file for writing.

        Raises:
            OSError: If the file cannot be opened for writing.
        """
        try:
            self._file_handle = open(self._log_file_path, "w", encoding="utf-8", errors="backslashreplace")
        except OSError as e:
            raise OSError(f"Cannot open log file for writing: {e}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._file_handle is not None:
            try:
                self._file_handle.close()
            except OSError as e:
                print(f"Warning: Error closing log file: {e}", file=sys.stderr)
            finally:
                self._file_handle = None

    def get_log_path(self) -> Path:
        return self._log_file_path

    def log_header(self, source: Path, destination: Path) -> None:
        """Write the title, timestamp, mode and roots."""
        self._write_separator()
        self._write_line("treesync - Sync Log")
        self._write_separator()
        self._write_line(f"Timestamp: {self._format_timestamp(self._start_timestamp)}")
        mode = "DRY RUN" if self._dry_run else "LIVE SYNC"
        self._write_line(f"Mode: {mode}")
        self._write_line(f"Source: {display_path(str(source))}")
        self._write_line(f"Destination: {display_path(str(destination))}")
        self._write_line("")

    def log_scan_phase(self, source: Snapshot, destination: Snapshot) -> None:
        """Write per-tree scan statistics.

        Args:
            source: Snapshot of the source tree.
            destination: Snapshot of the destination tree.
        """
        self._write_separator()
        self._write_line("SCAN PHASE")
        self._write_separator()
        for snapshot in (source, destination):
            self._write_line(f"{snapshot.tree.value.capitalize()} tree:")
            self._write_line(f"Files: {len(snapshot):,}", indent=2)
            self._write_line(f"Total size: {snapshot.total_size:,} bytes", indent=2)
            unhashed = snapshot.unhashed_paths()
            if unhashed:
                self._write_line(f"Unhashed (forced copy): {len(unhashed)}", indent=2)
                for path in unhashed:
                    self._write_line(f"- {display_path(path)}", indent=4)
        self._write_line("")

    def log_plan(self, actions: List[SyncAction]) -> None:
        """Write the list of files scheduled for copy.

        Args:
            actions: Actions produced by the comparator.
        """
        self._write_separator()
        self._write_line("PLAN")
        self._write_separator()
        verb = "Would copy" if self._dry_run else "To copy"
        self._write_line(f"{verb}: {len(actions)} file(s)")
        for action in actions:
            self._write_line(f"- {display_path(action.relative_path)} ({action.size:,} bytes)", indent=2)
        self._write_line("")

    def log_copy_phase(self, outcome: CopyOutcome) -> None:
        """Write copy results. Nothing is written for a dry run.

        Args:
            outcome: Outcome returned by the copy worker pool.
        """
        if outcome.dry_run:
            return

        now = datetime.now()
        self._write_separator()
        self._write_line("COPY PHASE")
        self._write_separator()
        self._write_line(f"[{self._format_timestamp(now)}] Copy finished")
        self._write_line(f"Files copied: {len(outcome.copied):,}", indent=2)
        self._write_line(f"Files failed: {len(outcome.failed):,}", indent=2)
        for action in sorted(outcome.failed, key=lambda a: a.relative_path):
            self._write_line(f"! {display_path(action.relative_path)}", indent=4)
        if outcome.pending:
            self._write_line(f"Files not attempted: {len(outcome.pending):,}", indent=2)
        self._write_line("")

    def log_summary(self, summary: SyncSummary) -> None:
        """Write the summary section.

        Args:
            summary: The SyncSummary object with run totals.
        """
        self._write_separator()
        self._write_line("SUMMARY")
        self._write_separator()
        self._write_line(f"Compare mode: {summary.compare_mode.value}")
        if summary.dry_run:
            self._write_line(f"Files to copy: {len(summary.actions):,}")
        else:
            self._write_line(f"Files copied: {summary.files_copied:,}")
        self._write_line(f"Files unchanged: {summary.files_unchanged:,}")
        self._write_line(f"Files failed: {summary.files_failed:,}")
        if summary.files_pending:
            self._write_line(f"Files not attempted: {summary.files_pending:,}")
        if summary.timed_out:
            self._write_line("Status: DEADLINE EXCEEDED")
        elif summary.interrupted:
            self._write_line("Status: INTERRUPTED")
        elif summary.cancelled:
            self._write_line("Status: CANCELLED")
        elif summary.errors:
            self._write_line("Status: COMPLETED WITH ERRORS")
        else:
            self._write_line("Status: OK")

        if summary.errors:
            self._write_line(f"Total errors: {len(summary.errors)}")
            self._write_line("Errors:")
            for error in summary.errors:
                self._write_line(f"- {error}", indent=2)

        self._write_line(f"Duration: {self._format_duration(summary.duration_seconds)}")
        self._write_line("")
        self._write_line(f"Log file: {self._log_file_path}")
        self._write_separator()

    def _format_duration(self, seconds: float) -> str:
        """Format duration in human-readable format.

        Args:
            seconds: Duration in seconds.

        Returns:
            Formatted string like "5m 23s", "1h 5m 30s", or "45s".
        """
        total_seconds = int(seconds)

        if total_seconds < 60:
            return f"{total_seconds}s"

        hours = total_seconds // 3600
        minutes = (total_seconds % 3600) // 60
        secs = total_seconds % 60

        if hours > 0:
            return f"{hours}h {minutes}m {secs}s"
        else:
            return f"{minutes}m {secs}s"

    def _format_timestamp(self, dt: datetime) -> str:
        return dt.strftime("%Y-%m-%d %H:%M:%S")

    def _write_separator(self) -> None:
        self._write_line(self.SEPARATOR)

    def _write_line(self, text: str, indent: int = 0) -> None:
        """Write a line to the log file with optional indentation.

        Args:
            text: The text to write.
            indent: Number of spaces to indent the line.
        """
        if self._file_handle is None:
            print(
                f"Warning: Attempted to write to closed log file: {text}",
                file=sys.stderr,
            )
            return

        try:
            indented_text = " " * indent + text
            self._file_handle.write(indented_text + "\n")
        except OSError as e:
            print(f"Warning: Error writing to log file: {e}", file=sys.stderr)
