"""SyncOrchestrator for coordinating a complete sync run.

This module provides the SyncOrchestrator class that runs one
TreePipeline per tree concurrently, compares the resulting snapshots, and
hands the differences to a CopyWorkerPool (or a DryRunSink).

Example:
    from treesync.config import SyncConfig
    from treesync.orchestration import SyncOrchestrator
    from pathlib import Path

    orchestrator = SyncOrchestrator(
        SyncConfig(source=Path("/data/src"), destination=Path("/data/dst"))
    )
    summary = orchestrator.run()
    print(summary.files_copied, summary.files_failed)
"""

import logging
import sys
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from contextlib import nullcontext
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from treesync.comparison import Comparator
from treesync.config import SyncConfig
from treesync.models import (
    CompareMode,
    CopyOutcome,
    ErrorRecord,
    ErrorStage,
    Snapshot,
    SyncAction,
    SyncSummary,
    TreeRole,
)
from treesync.operations import CopyWorkerPool, DryRunSink
from treesync.orchestration.sync_logger import SyncLogger
from treesync.pipeline import ErrorSink
from treesync.scanning import TreePipeline, TreeScanner
from treesync.ui import SyncTUI

logger = logging.getLogger(__name__)


class SyncOrchestrator:
    """Orchestrates scanning, comparison and copying for one sync run.

    The run proceeds in three phases:
    1. Scan - source and destination pipelines run concurrently; each
       produces a Snapshot.
    2. Compare - the Comparator turns the two snapshots into SyncActions.
    3. Copy - a CopyWorkerPool (or DryRunSink in dry-run mode) applies
       the actions.

    A run-scoped cancellation signal (set by ``cancel()``, Ctrl+C, or the
    configured deadline) stops scanning and copying early. If it fires
    before both snapshots are complete, nothing is copied: a partial
    snapshot cannot be trusted to drive copies.

    Attributes:
        config: The SyncConfig for this orchestrator.
        verbose: Whether verbose messages are printed.
    """

    def __init__(
        self,
        config: SyncConfig,
        tui: Optional[SyncTUI] = None,
        show_progress: bool = True,
    ) -> None:
        """Initialize the SyncOrchestrator.

        Args:
            config: Run configuration.
            tui: Optional SyncTUI used for all console output.
            show_progress: If True, display a progress bar while copying.

        Raises:
            ValueError: If the configuration is invalid.
        """
        config.validate()
        self.config = config
        self.verbose = config.verbose
        self._tui = tui or SyncTUI()
        self._show_progress = show_progress
        self._cancel_event = threading.Event()
        self._interrupted = False
        self._timed_out = False

    def cancel(self) -> None:
        """Ask the current run to stop. Safe to call from any thread."""
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    @property
    def interrupted(self) -> bool:
        """True if the last run or scan was stopped with Ctrl+C."""
        return self._interrupted

    def run(self) -> SyncSummary:
        """Execute a full sync run.

        Returns:
            SyncSummary with counts, actions and every non-fatal error.

        Raises:
            RootResolutionError: If either root is missing, not a directory,
                or unreadable. Raised before any scanning starts.
            ValueError: If no destination is configured.
        """
        if self.config.destination is None:
            raise ValueError("A destination directory is required for sync")

        source_root = TreeScanner.resolve_root(self.config.source)
        destination_root = TreeScanner.resolve_root(self.config.destination)

        self._reset()
        start_time = time.time()
        self._tui.display_banner(source_root, destination_root, self.config.dry_run)

        sync_logger = self._open_logger()
        timer = self._start_deadline()
        try:
            with sync_logger if sync_logger is not None else nullcontext():
                summary = self._execute(source_root, destination_root, sync_logger, start_time)
        finally:
            if timer is not None:
                timer.cancel()

        if self.verbose and sync_logger is not None:
            self._tui.console.print(f"[dim]Log file: {sync_logger.get_log_path()}[/dim]")
        return summary

    def scan(self, root: Optional[Path] = None) -> Tuple[Snapshot, List[ErrorRecord]]:
        """Build a Snapshot of a single tree without comparing or copying.

        Args:
            root: Tree to scan. Defaults to the configured source.

        Returns:
            Tuple of (snapshot, errors).

        Raises:
            RootResolutionError: If the root is invalid.
        """
        resolved = TreeScanner.resolve_root(root if root is not None else self.config.source)
        self._reset()
        error_sink = ErrorSink()
        pipeline = self._make_pipeline(resolved, TreeRole.SOURCE, error_sink)

        timer = self._start_deadline()
        try:
            with ThreadPoolExecutor(max_workers=1, thread_name_prefix="treesync-scan") as executor:
                snapshot = self._wait(executor.submit(pipeline.run))
        finally:
            if timer is not None:
                timer.cancel()

        return snapshot, error_sink.drain()

    def _execute(
        self,
        source_root: Path,
        destination_root: Path,
        sync_logger: Optional[SyncLogger],
        start_time: float,
    ) -> SyncSummary:
        """Run the scan, compare and copy phases."""
        error_sink = ErrorSink()

        if sync_logger is not None:
            sync_logger.log_header(source_root, destination_root)

        # Phase 1: Scan both trees concurrently
        source_snapshot, destination_snapshot = self._build_snapshots(
            source_root, destination_root, error_sink
        )

        if self.cancelled:
            self._emit("Run cancelled during scan; no files were compared or copied.")
            summary = self._summarize(
                start_time, error_sink, source_snapshot, destination_snapshot, [], None
            )
            self._report(summary, sync_logger)
            return summary

        if sync_logger is not None:
            sync_logger.log_scan_phase(source_snapshot, destination_snapshot)
        if self.verbose:
            self._tui.display_scan_summary(source_snapshot, destination_snapshot)

        # Phase 2: Compare
        comparator = Comparator(self.config.compare_mode, on_event=self._event_callback())
        actions = comparator.compare(source_snapshot, destination_snapshot)
        if sync_logger is not None:
            sync_logger.log_plan(actions)

        # Phase 3: Copy (or record)
        outcome = self._apply(actions, source_root, destination_root, error_sink)
        if sync_logger is not None:
            sync_logger.log_copy_phase(outcome)
        if outcome.dry_run:
            self._tui.display_manifest(outcome.manifest)

        summary = self._summarize(
            start_time, error_sink, source_snapshot, destination_snapshot, actions, outcome
        )
        self._report(summary, sync_logger)
        return summary

    def _build_snapshots(
        self, source_root: Path, destination_root: Path, error_sink: ErrorSink
    ) -> Tuple[Snapshot, Snapshot]:
        """Run both tree pipelines concurrently and wait for both snapshots."""
        pipelines = [
            self._make_pipeline(source_root, TreeRole.SOURCE, error_sink),
            self._make_pipeline(destination_root, TreeRole.DESTINATION, error_sink),
        ]
        self._emit(f"Scanning source and destination with {self.config.hash_workers} hash workers each")

        snapshots: List[Snapshot] = []
        failure: Optional[BaseException] = None
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="treesync-tree") as executor:
            futures = [executor.submit(pipeline.run) for pipeline in pipelines]
            for future in futures:
                try:
                    snapshots.append(self._wait(future))
                except Exception as exc:
                    # Stop the other tree so the executor can shut down
                    self._cancel_event.set()
                    if failure is None:
                        failure = exc

        if failure is not None:
            raise failure
        return snapshots[0], snapshots[1]

    def _apply(
        self,
        actions: List[SyncAction],
        source_root: Path,
        destination_root: Path,
        error_sink: ErrorSink,
    ) -> CopyOutcome:
        """Hand actions to the dry-run sink or the copy worker pool."""
        if self.config.dry_run:
            return DryRunSink(on_event=self._event_callback()).run(actions)

        if not actions:
            return CopyOutcome()

        progress = None
        callback: Optional[Callable[[int], None]] = None
        if self._show_progress:
            progress, callback = self._tui.create_progress_callback(len(actions))

        pool = CopyWorkerPool(
            source_root,
            destination_root,
            error_sink,
            worker_count=self.config.copy_workers,
            buffer_size=self.config.buffer_size,
            cancel_event=self._cancel_event,
            on_event=self._event_callback(),
            progress_callback=callback,
        )
        self._emit(f"Copying {len(actions)} file(s) with {self.config.copy_workers} copy workers")

        with ThreadPoolExecutor(max_workers=1, thread_name_prefix="treesync-copy") as executor:
            with progress if progress is not None else nullcontext():
                return self._wait(executor.submit(pool.run, actions))

    def _summarize(
        self,
        start_time: float,
        error_sink: ErrorSink,
        source_snapshot: Snapshot,
        destination_snapshot: Snapshot,
        actions: List[SyncAction],
        outcome: Optional[CopyOutcome],
    ) -> SyncSummary:
        """Aggregate counts and errors into a SyncSummary."""
        errors = error_sink.drain()
        compared = outcome is not None

        # Source files left without a good destination copy
        failed_paths = {
            error.path for error in errors
            if error.tree is TreeRole.SOURCE and error.stage in (ErrorStage.SCAN, ErrorStage.HASH)
        }
        if compared:
            failed_paths.update(action.relative_path for action in outcome.failed)
            failed_paths.difference_update(action.relative_path for action in outcome.copied)

        return SyncSummary(
            dry_run=self.config.dry_run,
            compare_mode=self.config.compare_mode,
            source_files=len(source_snapshot),
            destination_files=len(destination_snapshot),
            files_copied=len(outcome.copied) if compared else 0,
            files_unchanged=len(source_snapshot) - len(actions) if compared else 0,
            files_failed=len(failed_paths),
            files_pending=len(outcome.pending) if compared else 0,
            actions=actions,
            errors=errors,
            duration_seconds=time.time() - start_time,
            cancelled=self.cancelled,
            interrupted=self._interrupted,
            timed_out=self._timed_out,
        )

    def _report(self, summary: SyncSummary, sync_logger: Optional[SyncLogger]) -> None:
        self._tui.display_sync_summary(summary)
        if sync_logger is not None:
            sync_logger.log_summary(summary)

    def _make_pipeline(self, root: Path, tree: TreeRole, error_sink: ErrorSink) -> TreePipeline:
        return TreePipeline(
            root,
            tree,
            error_sink,
            hash_workers=self.config.hash_workers,
            hash_contents=self.config.compare_mode is CompareMode.DIGEST,
            buffer_size=self.config.buffer_size,
            cancel_event=self._cancel_event,
            on_event=self._event_callback(),
        )

    def _wait(self, future: Future):
        """Wait for a background phase, turning Ctrl+C into cancellation.

        The phase is never abandoned: after an interrupt the cancellation
        signal is set and the wait resumes until the workers have drained.
        """
        while True:
            try:
                return future.result()
            except KeyboardInterrupt:
                if not self._interrupted:
                    self._tui.console.print(
                        "\n[yellow]Interrupt received; finishing in-flight work...[/yellow]"
                    )
                self._interrupted = True
                self._cancel_event.set()

    def _start_deadline(self) -> Optional[threading.Timer]:
        if self.config.timeout is None:
            return None
        timer = threading.Timer(self.config.timeout, self._on_deadline)
        timer.daemon = True
        timer.start()
        return timer

    def _on_deadline(self) -> None:
        logger.warning("Deadline of %ss exceeded; cancelling run", self.config.timeout)
        self._timed_out = True
        self._cancel_event.set()

    def _open_logger(self) -> Optional[SyncLogger]:
        if self.config.log_file is None:
            return None
        try:
            return SyncLogger(log_file_path=self.config.log_file, dry_run=self.config.dry_run)
        except OSError as e:
            print(f"Warning: Could not create log file: {e}", file=sys.stderr)
            return None

    def _reset(self) -> None:
        self._cancel_event = threading.Event()
        self._interrupted = False
        self._timed_out = False

    def _event_callback(self) -> Optional[Callable[[str], None]]:
        return self._tui.verbose_message if self.verbose else None

    def _emit(self, message: str) -> None:
        logger.info(message)
        if self.verbose:
            self._tui.verbose_message(message)
