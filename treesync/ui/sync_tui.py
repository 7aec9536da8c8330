"""Terminal output for treesync.

This module provides the SyncTUI class, a Rich-based renderer for the banner,
snapshot summaries, dry-run manifests, copy progress and the final run
summary.

Example:
    from treesync.ui import SyncTUI

    tui = SyncTUI()
    tui.display_banner(source, destination, dry_run=False)
    tui.display_scan_summary(source_snapshot, destination_snapshot)
    tui.display_sync_summary(summary)
"""

from pathlib import Path
from typing import Callable, List, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    Progress,
    TaskProgressColumn,
    TextColumn,
    TimeRemainingColumn,
)
from rich.table import Table

from treesync.models import ErrorRecord, Snapshot, SyncAction, SyncSummary, display_path


class SyncTUI:
    """Rich-based terminal renderer for sync runs.

    Args:
        console: Optional Rich Console instance for output. If None, creates
            a new Console. Pass a custom Console for testing (e.g., with
            StringIO file for output capture).

    Attributes:
        console: The Rich Console instance used for all output.
    """

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()

    def display_banner(self, source: Path, destination: Optional[Path], dry_run: bool) -> None:
        """Display the start-up banner with resolved roots and mode.

        Args:
            source: Resolved source root.
            destination: Resolved destination root, or None for a scan.
            dry_run: If True, shows the DRY RUN mode indicator.
        """
        mode = "[yellow]DRY RUN[/yellow]" if dry_run else "[green]LIVE SYNC[/green]"
        lines = [f"Source:      {escape(display_path(str(source)))}"]
        if destination is not None:
            lines.append(f"Destination: {escape(display_path(str(destination)))}")
        lines.append(f"Mode:        {mode}")
        self.console.print(Panel("\n".join(lines), title="treesync", border_style="blue"))

    def display_scan_summary(self, source: Snapshot, destination: Optional[Snapshot] = None) -> None:
        """Display per-tree file counts and sizes.

        Args:
            source: Snapshot of the source tree.
            destination: Snapshot of the destination tree, if scanned.
        """
        table = Table(title="Scan Results")
        table.add_column("Tree", style="cyan", no_wrap=True)
        table.add_column("Files", justify="right")
        table.add_column("Size", justify="right")
        table.add_column("Unhashed", justify="right")

        for snapshot in (source, destination):
            if snapshot is None:
                continue
            unhashed = len(snapshot.unhashed_paths())
            table.add_row(
                snapshot.tree.value,
                f"{len(snapshot):,}",
                self._format_size(snapshot.total_size),
                f"[red]{unhashed}[/red]" if unhashed else "0",
            )

        self.console.print(table)

    def display_manifest(self, actions: List[SyncAction]) -> None:
        """Display the files a dry run would copy.

        Args:
            actions: Actions recorded by the dry-run sink.
        """
        if not actions:
            self.console.print("[green]Nothing to copy; destination is up to date.[/green]")
            return

        table = Table(title=f"Would copy {len(actions)} file(s)")
        table.add_column("Path", style="white")
        table.add_column("Size", justify="right")

        for action in actions:
            table.add_row(
                escape(self._truncate_name(display_path(action.relative_path), max_length=80)),
                self._format_size(action.size),
            )

        self.console.print(table)

    def create_progress_callback(self, total_files: int) -> tuple[Progress, Callable[[int], None]]:
        """Create a progress bar and callback for the copy phase.

        The caller owns the Progress lifecycle and must use it as a context
        manager around the copy. The callback takes the number of finished
        files and may be called from any worker thread.

        Args:
            total_files: Number of files scheduled for copy.

        Returns:
            tuple[Progress, Callable[[int], None]]: The progress bar and its
            update callback.
        """
        progress = Progress(
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            TimeRemainingColumn(),
            console=self.console,
        )
        task_id = progress.add_task("Copying files...", total=total_files)

        def callback(completed: int) -> None:
            progress.update(task_id, completed=completed)

        return progress, callback

    def verbose_message(self, message: str) -> None:
        """Print a verbose progress line. Safe to call from worker threads."""
        self.console.print(f"[dim]{escape(display_path(message))}[/dim]", highlight=False)

    def display_sync_summary(self, summary: SyncSummary) -> None:
        """Display final statistics for a run.

        Args:
            summary: SyncSummary returned by the orchestrator.
        """
        title = "Sync Summary"
        if summary.dry_run:
            title += " [yellow][DRY RUN][/yellow]"
        if summary.cancelled:
            title += " [red][CANCELLED][/red]"

        border = "yellow" if summary.dry_run else "green"
        if summary.errors or summary.cancelled:
            border = "red"
        self.console.print(Panel(title, border_style=border))

        table = Table(show_header=True, header_style="bold")
        table.add_column("Metric", style="cyan")
        table.add_column("Value", justify="right")

        table.add_row("Compare mode", summary.compare_mode.value)
        table.add_row("Source files", f"{summary.source_files:,}")
        table.add_row("Destination files", f"{summary.destination_files:,}")
        copied_label = "Files to copy" if summary.dry_run else "Files copied"
        copied_value = len(summary.actions) if summary.dry_run else summary.files_copied
        table.add_row(copied_label, f"{copied_value:,}")
        table.add_row("Files unchanged", f"{summary.files_unchanged:,}")
        table.add_row("Files failed", f"{summary.files_failed:,}")
        if summary.files_pending:
            table.add_row("Files not attempted", f"{summary.files_pending:,}")
        table.add_row("Duration", self._format_duration(summary.duration_seconds))

        self.console.print(table)

        if summary.timed_out:
            self.console.print("[red]Deadline exceeded; results are partial.[/red]")
        elif summary.interrupted:
            self.console.print("[yellow]Interrupted by user; results are partial.[/yellow]")

        if summary.errors:
            self._display_errors(summary.errors)

    def _display_errors(self, errors: List[ErrorRecord]) -> None:
        """Display error records in a separate panel.

        Args:
            errors: Errors to display; only the first ten are listed.
        """
        max_display = 10
        displayed_errors = errors[:max_display]
        remaining = len(errors) - max_display

        error_text = "\n".join(f"- {escape(str(e))}" for e in displayed_errors)
        if remaining > 0:
            error_text += f"\n\n... and {remaining} more errors"

        error_panel = Panel(
            error_text,
            title=f"Errors ({len(errors)})",
            border_style="red",
        )
        self.console.print(error_panel)

    def _format_size(self, bytes_size: int) -> str:
        """Convert bytes to human-readable format.

        Args:
            bytes_size: Size in bytes.

        Returns:
            Human-readable size string (e.g., "10.5 MB", "1.2 GB").
        """
        if bytes_size < 1024:
            return f"{bytes_size} B"
        elif bytes_size < 1024 * 1024:
            return f"{bytes_size / 1024:.1f} KB"
        elif bytes_size < 1024 * 1024 * 1024:
            return f"{bytes_size / (1024 * 1024):.1f} MB"
        else:
            return f"{bytes_size / (1024 * 1024 * 1024):.1f} GB"

    def _format_duration(self, seconds: float) -> str:
        if seconds < 0:
            seconds = 0
        minutes = int(seconds // 60)
        secs = seconds % 60
        if minutes:
            return f"{minutes}m {int(secs)}s"
        return f"{secs:.1f}s"

    def _truncate_name(self, name: str, max_length: int = 60) -> str:
        """Truncate long paths with a leading ellipsis, keeping the file name."""
        if len(name) > max_length:
            return "..." + name[-(max_length - 3):]
        return name
