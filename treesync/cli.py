"""
treesync - CLI Interface.

A command-line interface for one-way synchronization of a source directory
tree into a destination tree. Only new or changed files are copied; files
that exist only in the destination are left alone.

Usage Examples:
    # Sync a tree
    treesync sync /path/to/source /path/to/dest

    # Preview what would be copied
    treesync sync /path/to/source /path/to/dest --dry-run

    # Fast, size-only comparison with more copy workers
    treesync sync /path/to/source /path/to/dest --compare size --copy-workers 32

    # Verbose output, a structured log file and a five minute deadline
    treesync sync /path/to/source /path/to/dest --verbose --log-file sync.log --timeout 300

    # Inspect a single tree
    treesync scan /path/to/source
"""

import os
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from treesync import __version__
from treesync.config import DEFAULT_COPY_WORKERS, DEFAULT_HASH_WORKERS, SyncConfig
from treesync.models import CompareMode, SyncSummary
from treesync.orchestration import SyncOrchestrator
from treesync.ui import SyncTUI

# Initialize Typer app
app = typer.Typer(
    name="treesync",
    help="treesync - Fast one-way directory tree synchronization.",
    add_completion=False,
    no_args_is_help=True,
)

# Rich console for consistent output formatting
console = Console()


def version_callback(value: bool) -> None:
    """Display version information and exit."""
    if value:
        console.print(f"treesync v{__version__}")
        raise typer.Exit()


def validate_root(path: Path, label: str) -> None:
    """
    Validate that a tree root exists and is readable.

    Args:
        path: Path to validate.
        label: "Source" or "Destination", used in messages.

    Raises:
        typer.Exit: If validation fails with descriptive error message.
    """
    if not path.exists():
        console.print(f"[red]Error:[/red] {label} path does not exist: {path}")
        raise typer.Exit(1)

    if not path.is_dir():
        console.print(f"[red]Error:[/red] {label} path is not a directory: {path}")
        raise typer.Exit(1)

    if not os.access(path, os.R_OK):
        console.print(f"[red]Error:[/red] Permission denied - cannot read: {path}")
        raise typer.Exit(1)


def validate_timeout(value: Optional[float]) -> Optional[float]:
    """
    Validate the deadline is positive when given.

    Raises:
        typer.BadParameter: If value is zero or negative.
    """
    if value is not None and value <= 0:
        raise typer.BadParameter("Timeout must be greater than 0 seconds")
    return value


def exit_code_for(summary: SyncSummary) -> int:
    """Map a run summary to the process exit status."""
    if summary.interrupted:
        return 130
    if summary.timed_out or summary.errors:
        return 1
    return 0


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """treesync - Fast one-way directory tree synchronization."""
    pass


@app.command()
def sync(
    source: Path = typer.Argument(
        ...,
        help="Source directory to sync from.",
        exists=False,  # We do our own validation
    ),
    destination: Path = typer.Argument(
        ...,
        help="Destination directory to sync to.",
        exists=False,
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        "-n",
        help="Preview changes without copying.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-V",
        help="Output per-file progress.",
    ),
    hash_workers: int = typer.Option(
        DEFAULT_HASH_WORKERS,
        "--hash-workers",
        "-w",
        min=1,
        help="Number of concurrent hashing workers per tree.",
    ),
    copy_workers: int = typer.Option(
        DEFAULT_COPY_WORKERS,
        "--copy-workers",
        "-c",
        min=1,
        help="Number of concurrent copy workers.",
    ),
    compare: CompareMode = typer.Option(
        CompareMode.DIGEST,
        "--compare",
        case_sensitive=False,
        help="Comparison key: 'digest' (exact) or 'size' (fast, misses same-size edits).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        "-t",
        callback=validate_timeout,
        help="Cancel the run after this many seconds.",
    ),
    log_file: Optional[Path] = typer.Option(
        None,
        "--log-file",
        "-l",
        help="Path for log file output.",
    ),
) -> None:
    """
    Synchronize SOURCE into DESTINATION.

    Scans both trees concurrently, compares them, and copies every source
    file that is missing from or different in the destination. Exits
    non-zero if any file failed.
    """
    validate_root(source, "Source")
    validate_root(destination, "Destination")

    # Live sync also needs write access to the destination
    if not dry_run and not os.access(destination, os.W_OK):
        console.print(
            f"[red]Error:[/red] Permission denied - cannot write to: {destination}"
        )
        console.print(
            "[dim]Tip: Use --dry-run to preview changes without write access.[/dim]"
        )
        raise typer.Exit(1)

    config = SyncConfig(
        source=source,
        destination=destination,
        dry_run=dry_run,
        verbose=verbose,
        hash_workers=hash_workers,
        copy_workers=copy_workers,
        compare_mode=compare,
        timeout=timeout,
        log_file=log_file,
    )

    if compare is CompareMode.SIZE:
        console.print(
            "[yellow]Size-only comparison:[/yellow] files edited without a size change will not be copied."
        )

    try:
        orchestrator = SyncOrchestrator(config, tui=SyncTUI(console))
        summary = orchestrator.run()

    except KeyboardInterrupt:
        console.print("\n[yellow]Sync interrupted by user.[/yellow]")
        raise typer.Exit(130)

    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    except OSError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if summary.errors:
        console.print(
            f"\n[yellow]Completed with {len(summary.errors)} error(s); "
            f"{summary.files_failed} file(s) failed.[/yellow]"
        )

    if log_file and not verbose:
        console.print(f"[dim]Log written to: {log_file}[/dim]")

    code = exit_code_for(summary)
    if code:
        raise typer.Exit(code)


@app.command()
def scan(
    root: Path = typer.Argument(
        ...,
        help="Directory tree to scan.",
        exists=False,
    ),
    hash_workers: int = typer.Option(
        DEFAULT_HASH_WORKERS,
        "--hash-workers",
        "-w",
        min=1,
        help="Number of concurrent hashing workers.",
    ),
    compare: CompareMode = typer.Option(
        CompareMode.DIGEST,
        "--compare",
        case_sensitive=False,
        help="'digest' hashes every file; 'size' only collects sizes.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-V",
        help="Output per-file progress.",
    ),
) -> None:
    """
    Scan a single tree and report its file count and size (read-only).
    """
    validate_root(root, "Root")

    config = SyncConfig(
        source=root,
        verbose=verbose,
        hash_workers=hash_workers,
        compare_mode=compare,
    )
    tui = SyncTUI(console)

    try:
        orchestrator = SyncOrchestrator(config, tui=tui)
        snapshot, errors = orchestrator.scan()

    except KeyboardInterrupt:
        console.print("\n[yellow]Scan interrupted by user.[/yellow]")
        raise typer.Exit(130)

    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    tui.display_scan_summary(snapshot)

    if orchestrator.interrupted:
        console.print("[yellow]Scan interrupted by user; results are partial.[/yellow]")
        raise typer.Exit(130)

    if errors:
        console.print(f"\n[yellow]Scan completed with {len(errors)} error(s).[/yellow]")
        for error in errors:
            console.print(f"  - {error}", markup=False)
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
