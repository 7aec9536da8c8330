"""Pytest fixtures for treesync tests."""

import io
import os
import platform
import tempfile
from pathlib import Path
from typing import Dict, Generator, Optional, Union

import pytest
from rich.console import Console

from treesync.config import SyncConfig
from treesync.models import FileRecord, Snapshot, TreeRole
from treesync.pipeline import ErrorSink
from treesync.ui import SyncTUI


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests of a single component")
    config.addinivalue_line("markers", "integration: multi-threaded end-to-end tests")


def build_tree(root: Path, files: Dict[str, Union[str, bytes]]) -> Path:
    """Create files below ``root`` from a mapping of relative path to content.

    Args:
        root: Directory to populate; created if missing.
        files: Relative POSIX path -> text or bytes content.

    Returns:
        The root path.
    """
    root.mkdir(parents=True, exist_ok=True)
    for relative_path, content in files.items():
        path = root / relative_path
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content)
    return root


def read_tree(root: Path) -> Dict[str, bytes]:
    """Return every regular file below ``root`` as relative path -> bytes."""
    contents: Dict[str, bytes] = {}
    for dirpath, _, filenames in os.walk(root):
        for filename in filenames:
            path = Path(dirpath) / filename
            contents[path.relative_to(root).as_posix()] = path.read_bytes()
    return contents


def make_record(
    relative_path: str,
    size: int = 10,
    digest: Optional[str] = None,
    tree: TreeRole = TreeRole.SOURCE,
    mode: int = 0o644,
) -> FileRecord:
    """Build a FileRecord, hashed if a digest is given."""
    record = FileRecord(relative_path=relative_path, size=size, mode=mode, tree=tree)
    if digest is not None:
        record = record.with_digest(digest)
    return record


def make_snapshot(tree: TreeRole, *records: FileRecord) -> Snapshot:
    return Snapshot(tree, {record.relative_path: record for record in records})


def skip_if_root():
    """Permission bits do not stop root, so permission tests are skipped."""
    return pytest.mark.skipif(
        platform.system() == "Windows" or (hasattr(os, "geteuid") and os.geteuid() == 0),
        reason="Requires POSIX permissions enforced for a non-root user",
    )


def write_undecodable_file(root: Path, name: bytes = b"bad\xff.txt", content: bytes = b"raw") -> str:
    """Create a file whose name is not valid UTF-8 and return its str name.

    Skips the calling test where the filesystem rejects such names.
    """
    if platform.system() == "Windows":
        pytest.skip("File names are always valid Unicode on Windows")
    try:
        with open(os.path.join(os.fsencode(root), name), "wb") as f:
            f.write(content)
    except OSError as e:
        pytest.skip(f"Filesystem rejects non-UTF-8 names: {e}")
    return os.fsdecode(name)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for isolated test environments.

    Yields:
        Path to the temporary directory.
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def source_dir(temp_dir: Path) -> Path:
    path = temp_dir / "source"
    path.mkdir()
    return path


@pytest.fixture
def destination_dir(temp_dir: Path) -> Path:
    path = temp_dir / "destination"
    path.mkdir()
    return path


@pytest.fixture
def nested_source(source_dir: Path) -> Path:
    """Create a nested source tree.

    Creates:
        source/
        ├── top.txt (100 bytes)
        ├── docs/
        │   ├── readme.md (200 bytes)
        │   └── guide/
        │       └── intro.md (300 bytes)
        └── data/
            └── values.bin (256 bytes, every byte value)
    """
    return build_tree(
        source_dir,
        {
            "top.txt": b"t" * 100,
            "docs/readme.md": b"r" * 200,
            "docs/guide/intro.md": b"i" * 300,
            "data/values.bin": bytes(range(256)),
        },
    )


@pytest.fixture
def many_files_source(source_dir: Path) -> Path:
    """Create 120 small files spread over 6 directories."""
    files = {
        f"dir{index % 6}/file{index:03d}.txt": f"content of file {index}\n" * (index % 7 + 1)
        for index in range(120)
    }
    return build_tree(source_dir, files)


@pytest.fixture
def error_sink() -> ErrorSink:
    return ErrorSink()


@pytest.fixture
def captured_console() -> Console:
    """Rich Console writing to an in-memory buffer."""
    return Console(file=io.StringIO(), width=120, force_terminal=False, color_system=None)


@pytest.fixture
def quiet_tui(captured_console: Console) -> SyncTUI:
    return SyncTUI(console=captured_console)


@pytest.fixture
def make_config(source_dir: Path, destination_dir: Path):
    """Factory for SyncConfig pointing at the temp source and destination."""

    def factory(**overrides) -> SyncConfig:
        values = dict(source=source_dir, destination=destination_dir, hash_workers=4, copy_workers=4)
        values.update(overrides)
        return SyncConfig(**values)

    return factory
