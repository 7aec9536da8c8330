"""
Integration tests for end-to-end sync runs through SyncOrchestrator.

Tests cover:
- Syncing into an empty destination
- Mixed unchanged/changed files in digest and size modes
- Idempotence of a second run
- Destination-only files left untouched
- Concurrency invariance across worker counts
- Per-file failure isolation
- Unhashed destination records forcing a copy
- Non-UTF-8 file names with a run log
"""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from treesync.models import CompareMode, ErrorStage, TreeRole
from treesync.operations import CopyWorkerPool
from treesync.orchestration import SyncOrchestrator
from treesync.scanning import FileHasher

import sys
sys.path.insert(0, str(Path(__file__).parent.parent))
from conftest import build_tree, read_tree, skip_if_root, write_undecodable_file


def _run(make_config, quiet_tui, **overrides):
    return SyncOrchestrator(make_config(**overrides), tui=quiet_tui, show_progress=False).run()


@pytest.mark.integration
class TestBasicSync:
    """Tests for syncing into empty and populated destinations."""

    def test_sync_into_empty_destination(self, make_config, quiet_tui, nested_source: Path, destination_dir: Path):
        summary = _run(make_config, quiet_tui)

        assert read_tree(destination_dir) == read_tree(nested_source)
        assert summary.files_copied == 4
        assert summary.files_unchanged == 0
        assert summary.files_failed == 0
        assert summary.errors == []
        assert summary.source_files == 4
        assert summary.destination_files == 0
        assert not summary.cancelled

    def test_nested_directories_created(self, make_config, quiet_tui, nested_source: Path, destination_dir: Path):
        _run(make_config, quiet_tui)

        assert (destination_dir / "docs" / "guide").is_dir()
        assert (destination_dir / "data").is_dir()

    def test_second_run_copies_nothing(self, make_config, quiet_tui, nested_source: Path, destination_dir: Path):
        _run(make_config, quiet_tui)

        summary = _run(make_config, quiet_tui)

        assert summary.files_copied == 0
        assert summary.actions == []
        assert summary.files_unchanged == 4
        assert summary.destination_files == 4

    def test_destination_only_files_preserved(self, make_config, quiet_tui, source_dir: Path, destination_dir: Path):
        build_tree(source_dir, {"a.txt": "source"})
        build_tree(destination_dir, {"extra.txt": "keep me", "old/notes.md": "keep me too"})

        summary = _run(make_config, quiet_tui)

        assert (destination_dir / "extra.txt").read_text() == "keep me"
        assert (destination_dir / "old" / "notes.md").read_text() == "keep me too"
        assert (destination_dir / "a.txt").read_text() == "source"
        assert summary.files_copied == 1

    def test_empty_source(self, make_config, quiet_tui, source_dir: Path, destination_dir: Path):
        build_tree(destination_dir, {"a.txt": "x"})

        summary = _run(make_config, quiet_tui)

        assert summary.files_copied == 0
        assert summary.source_files == 0
        assert read_tree(destination_dir) == {"a.txt": b"x"}


@pytest.mark.integration
class TestCompareModes:
    """Source {a.txt, b.txt} against a destination where b.txt differs at the same size."""

    @pytest.fixture
    def mixed_trees(self, source_dir: Path, destination_dir: Path):
        build_tree(source_dir, {"a.txt": "aaaaa", "b.txt": "bbbbbbb"})
        build_tree(destination_dir, {"a.txt": "aaaaa", "b.txt": "BBBBBBB"})

    def test_digest_mode_copies_changed_file(self, mixed_trees, make_config, quiet_tui, destination_dir: Path):
        summary = _run(make_config, quiet_tui, compare_mode=CompareMode.DIGEST)

        assert [a.relative_path for a in summary.actions] == ["b.txt"]
        assert summary.files_copied == 1
        assert summary.files_unchanged == 1
        assert (destination_dir / "b.txt").read_text() == "bbbbbbb"

    def test_size_mode_misses_same_size_edit(self, mixed_trees, make_config, quiet_tui, destination_dir: Path):
        summary = _run(make_config, quiet_tui, compare_mode=CompareMode.SIZE)

        assert summary.actions == []
        assert summary.files_unchanged == 2
        assert (destination_dir / "b.txt").read_text() == "BBBBBBB"

    def test_size_mode_skips_hashing(self, mixed_trees, make_config, quiet_tui):
        with patch.object(FileHasher, "hash_file") as mock_hash:
            _run(make_config, quiet_tui, compare_mode=CompareMode.SIZE)

        mock_hash.assert_not_called()

    def test_size_mode_copies_size_change(self, make_config, quiet_tui, source_dir: Path, destination_dir: Path):
        build_tree(source_dir, {"a.txt": "longer content"})
        build_tree(destination_dir, {"a.txt": "short"})

        summary = _run(make_config, quiet_tui, compare_mode=CompareMode.SIZE)

        assert summary.files_copied == 1
        assert (destination_dir / "a.txt").read_text() == "longer content"


@pytest.mark.integration
class TestConcurrencyInvariance:
    """The result of a sync must not depend on worker counts."""

    @pytest.mark.parametrize("hash_workers, copy_workers", [(1, 1), (4, 2), (64, 32)])
    def test_same_result_for_any_worker_count(
        self, make_config, quiet_tui, many_files_source: Path, destination_dir: Path, hash_workers, copy_workers
    ):
        build_tree(destination_dir, {"dir0/file000.txt": "stale", "dir3/file003.txt": "stale too"})

        summary = _run(make_config, quiet_tui, hash_workers=hash_workers, copy_workers=copy_workers)

        assert read_tree(destination_dir) == read_tree(many_files_source)
        assert summary.files_copied == 120
        assert summary.files_unchanged == 0
        assert summary.errors == []


@pytest.mark.integration
class TestFailureIsolation:
    """One bad file must not affect the others."""

    @skip_if_root()
    def test_unreadable_source_file(self, make_config, quiet_tui, source_dir: Path, destination_dir: Path):
        build_tree(source_dir, {"ok1.txt": "one", "locked.txt": "secret", "sub/ok2.txt": "two"})
        os.chmod(source_dir / "locked.txt", 0o000)
        try:
            summary = _run(make_config, quiet_tui)
        finally:
            os.chmod(source_dir / "locked.txt", 0o644)

        assert (destination_dir / "ok1.txt").read_text() == "one"
        assert (destination_dir / "sub" / "ok2.txt").read_text() == "two"
        assert not (destination_dir / "locked.txt").exists()
        assert summary.files_copied == 2
        assert summary.files_failed == 1
        assert {e.path for e in summary.errors} == {"locked.txt"}
        assert {e.stage for e in summary.errors} == {ErrorStage.HASH, ErrorStage.COPY}

    def test_hash_failure_forces_copy(self, make_config, quiet_tui, source_dir: Path, destination_dir: Path):
        build_tree(source_dir, {"a.txt": "same", "b.txt": "same"})
        build_tree(destination_dir, {"a.txt": "same", "b.txt": "same"})
        real_hash = FileHasher.hash_file

        def flaky_hash(self, file_path):
            if Path(file_path).name == "b.txt" and "destination" in Path(file_path).parts:
                raise OSError(5, "Input/output error")
            return real_hash(self, file_path)

        with patch.object(FileHasher, "hash_file", autospec=True, side_effect=flaky_hash):
            summary = _run(make_config, quiet_tui)

        assert [a.relative_path for a in summary.actions] == ["b.txt"]
        assert summary.files_copied == 1
        assert summary.files_failed == 0
        assert len(summary.errors) == 1
        assert summary.errors[0].tree is TreeRole.DESTINATION
        assert summary.errors[0].stage is ErrorStage.HASH

    def test_repaired_destination_hash_failure_is_not_counted(self, make_config, quiet_tui, source_dir: Path, destination_dir: Path):
        build_tree(source_dir, {"a.txt": "new"})
        build_tree(destination_dir, {"a.txt": "old"})
        real_hash = FileHasher.hash_file

        def flaky_hash(self, file_path):
            if "destination" in Path(file_path).parts:
                raise OSError(5, "Input/output error")
            return real_hash(self, file_path)

        with patch.object(FileHasher, "hash_file", autospec=True, side_effect=flaky_hash):
            summary = _run(make_config, quiet_tui)

        assert (destination_dir / "a.txt").read_text() == "new"
        assert summary.files_copied == 1
        assert summary.files_unchanged == 0
        assert summary.files_failed == 0
        assert summary.files_copied + summary.files_unchanged + summary.files_failed == summary.source_files
        assert [(e.tree, e.stage) for e in summary.errors] == [(TreeRole.DESTINATION, ErrorStage.HASH)]

    def test_copy_failure_isolated(self, make_config, quiet_tui, nested_source: Path, destination_dir: Path):
        real_copy = CopyWorkerPool.copy_file

        def flaky_copy(self, source, dest):
            if Path(source).name == "readme.md":
                raise OSError(13, "Permission denied")
            return real_copy(self, source, dest)

        with patch.object(CopyWorkerPool, "copy_file", autospec=True, side_effect=flaky_copy):
            summary = _run(make_config, quiet_tui)

        assert summary.files_copied == 3
        assert summary.files_failed == 1
        assert [(e.path, e.stage) for e in summary.errors] == [("docs/readme.md", ErrorStage.COPY)]
        assert not (destination_dir / "docs" / "readme.md").exists()
        assert (destination_dir / "docs" / "guide" / "intro.md").exists()


@pytest.mark.integration
class TestScenarios:
    """Reference scenarios for digest and size comparison."""

    def test_two_new_files(self, make_config, quiet_tui, source_dir: Path, destination_dir: Path):
        build_tree(source_dir, {"a.txt": b"a" * 10, "b.txt": b"b" * 20})

        summary = _run(make_config, quiet_tui)

        assert sorted(a.relative_path for a in summary.actions) == ["a.txt", "b.txt"]
        assert (destination_dir / "a.txt").stat().st_size == 10
        assert (destination_dir / "b.txt").stat().st_size == 20
        assert summary.files_copied == 2

    def test_same_size_edit_size_mode(self, make_config, quiet_tui, source_dir: Path, destination_dir: Path):
        build_tree(source_dir, {"c.txt": "hello"})
        build_tree(destination_dir, {"c.txt": "world"})

        summary = _run(make_config, quiet_tui, compare_mode=CompareMode.SIZE)

        assert summary.actions == []
        assert (destination_dir / "c.txt").read_text() == "world"

    def test_same_size_edit_digest_mode(self, make_config, quiet_tui, source_dir: Path, destination_dir: Path):
        build_tree(source_dir, {"c.txt": "hello"})
        build_tree(destination_dir, {"c.txt": "world"})

        summary = _run(make_config, quiet_tui, compare_mode=CompareMode.DIGEST)

        assert [a.relative_path for a in summary.actions] == ["c.txt"]
        assert (destination_dir / "c.txt").read_text() == "hello"


@pytest.mark.integration
class TestUndecodableNames:
    """File names that are not valid UTF-8."""

    def test_live_run_with_log_file(self, make_config, quiet_tui, source_dir: Path, destination_dir: Path, temp_dir: Path):
        build_tree(source_dir, {"ok.txt": "fine"})
        name = write_undecodable_file(source_dir, content=b"raw bytes")
        log_path = temp_dir / "run.log"

        summary = _run(make_config, quiet_tui, log_file=log_path, verbose=True)

        assert summary.files_copied == 2
        assert summary.errors == []
        assert (destination_dir / "ok.txt").read_text() == "fine"
        assert (destination_dir / name).read_bytes() == b"raw bytes"
        content = log_path.read_text(encoding="utf-8")
        assert "  - bad\\xff.txt (9 bytes)" in content
        assert "Status: OK" in content
