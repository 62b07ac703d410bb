"""
Unit tests for staged artifact storage.
"""

import os

import pytest

from registry.exceptions import IntegrityError, StorageError
from registry.storage import ArtifactStorage


class TestArtifactStorage:
    """Test staging and committing artifacts."""

    def test_stage_writes_temp_file_only(self, tmp_path):
        """Test staging does not touch the final file."""
        storage = ArtifactStorage(tmp_path)
        temp = storage.stage("tree.bin", b"data")

        assert temp == tmp_path / "tree.bin.tmp"
        assert temp.read_bytes() == b"data"
        assert not (tmp_path / "tree.bin").exists()
        assert storage.staged_files == ["tree.bin"]

    def test_commit_moves_all(self, tmp_path):
        """Test commit moves every staged file into place."""
        storage = ArtifactStorage(tmp_path / "out")
        storage.stage("a.bin", b"A")
        storage.stage("b.json", b"B")

        paths = storage.commit()

        assert paths == {"a.bin": tmp_path / "out" / "a.bin", "b.json": tmp_path / "out" / "b.json"}
        assert (tmp_path / "out" / "a.bin").read_bytes() == b"A"
        assert (tmp_path / "out" / "b.json").read_bytes() == b"B"
        assert list((tmp_path / "out").glob("*.tmp")) == []

    def test_commit_replaces_existing(self, tmp_path):
        """Test committed artifacts replace older ones."""
        (tmp_path / "a.bin").write_bytes(b"old")
        with ArtifactStorage(tmp_path) as storage:
            storage.stage("a.bin", b"new")
        assert (tmp_path / "a.bin").read_bytes() == b"new"

    def test_context_manager_aborts_on_error(self, tmp_path):
        """Test an exception inside the block discards staged files."""
        (tmp_path / "a.bin").write_bytes(b"old")

        with pytest.raises(RuntimeError):
            with ArtifactStorage(tmp_path) as storage:
                storage.stage("a.bin", b"new")
                storage.stage("b.bin", b"new")
                raise RuntimeError("boom")

        assert (tmp_path / "a.bin").read_bytes() == b"old"
        assert not (tmp_path / "b.bin").exists()
        assert list(tmp_path.glob("*.tmp")) == []

    def test_tampered_stage_detected(self, tmp_path):
        """Test a staged file modified before commit fails the integrity check."""
        storage = ArtifactStorage(tmp_path)
        temp = storage.stage("a.bin", b"original")
        temp.write_bytes(b"tampered")

        with pytest.raises(IntegrityError):
            storage.commit()

        assert not (tmp_path / "a.bin").exists()
        assert not temp.exists()

    def test_double_stage_rejected(self, tmp_path):
        """Test one name cannot be staged twice."""
        storage = ArtifactStorage(tmp_path)
        storage.stage("a.bin", b"1")
        with pytest.raises(StorageError, match="already staged"):
            storage.stage("a.bin", b"2")

    def test_no_use_after_commit(self, tmp_path):
        """Test a committed storage refuses new artifacts."""
        storage = ArtifactStorage(tmp_path)
        storage.commit()
        with pytest.raises(StorageError, match="already committed"):
            storage.stage("a.bin", b"1")

    def test_unwritable_directory(self, tmp_path):
        """Test write failures surface as StorageError."""
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")

        with pytest.raises(StorageError, match="Failed to write"):
            ArtifactStorage(blocker / "out").stage("a.bin", b"1")

    def test_failed_install_restores_previous_artifacts(self, tmp_path, monkeypatch):
        """Test a move failing part way through leaves the old artifacts in place."""
        (tmp_path / "tree.bin").write_bytes(b"old tree")
        (tmp_path / "summary.json").write_bytes(b"old summary")

        real_replace = os.replace

        def failing_replace(src, dst):
            if str(src).endswith(".tmp") and os.path.basename(dst) == "proofs.json":
                raise OSError("disk full")
            return real_replace(src, dst)

        storage = ArtifactStorage(tmp_path)
        storage.stage("tree.bin", b"new tree")
        storage.stage("proofs.json", b"new proofs")
        storage.stage("summary.json", b"new summary")
        monkeypatch.setattr(os, "replace", failing_replace)

        with pytest.raises(StorageError, match="disk full"):
            storage.commit()

        assert (tmp_path / "tree.bin").read_bytes() == b"old tree"
        assert (tmp_path / "summary.json").read_bytes() == b"old summary"
        assert not (tmp_path / "proofs.json").exists()
        assert list(tmp_path.glob("*.tmp")) == []
        assert list(tmp_path.glob("*.bak")) == []

    def test_backups_removed_after_commit(self, tmp_path):
        """Test a successful commit leaves no backup files."""
        (tmp_path / "a.bin").write_bytes(b"old")
        with ArtifactStorage(tmp_path) as storage:
            storage.stage("a.bin", b"new")

        assert (tmp_path / "a.bin").read_bytes() == b"new"
        assert list(tmp_path.glob("*.bak")) == []

    def test_non_file_target_rejected_before_any_replace(self, tmp_path):
        """Test a directory in an artifact's place fails the commit without replacing anything."""
        (tmp_path / "a.bin").write_bytes(b"old")
        (tmp_path / "b.json").mkdir()

        storage = ArtifactStorage(tmp_path)
        storage.stage("a.bin", b"new")
        storage.stage("b.json", b"new")

        with pytest.raises(StorageError, match="not a regular file"):
            storage.commit()

        assert (tmp_path / "a.bin").read_bytes() == b"old"
        assert (tmp_path / "b.json").is_dir()
        assert list(tmp_path.glob("*.tmp")) == []
