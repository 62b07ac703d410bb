"""
Airdrop Commitment Builder - Artifact Storage

This module stages output artifacts as temporary files and moves them into
place only once every artifact of a build has been staged, so a failed run
never leaves a partial tree, proof or summary file behind.
"""

import hashlib
import logging
import os
from pathlib import Path
from typing import Dict, List, Union

from .exceptions import IntegrityError, StorageError


class ArtifactStorage:
    """
    Stages artifacts in an output directory and commits them together.

    Usable as a context manager: the staged artifacts are committed when the
    block exits normally and discarded when it raises.
    """

    def __init__(self, output_dir: Union[str, Path]):
        self.output_dir = Path(output_dir)
        self.logger = logging.getLogger(__name__)

        # file name -> (temp path, sha256 hex)
        self._staged: Dict[str, tuple] = {}
        self._committed = False

    def _calculate_checksum(self, data: bytes) -> str:
        """Calculate SHA-256 checksum of data."""
        return hashlib.sha256(data).hexdigest()

    def _temp_path(self, file_name: str) -> Path:
        target = self.output_dir / file_name
        return target.with_suffix(target.suffix + '.tmp')

    def _backup_path(self, file_name: str) -> Path:
        target = self.output_dir / file_name
        return target.with_suffix(target.suffix + '.bak')

    @property
    def staged_files(self) -> List[str]:
        return list(self._staged)

    def stage(self, file_name: str, data: bytes) -> Path:
        """
        Write an artifact to its temporary location.

        Args:
            file_name: Final file name inside the output directory
            data: Artifact bytes

        Returns:
            Path of the temporary file

        Raises:
            StorageError: If the file cannot be written
        """
        if self._committed:
            raise StorageError("Storage already committed")
        if file_name in self._staged:
            raise StorageError(f"Artifact already staged: {file_name}")

        temp_file = self._temp_path(file_name)
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            with open(temp_file, 'wb') as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
        except OSError as e:
            if temp_file.exists():
                temp_file.unlink()
            raise StorageError(f"Failed to write {temp_file}: {e}") from e

        self._staged[file_name] = (temp_file, self._calculate_checksum(data))
        self.logger.debug(f"Staged {file_name} ({len(data)} bytes)")
        return temp_file

    def _verify_staged(self, file_name: str) -> None:
        temp_file, expected = self._staged[file_name]
        try:
            with open(temp_file, 'rb') as f:
                actual = self._calculate_checksum(f.read())
        except OSError as e:
            raise StorageError(f"Failed to read back {temp_file}: {e}") from e
        if actual != expected:
            raise IntegrityError(f"Staged artifact {file_name} changed before commit")

    def commit(self) -> Dict[str, Path]:
        """
        Verify every staged artifact and move them into place.

        Existing artifacts are first moved aside to ``<name>.bak``. If any
        staged file cannot be installed, the new files are removed and the
        backups restored, so the output directory keeps its previous contents.

        Returns:
            Mapping of file name to final path

        Raises:
            IntegrityError: If a staged file no longer matches its checksum
            StorageError: If a file cannot be moved into place
        """
        if self._committed:
            raise StorageError("Storage already committed")

        targets = {name: self.output_dir / name for name in self._staged}
        try:
            for file_name in self._staged:
                self._verify_staged(file_name)
            for target in targets.values():
                if target.exists() and not target.is_file():
                    raise StorageError(f"Cannot replace {target}: not a regular file")
        except StorageError:
            self.abort()
            raise

        backups: Dict[Path, Path] = {}
        installed: List[Path] = []
        try:
            for file_name, target in targets.items():
                if target.exists():
                    backup = self._backup_path(file_name)
                    os.replace(target, backup)
                    backups[target] = backup
            for file_name, (temp_file, _) in self._staged.items():
                os.replace(temp_file, targets[file_name])
                installed.append(targets[file_name])
        except OSError as e:
            self._rollback(installed, backups)
            self.abort()
            raise StorageError(f"Failed to commit artifacts to {self.output_dir}: {e}") from e

        for backup in backups.values():
            try:
                backup.unlink()
            except OSError as e:
                self.logger.warning(f"Failed to remove backup {backup}: {e}")

        for target in installed:
            self.logger.info(f"Wrote {target}")

        self._staged.clear()
        self._committed = True
        return targets

    def _rollback(self, installed: List[Path], backups: Dict[Path, Path]) -> None:
        """Undo a partially applied commit."""
        for target in installed:
            if target not in backups:
                try:
                    target.unlink()
                except OSError as e:
                    self.logger.error(f"Failed to remove {target} during rollback: {e}")
        for target, backup in backups.items():
            try:
                os.replace(backup, target)
            except OSError as e:
                self.logger.error(f"Failed to restore {target} from {backup}: {e}")
        self.logger.warning(f"Rolled back commit in {self.output_dir}")

    def abort(self) -> None:
        """Remove every staged temporary file."""
        for file_name, (temp_file, _) in self._staged.items():
            try:
                if temp_file.exists():
                    temp_file.unlink()
            except OSError as e:
                self.logger.warning(f"Failed to remove staged {temp_file}: {e}")
        if self._staged:
            self.logger.info(f"Discarded {len(self._staged)} staged artifacts")
        self._staged.clear()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self.commit()
        else:
            self.abort()
        return False
