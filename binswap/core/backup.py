# SPDX-License-Identifier: MIT
"""Project snapshots.

Before a substitution run mutates anything, the persisted project (and
any support files the run may rewrite) is copied into a backup slot
named after its kind, e.g. "original". Restoring copies the snapshot
back and reloads the project model. When to restore is the caller's
decision. A snapshot stays pending until its run commits it, and a
pending snapshot is never overwritten by a later run.
"""

from __future__ import annotations

import json
import logging
import shutil
from collections.abc import Iterable
from pathlib import Path

from binswap.core.errors import BackupError
from binswap.core.interfaces import ProjectModel

logger = logging.getLogger(__name__)

MANIFEST_FILE = "manifest.json"


def copy(src: Path, dest: Path) -> None:
    """Copy a file or directory tree, creating parent directories."""
    dest.parent.mkdir(parents=True, exist_ok=True)
    if src.is_dir():
        shutil.copytree(src, dest, symlinks=True)
    else:
        shutil.copy2(src, dest)


def remove(path: Path) -> None:
    """Remove a file or directory tree if it exists."""
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    elif path.exists() or path.is_symlink():
        path.unlink()


class BackupCoordinator:
    """Takes and restores project snapshots.

    Example:
        backups = BackupCoordinator(Path.home() / ".binswap" / "backup")
        backups.backup(project)             # before mutating
        ...
        backups.commit()                    # after saving
        backups.restore(project)            # on failure, caller's choice

    Attributes:
        root: Directory holding one sub-directory per snapshot kind.
        extra_paths: Files or directories saved along with the project.
    """

    def __init__(self, root: Path | str, extra_paths: Iterable[Path | str] = ()) -> None:
        self.root = Path(root)
        self.extra_paths = [Path(p) for p in extra_paths]

    def slot(self, kind: str) -> Path:
        return self.root / kind

    def has_backup(self, kind: str = "original") -> bool:
        return (self.slot(kind) / MANIFEST_FILE).is_file()

    def is_pending(self, kind: str = "original") -> bool:
        """Whether the snapshot of kind belongs to a run that never completed."""
        manifest = self._read_manifest(kind, missing_ok=True)
        return bool(manifest and manifest.get("pending", False))

    def backup(self, project: ProjectModel, kind: str = "original") -> bool:
        """Snapshot the persisted project.

        A committed snapshot of kind is replaced. A pending one is kept as
        is: the live project may already hold edits of the failed run that
        took it.

        Returns:
            True if a new snapshot was written.

        Raises:
            BackupError: If the project is missing or cannot be copied.
        """
        if self.is_pending(kind):
            logger.warning(
                "Keeping '%s' backup of an unfinished run in %s", kind, self.slot(kind)
            )
            return False
        if not project.path.exists():
            raise BackupError(f"project not found: {project.path}")
        slot = self.slot(kind)
        entries: list[dict[str, str]] = []
        try:
            remove(slot)
            slot.mkdir(parents=True)
            for index, source in enumerate([project.path, *self.extra_paths]):
                if not source.exists():
                    logger.debug("Nothing to back up at %s", source)
                    continue
                copy_name = f"{index}-{source.name}"
                copy(source, slot / copy_name)
                entries.append({"source": str(source.absolute()), "copy": copy_name})
            self._write_manifest(kind, {"kind": kind, "pending": True, "entries": entries})
        except OSError as e:
            raise BackupError(f"cannot back up {project.path}: {e}") from e
        logger.info("Backed up %d path(s) to %s", len(entries), slot)
        return True

    def commit(self, kind: str = "original") -> None:
        """Mark the snapshot of kind as belonging to a completed run.

        Raises:
            BackupError: If there is no such snapshot.
        """
        manifest = self._read_manifest(kind)
        manifest["pending"] = False
        try:
            self._write_manifest(kind, manifest)
        except OSError as e:
            raise BackupError(f"cannot update '{kind}' backup: {e}") from e

    def restore(self, project: ProjectModel, kind: str = "original") -> None:
        """Replace the live project with the snapshot of kind and reload it.

        Raises:
            BackupError: If there is no such snapshot or copying fails.
        """
        slot = self.slot(kind)
        manifest = self._read_manifest(kind)
        try:
            for entry in manifest["entries"]:
                target = Path(entry["source"])
                remove(target)
                copy(slot / entry["copy"], target)
        except OSError as e:
            raise BackupError(f"cannot restore {project.path}: {e}") from e
        project.reload()
        if manifest.get("pending", False):
            self.commit(kind)
        logger.info("Restored '%s' backup from %s", kind, slot)

    def _read_manifest(self, kind: str, missing_ok: bool = False) -> dict | None:
        manifest_path = self.slot(kind) / MANIFEST_FILE
        try:
            return json.loads(manifest_path.read_text(encoding="utf-8"))
        except FileNotFoundError as e:
            if missing_ok:
                return None
            raise BackupError(f"no '{kind}' backup in {self.root}") from e
        except (OSError, json.JSONDecodeError) as e:
            raise BackupError(f"unreadable backup manifest {manifest_path}: {e}") from e

    def _write_manifest(self, kind: str, manifest: dict) -> None:
        (self.slot(kind) / MANIFEST_FILE).write_text(
            json.dumps(manifest, indent=2) + "\n", encoding="utf-8"
        )
