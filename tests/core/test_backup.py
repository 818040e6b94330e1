# SPDX-License-Identifier: MIT
"""Tests for binswap.core.backup."""

import json

import pytest

from binswap.core.backup import MANIFEST_FILE, BackupCoordinator
from binswap.core.errors import BackupError
from binswap.core.graph import ProjectGraph
from binswap.core.target import Product, ProductType, Target


def _saved_project(tmp_path) -> ProjectGraph:
    project = ProjectGraph(tmp_path / "Pods" / "graph.json", name="Pods")
    core = project.add_target(Target("Core", product=Product("Core", ProductType.FRAMEWORK)))
    project.add_target(Target("App")).link(core)
    project.save()
    return project


class TestBackupCoordinator:
    def test_backup_writes_manifest(self, tmp_path):
        project = _saved_project(tmp_path)
        backups = BackupCoordinator(tmp_path / "backup")

        backups.backup(project)

        assert backups.has_backup()
        manifest = json.loads((backups.slot("original") / MANIFEST_FILE).read_text())
        assert manifest["kind"] == "original"
        assert [e["copy"] for e in manifest["entries"]] == ["0-graph.json"]

    def test_missing_project(self, tmp_path):
        project = ProjectGraph(tmp_path / "missing.json")
        with pytest.raises(BackupError, match="not found"):
            BackupCoordinator(tmp_path / "backup").backup(project)

    def test_restore_round_trip(self, tmp_path):
        """Restoring gives back exactly the graph that was backed up."""
        project = _saved_project(tmp_path)
        original = project.to_dict()
        backups = BackupCoordinator(tmp_path / "backup")
        backups.backup(project)

        project.delete_targets({"Core": project.get_target("Core")}, keep_groups=False)
        project.mark_as_substituted()
        project.save()

        backups.restore(project)
        assert project.to_dict() == original
        assert not project.is_already_substituted()

    def test_extra_paths(self, tmp_path):
        project = _saved_project(tmp_path)
        support = tmp_path / "Pods" / "Target Support Files"
        (support / "App").mkdir(parents=True)
        xcconfig = support / "App" / "App.xcconfig"
        xcconfig.write_text("BEFORE\n")
        backups = BackupCoordinator(tmp_path / "backup", [support])

        backups.backup(project)
        xcconfig.write_text("AFTER\n")
        backups.restore(project)

        assert xcconfig.read_text() == "BEFORE\n"

    def test_missing_extra_path_is_skipped(self, tmp_path):
        project = _saved_project(tmp_path)
        backups = BackupCoordinator(tmp_path / "backup", [tmp_path / "nothing"])
        backups.backup(project)
        manifest = json.loads((backups.slot("original") / MANIFEST_FILE).read_text())
        assert len(manifest["entries"]) == 1

    def test_restore_without_backup(self, tmp_path):
        project = _saved_project(tmp_path)
        with pytest.raises(BackupError, match="no 'original' backup"):
            BackupCoordinator(tmp_path / "backup").restore(project)

    def test_kinds_are_separate(self, tmp_path):
        project = _saved_project(tmp_path)
        backups = BackupCoordinator(tmp_path / "backup")
        backups.backup(project, "tmp")
        assert backups.has_backup("tmp")
        assert not backups.has_backup("original")


class TestPendingSnapshots:
    def test_new_snapshot_is_pending(self, tmp_path):
        project = _saved_project(tmp_path)
        backups = BackupCoordinator(tmp_path / "backup")

        assert backups.backup(project)

        assert backups.is_pending()

    def test_pending_snapshot_is_kept(self, tmp_path):
        """A retry after a failed run must not snapshot the half-edited project."""
        project = _saved_project(tmp_path)
        original = project.to_dict()
        backups = BackupCoordinator(tmp_path / "backup")
        backups.backup(project)

        project.mark_as_substituted()
        project.save()
        assert not backups.backup(project)

        backups.restore(project)
        assert project.to_dict() == original

    def test_committed_snapshot_is_replaced(self, tmp_path):
        project = _saved_project(tmp_path)
        backups = BackupCoordinator(tmp_path / "backup")
        backups.backup(project)
        backups.commit()
        assert not backups.is_pending()

        project.mark_as_substituted()
        project.save()
        assert backups.backup(project)

        backups.restore(project)
        assert project.is_already_substituted()

    def test_restore_commits(self, tmp_path):
        project = _saved_project(tmp_path)
        backups = BackupCoordinator(tmp_path / "backup")
        backups.backup(project)

        backups.restore(project)

        assert backups.has_backup()
        assert not backups.is_pending()

    def test_commit_without_backup(self, tmp_path):
        with pytest.raises(BackupError, match="no 'original' backup"):
            BackupCoordinator(tmp_path / "backup").commit()
