# SPDX-License-Identifier: MIT
"""Substitution orchestration.

The orchestrator sequences one substitution run:

    select -> back up -> prepare libraries -> hash -> analyze
           -> patch support files -> rewrite graph -> delete -> mark -> save

Each stage finishes completely before the next one starts. Errors are
never swallowed: the failing stage is logged and the exception reaches
the caller, who decides whether to restore the backup.

drop() shares selection, backup and saving but only deletes targets.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from binswap.core.analyzer import GraphAnalyzer, SubstitutionAnalysis
from binswap.core.errors import AlreadySubstitutedError, PersistError
from binswap.core.hasher import TargetHasher
from binswap.core.interfaces import (
    ArtifactResolver,
    BackupService,
    FileEditor,
    LibrariesPatcher,
    NullLibrariesPatcher,
    ProjectModel,
    SupportFilesPatcher,
    TargetsPrinter,
    TargetsResolver,
)
from binswap.core.patcher import ProjectPatcher
from binswap.core.report import Reporter
from binswap.core.scope import ProjectTargetsResolver, TargetScope, TargetSelector
from binswap.core.target import Target

logger = logging.getLogger(__name__)


@dataclass
class SubstitutionResult:
    """Outcome of a substitute() call.

    Attributes:
        selected: Names the scope resolved to.
        substituted: Names replaced by binaries.
        excluded: Names kept as source (resource bundle producers).
        deleted: Number of targets deleted from the project.
        try_mode: Whether this was a dry run.
        skipped: Whether the run had nothing to do.
    """

    selected: list[str]
    substituted: list[str] = field(default_factory=list)
    excluded: list[str] = field(default_factory=list)
    deleted: int = 0
    try_mode: bool = False
    skipped: bool = False


@dataclass
class DropResult:
    """Outcome of a drop() call."""

    selected: list[str]
    deleted: int = 0
    try_mode: bool = False
    skipped: bool = False


class SubstitutionOrchestrator:
    """Replaces source targets of a project with prebuilt binaries.

    Example:
        project = XcodeProjectModel.load("Pods/Pods.xcodeproj")
        orchestrator = SubstitutionOrchestrator(
            project,
            store=BinaryStore(settings.bin_dir, settings.configuration),
            backup=BackupCoordinator(settings.backup_dir),
        )
        orchestrator.substitute(TargetScope.filter(r"^Firebase"))
    """

    def __init__(
        self,
        project: ProjectModel,
        store: ArtifactResolver,
        backup: BackupService,
        *,
        resolver: TargetsResolver | None = None,
        hasher: TargetHasher | None = None,
        libraries_patcher: LibrariesPatcher | None = None,
        support_files_patcher: SupportFilesPatcher | None = None,
        editor: FileEditor | None = None,
        reporter: Reporter | None = None,
        printer: TargetsPrinter | None = None,
        jobs: int | None = None,
    ) -> None:
        self._project = project
        self._backup = backup
        self._selector = TargetSelector(resolver or ProjectTargetsResolver(project))
        self._hasher = hasher or TargetHasher(jobs=jobs)
        self._libraries_patcher = libraries_patcher or NullLibrariesPatcher()
        self._analyzer = GraphAnalyzer(project, store, jobs=jobs)
        self._patcher = ProjectPatcher(
            project, support_files_patcher, editor, jobs=jobs
        )
        self.reporter = reporter or Reporter()
        self._printer = printer or self.reporter

    def substitute(
        self,
        scope: TargetScope,
        *,
        try_mode: bool = False,
        build_flags: Sequence[str] = (),
        delete_sources: bool = False,
    ) -> SubstitutionResult:
        """Substitute the targets of scope with binaries and save the project.

        Args:
            scope: Targets to substitute.
            try_mode: Only report the selected targets.
            build_flags: Build flags the binaries were built with.
            delete_sources: Also prune groups of deleted targets.

        Raises:
            AlreadySubstitutedError: If the project was already substituted.
            HashComputationError: If a target cannot be hashed.
            ArtifactNotFoundError: If a binary is not built yet.
            PatchError: If a support file cannot be rewritten.
            PersistError: If the project cannot be saved.
        """
        if self._project.is_already_substituted():
            raise AlreadySubstitutedError(self._project.path)

        targets = self._select(scope)
        result = SubstitutionResult(selected=list(targets))

        if try_mode:
            self._printer.print_targets(targets)
            result.try_mode = True
            return result
        if not targets:
            self.reporter.event("Skip")
            result.skipped = True
            return result

        with self.reporter.step("Backuping"):
            self._backup.backup(self._project, "original")
        with self.reporter.step("Patching Libraries"):
            self._libraries_patcher.patch(targets)
        with self.reporter.step("Hashing Targets"):
            self._hasher.hash(targets, build_flags)

        analysis = self._mutate(targets, keep_groups=not delete_sources)
        result.substituted = list(analysis.binarizable)
        result.excluded = list(analysis.excluded)
        result.deleted = len(analysis.binarizable)

        self._project.mark_as_substituted()
        self._save()
        self._backup.commit("original")
        return result

    def drop(
        self,
        scope: TargetScope,
        *,
        try_mode: bool = False,
        keep_groups: bool = True,
    ) -> DropResult:
        """Delete the targets of scope from the project and save it.

        A substituted project can still be trimmed. Its "original" backup
        is then left alone so that restoring goes back to the sources.

        Args:
            scope: Targets to delete.
            try_mode: Only report the selected targets.
            keep_groups: Keep groups named after deleted targets.

        Raises:
            GraphPatchError: If a remaining target still references a
                deleted one.
            PersistError: If the project cannot be saved.
        """
        targets = self._select(scope)
        result = DropResult(selected=list(targets))

        if try_mode:
            self._printer.print_targets(targets)
            result.try_mode = True
            return result
        if not targets:
            self.reporter.event("Skip")
            result.skipped = True
            return result

        fresh_backup = False
        if not self._project.is_already_substituted():
            with self.reporter.step("Backuping"):
                fresh_backup = self._backup.backup(self._project, "original")
        with self.reporter.step(f"Deleting Targets ({len(targets)})"):
            result.deleted = self._patcher.delete_targets(targets, keep_groups)
        self._save()
        if fresh_backup:
            self._backup.commit("original")
        return result

    def _select(self, scope: TargetScope) -> dict[str, Target]:
        if scope.is_exact:
            return self._selector.select(scope)
        with self.reporter.step("Finding Build Targets"):
            return self._selector.select(scope)

    def _save(self) -> None:
        with self.reporter.step("Saving Project"):
            try:
                self._project.save()
            except OSError as e:
                raise PersistError(self._project.path, str(e)) from e

    def mutate(self, targets: Mapping[str, Target], keep_groups: bool) -> int:
        """Substitute already hashed targets without backup or saving.

        Args:
            targets: Targets to substitute; each must carry a cache key.
            keep_groups: Keep groups that referenced deleted targets.

        Returns:
            Number of deleted targets.
        """
        analysis = self._mutate(targets, keep_groups)
        return len(analysis.binarizable)

    def _mutate(
        self, targets: Mapping[str, Target], keep_groups: bool
    ) -> SubstitutionAnalysis:
        with self.reporter.step("Analyzing Targets"):
            analysis = self._analyzer.analyze(targets)
        try:
            with self.reporter.step("Patching Support Files"):
                self._patcher.patch_files(analysis.plans)
            with self.reporter.step("Rewriting Graph"):
                self._patcher.rewrite_graph(analysis.plans)
            with self.reporter.step(f"Deleting Targets ({len(analysis.binarizable)})"):
                self._patcher.delete_targets(analysis.binarizable, keep_groups)
        finally:
            analysis.context.clear()
        return analysis
