# SPDX-License-Identifier: MIT
"""Collaborator protocols used by the substitution engine.

The engine only talks to the project file, the artifact store and the
support files through these interfaces, so any project format can be
plugged in.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from binswap.core.context import BoundProduct, SubstitutionPlan
    from binswap.core.patcher import FileReplacement
    from binswap.core.target import Target


@runtime_checkable
class ProjectModel(Protocol):
    """Protocol for a project file exposing its target graph."""

    @property
    def path(self) -> Path:
        """Location of the persisted project (file or bundle directory)."""
        ...

    def find_targets(self) -> dict[str, Target]:
        """Return every target of the project by name."""
        ...

    def link_binaries(self, target: Target, products: list[BoundProduct]) -> None:
        """Repoint target from source dependencies to prebuilt products."""
        ...

    def delete_targets(self, targets: Mapping[str, Target], keep_groups: bool) -> None:
        """Remove targets and every reference to them."""
        ...

    def save(self) -> None:
        """Persist the project."""
        ...

    def reload(self) -> None:
        """Discard in-memory state and re-read the persisted project."""
        ...

    def is_already_substituted(self) -> bool:
        """Whether the project carries the substitution marker."""
        ...

    def mark_as_substituted(self) -> None:
        """Set the substitution marker."""
        ...


class TargetsResolver(Protocol):
    """Protocol for looking up build targets by name or pattern."""

    def filter_targets(self, names: set[str]) -> dict[str, Target]: ...

    def find_targets(
        self,
        include: re.Pattern[str],
        exclude: re.Pattern[str] | None = None,
    ) -> dict[str, Target]: ...


class ArtifactResolver(Protocol):
    """Protocol for the binary artifact store."""

    def resolve_artifact_path(self, target: Target) -> Path: ...


class BackupService(Protocol):
    """Protocol for project snapshots."""

    def backup(self, project: ProjectModel, kind: str = "original") -> bool: ...

    def commit(self, kind: str = "original") -> None: ...


class LibrariesPatcher(Protocol):
    """Prepares targets so that their binaries are consumable."""

    def patch(self, targets: Mapping[str, Target]) -> None: ...


class SupportFilesPatcher(Protocol):
    """Computes text replacements in a consumer's support files."""

    def prepare_replacements(self, plan: SubstitutionPlan) -> list[FileReplacement]: ...


class FileEditor(Protocol):
    """Applies regex replacements to a file."""

    def replace(
        self,
        replacements: Mapping[str, str],
        regex: re.Pattern[str],
        file_path: Path,
    ) -> None: ...


class TargetsPrinter(Protocol):
    """Reports a target set (try mode)."""

    def print_targets(self, targets: Mapping[str, Target]) -> None: ...


class NullLibrariesPatcher:
    """Libraries patcher for projects whose binaries need no preparation."""

    def patch(self, targets: Mapping[str, Target]) -> None:
        return None


class NullSupportFilesPatcher:
    """Support files patcher for projects without support files."""

    def prepare_replacements(self, plan: SubstitutionPlan) -> list[FileReplacement]:
        return []
