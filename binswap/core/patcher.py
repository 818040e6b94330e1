# SPDX-License-Identifier: MIT
"""Project rewriting for binary substitution.

Patching runs in two phases. First, text files that reference the
substituted targets (build settings, copy scripts) are rewritten to
point at the binary artifacts. Then the project graph is edited: every
consumer is repointed to the prebuilt products and the substituted
targets are deleted.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from binswap.core.context import SubstitutionPlan
from binswap.core.errors import GraphPatchError, PatchError
from binswap.core.interfaces import (
    FileEditor,
    NullSupportFilesPatcher,
    ProjectModel,
    SupportFilesPatcher,
)
from binswap.core.parallel import parallel_flat_map, parallel_map
from binswap.core.target import Target

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileReplacement:
    """Text replacements to apply to one file.

    Attributes:
        file_path: File to rewrite.
        regex: Pattern locating the references.
        replacements: Matched text -> replacement text. Matches without
                      an entry are left unchanged.
    """

    file_path: Path
    regex: re.Pattern[str]
    replacements: Mapping[str, str]


class FileContentEditor:
    """Applies regex replacements to text files in place."""

    def replace(
        self,
        replacements: Mapping[str, str],
        regex: re.Pattern[str],
        file_path: Path,
    ) -> None:
        """Rewrite every match of regex found in replacements.

        The file is only written when its content changes.

        Raises:
            PatchError: If the file cannot be read or written.
        """
        try:
            content = file_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise PatchError(file_path, str(e)) from e

        def substitute(match: re.Match[str]) -> str:
            return replacements.get(match.group(0), match.group(0))

        patched = regex.sub(substitute, content)
        if patched == content:
            return
        try:
            file_path.write_text(patched, encoding="utf-8")
        except OSError as e:
            raise PatchError(file_path, str(e)) from e
        logger.debug("Patched %s", file_path)


class ProjectPatcher:
    """Applies substitution plans to support files and the project graph."""

    def __init__(
        self,
        project: ProjectModel,
        support_files_patcher: SupportFilesPatcher | None = None,
        editor: FileEditor | None = None,
        *,
        jobs: int | None = None,
    ) -> None:
        self._project = project
        self._support_files = support_files_patcher or NullSupportFilesPatcher()
        self._editor = editor or FileContentEditor()
        self._jobs = jobs

    def patch_files(self, plans: Mapping[str, SubstitutionPlan]) -> int:
        """Rewrite support files of all consumers.

        Replacements are grouped per file and each file is handled by a
        single unit, so no file is read by one unit while another writes
        it.

        Returns:
            Number of files visited.

        Raises:
            PatchError: On the first failed replacement.
        """
        replacements = parallel_flat_map(
            self._support_files.prepare_replacements, plans.values(), jobs=self._jobs
        )
        by_file: dict[Path, list[FileReplacement]] = {}
        for replacement in replacements:
            by_file.setdefault(replacement.file_path, []).append(replacement)

        def apply(item: tuple[Path, list[FileReplacement]]) -> None:
            path, file_replacements = item
            for replacement in file_replacements:
                self._editor.replace(replacement.replacements, replacement.regex, path)

        parallel_map(apply, by_file.items(), jobs=self._jobs)
        return len(by_file)

    def rewrite_graph(self, plans: Mapping[str, SubstitutionPlan]) -> None:
        """Repoint every consumer to the prebuilt products it needs."""
        for plan in plans.values():
            self._project.link_binaries(plan.target, plan.binary_products)

    def delete_targets(self, targets: Mapping[str, Target], keep_groups: bool) -> int:
        """Delete substituted targets from the project.

        Returns:
            Number of deleted targets.

        Raises:
            GraphPatchError: If a remaining target still references a
                deleted one.
        """
        if not targets:
            return 0
        self._project.delete_targets(targets, keep_groups)
        for name, target in self._project.find_targets().items():
            dangling = set(target.dependencies) & set(targets)
            if dangling:
                raise GraphPatchError(
                    f"target '{name}' still depends on deleted target(s): "
                    + ", ".join(sorted(dangling))
                )
        return len(targets)
