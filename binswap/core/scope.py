# SPDX-License-Identifier: MIT
"""Target selection.

A TargetScope names the targets a run should substitute, either as an
explicit set of names or as an include pattern with an optional
exclude pattern. Resolving a scope never fails for lack of matches:
an empty selection is a valid, successful result.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from binswap.core.interfaces import ProjectModel, TargetsResolver
    from binswap.core.target import Target

logger = logging.getLogger(__name__)


def _compile(pattern: str | re.Pattern[str] | None) -> re.Pattern[str] | None:
    if pattern is None or isinstance(pattern, re.Pattern):
        return pattern
    return re.compile(pattern)


@dataclass(frozen=True)
class TargetScope:
    """Selection expression over target names.

    Use the constructors:
        TargetScope.exact({"Alamofire", "Moya"})
        TargetScope.filter(r"^Firebase", exclude=r"Tests$")

    Attributes:
        names: Explicit target names (exact scope).
        include: Inclusion pattern (filter scope).
        exclude: Optional exclusion pattern (filter scope).
    """

    names: frozenset[str] | None = None
    include: re.Pattern[str] | None = None
    exclude: re.Pattern[str] | None = None

    def __post_init__(self) -> None:
        if (self.names is None) == (self.include is None):
            raise ValueError("a scope needs either target names or an include pattern")
        if self.names is not None and self.exclude is not None:
            raise ValueError("an exclude pattern only applies to a filter scope")

    @classmethod
    def exact(cls, names: set[str] | list[str] | frozenset[str]) -> TargetScope:
        return cls(names=frozenset(names))

    @classmethod
    def filter(
        cls,
        include: str | re.Pattern[str],
        exclude: str | re.Pattern[str] | None = None,
    ) -> TargetScope:
        return cls(include=_compile(include), exclude=_compile(exclude))

    @property
    def is_exact(self) -> bool:
        return self.names is not None

    def __str__(self) -> str:
        if self.include is None:
            return "{" + ", ".join(sorted(self.names or ())) + "}"
        text = f"/{self.include.pattern}/"
        if self.exclude is not None:
            text += f" except /{self.exclude.pattern}/"
        return text


class ProjectTargetsResolver:
    """Build-target resolver backed by a project model."""

    def __init__(self, project: ProjectModel) -> None:
        self._project = project

    def filter_targets(self, names: set[str] | frozenset[str]) -> dict[str, Target]:
        """Return the existing targets among names, in project order."""
        targets = self._project.find_targets()
        found = {name: t for name, t in targets.items() if name in names}
        missing = set(names) - set(found)
        if missing:
            logger.debug("Ignoring unknown targets: %s", ", ".join(sorted(missing)))
        return found

    def find_targets(
        self,
        include: re.Pattern[str],
        exclude: re.Pattern[str] | None = None,
    ) -> dict[str, Target]:
        """Return targets whose names match include and not exclude."""
        return {
            name: target
            for name, target in self._project.find_targets().items()
            if include.search(name)
            and (exclude is None or not exclude.search(name))
        }


class TargetSelector:
    """Resolves a TargetScope into concrete targets."""

    def __init__(self, resolver: TargetsResolver) -> None:
        self._resolver = resolver

    def select(self, scope: TargetScope) -> dict[str, Target]:
        """Resolve scope into a name -> Target mapping.

        Unknown names and unmatched patterns yield fewer (possibly zero)
        targets; neither is an error.
        """
        if scope.include is not None:
            exact = self._resolver.find_targets(scope.include, scope.exclude)
        else:
            exact = self._resolver.filter_targets(set(scope.names or ()))
        logger.debug("Scope %s resolved to %d target(s)", scope, len(exact))
        return exact
