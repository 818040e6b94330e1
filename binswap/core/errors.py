# SPDX-License-Identifier: MIT
"""Custom exceptions for binswap.

All binswap exceptions inherit from BinswapError. Each stage of a
substitution run raises its own error type so that callers can tell
which stage failed and whether a backup restore is needed.
"""

from __future__ import annotations

from pathlib import Path


class BinswapError(Exception):
    """Base class for all binswap exceptions.

    Attributes:
        message: The error message.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class AlreadySubstitutedError(BinswapError):
    """The project already carries the substitution marker.

    Substitution is not re-entrant: restore the original project first.
    """

    def __init__(self, project: str | Path) -> None:
        self.project = str(project)
        super().__init__(
            f"project already uses binaries: {self.project} "
            "(restore the original project first)"
        )


class HashComputationError(BinswapError):
    """A cache key could not be computed for a target.

    Attributes:
        target: Name of the target being hashed.
        path: The unreadable path, if the failure was an I/O error.
    """

    def __init__(
        self,
        target: str,
        reason: str,
        path: Path | None = None,
    ) -> None:
        self.target = target
        self.path = path
        where = f" ({path})" if path else ""
        super().__init__(f"cannot hash target '{target}'{where}: {reason}")


class ArtifactNotFoundError(BinswapError):
    """No binary artifact exists for a target slated for substitution.

    Attributes:
        target: Name of the target.
        path: The expected artifact location, if one could be computed.
    """

    def __init__(self, target: str, path: Path | None = None) -> None:
        self.target = target
        self.path = path
        if path is None:
            message = f"target '{target}' has no cache key, hash it first"
        else:
            message = f"binary for target '{target}' not built yet: {path}"
        super().__init__(message)


class PatchError(BinswapError):
    """A text replacement in a project support file failed.

    Attributes:
        path: The file being patched.
    """

    def __init__(self, path: str | Path, reason: str) -> None:
        self.path = Path(path)
        super().__init__(f"cannot patch {self.path}: {reason}")


class GraphPatchError(BinswapError):
    """An edit of the project target graph failed."""


class PersistError(BinswapError):
    """Saving the mutated project failed.

    The in-memory project is already mutated at this point, so the
    caller must restore from backup.
    """

    def __init__(self, project: str | Path, reason: str) -> None:
        self.project = str(project)
        super().__init__(f"cannot save project {self.project}: {reason}")


class BackupError(BinswapError):
    """Taking or restoring a project snapshot failed."""


class DependencyCycleError(HashComputationError):
    """Circular dependency detected in the target graph.

    Cache keys are built bottom-up, so a cycle makes hashing impossible.

    Attributes:
        cycle: The target names forming the cycle.
    """

    def __init__(self, cycle: list[str]) -> None:
        self.cycle = cycle
        cycle_str = " -> ".join(cycle)
        super().__init__(cycle[0], f"dependency cycle: {cycle_str}")
