# SPDX-License-Identifier: MIT
"""Content-addressable binary artifact store.

Prebuilt products live under

    <root>/<target name>/<configuration>/<cache key>/

so a cache key fully identifies an interchangeable artifact. The
substitution engine only reads from the store; store() is for the
build step that produces the artifacts.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from binswap.core.errors import ArtifactNotFoundError
from binswap.core.target import Target

logger = logging.getLogger(__name__)


class BinaryStore:
    """Maps target cache keys to artifact folders.

    Example:
        store = BinaryStore(Path.home() / ".binswap" / "bin", "Debug-iphonesimulator")
        path = store.resolve_artifact_path(target)

    Attributes:
        root: Store root directory.
        configuration: Build configuration and SDK the artifacts were
                       built for (e.g. "Debug-iphonesimulator").
    """

    def __init__(self, root: Path | str, configuration: str) -> None:
        self.root = Path(root)
        self.configuration = configuration

    def artifact_path(self, target: Target) -> Path:
        """Compute the artifact folder for a hashed target.

        Raises:
            ArtifactNotFoundError: If the target has no cache key.
        """
        if target.cache_key is None:
            raise ArtifactNotFoundError(target.name)
        return self.root / target.name / self.configuration / target.cache_key

    def contains(self, target: Target) -> bool:
        if target.cache_key is None:
            return False
        return self.artifact_path(target).is_dir()

    def resolve_artifact_path(self, target: Target) -> Path:
        """Return the folder of an existing artifact for target.

        Raises:
            ArtifactNotFoundError: If the target is not hashed or its
                binary has not been built yet.
        """
        path = self.artifact_path(target)
        if not path.is_dir():
            raise ArtifactNotFoundError(target.name, path)
        return path

    def store(self, target: Target, built_dir: Path | str) -> Path:
        """Copy a build output folder into the target's slot.

        An existing slot is kept as is: the same key always names the
        same artifact.

        Returns:
            The artifact folder.
        """
        path = self.artifact_path(target)
        if path.is_dir():
            logger.debug("Artifact for %s already stored at %s", target.name, path)
            return path
        path.parent.mkdir(parents=True, exist_ok=True)
        # Copy next to the slot first so a half-copied folder is never visible
        staging = path.with_name(f".{path.name}.tmp")
        if staging.exists():
            shutil.rmtree(staging)
        shutil.copytree(built_dir, staging, symlinks=True)
        staging.rename(path)
        logger.info("Stored %s at %s", target.name, path)
        return path
