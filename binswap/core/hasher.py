# SPDX-License-Identifier: MIT
"""Cache key computation.

A target's cache key captures everything that affects its compiled
output: the content of its own source and resource files, the keys of
its direct dependencies (so a change deep in the graph propagates up),
its product, and the build flags of the run. Keys are canonical JSON
payloads hashed with sha256, so the same logical graph always yields
the same keys regardless of iteration order.
"""

from __future__ import annotations

import hashlib
import json
import logging
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from binswap.core.errors import DependencyCycleError, HashComputationError
from binswap.core.parallel import parallel_map
from binswap.core.target import Target

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 1 << 16


def file_digest(path: Path) -> str:
    """Return the sha256 hex digest of a file's content."""
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


class TargetHasher:
    """Computes and records cache keys for targets.

    Example:
        hasher = TargetHasher(root=Path("Pods"), jobs=8)
        keys = hasher.hash(targets, build_flags=["COMPILER_INDEX_STORE_ENABLE=NO"])

    Attributes:
        root: Directory relative source paths are resolved against. Paths
              enter the key relative to it, so keys survive moving the
              checkout.
    """

    def __init__(self, root: Path | str | None = None, *, jobs: int | None = None) -> None:
        self.root = Path(root) if root is not None else None
        self._jobs = jobs

    def hash(
        self,
        targets: Mapping[str, Target],
        build_flags: Sequence[str] = (),
    ) -> dict[str, str]:
        """Compute cache keys for targets and their dependencies.

        Keys of a previous run are dropped first. New keys are stored on
        the targets only once every key has been computed, so a failure
        leaves no keys behind.

        Args:
            targets: Targets to hash.
            build_flags: Build flags of the run, included verbatim.

        Returns:
            Mapping of target name to cache key for the requested targets.

        Raises:
            HashComputationError: If a source file cannot be read or the
                graph has a cycle.
        """
        order = self._build_order(targets)
        for target in order:
            target.reset_cache_key()
        contents = parallel_map(self._content_hash, order, jobs=self._jobs)
        content_by_name = {t.name: c for t, c in zip(order, contents)}

        keys: dict[str, str] = {}
        for target in order:
            keys[target.name] = self._combine(
                target, content_by_name[target.name], keys, build_flags
            )

        for target in order:
            target.cache_key = keys[target.name]
        logger.debug("Hashed %d target(s)", len(order))
        return {name: keys[name] for name in targets}

    def _build_order(self, targets: Mapping[str, Target]) -> list[Target]:
        """Targets and their transitive dependencies, dependencies first."""
        order: list[Target] = []
        done: set[str] = set()
        path: list[str] = []

        def visit(target: Target) -> None:
            if target.name in done:
                return
            if target.name in path:
                cycle = path[path.index(target.name) :] + [target.name]
                raise DependencyCycleError(cycle)
            path.append(target.name)
            for name in sorted(target.dependencies):
                visit(target.dependencies[name])
            path.pop()
            done.add(target.name)
            order.append(target)

        for name in sorted(targets):
            visit(targets[name])
        return order

    def _content_hash(self, target: Target) -> str:
        """Hash the content of all files owned by a target."""
        digest = hashlib.sha256()
        for path in sorted(set(target.sources) | set(target.resources), key=str):
            full = self._resolve(path)
            try:
                if full.is_dir():
                    files = sorted(p for p in full.rglob("*") if p.is_file())
                else:
                    files = [full]
                for file in files:
                    digest.update(self._key_path(file).encode("utf-8"))
                    digest.update(b"\0")
                    digest.update(file_digest(file).encode("ascii"))
                    digest.update(b"\n")
            except OSError as e:
                raise HashComputationError(target.name, e.strerror or str(e), full) from e
        return digest.hexdigest()

    def _combine(
        self,
        target: Target,
        content: str,
        keys: Mapping[str, str],
        build_flags: Sequence[str],
    ) -> str:
        payload: dict[str, Any] = {
            "name": target.name,
            "product": (
                [target.product.name, target.product.type.value]
                if target.product
                else None
            ),
            "content": content,
            "dependencies": sorted(
                [name, keys[name]] for name in target.dependencies
            ),
            "build_flags": list(build_flags),
        }
        canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()

    def _resolve(self, path: Path) -> Path:
        if self.root is not None and not path.is_absolute():
            return self.root / path
        return path

    def _key_path(self, path: Path) -> str:
        if self.root is not None:
            try:
                return path.relative_to(self.root).as_posix()
            except ValueError:
                pass
        return path.as_posix()
