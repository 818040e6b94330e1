# SPDX-License-Identifier: MIT
"""In-memory project model persisted as JSON.

ProjectGraph is the simplest ProjectModel: a set of targets with
dependencies, optional cosmetic groups, and a "substituted" marker. It
is used for scripted projects and exported graphs, and it is the model
the engine is tested against.

File format:
    {
      "name": "Pods",
      "substituted": false,
      "targets": [
        {"name": "Core", "product": {"name": "Core", "type": "framework"},
         "dependencies": [], "sources": ["Core/a.swift"], "resources": [],
         "built_resources": [], "binary_links": []}
      ],
      "groups": {"Pods": ["Core"]}
    }
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from binswap.core.context import BoundProduct
from binswap.core.errors import BinswapError, GraphPatchError, PersistError
from binswap.core.target import BinaryLink, Product, ProductType, Target

logger = logging.getLogger(__name__)


class ProjectGraph:
    """A project target graph with JSON persistence.

    Example:
        graph = ProjectGraph(Path("graph.json"), name="Pods")
        core = graph.add_target(Target("Core", product=Product("Core", ProductType.FRAMEWORK)))
        app = graph.add_target(Target("App"))
        app.link(core)
        graph.save()

    Attributes:
        name: Project name.
        groups: Cosmetic groups, group name -> member target names.
    """

    def __init__(self, path: Path | str | None = None, *, name: str = "Project") -> None:
        self._path = Path(path) if path is not None else None
        self.name = name
        self.groups: dict[str, list[str]] = {}
        self._targets: dict[str, Target] = {}
        self._substituted = False

    @property
    def path(self) -> Path:
        if self._path is None:
            raise PersistError("<memory>", "project has no file")
        return self._path

    @classmethod
    def load(cls, path: Path | str) -> ProjectGraph:
        """Read a graph from a JSON file."""
        graph = cls(path)
        graph.reload()
        return graph

    def reload(self) -> None:
        """Replace the in-memory graph with the file content."""
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise BinswapError(f"cannot read project {self.path}: {e}") from e
        self._from_dict(data)

    def add_target(self, target: Target) -> Target:
        """Register a target with the project.

        Raises:
            ValueError: If a target with the same name already exists.
        """
        if target.name in self._targets:
            raise ValueError(f"Target '{target.name}' already exists")
        self._targets[target.name] = target
        return target

    def get_target(self, name: str) -> Target | None:
        return self._targets.get(name)

    @property
    def targets(self) -> list[Target]:
        return list(self._targets.values())

    def find_targets(self) -> dict[str, Target]:
        return dict(self._targets)

    def link_binaries(self, target: Target, products: list[BoundProduct]) -> None:
        """Replace dependency edges to substituted targets with binary links."""
        own = self._targets.get(target.name)
        if own is None:
            raise GraphPatchError(f"unknown target '{target.name}'")
        for bound in products:
            own.dependencies.pop(bound.target, None)
            link = bound.to_link()
            if link not in own.binary_links:
                own.binary_links.append(link)

    def delete_targets(self, targets: Mapping[str, Target], keep_groups: bool) -> None:
        """Delete targets and every dependency edge pointing at them.

        Args:
            targets: Targets to delete.
            keep_groups: If False, deleted targets are also removed from
                         groups and groups left empty are dropped.
        """
        names = set(targets)
        for name in names:
            self._targets.pop(name, None)
        for target in self._targets.values():
            for name in names & set(target.dependencies):
                del target.dependencies[name]
        if not keep_groups:
            pruned: dict[str, list[str]] = {}
            for group, members in self.groups.items():
                remaining = [m for m in members if m not in names]
                if remaining:
                    pruned[group] = remaining
            self.groups = pruned
        logger.debug("Deleted %d target(s) from %s", len(names), self.name)

    def is_already_substituted(self) -> bool:
        return self._substituted

    def mark_as_substituted(self) -> None:
        self._substituted = True

    def save(self) -> None:
        """Write the graph to its file.

        Raises:
            PersistError: If the file cannot be written.
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(
                json.dumps(self.to_dict(), indent=2) + "\n", encoding="utf-8"
            )
        except OSError as e:
            raise PersistError(self.path, str(e)) from e

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "substituted": self._substituted,
            "targets": [_target_to_dict(t) for t in self._targets.values()],
            "groups": {g: list(m) for g, m in self.groups.items()},
        }

    def _from_dict(self, data: dict[str, Any]) -> None:
        self.name = data.get("name", self.name)
        self._substituted = bool(data.get("substituted", False))
        self.groups = {g: list(m) for g, m in data.get("groups", {}).items()}
        self._targets = {}
        entries = data.get("targets", [])
        for entry in entries:
            product = entry.get("product")
            target = Target(
                entry["name"],
                product=(
                    Product(product["name"], ProductType(product["type"]))
                    if product
                    else None
                ),
                sources=entry.get("sources", []),
                resources=entry.get("resources", []),
                built_resources=entry.get("built_resources", []),
            )
            target.binary_links = [
                BinaryLink.from_dict(link) for link in entry.get("binary_links", [])
            ]
            self.add_target(target)
        # Dependencies are linked once every target exists
        for entry in entries:
            target = self._targets[entry["name"]]
            for dep in entry.get("dependencies", []):
                if dep not in self._targets:
                    raise BinswapError(
                        f"target '{target.name}' depends on unknown target '{dep}'"
                    )
                target.link(self._targets[dep])

    def __repr__(self) -> str:
        return f"ProjectGraph({self.name!r}, targets={len(self._targets)})"


def _target_to_dict(target: Target) -> dict[str, Any]:
    return {
        "name": target.name,
        "product": (
            {"name": target.product.name, "type": target.product.type.value}
            if target.product
            else None
        ),
        "dependencies": list(target.dependencies),
        "sources": [p.as_posix() for p in target.sources],
        "resources": [p.as_posix() for p in target.resources],
        "built_resources": [p.as_posix() for p in target.built_resources],
        "binary_links": [link.to_dict() for link in target.binary_links],
    }
