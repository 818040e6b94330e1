# SPDX-License-Identifier: MIT
"""Transient per-run substitution data.

Everything derived during one substitution run (which dependencies of
a consumer are being binarized, where each binary lives, which
products a consumer must link) is kept in a SubstitutionContext side
table keyed by target name. Targets and products themselves are never
annotated, so nothing derived can leak into a saved project or into a
later run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from binswap.core.target import BinaryLink, Product, Target


@dataclass(frozen=True)
class BoundProduct:
    """A product bound to the prebuilt artifact that replaces it.

    Attributes:
        target: Name of the target producing the product.
        product: The product descriptor.
        path: Folder of the resolved binary artifact.
    """

    target: str
    product: Product
    path: Path

    def to_link(self) -> BinaryLink:
        return BinaryLink(self.product.name, self.product.type, self.path)


@dataclass
class SubstitutionPlan:
    """What one consumer of substituted targets must change.

    Attributes:
        target: The consumer ("binary user").
        binary_dependencies: Its dependencies that are being substituted.
        binary_products: Prebuilt products it must link instead.
    """

    target: Target
    binary_dependencies: dict[str, Target]
    binary_products: list[BoundProduct] = field(default_factory=list)


class SubstitutionContext:
    """Side table holding the derived data of a single run."""

    def __init__(self) -> None:
        self._binary_dependencies: dict[str, dict[str, Target]] = {}
        self._binary_paths: dict[str, Path] = {}

    def set_binary_dependencies(self, target: Target, deps: dict[str, Target]) -> None:
        self._binary_dependencies[target.name] = deps

    def binary_dependencies(self, target: Target) -> dict[str, Target]:
        return self._binary_dependencies.get(target.name, {})

    def bind(self, target: Target, path: Path) -> None:
        """Record the resolved artifact folder for a substituted target."""
        self._binary_paths[target.name] = path

    def binary_path(self, target: Target) -> Path | None:
        return self._binary_paths.get(target.name)

    def binary_products(self, target: Target) -> list[BoundProduct]:
        """Bound products for the substituted dependencies of a consumer.

        Dependencies without a product or without a bound artifact
        contribute nothing.
        """
        products: list[BoundProduct] = []
        for name, dep in self.binary_dependencies(target).items():
            path = self._binary_paths.get(name)
            if dep.product is None or path is None:
                continue
            products.append(BoundProduct(name, dep.product, path))
        return products

    def plan_for(self, target: Target) -> SubstitutionPlan:
        return SubstitutionPlan(
            target=target,
            binary_dependencies=dict(self.binary_dependencies(target)),
            binary_products=self.binary_products(target),
        )

    def clear(self) -> None:
        self._binary_dependencies.clear()
        self._binary_paths.clear()
