# SPDX-License-Identifier: MIT
"""Target and product abstractions of a native project graph.

A Target is a buildable unit of the project (a pod, a framework, a
resource bundle, ...). It owns at most one Product and depends on other
targets by name. Targets are owned by a project model; their identity
is the name within one graph snapshot.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from binswap.core.errors import HashComputationError


class ProductType(Enum):
    """Closed set of product kinds a target can build."""

    FRAMEWORK = "framework"
    STATIC_LIBRARY = "static_library"
    DYNAMIC_LIBRARY = "dynamic_library"
    BUNDLE = "bundle"
    APPLICATION = "application"
    OTHER = "other"


RESOURCE_BUNDLE_SUFFIX = ".bundle"


@dataclass(frozen=True)
class Product:
    """The build output descriptor of a target.

    Attributes:
        name: Product name (e.g. "Alamofire", "Alamofire_Resources").
        type: Kind of product.
    """

    name: str
    type: ProductType


@dataclass(frozen=True)
class BinaryLink:
    """A consumer's persisted reference to a prebuilt binary product.

    Attributes:
        name: Product name.
        type: Product type.
        path: Folder holding the prebuilt product.
    """

    name: str
    type: ProductType
    path: Path

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "type": self.type.value, "path": str(self.path)}

    @classmethod
    def from_dict(cls, data: dict[str, str]) -> BinaryLink:
        return cls(data["name"], ProductType(data["type"]), Path(data["path"]))


class Target:
    """A named buildable unit of the project graph.

    Example:
        core = Target("Core", product=Product("Core", ProductType.FRAMEWORK))
        ui = Target("UI", product=Product("UI", ProductType.FRAMEWORK))
        ui.link(core)

    Attributes:
        name: Target name, unique within a project.
        product: What the target builds, or None for aggregate targets.
        dependencies: Direct dependencies by name, in declaration order.
        sources: Source files owned by the target.
        resources: Resource files from the checkout the target copies into
            its product.
        built_resources: Build products (e.g. resource bundles of other
            targets) the target copies into its product.
        binary_links: Prebuilt products this target links instead of
            source dependencies (set by substitution).
    """

    __slots__ = (
        "name",
        "product",
        "dependencies",
        "sources",
        "resources",
        "built_resources",
        "binary_links",
        "_cache_key",
    )

    def __init__(
        self,
        name: str,
        *,
        product: Product | None = None,
        sources: list[Path | str] | None = None,
        resources: list[Path | str] | None = None,
        built_resources: list[Path | str] | None = None,
    ) -> None:
        self.name = name
        self.product = product
        self.dependencies: dict[str, Target] = {}
        self.sources: list[Path] = [Path(s) for s in sources or []]
        self.resources: list[Path] = [Path(r) for r in resources or []]
        self.built_resources: list[Path] = [Path(r) for r in built_resources or []]
        self.binary_links: list[BinaryLink] = []
        self._cache_key: str | None = None

    def link(self, *targets: Target) -> Target:
        """Add targets as dependencies (fluent API).

        Returns:
            self for method chaining.
        """
        for target in targets:
            self.dependencies.setdefault(target.name, target)
        return self

    @property
    def cache_key(self) -> str | None:
        """Cache key computed for the current run, if hashed."""
        return self._cache_key

    @cache_key.setter
    def cache_key(self, value: str) -> None:
        # A key is fixed once computed for a run
        if self._cache_key is not None and self._cache_key != value:
            raise HashComputationError(
                self.name,
                f"cache key already set to {self._cache_key}, refusing {value}",
            )
        self._cache_key = value

    def reset_cache_key(self) -> None:
        """Forget the key of a previous run."""
        self._cache_key = None

    def resource_bundle_names(self) -> set[str]:
        """Names of the resource bundles this target embeds.

        Derived from resource references ending in ".bundle", whether from
        the checkout or built by another target; the name is the bundle's
        file stem, which matches the producing target's product name.
        """
        return {
            resource.stem
            for resource in [*self.resources, *self.built_resources]
            if resource.suffix == RESOURCE_BUNDLE_SUFFIX
        }

    def __repr__(self) -> str:
        deps = ", ".join(self.dependencies)
        return f"Target({self.name!r}, deps=[{deps}])"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Target):
            return NotImplemented
        return self.name == other.name

    def __hash__(self) -> int:
        return hash(self.name)

