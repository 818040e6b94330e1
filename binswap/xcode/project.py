# SPDX-License-Identifier: MIT
"""Xcode project model.

Reads and edits an .xcodeproj bundle through the pbxproj library and
exposes it as a binswap ProjectModel: native targets become Targets,
PBXTargetDependency objects become dependency edges, and substitution
rewrites build settings and removes targets in place.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pbxproj import XcodeProject

from binswap.core.context import BoundProduct
from binswap.core.errors import BinswapError, GraphPatchError, PersistError
from binswap.core.target import Product, ProductType, Target

logger = logging.getLogger(__name__)

# Map Xcode product types to binswap product types
PRODUCT_TYPE_MAP = {
    "com.apple.product-type.framework": ProductType.FRAMEWORK,
    "com.apple.product-type.library.static": ProductType.STATIC_LIBRARY,
    "com.apple.product-type.library.dynamic": ProductType.DYNAMIC_LIBRARY,
    "com.apple.product-type.bundle": ProductType.BUNDLE,
    "com.apple.product-type.application": ProductType.APPLICATION,
}

# Build setting each product type is found through when prebuilt
SEARCH_PATH_SETTINGS = {
    ProductType.FRAMEWORK: "FRAMEWORK_SEARCH_PATHS",
    ProductType.STATIC_LIBRARY: "LIBRARY_SEARCH_PATHS",
    ProductType.DYNAMIC_LIBRARY: "LIBRARY_SEARCH_PATHS",
}

SUBSTITUTED_SETTING = "BINSWAP_SUBSTITUTED"

# Source trees whose files live in the checkout (hashable)
_CHECKOUT_SOURCE_TREES = ("<group>", "SOURCE_ROOT", "<absolute>")


def _get(obj: Any, key: str, default: Any = None) -> Any:
    """Read an attribute of a pbxproj object, tolerating absence."""
    if obj is None or key not in obj:
        return default
    value = obj[key]
    return default if value is None else value


class XcodeProjectModel:
    """A ProjectModel backed by an .xcodeproj bundle.

    Example:
        project = XcodeProjectModel.load("Pods/Pods.xcodeproj")
        targets = project.find_targets()

    Attributes:
        source_root: Directory containing the .xcodeproj; relative file
                     references resolve against it.
    """

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)
        self.source_root = self._path.parent
        self._project: XcodeProject | None = None
        self._targets: dict[str, Target] | None = None
        self._target_ids: dict[str, str] = {}
        self._parents: dict[str, str] = {}
        self.reload()

    @classmethod
    def load(cls, path: Path | str) -> XcodeProjectModel:
        return cls(path)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def pbxproj_path(self) -> Path:
        return self._path / "project.pbxproj"

    @property
    def xcode_project(self) -> XcodeProject:
        if self._project is None:
            raise BinswapError(f"Xcode project not loaded: {self._path}")
        return self._project

    def reload(self) -> None:
        """Re-read project.pbxproj, dropping cached targets."""
        if not self.pbxproj_path.is_file():
            raise BinswapError(f"not an Xcode project: {self._path}")
        self._project = XcodeProject.load(str(self.pbxproj_path))
        self._targets = None
        self._target_ids = {}

    # Reading

    def find_targets(self) -> dict[str, Target]:
        """Return native targets by name, in project order."""
        return dict(self._cached_targets())

    def _cached_targets(self) -> dict[str, Target]:
        if self._targets is None:
            self._targets = self._read_targets()
        return self._targets

    def _read_targets(self) -> dict[str, Target]:
        objects = self.xcode_project.objects
        self._index_groups()
        natives = objects.get_objects_in_section("PBXNativeTarget")
        by_id: dict[str, Target] = {}
        targets: dict[str, Target] = {}
        for native in natives:
            name = str(native["name"])
            target = Target(
                name,
                product=self._product(native),
                sources=self._phase_files(native, "PBXSourcesBuildPhase"),
                resources=self._phase_files(native, "PBXResourcesBuildPhase"),
                built_resources=self._phase_files(
                    native, "PBXResourcesBuildPhase", built=True
                ),
            )
            by_id[str(native.get_id())] = target
            targets[name] = target
            self._target_ids[name] = str(native.get_id())

        for native in natives:
            target = by_id[str(native.get_id())]
            for dep_id in _get(native, "dependencies", []):
                dep = objects[dep_id]
                dep_target = by_id.get(str(_get(dep, "target", "")))
                if dep_target is not None:
                    target.link(dep_target)
        logger.debug("Read %d target(s) from %s", len(targets), self._path)
        return targets

    def _product(self, native: Any) -> Product | None:
        product_type = _get(native, "productType")
        if product_type is None:
            return None
        name = str(_get(native, "productName", native["name"]))
        return Product(name, PRODUCT_TYPE_MAP.get(str(product_type), ProductType.OTHER))

    def _phase_files(self, native: Any, isa: str, *, built: bool = False) -> list[Path]:
        """Files of the build phases of kind isa.

        With built=False only files in the checkout are returned; with
        built=True only files taken from the build products directory.
        """
        objects = self.xcode_project.objects
        files: list[Path] = []
        for phase_id in _get(native, "buildPhases", []):
            phase = objects[phase_id]
            if phase is None or phase["isa"] != isa:
                continue
            for build_file_id in _get(phase, "files", []):
                ref = objects[_get(objects[build_file_id], "fileRef", "")]
                if ref is None:
                    continue
                in_checkout = _get(ref, "sourceTree", "<group>") in _CHECKOUT_SOURCE_TREES
                if in_checkout != built:
                    files.append(self._file_path(ref))
        return files

    def _index_groups(self) -> None:
        self._parents = {}
        for group in self.xcode_project.objects.get_objects_in_section(
            "PBXGroup", "PBXVariantGroup"
        ):
            for child in _get(group, "children", []):
                self._parents[str(child)] = str(group.get_id())

    def _file_path(self, ref: Any) -> Path:
        """Path of a file reference, relative to source_root when possible."""
        path = Path(str(_get(ref, "path", _get(ref, "name", ""))))
        tree = _get(ref, "sourceTree", "<group>")
        if tree != "<group>" or path.is_absolute():
            return path
        objects = self.xcode_project.objects
        parent_id = self._parents.get(str(ref.get_id()))
        while parent_id is not None:
            group = objects[parent_id]
            group_path = _get(group, "path")
            if group_path:
                path = Path(str(group_path)) / path
            if _get(group, "sourceTree", "<group>") != "<group>":
                break
            parent_id = self._parents.get(parent_id)
        return path

    # Substitution marker

    def _project_configurations(self) -> list[Any]:
        objects = self.xcode_project.objects
        root = objects[self.xcode_project.rootObject]
        config_list = objects[_get(root, "buildConfigurationList", "")]
        return [objects[c] for c in _get(config_list, "buildConfigurations", [])]

    def is_already_substituted(self) -> bool:
        return any(
            str(_get(_get(config, "buildSettings"), SUBSTITUTED_SETTING, "")) == "YES"
            for config in self._project_configurations()
        )

    def mark_as_substituted(self) -> None:
        configurations = self._project_configurations()
        if not configurations:
            raise GraphPatchError(f"{self._path} has no project build configurations")
        for config in configurations:
            settings = _get(config, "buildSettings")
            if settings is None:
                raise GraphPatchError(
                    f"{self._path}: configuration {config.get_id()} has no build settings"
                )
            settings[SUBSTITUTED_SETTING] = "YES"

    def set_build_setting(self, target_name: str, setting: str, value: str) -> None:
        """Set a build setting on every configuration of a target."""
        self.xcode_project.set_flags(setting, value, target_name=target_name)

    # Mutation

    def link_binaries(self, target: Target, products: list[BoundProduct]) -> None:
        """Point target at prebuilt products and drop its source dependencies."""
        native_id = self._target_ids.get(target.name)
        if native_id is None:
            raise GraphPatchError(f"unknown target '{target.name}'")
        removed_ids = set()
        for bound in products:
            setting = SEARCH_PATH_SETTINGS.get(bound.product.type)
            if setting == "FRAMEWORK_SEARCH_PATHS":
                self.xcode_project.add_framework_search_paths(
                    [str(bound.path)], recursive=False, target_name=target.name
                )
            elif setting == "LIBRARY_SEARCH_PATHS":
                self.xcode_project.add_library_search_paths(
                    [str(bound.path)], recursive=False, target_name=target.name
                )
            dep_id = self._target_ids.get(bound.target)
            if dep_id is not None:
                removed_ids.add(dep_id)

        self._remove_dependencies(self.xcode_project.objects[native_id], removed_ids)
        own = self.find_targets()[target.name]
        for bound in products:
            own.dependencies.pop(bound.target, None)
            link = bound.to_link()
            if link not in own.binary_links:
                own.binary_links.append(link)

    def delete_targets(self, targets: Mapping[str, Target], keep_groups: bool) -> None:
        """Remove targets with their phases, configurations and products.

        Args:
            targets: Targets to delete.
            keep_groups: If False, the groups named after deleted targets
                         are removed together with their files.
        """
        cached = self._cached_targets()
        objects = self.xcode_project.objects
        ids = {self._target_ids[name]: name for name in targets if name in self._target_ids}

        for native in objects.get_objects_in_section("PBXNativeTarget", "PBXAggregateTarget"):
            if str(native.get_id()) not in ids:
                self._remove_dependencies(native, set(ids))

        root = objects[self.xcode_project.rootObject]
        for native_id, name in ids.items():
            native = objects[native_id]
            self._remove_dependencies(native, None)
            for phase_id in list(_get(native, "buildPhases", [])):
                self._delete_phase(phase_id)
            config_list_id = _get(native, "buildConfigurationList")
            if config_list_id is not None:
                for config_id in list(_get(objects[config_list_id], "buildConfigurations", [])):
                    del objects[config_id]
                del objects[config_list_id]
            product_ref = _get(native, "productReference")
            if product_ref is not None:
                self._delete_file_reference(str(product_ref))
            root_targets = _get(root, "targets", [])
            if native_id in root_targets:
                root_targets.remove(native_id)
            del objects[native_id]
            if not keep_groups:
                for group in self._groups_named(name):
                    self._delete_group(str(group.get_id()))

        for native_id, name in ids.items():
            cached.pop(name, None)
            self._target_ids.pop(name, None)
        for target in cached.values():
            for name in set(ids.values()) & set(target.dependencies):
                del target.dependencies[name]
        logger.debug("Deleted %d target(s) from %s", len(ids), self._path)

    def _remove_dependencies(self, native: Any, target_ids: set[str] | None) -> None:
        """Drop native's PBXTargetDependency objects pointing at target_ids (all if None)."""
        objects = self.xcode_project.objects
        dependencies = _get(native, "dependencies", [])
        for dep_id in list(dependencies):
            dep = objects[dep_id]
            if target_ids is not None and str(_get(dep, "target", "")) not in target_ids:
                continue
            dependencies.remove(dep_id)
            proxy_id = _get(dep, "targetProxy")
            if proxy_id is not None:
                del objects[proxy_id]
            del objects[dep_id]

    def _delete_phase(self, phase_id: str) -> None:
        objects = self.xcode_project.objects
        for build_file_id in list(_get(objects[phase_id], "files", [])):
            del objects[build_file_id]
        del objects[phase_id]

    def _delete_file_reference(self, ref_id: str) -> None:
        """Delete a file reference, its build files and group entries."""
        objects = self.xcode_project.objects
        for build_file in list(objects.get_objects_in_section("PBXBuildFile")):
            if str(_get(build_file, "fileRef", "")) != ref_id:
                continue
            for phase in objects.get_objects_in_section(
                "PBXFrameworksBuildPhase",
                "PBXResourcesBuildPhase",
                "PBXSourcesBuildPhase",
                "PBXHeadersBuildPhase",
                "PBXCopyFilesBuildPhase",
            ):
                files = _get(phase, "files", [])
                if build_file.get_id() in files:
                    files.remove(build_file.get_id())
            del objects[build_file.get_id()]
        self._detach_from_groups(ref_id)
        del objects[ref_id]

    def _groups_named(self, name: str) -> list[Any]:
        return [
            group
            for group in self.xcode_project.objects.get_objects_in_section("PBXGroup")
            if name in (str(_get(group, "name", "")), str(_get(group, "path", "")))
        ]

    def _delete_group(self, group_id: str) -> None:
        objects = self.xcode_project.objects
        group = objects[group_id]
        if group is None:
            return
        for child_id in list(_get(group, "children", [])):
            child = objects[child_id]
            if child is None:
                continue
            if child["isa"] in ("PBXGroup", "PBXVariantGroup"):
                self._delete_group(str(child_id))
            else:
                self._delete_file_reference(str(child_id))
        self._detach_from_groups(group_id)
        del objects[group_id]

    def _detach_from_groups(self, child_id: str) -> None:
        for group in self.xcode_project.objects.get_objects_in_section(
            "PBXGroup", "PBXVariantGroup"
        ):
            children = _get(group, "children", [])
            if child_id in children:
                children.remove(child_id)

    # Persistence

    def save(self) -> None:
        """Write project.pbxproj.

        Raises:
            PersistError: If the file cannot be written.
        """
        try:
            self.xcode_project.save()
        except OSError as e:
            raise PersistError(self._path, str(e)) from e

    def __repr__(self) -> str:
        return f"XcodeProjectModel({str(self._path)!r})"
