# SPDX-License-Identifier: MIT
"""Xcode and CocoaPods specific patchers.

XcodeLibrariesPatcher prepares static libraries so that their prebuilt
binaries can be imported as modules. CocoaPodsSupportFilesPatcher
rewrites the "Target Support Files" of a consumer (xcconfig files,
embed and copy scripts) from build directory paths to the binary
artifact folders.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from pathlib import Path

from binswap.core.context import SubstitutionPlan
from binswap.core.patcher import FileReplacement
from binswap.core.target import ProductType, Target
from binswap.xcode.project import XcodeProjectModel

logger = logging.getLogger(__name__)

# Build directory variables CocoaPods uses to reference a pod's products
BUILD_DIR_VARIABLES = ("PODS_CONFIGURATION_BUILD_DIR", "BUILT_PRODUCTS_DIR")

# Support files that can reference products of other pods
SUPPORT_FILE_PATTERNS = ("*.xcconfig", "*-frameworks.sh", "*-resources.sh")


class XcodeLibrariesPatcher:
    """Sets DEFINES_MODULE on static library targets."""

    def __init__(self, project: XcodeProjectModel) -> None:
        self._project = project

    def patch(self, targets: Mapping[str, Target]) -> None:
        for name, target in targets.items():
            if target.product is None or target.product.type != ProductType.STATIC_LIBRARY:
                continue
            self._project.set_build_setting(name, "DEFINES_MODULE", "YES")
            logger.debug("Set DEFINES_MODULE for %s", name)


class CocoaPodsSupportFilesPatcher:
    """Points a consumer's support files at binary artifact folders.

    Example:
        patcher = CocoaPodsSupportFilesPatcher(Path("Pods/Target Support Files"))
        replacements = patcher.prepare_replacements(plan)

    Attributes:
        support_dir: The "Target Support Files" directory of the Pods project.
    """

    def __init__(self, support_dir: Path | str) -> None:
        self.support_dir = Path(support_dir)

    def support_files(self, target: Target) -> list[Path]:
        """Support files of target that may reference other pods."""
        folder = self.support_dir / target.name
        if not folder.is_dir():
            return []
        files: set[Path] = set()
        for pattern in SUPPORT_FILE_PATTERNS:
            files.update(p for p in folder.glob(pattern) if p.is_file())
        return sorted(files)

    def prepare_replacements(self, plan: SubstitutionPlan) -> list[FileReplacement]:
        if not plan.binary_products:
            return []
        files = self.support_files(plan.target)
        if not files:
            return []

        replacements: dict[str, str] = {}
        for bound in plan.binary_products:
            for variable in BUILD_DIR_VARIABLES:
                path = bound.path.as_posix()
                replacements[f"${{{variable}}}/{bound.target}"] = path
                replacements[f"$({variable})/{bound.target}"] = path
        regex = _reference_regex(sorted({b.target for b in plan.binary_products}))
        return [FileReplacement(path, regex, replacements) for path in files]


def _reference_regex(names: list[str]) -> re.Pattern[str]:
    """Match build directory references to any of names.

    A reference ends at a path separator, quote, whitespace or end of
    line, so "Alamofire" never matches inside "AlamofireImage".
    """
    variables = "|".join(BUILD_DIR_VARIABLES)
    # Longest names first so that alternation prefers the full name
    targets = "|".join(re.escape(n) for n in sorted(names, key=len, reverse=True))
    return re.compile(
        rf"(?:\$\{{(?:{variables})\}}|\$\((?:{variables})\))/(?:{targets})(?=[/\"'\s]|$)",
        re.MULTILINE,
    )
