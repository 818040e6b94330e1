# SPDX-License-Identifier: MIT
"""Xcode project support."""

from binswap.xcode.patchers import CocoaPodsSupportFilesPatcher, XcodeLibrariesPatcher
from binswap.xcode.project import XcodeProjectModel

__all__ = [
    "CocoaPodsSupportFilesPatcher",
    "XcodeLibrariesPatcher",
    "XcodeProjectModel",
]
